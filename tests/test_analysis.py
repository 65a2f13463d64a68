import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402

from mindsweeper.analysis import (  # noqa: E402
    enumerate_layouts,
    format_deduction,
    run_solver_many_tests,
    run_solver_single_test,
    run_standard_levels_analysis,
    simulate_games,
)
from mindsweeper.config import GameConfig  # noqa: E402
from mindsweeper.deduction import deduce  # noqa: E402


class TestFormatting:
    def test_format_deduction(self, make_view):
        view = make_view([".1...1."], 3)
        text = format_deduction(view, deduce(view), show_coords=False)
        assert text == " .  1  .  *  .  1  ."

    def test_format_with_coordinates(self, make_view):
        view = make_view([".1...1."], 2)
        lines = format_deduction(view, deduce(view)).splitlines()
        assert len(lines) == 3
        assert lines[2].startswith(" 0 |")
        assert " s " in lines[2]


class TestEnumerateLayouts:
    def test_small_view(self, make_view):
        layouts = enumerate_layouts(make_view([".1.1..."], 2))
        assert sorted(sorted(layout) for layout in layouts) == [[0, 4], [2, 5], [2, 6]]

    def test_infeasible_view(self, make_view):
        assert enumerate_layouts(make_view([".1...1."], 1)) == []


class TestSimulation:
    def test_single_run_payload(self):
        result = run_solver_single_test(GameConfig(6, 6, 4, seed=1))
        assert result["status"] in (0, 1)
        assert result["generation_attempts"] >= 1
        assert result["guesses_count"] == 0

    def test_forced_play_never_loses(self):
        totals = simulate_games(GameConfig(6, 6, 4), 4, seed=3)
        assert totals["wins"] + totals["stuck"] + totals["losses"] == 4
        assert totals["losses"] == 0
        assert totals["guesses"] == 0

    def test_many_runs_aggregate(self):
        results = run_solver_many_tests(GameConfig(6, 6, 4), 3, seed=7)
        assert 0.0 <= results["win_rate"] <= 1.0
        assert results["win_rate"] + results["stuck_rate"] <= 1.0
        assert results["avg_generation_attempts"] >= 1.0
        assert "avg_reveal_moves_count" in results

    def test_level_analysis_plots(self):
        results = run_standard_levels_analysis(1, levels=["beginner"], show=False)
        assert set(results) == {"beginner"}
        assert plt.get_fignums()
        plt.close("all")
