import random

from mindsweeper.config import GameConfig
from mindsweeper.postmortem import classify_postmortem
from mindsweeper.solver import LayoutOracle, MinesweeperSolver, is_solvable_without_guessing


class TestLayoutOracle:
    def test_reveal_shapes(self):
        oracle = LayoutOracle(GameConfig(3, 1, 1, first_click_safe_radius=0), frozenset({0}))
        assert oracle.reveal(2, 0) == (1, {"revealed_cells": [(2, 0, "0"), (1, 0, "1")]})
        assert oracle.reveal(2, 0) == (0, {})
        status, payload = oracle.reveal(0, 0)
        assert status == -1
        assert payload["losing_cell"] == (0, 0)


class TestSolvability:
    def test_empty_board_is_solved_by_one_click(self):
        config = GameConfig(3, 3, 0)
        assert is_solvable_without_guessing(config, frozenset(), (1, 1)) == (True, 1)

    def test_symmetric_line_needs_a_guess(self):
        config = GameConfig(3, 1, 1, first_click_safe_radius=0)
        assert is_solvable_without_guessing(config, frozenset({0}), (1, 0)) == (False, 1)

    def test_corner_click_resolves_line(self):
        # the opening cascade reaches every safe cell
        config = GameConfig(4, 1, 1, first_click_safe_radius=0)
        solvable, moves = is_solvable_without_guessing(config, frozenset({3}), (0, 0))
        assert solvable
        assert moves == 1


class TestSolver:
    def test_guessing_finishes_the_game(self):
        config = GameConfig(3, 1, 1, first_click_safe_radius=0)
        solver = MinesweeperSolver(
            LayoutOracle(config, frozenset({2})), allow_guessing=True, rng=random.Random(0)
        )
        status, payload = solver.solve((1, 0))
        assert status in (-1, 1)
        assert payload["guesses_count"] == 1
        assert payload["deduction_calls"] >= 1

    def test_metrics_after_stuck_game(self):
        config = GameConfig(3, 1, 1, first_click_safe_radius=0)
        solver = MinesweeperSolver(LayoutOracle(config, frozenset({2})))
        status, payload = solver.solve((1, 0))
        assert status == 0
        assert payload["reveal_moves_count"] == 1
        assert payload["revealed_cells_count"] == 1
        assert payload["guesses_count"] == 0
        assert payload["moves_sequence"] == [(1, 0, "S")]


class TestPostmortemClassifier:
    def test_labels_hidden_cells(self, make_view):
        view = make_view([".1...1."], 2)
        labels = classify_postmortem(view, [0, 2, 3, 4, 6])
        assert labels == {
            0: "was_undetermined",
            2: "was_undetermined",
            3: "was_forced_safe",
            4: "was_undetermined",
            6: "was_undetermined",
        }

    def test_known_mines_are_forced(self, make_view):
        labels = classify_postmortem(make_view(["*1.."], 1), [0, 2, 3])
        assert labels == {
            0: "was_forced_mine",
            2: "was_forced_safe",
            3: "was_forced_safe",
        }


class TestModes:
    def play(self, layout, mode):
        config = GameConfig(9, 9, 10, mode=mode)
        solver = MinesweeperSolver(LayoutOracle(config, layout))
        return solver.solve((0, 0))

    def test_autopilot_and_mindless_against_forced_play(self):
        rng = random.Random(5)
        eligible = [c for c in range(81) if c not in {0, 1, 9, 10}]
        for _ in range(6):
            layout = frozenset(rng.sample(eligible, 10))
            normal, _ = self.play(layout, "normal")
            autopilot, payload = self.play(layout, "autopilot")
            mindless, _ = self.play(layout, "mindless")

            assert autopilot == normal
            assert normal == 1 or mindless != 1
            steps = [step for _, _, step in payload["moves_sequence"]]
            assert steps.count("A") == payload["autopilot_moves_count"]
            assert steps.count("S") == payload["reveal_moves_count"]
