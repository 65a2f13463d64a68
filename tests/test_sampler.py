import random
from collections import Counter

import pytest

from mindsweeper.analysis import chi_square, enumerate_layouts, tabulate_arrangements
from mindsweeper.errors import InternalInconsistency
from mindsweeper.sampler import count_consistent, sample_layout, sample_layout_with_mine


class TestSampleLayout:
    def test_draws_are_consistent(self, random_snapshots, rng):
        for view in random_snapshots:
            layouts = set(enumerate_layouts(view))
            for _ in range(20):
                layout = sample_layout(view, rng)
                assert layout in layouts
                assert len(layout) == view.mine_count

    def test_uniform_across_budget_trade_off(self, make_view, rng):
        # layouts {2, 5}, {2, 6} and {0, 4}: sampling the region's mine count
        # 50/50 would give {0, 4} half of the time
        view = make_view([".1.1..."], 2)
        samples = 3000
        table = tabulate_arrangements(view, samples, rng)

        assert set(table) == {
            frozenset({2, 5}),
            frozenset({2, 6}),
            frozenset({0, 4}),
        }
        for observed, expected in table.values():
            assert expected == pytest.approx(samples / 3)
            assert abs(observed - expected) < 150
        assert sum(observed for observed, _ in table.values()) == samples
        # 2 degrees of freedom; 13.8 is the 0.001 tail
        assert chi_square(table) < 13.8

    def test_uniform_on_random_snapshots(self, random_snapshots):
        rng = random.Random(99)
        for view in random_snapshots:
            total = count_consistent(view)
            if total < 2 or total > 40:
                continue
            samples = 200 * total
            observed = Counter(sample_layout(view, rng) for _ in range(samples))
            assert len(observed) == total
            for count in observed.values():
                assert abs(count - 200) < 80

    def test_known_mines_are_kept(self, make_view, rng):
        view = make_view(["*1...."], 2)
        for _ in range(20):
            layout = sample_layout(view, rng)
            assert 0 in layout
            assert 2 not in layout

    def test_infeasible_view_raises(self, make_view, rng):
        with pytest.raises(InternalInconsistency):
            sample_layout(make_view([".1...1."], 1), rng)


class TestSampleLayoutWithMine:
    def test_forces_the_cell(self, make_view, rng):
        view = make_view([".1.1..."], 2)
        for _ in range(20):
            assert sample_layout_with_mine(view, 2, rng) in {
                frozenset({2, 5}),
                frozenset({2, 6}),
            }
            assert sample_layout_with_mine(view, 0, rng) == frozenset({0, 4})

    def test_locally_safe_cell(self, make_view, rng):
        assert sample_layout_with_mine(make_view(["0.."], 1), 1, rng) is None

    def test_revealed_cell(self, make_view, rng):
        assert sample_layout_with_mine(make_view([".1."], 1), 1, rng) is None

    def test_globally_safe_cell(self, make_view, rng):
        # every mine is needed by the two regions
        assert sample_layout_with_mine(make_view([".1...1."], 2), 3, rng) is None
