from fractions import Fraction

import pytest

from mindsweeper.analysis import enumerate_layouts
from mindsweeper.constraints import Constraint, Region, derive_partition
from mindsweeper.counting import (
    count_arrangements,
    count_regions,
    convolve,
    enumerate_region,
    free_pool_counts,
    iter_region_arrangements,
    select_arrangement,
)
from mindsweeper.sampler import count_consistent


def one_of_three() -> Region:
    return Region((Constraint(frozenset({0, 1, 2}), 1),), (0, 1, 2))


def chain() -> Region:
    # {0, 1} holds one mine and {1, 2} holds one mine
    return Region(
        (Constraint(frozenset({0, 1}), 1), Constraint(frozenset({1, 2}), 1)),
        (0, 1, 2),
    )


class TestRegionCounting:
    def test_one_of_three(self):
        rc = enumerate_region(one_of_three())
        assert rc.counts == {1: 3}
        assert rc.counts.get(0, 0) == 0
        assert rc.counts.get(2, 0) == 0
        assert rc.mine_hits == {1: {0: 1, 1: 1, 2: 1}}
        assert rc.total == 3

    def test_counts_split_by_mines_used(self):
        rc = enumerate_region(chain())
        assert rc.counts == {1: 1, 2: 1}
        assert sorted(iter_region_arrangements(chain())) == [(0, 2), (1,)]

    def test_mine_budget_truncates(self):
        rc = enumerate_region(chain(), mine_budget=1)
        assert rc.counts == {1: 1}

    def test_select_arrangement_walks_every_assignment(self):
        region = one_of_three()
        picked = {select_arrangement(region, 1, i) for i in range(3)}
        assert picked == {(0,), (1,), (2,)}
        with pytest.raises(IndexError):
            select_arrangement(region, 1, 3)

    def test_parallel_counting_matches_serial(self):
        regions = [one_of_three(), chain(), one_of_three()]
        serial = count_regions(regions)
        threaded = count_regions(regions, max_workers=3)
        assert [rc.counts for rc in threaded] == [rc.counts for rc in serial]


class TestGenerating:
    def test_free_pool_is_binomial(self):
        assert free_pool_counts(4, 2) == {0: 1, 1: 4, 2: 6}
        assert free_pool_counts(2, 5) == {0: 1, 1: 2, 2: 1}

    def test_convolve_truncates(self):
        assert convolve({0: 1, 1: 2}, {0: 1, 1: 1}, 1) == {0: 1, 1: 3}
        assert convolve({0: 1, 1: 2}, {0: 1, 1: 1}, 2) == {0: 1, 1: 3, 2: 2}


class TestArrangementCounts:
    @pytest.mark.parametrize("mines, expected", [(1, 0), (2, 4), (3, 4), (4, 0)])
    def test_independent_regions(self, make_view, mines, expected):
        view = make_view([".1...1."], mines)
        counts = count_arrangements(derive_partition(view))
        assert counts.total == expected

    def test_budget_trades_off_between_region_and_free_pool(self, make_view):
        # region {0, 2, 4} holds {2} or {0, 4}; free cells 5 and 6 take the rest
        view = make_view([".1.1..."], 2)
        counts = count_arrangements(derive_partition(view))
        assert counts.total == 3

        probabilities = counts.mine_probabilities()
        assert probabilities[2] == Fraction(2, 3)
        assert probabilities[0] == Fraction(1, 3)
        assert probabilities[5] == Fraction(1, 3)

    def test_probabilities_of_symmetric_cells(self, make_view):
        view = make_view([".1."], 1)
        probabilities = count_arrangements(derive_partition(view)).mine_probabilities()
        assert probabilities == {0: Fraction(1, 2), 2: Fraction(1, 2)}

    def test_no_arrangement_has_no_probabilities(self, make_view):
        view = make_view([".1...1."], 1)
        with pytest.raises(ZeroDivisionError):
            count_arrangements(derive_partition(view)).mine_probabilities()

    def test_matches_brute_force(self, random_snapshots):
        for view in random_snapshots:
            assert count_consistent(view) == len(enumerate_layouts(view))
