import pytest

from mindsweeper.analysis import enumerate_layouts
from mindsweeper.constraints import Constraint
from mindsweeper.deduction import (
    FORCED_MINE,
    FORCED_SAFE,
    UNDETERMINED,
    admissible_counts,
    deduce,
    deduce_trivially,
    eliminate,
)
from mindsweeper.errors import InternalInconsistency


def c(cells, mines):
    return Constraint(frozenset(cells), mines)


class TestElimination:
    def test_zero_constraint_makes_cells_safe(self):
        result = eliminate([c({0, 1}, 0)])
        assert result.safe == {0, 1}
        assert result.mines == set()
        assert result.constraints == []

    def test_full_constraint_makes_cells_mines(self):
        result = eliminate([c({0, 1}, 2)])
        assert result.mines == {0, 1}

    def test_subset_difference_is_safe(self):
        result = eliminate([c({0, 1}, 1), c({0, 1, 2}, 1)])
        assert result.consistent
        assert 2 in result.safe
        assert result.mines == set()

    def test_single_inference_only(self):
        result = eliminate([c({0, 1}, 1), c({0, 1, 2}, 1)], paired=False)
        assert result.consistent
        assert result.safe == set()
        assert result.mines == set()

    def test_subset_difference_is_mine(self):
        result = eliminate([c({0, 1}, 1), c({0, 1, 2}, 2)])
        assert 2 in result.mines
        assert {0, 1}.isdisjoint(result.safe | result.mines)

    def test_overlap_bounds(self):
        # the 1-2-1 pattern: {0,1} has 1, {0,1,2} has 2, {1,2,3} has 2, {2,3,4} has 1
        result = eliminate(
            [c({0, 1}, 1), c({0, 1, 2}, 2), c({1, 2, 3}, 2), c({2, 3, 4}, 1)]
        )
        assert result.consistent
        assert 2 in result.mines
        assert {3, 4} <= result.safe

    def test_propagates_through_forced_cells(self):
        result = eliminate([c({0}, 1), c({0, 1}, 1), c({1, 2}, 1)])
        assert result.mines == {0, 2}
        assert result.safe == {1}

    def test_conflicting_duplicates_are_inconsistent(self):
        assert not eliminate([c({0, 1}, 1), c({0, 1}, 2)]).consistent

    def test_impossible_overlap_is_inconsistent(self):
        assert not eliminate([c({0}, 1), c({0, 1}, 0)]).consistent


class TestAdmissibleCounts:
    def test_budget_restricts_components(self):
        admissible, totals = admissible_counts([{1}, {0, 1}], 1)
        assert admissible == [{1}, {0}]
        assert 1 in totals

    def test_unreachable_budget(self):
        admissible, totals = admissible_counts([{1}, {1}], 1)
        assert 1 not in totals
        assert admissible == [set(), set()]


class TestDeduce:
    def test_symmetric_cells_are_undetermined(self, make_view):
        deduction = deduce(make_view([".1."], 1))
        assert deduction.undetermined == {0, 2}
        assert deduction.status(1) == FORCED_SAFE
        assert deduction.status(0) == UNDETERMINED
        assert deduction.complete

    def test_global_budget_clears_free_cells(self, make_view):
        deduction = deduce(make_view([".1...1."], 2))
        assert deduction.status(3) == FORCED_SAFE
        assert deduction.stats["global"] == 1

    def test_global_budget_mines_free_cells(self, make_view):
        deduction = deduce(make_view([".1...1."], 3))
        assert deduction.status(3) == FORCED_MINE
        assert deduction.undetermined == {0, 2, 4, 6}

    def test_budget_forces_whole_region(self, make_view):
        # {2} alone or {0, 4}; only one mine left, so cell 2 is the mine
        deduction = deduce(make_view([".1.1."], 1))
        assert deduction.mines == {2}
        assert {0, 4} <= deduction.safe

    def test_known_mines_count_towards_budget(self, make_view):
        deduction = deduce(make_view(["*1...."], 1))
        assert deduction.safe >= {2, 3, 4, 5}
        assert deduction.status(0) == FORCED_MINE

    def test_mine_bounds_bracket_total(self, make_view):
        deduction = deduce(make_view([".1.1..."], 2))
        assert deduction.min_total == 1
        assert deduction.max_total == 4

    def test_matches_brute_force(self, random_snapshots):
        for view in random_snapshots:
            layouts = enumerate_layouts(view)
            deduction = deduce(view)
            assert deduction.complete
            for cid in view.unknown_cells():
                in_mines = sum(1 for layout in layouts if cid in layout)
                if in_mines == len(layouts):
                    expected = FORCED_MINE
                elif in_mines == 0:
                    expected = FORCED_SAFE
                else:
                    expected = UNDETERMINED
                assert deduction.status(cid) == expected, (cid, view.numbers)

    def test_ceiling_marks_result_incomplete(self, make_view):
        deduction = deduce(make_view([".1.1..."], 2), enumeration_ceiling=2)
        assert not deduction.complete
        assert {0, 2, 4} <= deduction.undetermined

    def test_parallel_matches_serial(self, random_snapshots):
        for view in random_snapshots:
            assert deduce(view, max_workers=4) == deduce(view)

    def test_contradictory_clues_raise(self, make_view):
        with pytest.raises(InternalInconsistency):
            deduce(make_view([".1...1."], 1))


class TestTrivialDeduction:
    def test_numbers_chain_on_their_own(self, make_view):
        result = deduce_trivially(make_view(["1.1."], 1))
        assert result.mines == {1}
        assert result.safe == {0, 2, 3}
        assert result.complete

    def test_numbers_are_never_combined(self, make_view):
        view = make_view([".1...1."], 3)
        trivial = deduce_trivially(view)
        assert trivial.undetermined == {0, 2, 3, 4, 6}
        assert not trivial.complete
        assert deduce(view).status(3) == FORCED_MINE

    def test_contradiction_raises(self, make_view):
        with pytest.raises(InternalInconsistency):
            deduce_trivially(make_view(["1.", "00"], 1))
