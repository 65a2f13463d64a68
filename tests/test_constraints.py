import pytest

from mindsweeper.constraints import (
    Constraint,
    derive_constraints,
    derive_partition,
    partition_constraints,
)
from mindsweeper.errors import InternalInconsistency


class TestDeriveConstraints:
    def test_one_constraint_per_number(self, make_view):
        view = make_view([".1."], 1)
        constraints = derive_constraints(view)
        assert constraints == [Constraint(frozenset({0, 2}), 1)]

    def test_known_mines_are_subtracted(self, make_view):
        view = make_view(["*1."], 1)
        constraints = derive_constraints(view)
        assert constraints == [Constraint(frozenset({2}), 0)]

    def test_known_safe_cells_are_not_referenced(self, make_view):
        view = make_view(["s1."], 1)
        constraints = derive_constraints(view)
        assert constraints == [Constraint(frozenset({2}), 1)]

    def test_fully_resolved_numbers_are_skipped(self, make_view):
        view = make_view(["1*"], 1)
        assert derive_constraints(view) == []

    def test_count_above_unknown_neighbors_raises(self, make_view):
        view = make_view([".3."], 2)
        with pytest.raises(InternalInconsistency):
            derive_constraints(view)

    def test_negative_count_raises(self, make_view):
        view = make_view(["*0."], 1)
        with pytest.raises(InternalInconsistency):
            derive_constraints(view)

    def test_conflicting_duplicates_raise(self, make_view):
        view = make_view(["0.1"], 1)
        with pytest.raises(InternalInconsistency):
            derive_constraints(view)

    def test_non_strict_returns_none(self, make_view):
        view = make_view([".3."], 2)
        assert derive_constraints(view, strict=False) is None

    def test_identical_constraints_are_merged(self, make_view):
        view = make_view(["1.1"], 1)
        constraints = derive_constraints(view)
        assert len(constraints) == 1
        assert constraints[0].cells == frozenset({1})


class TestPartition:
    def test_independent_regions_and_free_cells(self, make_view):
        view = make_view([".1...1."], 2)
        partition = derive_partition(view)

        assert [r.cells for r in partition.regions] == [(0, 2), (4, 6)]
        assert partition.free_cells == (3,)
        assert partition.remaining_mines == 2
        assert partition.region_of == {0: 0, 2: 0, 4: 1, 6: 1}

    def test_linked_constraints_share_a_region(self, make_view):
        view = make_view([".1.1..."], 2)
        partition = derive_partition(view)

        assert len(partition.regions) == 1
        assert partition.regions[0].cells == (0, 2, 4)
        assert len(partition.regions[0].constraints) == 2
        assert partition.free_cells == (5, 6)

    def test_known_mines_reduce_the_budget(self, make_view):
        view = make_view(["*1..."], 2)
        partition = derive_partition(view)

        assert partition.known_mine_count == 1
        assert partition.remaining_mines == 1

    def test_regions_cover_each_cell_once(self):
        constraints = [
            Constraint(frozenset({5, 6}), 1),
            Constraint(frozenset({0, 1}), 1),
            Constraint(frozenset({1, 2}), 1),
        ]
        partition = partition_constraints(constraints, range(8), 3)

        assert [r.cells for r in partition.regions] == [(0, 1, 2), (5, 6)]
        assert partition.free_cells == (3, 4, 7)
        seen = [c for r in partition.regions for c in r.cells]
        assert len(seen) == len(set(seen))
