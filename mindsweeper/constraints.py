"""Constraint derivation: turn revealed numbers into independent regions of constraints."""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .board import BoardView
from .errors import InternalInconsistency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Constraint:
    """Exactly ``mines`` of ``cells`` are mines."""

    cells: FrozenSet[int]
    mines: int

    def __len__(self) -> int:
        return len(self.cells)


@dataclass(frozen=True)
class Region:
    """
    A maximal group of constraints linked through shared cells.

    Attributes:
        constraints: Constraints of the region.
        cells: Every unknown cell referenced by those constraints, ascending.
    """

    constraints: Tuple[Constraint, ...]
    cells: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.cells)

    @property
    def min_mines(self) -> int:
        """A lower bound on mines in the region (the largest single requirement)."""
        return max(c.mines for c in self.constraints)


@dataclass(frozen=True)
class Partition:
    """
    Unknown cells split into independent regions plus the free pool.

    Attributes:
        regions: Regions, ordered by their smallest cell id.
        free_cells: Unknown cells referenced by no constraint.
        known_mine_count: Mines already fixed outside regions and free cells.
        remaining_mines: Mines still to be placed among regions and free cells.
        region_of: Cell id -> index into ``regions``.
    """

    regions: Tuple[Region, ...]
    free_cells: Tuple[int, ...]
    known_mine_count: int
    remaining_mines: int
    region_of: Mapping[int, int]


def derive_constraints(
    view: BoardView, strict: bool = True
) -> Optional[List[Constraint]]:
    """
    Build one constraint per revealed number that still touches unknown cells.

    The required count is the displayed number minus the known mines around
    it. Numbers whose neighbors are all resolved are only checked.

    Args:
        view: Board snapshot.
        strict: If False, return None on an impossible count instead of
            raising (used for hypothetical views).

    Raises:
        InternalInconsistency: If strict and a required count is negative,
            exceeds the number of unknown neighbors, or two numbers demand
            different counts of the same cells.
    """
    by_cells: Dict[FrozenSet[int], Constraint] = {}
    constraints: List[Constraint] = []

    for cid in sorted(view.numbers):
        shown = view.numbers[cid]
        unknown: List[int] = []
        placed = 0
        for nbr in view.neighborhoods[cid]:
            if nbr in view.known_mines:
                placed += 1
            elif view.is_unknown(nbr):
                unknown.append(nbr)

        required = shown - placed
        if required < 0 or required > len(unknown):
            if not strict:
                return None
            raise InternalInconsistency(
                f"Cell {cid} shows {shown} with {placed} known mines and "
                f"{len(unknown)} unknown neighbors."
            )
        if not unknown:
            continue

        cells = frozenset(unknown)
        seen = by_cells.get(cells)
        if seen is not None:
            if seen.mines != required:
                if not strict:
                    return None
                raise InternalInconsistency(
                    f"Cells {sorted(cells)} need both {seen.mines} and {required} mines."
                )
            continue

        constraint = Constraint(cells, required)
        by_cells[cells] = constraint
        constraints.append(constraint)

    return constraints


def _find(parent: Dict[int, int], i: int) -> int:
    while parent[i] != i:
        parent[i] = parent[parent[i]]
        i = parent[i]
    return i


def partition_constraints(
    constraints: Sequence[Constraint],
    unknown_cells: Iterable[int],
    remaining_mines: int,
    known_mine_count: int = 0,
) -> Partition:
    """
    Group constraints sharing cells into regions with a union-find over cell ids.

    Args:
        constraints: Non-empty constraints over unknown cells.
        unknown_cells: Every cell whose status is still open.
        remaining_mines: Mines to distribute over ``unknown_cells``.
        known_mine_count: Mines already fixed elsewhere (bookkeeping only).
    """
    parent: Dict[int, int] = {}
    for constraint in constraints:
        cells = iter(constraint.cells)
        first = next(cells)
        parent.setdefault(first, first)
        root = _find(parent, first)
        for cell in cells:
            parent.setdefault(cell, cell)
            other = _find(parent, cell)
            if other != root:
                parent[other] = root

    grouped: Dict[int, List[Constraint]] = {}
    for constraint in constraints:
        root = _find(parent, next(iter(constraint.cells)))
        grouped.setdefault(root, []).append(constraint)

    members: Dict[int, List[int]] = {}
    for cell in parent:
        members.setdefault(_find(parent, cell), []).append(cell)

    regions: List[Region] = [
        Region(tuple(grouped[root]), tuple(sorted(members[root])))
        for root in grouped
    ]
    regions.sort(key=lambda r: r.cells[0])

    region_of: Dict[int, int] = {}
    for index, region in enumerate(regions):
        for cell in region.cells:
            region_of[cell] = index

    free_cells = tuple(c for c in sorted(unknown_cells) if c not in region_of)

    return Partition(
        regions=tuple(regions),
        free_cells=free_cells,
        known_mine_count=known_mine_count,
        remaining_mines=remaining_mines,
        region_of=region_of,
    )


def derive_partition(view: BoardView) -> Partition:
    """Derive constraints from a board snapshot and partition them into regions."""
    constraints = derive_constraints(view)
    if constraints is None:
        raise InternalInconsistency("Revealed numbers contradict each other.")
    partition = partition_constraints(
        constraints,
        view.unknown_cells(),
        view.remaining_mines,
        len(view.known_mines),
    )
    logger.debug(
        "Derived %d constraints in %d regions, %d free cells, %d mines remaining",
        len(constraints),
        len(partition.regions),
        len(partition.free_cells),
        partition.remaining_mines,
    )
    return partition
