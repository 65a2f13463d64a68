"""Deduction engine: which hidden cells are forced safe, forced mines, or undetermined."""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from .board import BoardView
from .config import DEFAULT_ENUMERATION_CEILING
from .constraints import Constraint, Partition, derive_constraints, partition_constraints
from .counting import RegionCount, count_regions
from .errors import InternalInconsistency

logger = logging.getLogger(__name__)

FORCED_SAFE = "forced_safe"
FORCED_MINE = "forced_mine"
UNDETERMINED = "undetermined"


@dataclass(frozen=True)
class Deduction:
    """
    Classification of every cell for one board snapshot.

    Revealed cells and known-safe cells count as safe; known mines count as
    mines. ``complete`` is False when some region exceeded the enumeration
    ceiling, in which case a few undetermined cells may in truth be forced.
    ``min_total``/``max_total`` bound the total mine count allowed by the
    clues alone, ignoring the global mine budget.
    """

    safe: FrozenSet[int]
    mines: FrozenSet[int]
    undetermined: FrozenSet[int]
    complete: bool = True
    min_total: int = 0
    max_total: int = 0
    stats: Dict[str, int] = field(default_factory=dict, compare=False)

    def status(self, cid: int) -> str:
        if cid in self.mines:
            return FORCED_MINE
        if cid in self.undetermined:
            return UNDETERMINED
        return FORCED_SAFE


@dataclass
class Elimination:
    """Outcome of subset elimination over a constraint set."""

    safe: Set[int] = field(default_factory=set)
    mines: Set[int] = field(default_factory=set)
    constraints: List[Constraint] = field(default_factory=list)
    consistent: bool = True


# -----------------------------------------------------------------------------
# Subset elimination
# -----------------------------------------------------------------------------


def _paired_bounds(
    a: Constraint, b: Constraint
) -> Optional[Tuple[FrozenSet[int], FrozenSet[int], FrozenSet[int], int, int]]:
    """
    Overlap analysis of two constraints.

    Returns (only_a, only_b, both, t_low, t_high) where t_low..t_high is the
    feasible range of mines in the intersection, or None if they do not overlap.
    """
    both = a.cells & b.cells
    if not both:
        return None
    only_a = a.cells - both
    only_b = b.cells - both
    t_low = max(0, a.mines - len(only_a), b.mines - len(only_b))
    t_high = min(len(both), a.mines, b.mines)
    return only_a, only_b, both, t_low, t_high


def eliminate(
    constraints: Sequence[Constraint], max_rounds: int = 64, paired: bool = True
) -> Elimination:
    """
    Apply single and paired inference until nothing changes.

    Single inference: a constraint needing 0 mines makes its cells safe, one
    needing as many mines as cells makes them all mines. Paired inference: for
    two overlapping constraints the mines in the intersection are confined to
    [t_low, t_high], which bounds the mines in each exclusive part; when one
    constraint's cells are a subset of another's, the difference becomes a new
    constraint. Forced cells are removed from every constraint and the loop
    restarts.

    Args:
        constraints: Constraints over unknown cells.
        max_rounds: Upper bound on restarts (each round forces at least one cell
            or adds one derived constraint, so this is only a safety net).
        paired: If False, only single inference runs (each number read on its own).
    """
    result = Elimination()
    active: Dict[FrozenSet[int], int] = {}
    for c in constraints:
        if active.get(c.cells, c.mines) != c.mines:
            result.consistent = False
            return result
        active[c.cells] = c.mines

    for _ in range(max_rounds):
        forced_safe: Set[int] = set()
        forced_mines: Set[int] = set()
        derived: Dict[FrozenSet[int], int] = {}

        for cells, mines in active.items():
            if mines == 0:
                forced_safe |= cells
            elif mines == len(cells):
                forced_mines |= cells

        if paired and not forced_safe and not forced_mines:
            by_cell: Dict[int, List[FrozenSet[int]]] = {}
            for cells in active:
                for cell in cells:
                    by_cell.setdefault(cell, []).append(cells)

            seen_pairs: Set[Tuple[FrozenSet[int], FrozenSet[int]]] = set()
            for cell, members in by_cell.items():
                for i, cells_a in enumerate(members):
                    for cells_b in members[i + 1:]:
                        key = (cells_a, cells_b)
                        if key in seen_pairs:
                            continue
                        seen_pairs.add(key)
                        a = Constraint(cells_a, active[cells_a])
                        b = Constraint(cells_b, active[cells_b])
                        bounds = _paired_bounds(a, b)
                        if bounds is None:
                            continue
                        only_a, only_b, both, t_low, t_high = bounds
                        if t_low > t_high:
                            result.consistent = False
                            return result

                        for only, own in ((only_a, a.mines), (only_b, b.mines)):
                            if not only:
                                continue
                            if own - t_low == 0:
                                forced_safe |= only
                            elif own - t_high == len(only):
                                forced_mines |= only
                        if t_high == 0:
                            forced_safe |= both
                        elif t_low == len(both):
                            forced_mines |= both

                        if not only_a and only_b and only_b not in active:
                            derived[only_b] = b.mines - a.mines
                        elif not only_b and only_a and only_a not in active:
                            derived[only_a] = a.mines - b.mines

        if forced_safe & forced_mines:
            result.consistent = False
            return result

        if not forced_safe and not forced_mines:
            if not derived:
                break
            for cells, mines in derived.items():
                if mines < 0 or mines > len(cells):
                    result.consistent = False
                    return result
                active[cells] = mines
            continue

        result.safe |= forced_safe
        result.mines |= forced_mines
        reduced: Dict[FrozenSet[int], int] = {}
        for cells, mines in active.items():
            remaining = mines - len(cells & forced_mines)
            rest = cells - forced_safe - forced_mines
            if remaining < 0 or remaining > len(rest):
                result.consistent = False
                return result
            if not rest:
                continue
            if reduced.get(rest, remaining) != remaining:
                result.consistent = False
                return result
            reduced[rest] = remaining
        active = reduced

    result.constraints = [Constraint(cells, mines) for cells, mines in active.items()]
    return result


# -----------------------------------------------------------------------------
# Global mine budget
# -----------------------------------------------------------------------------


def _sumset(a: Iterable[int], b: Iterable[int], limit: int) -> Set[int]:
    b = list(b)
    return {x + y for x in a for y in b if x + y <= limit}


def admissible_counts(
    possible: Sequence[Set[int]], remaining: int
) -> Tuple[List[Set[int]], Set[int]]:
    """
    Restrict each component's possible mine counts to those that fit the budget.

    Args:
        possible: For each component (regions, then the free pool last), the
            mine counts it can hold on its own.
        remaining: Mines that must be placed across all components.

    Returns:
        (admissible per component, set of reachable totals).
    """
    prefix: List[Set[int]] = [{0}]
    for p in possible:
        prefix.append(_sumset(prefix[-1], p, remaining))
    suffix: List[Set[int]] = [set() for _ in possible] + [{0}]
    for i in range(len(possible) - 1, -1, -1):
        suffix[i] = _sumset(possible[i], suffix[i + 1], remaining)

    admissible: List[Set[int]] = []
    for i, p in enumerate(possible):
        others = _sumset(prefix[i], suffix[i + 1], remaining)
        admissible.append({k for k in p if remaining - k in others})
    return admissible, prefix[-1]


# -----------------------------------------------------------------------------
# Full deduction
# -----------------------------------------------------------------------------


def _classify_region(
    rc: RegionCount, admissible: Set[int]
) -> Tuple[Set[int], Set[int], Set[int]]:
    safe: Set[int] = set()
    mines: Set[int] = set()
    undetermined: Set[int] = set()
    for cell in rc.region.cells:
        always = all(rc.mine_hits.get(k, {}).get(cell, 0) == rc.counts[k] for k in admissible)
        never = all(rc.mine_hits.get(k, {}).get(cell, 0) == 0 for k in admissible)
        if always:
            mines.add(cell)
        elif never:
            safe.add(cell)
        else:
            undetermined.add(cell)
    return safe, mines, undetermined


def deduce(
    view: BoardView,
    enumeration_ceiling: int = DEFAULT_ENUMERATION_CEILING,
    max_workers: int = 1,
) -> Deduction:
    """
    Classify every hidden cell of a snapshot.

    Subset elimination runs first over the whole constraint set. The residual
    constraints are partitioned into regions; regions with at most
    ``enumeration_ceiling`` cells are enumerated exhaustively, larger ones keep
    the elimination result only. The global mine budget then restricts the
    mine counts each region and the free pool can take, which may force whole
    regions or every free cell.

    Raises:
        InternalInconsistency: If no arrangement satisfies the clues and M.
    """
    constraints = derive_constraints(view)
    if constraints is None:
        raise InternalInconsistency("Revealed numbers contradict each other.")
    elimination = eliminate(constraints)
    if not elimination.consistent:
        raise InternalInconsistency("Revealed numbers contradict each other.")

    known_mines = set(view.known_mines) | elimination.mines
    known_safe = set(view.known_safe) | elimination.safe
    remaining = view.mine_count - len(known_mines)
    if remaining < 0:
        raise InternalInconsistency(
            f"{len(known_mines)} forced mines exceed the total of {view.mine_count}."
        )

    unknown = [c for c in view.unknown_cells() if c not in known_mines and c not in known_safe]
    partition: Partition = partition_constraints(
        elimination.constraints, unknown, remaining, len(known_mines)
    )

    small = [r for r in partition.regions if len(r) <= enumeration_ceiling]
    large = [r for r in partition.regions if len(r) > enumeration_ceiling]
    if large:
        logger.debug(
            "Deduction incomplete: %d region(s) above the enumeration ceiling of %d (sizes %s)",
            len(large),
            enumeration_ceiling,
            [len(r) for r in large],
        )

    region_counts = count_regions(small, max_workers, remaining)
    for rc in region_counts:
        if not rc.counts:
            raise InternalInconsistency(
                f"Region of {len(rc.region)} cells has no satisfying assignment."
            )

    free_count = len(partition.free_cells)
    possible: List[Set[int]] = [set(rc.counts) for rc in region_counts]
    possible += [set(range(r.min_mines, len(r) + 1)) for r in large]
    possible.append(set(range(free_count + 1)))

    admissible, totals = admissible_counts(possible, remaining)
    if remaining not in totals:
        raise InternalInconsistency(
            f"No split of the {remaining} remaining mines satisfies every region."
        )

    stats = {
        "eliminated": len(elimination.safe) + len(elimination.mines),
        "enumerated": 0,
        "global": 0,
        "regions": len(partition.regions),
        "largest_region": max((len(r) for r in partition.regions), default=0),
    }

    safe = set(view.numbers) | known_safe
    mines = set(known_mines)
    undetermined: Set[int] = set()

    for rc, ks in zip(region_counts, admissible):
        s, m, u = _classify_region(rc, ks)
        stats["enumerated"] += len(s) + len(m)
        safe |= s
        mines |= m
        undetermined |= u

    for region, ks in zip(large, admissible[len(region_counts):-1]):
        if ks == {0}:
            safe.update(region.cells)
        elif ks == {len(region)}:
            mines.update(region.cells)
        else:
            undetermined.update(region.cells)

    free_ks = admissible[-1]
    if free_count:
        if free_ks == {0}:
            safe.update(partition.free_cells)
            stats["global"] += free_count
        elif free_ks == {free_count}:
            mines.update(partition.free_cells)
            stats["global"] += free_count
        else:
            undetermined.update(partition.free_cells)

    min_total = len(known_mines) + sum(min(p) for p in possible)
    max_total = len(known_mines) + sum(max(p) for p in possible)

    return Deduction(
        safe=frozenset(safe),
        mines=frozenset(mines),
        undetermined=frozenset(undetermined),
        complete=not large,
        min_total=min_total,
        max_total=max_total,
        stats=stats,
    )


def deduce_trivially(view: BoardView) -> Deduction:
    """
    Classify cells reading every revealed number on its own.

    A number whose remaining mines are zero makes its unknown neighbors safe,
    one whose remaining mines equal its unknown neighbors makes them mines,
    repeated until nothing changes. Numbers are never combined and the mine
    total is ignored, so this is what "mindless" play can see.

    Raises:
        InternalInconsistency: If the revealed numbers contradict each other.
    """
    constraints = derive_constraints(view)
    if constraints is None:
        raise InternalInconsistency("Revealed numbers contradict each other.")
    elimination = eliminate(constraints, paired=False)
    if not elimination.consistent:
        raise InternalInconsistency("Revealed numbers contradict each other.")

    safe = set(view.numbers) | set(view.known_safe) | elimination.safe
    mines = set(view.known_mines) | elimination.mines
    undetermined = {
        cid for cid in range(view.cell_count) if cid not in safe and cid not in mines
    }
    return Deduction(
        safe=frozenset(safe),
        mines=frozenset(mines),
        undetermined=frozenset(undetermined),
        complete=not undetermined,
        stats={"eliminated": len(elimination.safe) + len(elimination.mines)},
    )
