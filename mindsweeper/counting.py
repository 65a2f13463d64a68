"""Exact counting of mine arrangements per region and across the whole board."""

import itertools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from fractions import Fraction
from math import comb
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .constraints import Partition, Region
from .errors import InternalInconsistency

logger = logging.getLogger(__name__)


@dataclass
class RegionCount:
    """
    Generating function of one region over "number of mines used".

    Attributes:
        region: The region that was enumerated.
        counts: k -> number of satisfying assignments using exactly k mines.
        mine_hits: k -> cell -> number of those assignments that mine the cell.
    """

    region: Region
    counts: Dict[int, int] = field(default_factory=dict)
    mine_hits: Dict[int, Dict[int, int]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def _order_constraints(region: Region) -> List[int]:
    """Visit constraints breadth-first so later ones overlap earlier ones."""
    constraints = region.constraints
    by_cell: Dict[int, List[int]] = {}
    for j, c in enumerate(constraints):
        for cell in c.cells:
            by_cell.setdefault(cell, []).append(j)

    order: List[int] = []
    seen = set()
    for start in range(len(constraints)):
        if start in seen:
            continue
        seen.add(start)
        queue = [start]
        while queue:
            j = queue.pop(0)
            order.append(j)
            for cell in sorted(constraints[j].cells):
                for nxt in by_cell[cell]:
                    if nxt not in seen:
                        seen.add(nxt)
                        queue.append(nxt)
    return order


def iter_region_arrangements(
    region: Region, mine_budget: Optional[int] = None
) -> Iterator[Tuple[int, ...]]:
    """
    Yield every assignment satisfying all constraints of a region.

    Constraints are visited in turn; at each one, the still-unassigned cells
    it covers are split into mines and safe cells with
    ``itertools.combinations`` so that it is met exactly. Every cell is
    covered by some constraint, so each full assignment is produced once.
    Enumeration order is deterministic.

    Args:
        region: Region to enumerate.
        mine_budget: If given, skip assignments using more mines than this.

    Yields:
        Tuples of the cell ids that are mines, ascending.
    """
    cells = region.cells
    local = {cell: i for i, cell in enumerate(cells)}
    order = _order_constraints(region)
    cons_cells: List[Tuple[int, ...]] = [
        tuple(sorted(local[c] for c in region.constraints[j].cells)) for j in order
    ]
    cons_mines: List[int] = [region.constraints[j].mines for j in order]

    cell_cons: List[List[int]] = [[] for _ in cells]
    for j, members in enumerate(cons_cells):
        for i in members:
            cell_cons[i].append(j)

    budget = len(cells) if mine_budget is None else mine_budget
    assignment: List[Optional[int]] = [None] * len(cells)
    placed: List[int] = [0] * len(cons_cells)
    open_cells: List[int] = [len(m) for m in cons_cells]

    def assign(i: int, value: int) -> bool:
        ok = True
        assignment[i] = value
        for j in cell_cons[i]:
            open_cells[j] -= 1
            placed[j] += value
            if placed[j] > cons_mines[j] or placed[j] + open_cells[j] < cons_mines[j]:
                ok = False
        return ok

    def unassign(i: int) -> None:
        value = assignment[i]
        if value is None:
            raise InternalInconsistency(f"Cell {cells[i]} was never assigned.")
        assignment[i] = None
        for j in cell_cons[i]:
            open_cells[j] += 1
            placed[j] -= value

    def dfs(j: int, mines_used: int) -> Iterator[Tuple[int, ...]]:
        if j == len(cons_cells):
            yield tuple(cells[i] for i, v in enumerate(assignment) if v == 1)
            return

        unassigned = [i for i in cons_cells[j] if assignment[i] is None]
        needed = cons_mines[j] - placed[j]
        if needed < 0 or needed > len(unassigned) or mines_used + needed > budget:
            return
        if not unassigned:
            yield from dfs(j + 1, mines_used)
            return

        for mines_tuple in itertools.combinations(unassigned, needed):
            mines_set = set(mines_tuple)
            ok = True
            for i in unassigned:
                if not assign(i, 1 if i in mines_set else 0):
                    ok = False
            if ok:
                yield from dfs(j + 1, mines_used + needed)
            for i in unassigned:
                unassign(i)

    yield from dfs(0, 0)


def enumerate_region(region: Region, mine_budget: Optional[int] = None) -> RegionCount:
    """Count satisfying assignments of a region, split by mines used."""
    result = RegionCount(region)
    for mines in iter_region_arrangements(region, mine_budget):
        k = len(mines)
        result.counts[k] = result.counts.get(k, 0) + 1
        hits = result.mine_hits.setdefault(k, {})
        for cell in mines:
            hits[cell] = hits.get(cell, 0) + 1
    return result


def select_arrangement(region: Region, mine_count: int, index: int) -> Tuple[int, ...]:
    """
    Return the ``index``-th satisfying assignment with exactly ``mine_count`` mines.

    The order is the deterministic enumeration order of
    :func:`iter_region_arrangements`, so drawing ``index`` uniformly from
    ``range(counts[mine_count])`` draws an assignment uniformly.

    Raises:
        IndexError: If there are not that many assignments.
    """
    seen = 0
    for mines in iter_region_arrangements(region, mine_count):
        if len(mines) != mine_count:
            continue
        if seen == index:
            return mines
        seen += 1
    raise IndexError(
        f"Region has only {seen} arrangements with {mine_count} mines, wanted #{index}."
    )


def free_pool_counts(free_count: int, limit: int) -> Dict[int, int]:
    """Ways to put k mines among ``free_count`` exchangeable cells: C(f, k)."""
    return {k: comb(free_count, k) for k in range(min(free_count, limit) + 1)}


def convolve(a: Dict[int, int], b: Dict[int, int], limit: int) -> Dict[int, int]:
    """Product of two generating functions, truncated above ``limit`` mines."""
    out: Dict[int, int] = {}
    for ka, wa in a.items():
        if wa == 0:
            continue
        for kb, wb in b.items():
            k = ka + kb
            if k > limit or wb == 0:
                continue
            out[k] = out.get(k, 0) + wa * wb
    return out


def count_regions(
    regions: Sequence[Region],
    max_workers: int = 1,
    mine_budget: Optional[int] = None,
) -> List[RegionCount]:
    """
    Enumerate every region, optionally on a thread pool.

    Regions share no cells, so each enumeration is independent; results are
    collected in input order.
    """
    if max_workers <= 1 or len(regions) <= 1:
        return [enumerate_region(region, mine_budget) for region in regions]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(enumerate_region, region, mine_budget) for region in regions
        ]
        return [future.result() for future in futures]


class ArrangementCounts:
    """
    Global count of full arrangements for a partition.

    Holds the per-region tables and the suffix convolutions
    ``suffix[i][m]`` = number of ways to place m mines in regions i.. plus
    the free pool. All arithmetic uses Python integers.
    """

    def __init__(self, partition: Partition, region_counts: Sequence[RegionCount]) -> None:
        self.partition: Partition = partition
        self.region_counts: List[RegionCount] = list(region_counts)
        self.remaining: int = partition.remaining_mines
        self.free_count: int = len(partition.free_cells)

        if self.remaining < 0:
            self.free: Dict[int, int] = {}
        else:
            self.free = free_pool_counts(self.free_count, self.remaining)

        self.suffix: List[Dict[int, int]] = [dict() for _ in self.region_counts]
        self.suffix.append(self.free)
        for i in range(len(self.region_counts) - 1, -1, -1):
            self.suffix[i] = convolve(
                self.region_counts[i].counts, self.suffix[i + 1], max(self.remaining, 0)
            )

        self.prefix: List[Dict[int, int]] = [{0: 1}]
        for rc in self.region_counts:
            self.prefix.append(convolve(self.prefix[-1], rc.counts, max(self.remaining, 0)))

    @property
    def total(self) -> int:
        """Number of full arrangements consistent with every constraint and M."""
        if self.remaining < 0:
            return 0
        return self.suffix[0].get(self.remaining, 0)

    def others_weight(self, index: int, mines: int) -> int:
        """Ways to place ``remaining - mines`` mines everywhere except region ``index``."""
        target = self.remaining - mines
        if target < 0:
            return 0
        before = self.prefix[index]
        after = self.suffix[index + 1]
        return sum(w * after.get(target - k, 0) for k, w in before.items())

    def free_weight(self, free_mines: int) -> int:
        """Ways for the regions to hold ``remaining - free_mines`` mines."""
        return self.prefix[-1].get(self.remaining - free_mines, 0)

    def mine_probabilities(self) -> Dict[int, Fraction]:
        """
        Exact probability of each unknown cell being a mine.

        Raises:
            ZeroDivisionError: If no arrangement exists.
        """
        total = self.total
        if total == 0:
            raise ZeroDivisionError("No arrangement is consistent with the clues.")

        probabilities: Dict[int, Fraction] = {}
        for index, rc in enumerate(self.region_counts):
            weighted: Dict[int, int] = {cell: 0 for cell in rc.region.cells}
            for k, hits in rc.mine_hits.items():
                w = self.others_weight(index, k)
                if w == 0:
                    continue
                for cell, n in hits.items():
                    weighted[cell] += n * w
            for cell, n in weighted.items():
                probabilities[cell] = Fraction(n, total)

        if self.free_count:
            expected_free = sum(
                f * c * self.free_weight(f) for f, c in self.free.items()
            )
            p_free = Fraction(expected_free, total * self.free_count)
            for cell in self.partition.free_cells:
                probabilities[cell] = p_free

        return probabilities


def count_arrangements(partition: Partition, max_workers: int = 1) -> ArrangementCounts:
    """Count, per region and globally, the arrangements consistent with a partition."""
    region_counts = count_regions(
        partition.regions, max_workers, max(partition.remaining_mines, 0)
    )
    counts = ArrangementCounts(partition, region_counts)
    logger.debug(
        "Counted %d regions (sizes %s), %d arrangements in total",
        len(region_counts),
        [len(r.region) for r in region_counts],
        counts.total,
    )
    return counts
