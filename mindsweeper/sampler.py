"""Uniform sampling of full mine layouts consistent with the revealed clues."""

import logging
import random
from typing import FrozenSet, Optional, Set, Tuple

from .board import BoardView
from .constraints import Partition, derive_constraints, partition_constraints
from .counting import ArrangementCounts, count_arrangements, select_arrangement
from .deduction import eliminate
from .errors import InternalInconsistency

logger = logging.getLogger(__name__)


def _prepare(
    view: BoardView, strict: bool, max_workers: int
) -> Optional[Tuple[Set[int], ArrangementCounts]]:
    """
    Reduce a view to (fixed mines, counted arrangements), or None if infeasible.

    Subset elimination runs first; every cell it forces takes the same value
    in every consistent arrangement, so fixing it keeps the count exact.
    """
    constraints = derive_constraints(view, strict=strict)
    if constraints is None:
        return None
    elimination = eliminate(constraints)
    if not elimination.consistent:
        return None

    fixed_mines: Set[int] = set(view.known_mines) | elimination.mines
    remaining = view.mine_count - len(fixed_mines)
    if remaining < 0:
        return None

    unknown = [
        c
        for c in view.unknown_cells()
        if c not in elimination.mines and c not in elimination.safe
    ]
    partition: Partition = partition_constraints(
        elimination.constraints, unknown, remaining, len(fixed_mines)
    )
    counts = count_arrangements(partition, max_workers)
    if counts.total == 0:
        return None
    return fixed_mines, counts


def count_consistent(view: BoardView, max_workers: int = 1) -> int:
    """Number of full layouts consistent with the clues, commitments and M."""
    prepared = _prepare(view, False, max_workers)
    if prepared is None:
        return 0
    return prepared[1].total


def draw_layout(
    fixed_mines: Set[int], counts: ArrangementCounts, rng: random.Random
) -> FrozenSet[int]:
    """
    Draw one layout uniformly from counted arrangements.

    Region mine counts are drawn one region at a time, weighting each choice
    k by (arrangements of the region with k mines) x (ways for the later
    regions and the free pool to hold the rest). Inside a region one of its
    k-mine arrangements is picked by index, and the leftover mines go to a
    uniform subset of the free cells. Every weight is an exact integer.
    """
    mines: Set[int] = set(fixed_mines)
    budget = counts.remaining

    for i, rc in enumerate(counts.region_counts):
        after = counts.suffix[i + 1]
        r = rng.randrange(counts.suffix[i][budget])
        chosen = -1
        for k in sorted(rc.counts):
            weight = rc.counts[k] * after.get(budget - k, 0)
            if r < weight:
                chosen = k
                break
            r -= weight
        if chosen < 0:
            raise InternalInconsistency("Region weights do not cover the drawn index.")

        index = rng.randrange(rc.counts[chosen])
        mines.update(select_arrangement(rc.region, chosen, index))
        budget -= chosen

    mines.update(rng.sample(counts.partition.free_cells, budget))
    return frozenset(mines)


def sample_layout(
    view: BoardView,
    rng: random.Random,
    max_workers: int = 1,
) -> FrozenSet[int]:
    """
    Draw a full mine layout uniformly among all layouts consistent with a view.

    Raises:
        InternalInconsistency: If the view admits no layout at all.
    """
    prepared = _prepare(view, True, max_workers)
    if prepared is None:
        raise InternalInconsistency("No mine layout is consistent with the revealed clues.")
    fixed_mines, counts = prepared
    logger.debug("Sampling one of %d consistent layouts", counts.total)
    return draw_layout(fixed_mines, counts, rng)


def sample_layout_with_mine(
    view: BoardView,
    cid: int,
    rng: random.Random,
    max_workers: int = 1,
) -> Optional[FrozenSet[int]]:
    """
    Draw a layout uniformly among consistent layouts in which ``cid`` is a mine.

    Returns:
        The layout, or None if no consistent layout mines ``cid``.
    """
    if not view.admits_mine(cid):
        return None
    prepared = _prepare(view.assuming(mines=(cid,)), False, max_workers)
    if prepared is None:
        return None
    fixed_mines, counts = prepared
    logger.debug("Sampling one of %d layouts that mine cell %d", counts.total, cid)
    return draw_layout(fixed_mines, counts, rng)
