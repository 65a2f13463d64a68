"""Post-mortem classification of hidden cells after a lost game."""

from typing import Dict, Iterable

from .board import BoardView
from .config import DEFAULT_ENUMERATION_CEILING
from .deduction import FORCED_MINE, FORCED_SAFE, UNDETERMINED, deduce

WAS_FORCED_SAFE = "was_forced_safe"
WAS_FORCED_MINE = "was_forced_mine"
WAS_UNDETERMINED = "was_undetermined"

_LABELS = {
    FORCED_SAFE: WAS_FORCED_SAFE,
    FORCED_MINE: WAS_FORCED_MINE,
    UNDETERMINED: WAS_UNDETERMINED,
}


def classify_postmortem(
    view: BoardView,
    hidden_cells: Iterable[int],
    enumeration_ceiling: int = DEFAULT_ENUMERATION_CEILING,
    max_workers: int = 1,
) -> Dict[int, str]:
    """
    Label hidden cells by what could be deduced just before the fatal click.

    Args:
        view: Snapshot taken immediately before the losing reveal.
        hidden_cells: Cells still hidden when the game ended.

    Returns:
        Cell id -> one of WAS_FORCED_SAFE, WAS_FORCED_MINE, WAS_UNDETERMINED.
    """
    deduction = deduce(view, enumeration_ceiling, max_workers)
    return {cid: _LABELS[deduction.status(cid)] for cid in hidden_cells}
