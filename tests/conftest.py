import random
from typing import Callable, Dict, List, Set

import pytest

from mindsweeper.board import Board, BoardView
from mindsweeper.config import GameConfig


def view_from_rows(rows: List[str], mine_count: int) -> BoardView:
    """
    Build a snapshot from a text grid.

    "0".."8" revealed numbers, "." unknown, "*" known mine, "s" known safe.
    """
    width = len(rows[0])
    numbers: Dict[int, int] = {}
    mines: Set[int] = set()
    safe: Set[int] = set()
    for y, row in enumerate(rows):
        assert len(row) == width
        for x, ch in enumerate(row):
            cid = y * width + x
            if ch.isdigit():
                numbers[cid] = int(ch)
            elif ch == "*":
                mines.add(cid)
            elif ch == "s":
                safe.add(cid)
    return BoardView(width, len(rows), mine_count, numbers, frozenset(mines), frozenset(safe))


@pytest.fixture
def make_view() -> Callable[[List[str], int], BoardView]:
    return view_from_rows


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def random_snapshots() -> List[BoardView]:
    """Snapshots of small boards after one safe reveal, from fixed seeds."""
    snapshots: List[BoardView] = []
    for seed in range(12):
        r = random.Random(seed)
        config = GameConfig(4, 4, 3)
        layout = frozenset(r.sample(range(16), 3))
        board = Board(config)
        board.set_layout(layout)
        numbered = [c for c in range(16) if c not in layout and board.adjacent_mine_count(c) > 0]
        board.flood_reveal(numbered[0])
        if not board.is_revealed(numbered[-1]):
            board.flood_reveal(numbered[-1])
        snapshots.append(board.view())
    return snapshots
