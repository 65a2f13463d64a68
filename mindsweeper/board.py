"""Board model: per-cell visibility, lazy mine commitment and read-only snapshots."""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .config import GameConfig
from .errors import InternalInconsistency
from .utils import cell_id, cell_xy, get_neighborhoods

# Visibility of a cell
HIDDEN = "hidden"
REVEALED = "revealed"
FLAGGED = "flagged"

# True mine status of a cell
UNSET = "unset"
COMMITTED_SAFE = "committed_safe"
COMMITTED_MINE = "committed_mine"


@dataclass(frozen=True)
class BoardView:
    """
    Immutable snapshot of everything the solver is allowed to see.

    Attributes:
        width: Grid width.
        height: Grid height.
        mine_count: Total mines M on the board.
        numbers: Revealed cell id -> adjacent mine count shown on it.
        known_mines: Hidden cells whose mine status is fixed as "mine".
        known_safe: Hidden cells whose mine status is fixed as "safe".
    """

    width: int
    height: int
    mine_count: int
    numbers: Mapping[int, int]
    known_mines: FrozenSet[int] = frozenset()
    known_safe: FrozenSet[int] = frozenset()
    neighborhoods: Tuple[Tuple[int, ...], ...] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "neighborhoods", get_neighborhoods(self.width, self.height)
        )

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    @property
    def remaining_mines(self) -> int:
        """Mines not yet accounted for by known mines."""
        return self.mine_count - len(self.known_mines)

    def unknown_cells(self) -> List[int]:
        """Hidden cells whose mine status is not fixed, in id order."""
        return [
            cid
            for cid in range(self.cell_count)
            if cid not in self.numbers
            and cid not in self.known_mines
            and cid not in self.known_safe
        ]

    def is_unknown(self, cid: int) -> bool:
        return (
            cid not in self.numbers
            and cid not in self.known_mines
            and cid not in self.known_safe
        )

    def assuming(
        self,
        mines: Iterable[int] = (),
        safe: Iterable[int] = (),
    ) -> "BoardView":
        """Return a view where extra cells are treated as known mines / safe cells."""
        return BoardView(
            self.width,
            self.height,
            self.mine_count,
            self.numbers,
            self.known_mines | frozenset(mines),
            self.known_safe | frozenset(safe),
        )

    def admits_mine(self, cid: int) -> bool:
        """
        Cheap local check: can ``cid`` be a mine without breaking an adjacent clue?

        Only looks at the revealed neighbors of ``cid``; a True answer does not
        guarantee a consistent arrangement exists.
        """
        if cid in self.numbers or cid in self.known_safe:
            return False
        if cid in self.known_mines:
            return True
        if self.remaining_mines <= 0:
            return False
        for nbr in self.neighborhoods[cid]:
            shown = self.numbers.get(nbr)
            if shown is None:
                continue
            placed = sum(1 for n in self.neighborhoods[nbr] if n in self.known_mines)
            if placed >= shown:
                return False
        return True


class Board:
    """
    Canonical grid state with deferred mine commitment.

    Each cell has a visibility (hidden / revealed / flagged) and a commitment
    (unset / committed safe / committed mine). Alongside the commitments the
    board holds a witness layout: one full mine arrangement consistent with
    every revealed number and every commitment. The witness of an unset cell
    is only provisional and may be replaced by the reveal resolver; committed
    cells never change once set.
    """

    def __init__(self, config: GameConfig) -> None:
        self.config: GameConfig = config
        self.width: int = config.width
        self.height: int = config.height
        self.mine_count: int = config.mine_count

        n = config.cell_count
        self.visibility: List[str] = [HIDDEN] * n
        self.commitment: List[str] = [UNSET] * n
        self.numbers: Dict[int, int] = {}
        self.layout: Optional[FrozenSet[int]] = None

        self.revealed_count: int = 0
        # Bumped on every mutation so cached analyses can be invalidated.
        self.version: int = 0

        self._neighborhoods: Tuple[Tuple[int, ...], ...] = get_neighborhoods(
            self.width, self.height
        )

    # -------------------------------------------------------------------------
    # Addressing
    # -------------------------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_id(self, x: int, y: int) -> int:
        return cell_id(self.width, x, y)

    def cell_xy(self, cid: int) -> Tuple[int, int]:
        return cell_xy(self.width, cid)

    def neighbors(self, cid: int) -> Tuple[int, ...]:
        """Return precomputed neighbor ids for a cell."""
        return self._neighborhoods[cid]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def generated(self) -> bool:
        return self.layout is not None

    @property
    def hidden_safe_count(self) -> int:
        return self.width * self.height - self.mine_count - self.revealed_count

    def is_revealed(self, cid: int) -> bool:
        return self.visibility[cid] == REVEALED

    def is_flagged(self, cid: int) -> bool:
        return self.visibility[cid] == FLAGGED

    def committed_mines(self) -> FrozenSet[int]:
        return frozenset(
            cid for cid, c in enumerate(self.commitment) if c == COMMITTED_MINE
        )

    def committed_hidden_safe(self) -> FrozenSet[int]:
        return frozenset(
            cid
            for cid, c in enumerate(self.commitment)
            if c == COMMITTED_SAFE and self.visibility[cid] != REVEALED
        )

    def view(self) -> BoardView:
        """Snapshot the information available to the solver."""
        return BoardView(
            self.width,
            self.height,
            self.mine_count,
            dict(self.numbers),
            self.committed_mines(),
            self.committed_hidden_safe(),
        )

    # -------------------------------------------------------------------------
    # Mutation (driven by the reveal resolver only)
    # -------------------------------------------------------------------------

    def toggle_flag(self, cid: int) -> bool:
        """Flip the flag on a hidden cell. Returns the new flag state."""
        if self.visibility[cid] == REVEALED:
            return False
        flagged = self.visibility[cid] != FLAGGED
        self.visibility[cid] = FLAGGED if flagged else HIDDEN
        self.version += 1
        return flagged

    def commit(self, cid: int, kind: str) -> None:
        """
        Permanently fix the mine status of a cell.

        Raises:
            InternalInconsistency: If the cell was already committed the other
                way, or the commitment contradicts the witness layout.
        """
        current = self.commitment[cid]
        if current == kind:
            return
        if current != UNSET:
            raise InternalInconsistency(
                f"Cell {self.cell_xy(cid)} is already {current}, cannot commit {kind}."
            )
        if self.layout is not None and (cid in self.layout) != (kind == COMMITTED_MINE):
            raise InternalInconsistency(
                f"Committing {self.cell_xy(cid)} as {kind} contradicts the witness layout."
            )
        self.commitment[cid] = kind
        self.version += 1

    def set_layout(self, mines: FrozenSet[int]) -> None:
        """
        Replace the witness layout.

        Raises:
            InternalInconsistency: If the layout has the wrong number of mines,
                breaks a commitment or disagrees with a revealed number.
        """
        if len(mines) != self.mine_count:
            raise InternalInconsistency(
                f"Layout has {len(mines)} mines, expected {self.mine_count}."
            )
        for cid, kind in enumerate(self.commitment):
            if kind == COMMITTED_MINE and cid not in mines:
                raise InternalInconsistency(f"Layout drops committed mine {self.cell_xy(cid)}.")
            if kind == COMMITTED_SAFE and cid in mines:
                raise InternalInconsistency(f"Layout mines committed safe {self.cell_xy(cid)}.")
        for cid, shown in self.numbers.items():
            actual = sum(1 for n in self.neighbors(cid) if n in mines)
            if actual != shown:
                raise InternalInconsistency(
                    f"Layout gives {actual} mines around {self.cell_xy(cid)}, "
                    f"which shows {shown}."
                )
        self.layout = mines
        self.version += 1

    def adjacent_mine_count(self, cid: int) -> int:
        if self.layout is None:
            raise InternalInconsistency("Mines have not been placed yet.")
        return sum(1 for n in self.neighbors(cid) if n in self.layout)

    def flood_reveal(self, cid: int) -> List[Tuple[int, int, str]]:
        """
        Reveal a committed-safe cell and every cell reachable through zeros.

        Returns:
            A list of newly revealed cells as (x, y, value_str).
        """
        frontier: Deque[int] = deque([cid])
        visited: Set[int] = {cid}
        revealed_cells: List[Tuple[int, int, str]] = []

        while frontier:
            cur = frontier.popleft()
            if self.visibility[cur] == REVEALED:
                continue

            self.commit(cur, COMMITTED_SAFE)
            count = self.adjacent_mine_count(cur)
            self.visibility[cur] = REVEALED
            self.numbers[cur] = count
            self.revealed_count += 1
            x, y = self.cell_xy(cur)
            revealed_cells.append((x, y, str(count)))

            if count == 0:
                for nbr in self.neighbors(cur):
                    if nbr in visited or self.visibility[nbr] != HIDDEN:
                        continue
                    visited.add(nbr)
                    frontier.append(nbr)

        self.version += 1
        return revealed_cells

    def commit_everything(self) -> None:
        """Fix every remaining cell according to the witness (end of game)."""
        if self.layout is None:
            raise InternalInconsistency("Mines have not been placed yet.")
        for cid, kind in enumerate(self.commitment):
            if kind == UNSET:
                self.commitment[cid] = (
                    COMMITTED_MINE if cid in self.layout else COMMITTED_SAFE
                )
        self.version += 1
