"""Game engine: guess-free generation, lazy mine commitment and guess punishment."""

import logging
import random
import threading
from typing import Dict, FrozenSet, List, Optional, Tuple

from .board import (
    COMMITTED_MINE,
    COMMITTED_SAFE,
    FLAGGED,
    HIDDEN,
    REVEALED,
    UNSET,
    Board,
    BoardView,
)
from .config import AUTOPILOT, MINDLESS, GameConfig
from .deduction import (
    FORCED_MINE,
    FORCED_SAFE,
    UNDETERMINED,
    Deduction,
    deduce,
    deduce_trivially,
)
from .errors import InternalInconsistency
from .postmortem import classify_postmortem
from .sampler import sample_layout, sample_layout_with_mine
from .solver import is_solvable_without_guessing
from .utils import protected_zone

logger = logging.getLogger(__name__)

# Reveal / game status codes
LOST = -1
ONGOING = 0
WON = 1


class Minesweeper:
    """
    Minesweeper game whose boards never require a guess.

    Mines are placed when the first cell is revealed, by sampling layouts
    until one can be won from that click with forced moves alone. From then
    on the board keeps a witness layout, but a hidden cell's mine status is
    only committed once a reveal or a deduction needs it. Revealing an
    undetermined cell either redraws the whole layout uniformly (default
    rules) or, with ``punish_guessing``, redraws it so that the cell is a mine.

    Every public method holds the game lock, so readers see the board either
    before or after a reveal, never halfway through one.
    """

    def __init__(self, config: GameConfig) -> None:
        """
        Initialize a game with no mines committed.

        Args:
            config: Validated game configuration.
        """
        self.config: GameConfig = config
        self.width: int = config.width
        self.height: int = config.height
        self.mine_count: int = config.mine_count

        self.board: Board = Board(config)
        self.rng: random.Random = random.Random(config.seed)

        self.status: int = ONGOING
        self.losing_cell: Optional[Tuple[int, int]] = None
        self.generation_attempts: int = 0
        self.guess_free: Optional[bool] = None

        self._lock = threading.RLock()
        self._closed = threading.Event()
        self._pre_loss_view: Optional[BoardView] = None
        self._hidden_at_loss: FrozenSet[int] = frozenset()
        self._deduction_cache: Optional[Tuple[int, Deduction]] = None

    # -------------------------------------------------------------------------
    # Read-only queries
    # -------------------------------------------------------------------------

    @property
    def punish_guessing(self) -> bool:
        return self.config.punish_guessing

    @property
    def game_over(self) -> bool:
        with self._lock:
            return self.status != ONGOING

    @property
    def generated(self) -> bool:
        """Whether the first click has placed the mines."""
        with self._lock:
            return self.board.generated

    @property
    def revealed_count(self) -> int:
        with self._lock:
            return self.board.revealed_count

    @property
    def hidden_safe_count(self) -> int:
        with self._lock:
            return self.board.hidden_safe_count

    def snapshot(self) -> BoardView:
        """Consistent read-only view of the current clues and commitments."""
        with self._lock:
            return self.board.view()

    def deduction(self) -> Deduction:
        """Deduction for the current state (cached until the board changes)."""
        with self._lock:
            return self._deduce(self.board.view())

    def forced_status(self, x: int, y: int) -> str:
        """
        Classify a cell as "forced_safe", "forced_mine" or "undetermined".

        Raises:
            ValueError: If coordinates are out of bounds.
        """
        if not self.board.in_bounds(x, y):
            raise ValueError("Cell coordinates are outside the board.")
        with self._lock:
            cid = self.board.cell_id(x, y)
            commitment = self.board.commitment[cid]
            if commitment == COMMITTED_MINE:
                return FORCED_MINE
            if commitment == COMMITTED_SAFE:
                return FORCED_SAFE
            return self._deduce(self.board.view()).status(cid)

    def forced_statuses(self) -> Dict[Tuple[int, int], str]:
        """forced_status of every cell not yet revealed, from one board state."""
        with self._lock:
            deduction = self._deduce(self.board.view())
            return {
                self.board.cell_xy(cid): deduction.status(cid)
                for cid in range(self.width * self.height)
                if not self.board.is_revealed(cid)
            }

    def hint(self) -> Optional[Tuple[int, int]]:
        """
        Return one hidden, unflagged forced-safe cell, or None if there is none.

        In mindless mode only cells made safe by a single number are offered.
        """
        with self._lock:
            if self.game_over:
                return None
            if self.config.mode == MINDLESS:
                deduction = self._deduce_trivially()
            else:
                deduction = self._deduce(self.board.view())
            for cid in sorted(deduction.safe):
                if self.board.visibility[cid] == HIDDEN:
                    return self.board.cell_xy(cid)
            return None

    def mine_bounds(self) -> Tuple[int, int]:
        """Smallest and largest total mine counts the clues allow, ignoring M."""
        deduction = self.deduction()
        return deduction.min_total, deduction.max_total

    def postmortem(self) -> Dict[Tuple[int, int], str]:
        """
        Label every cell that was hidden at the fatal click.

        Labels come from deducing over the commitments that existed just
        before the losing reveal; nothing is changed.

        Raises:
            RuntimeError: If the game was not lost.
        """
        with self._lock:
            if self.status != LOST or self._pre_loss_view is None:
                raise RuntimeError("Post-mortem is only available after a loss.")
            labels = classify_postmortem(
                self._pre_loss_view,
                self._hidden_at_loss,
                self.config.enumeration_ceiling,
                self.config.max_workers,
            )
            return {self.board.cell_xy(cid): label for cid, label in labels.items()}

    # -------------------------------------------------------------------------
    # Board generation
    # -------------------------------------------------------------------------

    def _generate(self, cid: int) -> None:
        """Commit a layout that keeps the first click's zone safe and needs no guess."""
        x, y = self.board.cell_xy(cid)
        zone = protected_zone(
            self.width, self.height, x, y, self.config.first_click_safe_radius
        )
        eligible = [c for c in range(self.width * self.height) if c not in zone]
        unique = self.mine_count == 0 or len(eligible) == self.mine_count

        chosen: Optional[FrozenSet[int]] = None
        chosen_solvable = False
        attempts = 1 if unique else self.config.max_generation_attempts

        for attempt in range(1, attempts + 1):
            layout = frozenset(self.rng.sample(eligible, self.mine_count))
            solvable, moves = is_solvable_without_guessing(self.config, layout, (x, y))
            self.generation_attempts = attempt
            if solvable and (moves > 1 or unique):
                chosen, chosen_solvable = layout, True
                break
            # fallback: prefer a solvable layout (one won by the first click)
            if chosen is None or (solvable and not chosen_solvable):
                chosen, chosen_solvable = layout, solvable

        if chosen is None:
            raise InternalInconsistency("No layout was drawn.")
        if not chosen_solvable:
            logger.warning(
                "No guess-free layout found for %s after %d attempts; "
                "keeping a first-click-safe layout",
                self.config.describe(),
                self.generation_attempts,
            )
        self.guess_free = chosen_solvable

        self.board.set_layout(chosen)
        for safe_cid in sorted(zone):
            self.board.commit(safe_cid, COMMITTED_SAFE)
        logger.info(
            "Generated %s from first click (%d, %d) in %d attempt(s)",
            self.config.describe(),
            x,
            y,
            self.generation_attempts,
        )

    # -------------------------------------------------------------------------
    # Reveal resolution
    # -------------------------------------------------------------------------

    def _deduce(self, view: BoardView) -> Deduction:
        version = self.board.version
        if self._deduction_cache is not None and self._deduction_cache[0] == version:
            return self._deduction_cache[1]
        deduction = deduce(view, self.config.enumeration_ceiling, self.config.max_workers)
        self._deduction_cache = (version, deduction)
        return deduction

    def _deduce_trivially(self) -> Deduction:
        view = BoardView(self.width, self.height, self.mine_count, dict(self.board.numbers))
        return deduce_trivially(view)

    def _propagate(self) -> None:
        """Commit every cell the latest reveal made forced."""
        deduction = self._deduce(self.board.view())
        for cid in sorted(deduction.mines):
            self.board.commit(cid, COMMITTED_MINE)
        for cid in sorted(deduction.safe):
            if not self.board.is_revealed(cid):
                self.board.commit(cid, COMMITTED_SAFE)

    def _lose(self, cid: int, pre_view: BoardView) -> Tuple[int, Dict[str, object]]:
        self._pre_loss_view = pre_view
        self._hidden_at_loss = frozenset(
            c for c in range(self.width * self.height) if not self.board.is_revealed(c)
        )
        self.status = LOST
        self.losing_cell = self.board.cell_xy(cid)
        layout = self.board.layout
        if layout is None:
            raise InternalInconsistency("A game cannot be lost before mines are placed.")
        self.board.commit_everything()
        logger.info("Game lost at %s", self.losing_cell)
        return LOST, {
            "losing_cell": self.losing_cell,
            "all_mines": frozenset(self.board.cell_xy(c) for c in layout),
            "revealed_cells_count": self.board.revealed_count,
        }

    def _win(self, revealed_cells: List[Tuple[int, int, str]]) -> Tuple[int, Dict[str, object]]:
        self.status = WON
        self.board.commit_everything()
        logger.info("Game won after revealing %d cells", self.board.revealed_count)
        return WON, {"revealed_cells": revealed_cells}

    def _run_autopilot(self, revealed_cells: List[Tuple[int, int, str]]) -> bool:
        """
        Reveal trivially safe cells until none is left.

        Newly revealed cells are appended to ``revealed_cells``. Returns True
        if the game was won on the way.
        """
        board = self.board
        while True:
            cells = [
                cid
                for cid in sorted(self._deduce_trivially().safe)
                if board.visibility[cid] == HIDDEN
            ]
            if not cells:
                return False
            for cid in cells:
                if board.visibility[cid] != HIDDEN:
                    continue
                revealed_cells.extend(board.flood_reveal(cid))
                if board.hidden_safe_count == 0:
                    return True
            self._propagate()

    def _resolve(self, cid: int) -> Tuple[int, Dict[str, object]]:
        """
        Decide the fate of a hidden cell, commit it and reveal it if safe.

        Committed cells keep their status. For an unset cell the deduction
        decides; an undetermined cell is settled by a fresh uniform draw of
        the whole layout (or, when punishing, a draw conditioned on the cell
        being a mine).
        """
        board = self.board
        view = board.view()
        commitment = board.commitment[cid]

        if commitment == COMMITTED_MINE:
            return self._lose(cid, view)

        if commitment == UNSET:
            status = self._deduce(view).status(cid)
            layout: Optional[FrozenSet[int]] = None

            if status == UNDETERMINED:
                if self.punish_guessing:
                    layout = sample_layout_with_mine(
                        view, cid, self.rng, self.config.max_workers
                    )
                    if layout is None:
                        logger.debug("Cell %s cannot be a mine; revealing it", board.cell_xy(cid))
                else:
                    layout = sample_layout(view, self.rng, self.config.max_workers)

            if self._closed.is_set():
                logger.debug("Board closed during resolution; discarding result")
                return ONGOING, {}

            if layout is not None:
                board.set_layout(layout)
            if status == FORCED_MINE or (layout is not None and cid in layout):
                logger.debug("Cell %s resolved as a mine (%s)", board.cell_xy(cid), status)
                board.commit(cid, COMMITTED_MINE)
                return self._lose(cid, view)
            board.commit(cid, COMMITTED_SAFE)

        revealed_cells = board.flood_reveal(cid)
        if board.hidden_safe_count == 0:
            return self._win(revealed_cells)

        self._propagate()
        if self.config.mode == AUTOPILOT and self._run_autopilot(revealed_cells):
            return self._win(revealed_cells)
        return ONGOING, {"revealed_cells": revealed_cells}

    # -------------------------------------------------------------------------
    # Board-state API
    # -------------------------------------------------------------------------

    def reveal(self, x: int, y: int) -> Tuple[int, Dict[str, object]]:
        """
        Reveal a single cell and return a status code plus payload.

        Args:
            x: X-coordinate (column) of the cell to reveal.
            y: Y-coordinate (row) of the cell to reveal.

        Returns:
            Tuple of (status, payload) where status is:
                - -1: Mine hit (loss)
                - 0: Non-terminal reveal (or no-op)
                - 1: Win (all safe cells revealed)

            Payload contains:
                - For status 0 or 1: {"revealed_cells": List[(x, y, value_str)]}
                - For status -1: {"losing_cell": (x, y), "all_mines": FrozenSet,
                  "revealed_cells_count": int}
                - For stale requests (out of bounds, already revealed,
                  flagged, game over or closed board): {}
        """
        with self._lock:
            if self._closed.is_set() or self.game_over or not self.board.in_bounds(x, y):
                logger.debug("Ignoring stale reveal at (%d, %d)", x, y)
                return ONGOING, {}

            cid = self.board.cell_id(x, y)
            if self.board.visibility[cid] in (REVEALED, FLAGGED):
                logger.debug("Ignoring reveal of %s cell (%d, %d)", self.board.visibility[cid], x, y)
                return ONGOING, {}

            if not self.board.generated:
                self._generate(cid)

            return self._resolve(cid)

    def toggle_flag(self, x: int, y: int) -> bool:
        """Flip the flag on a hidden cell; returns the new flag state."""
        with self._lock:
            if self._closed.is_set() or self.game_over or not self.board.in_bounds(x, y):
                return False
            return self.board.toggle_flag(self.board.cell_id(x, y))

    def close(self) -> None:
        """Mark the board closed; pending and later requests become no-ops."""
        self._closed.set()

    # -------------------------------------------------------------------------
    # Display methods
    # -------------------------------------------------------------------------

    _ANSI_RESET = "\033[0m"
    _ANSI_COORD = "\033[96m"
    _ANSI_MINE = "\033[91m"

    def _c(self, s: str) -> str:
        """Color the row and column labels of the terminal board."""
        return f"{self._ANSI_COORD}{s}{self._ANSI_RESET}"

    def _m(self, s: str) -> str:
        """Color mines shown once the game is over."""
        return f"{self._ANSI_MINE}{s}{self._ANSI_RESET}"

    def cell_symbol(self, x: int, y: int, reveal_all: bool = False) -> str:
        """
        Plain one-character symbol for a cell.

        "." hidden, "F" flagged, "0".."8" revealed, and with ``reveal_all``
        "M" for mines and "!" for the mine that ended the game.
        """
        board = self.board
        with self._lock:
            cid = board.cell_id(x, y)
            if board.is_revealed(cid):
                return str(board.numbers[cid])
            if reveal_all and board.layout is not None and cid in board.layout:
                return "!" if (x, y) == self.losing_cell else "M"
            if board.is_flagged(cid):
                return "F"
            if reveal_all and board.layout is not None:
                return str(board.adjacent_mine_count(cid))
            return "."

    def symbol_grid(self, reveal_all: bool = False) -> List[List[str]]:
        """Rows of cell_symbol values, all taken from the same board state."""
        with self._lock:
            return [
                [self.cell_symbol(x, y, reveal_all) for x in range(self.width)]
                for y in range(self.height)
            ]

    def format_board(self, reveal_all: bool = False) -> str:
        """
        Render the board as a multi-line string for terminal display.

        Args:
            reveal_all: If True, show mines and all underlying values.

        Returns:
            A formatted multi-line string with coordinate labels and the board grid.
        """
        w = self.width
        grid = self.symbol_grid(reveal_all)

        def cell_str(s: str) -> str:
            return self._m(s) if s in ("M", "!") else s

        header_cells = " ".join(f"{x:2d}" for x in range(w))
        out = [self._c("   ") + self._c(header_cells)]

        sep = self._c("   " + "-" * (3 * w - 1))
        out.append(sep)

        for y, row in enumerate(grid):
            row_cells = " ".join(f" {cell_str(s)}" for s in row)
            out.append(self._c(f"{y:2d} ") + self._c("|") + row_cells)

        return "\n".join(out)

    def print_board(self) -> None:
        """Print the current visible board state to stdout."""
        print(self.format_board(reveal_all=False))


def new_board(
    width: int,
    height: int,
    mine_count: int,
    first_click_safe_radius: int = 1,
    **options: object,
) -> Minesweeper:
    """
    Create a fresh game with no mines committed.

    Args:
        width: Board width (columns).
        height: Board height (rows).
        mine_count: Total number of mines.
        first_click_safe_radius: Chebyshev radius kept safe around the first click.
        **options: Other GameConfig fields (punish_guessing, seed, ...).

    Raises:
        InvalidConfiguration: If the configuration cannot produce a game.
    """
    config = GameConfig(
        width,
        height,
        mine_count,
        first_click_safe_radius=first_click_safe_radius,
        **options,  # type: ignore[arg-type]
    )
    return Minesweeper(config)


def play_cli(game: Minesweeper) -> None:
    """
    Run a simple terminal UI for playing a game.

    Commands: "x y" reveals, "f x y" toggles a flag, "h" asks for a hint,
    "q" quits. After a loss the post-mortem is printed.

    Args:
        game: A Minesweeper instance to play against.
    """
    rules = "punished" if game.punish_guessing else "resolved at random"
    print(f"{game.config.describe()}, {game.config.mode} mode; guesses are {rules}.")
    print("Commands: 'x y' reveal, 'f x y' flag, 'h' hint, 'q' quit. Coordinates are 0-based.\n")
    print(game.format_board(reveal_all=False))

    while True:
        s = input("\nMove: ").strip()
        if s.lower() in {"q", "quit", "exit"}:
            print("Quit.")
            return

        if s.lower() in {"h", "hint"}:
            cell = game.hint()
            print("No forced-safe cell right now." if cell is None else f"Try {cell}.")
            continue

        parts = s.replace(",", " ").split()
        flag = bool(parts) and parts[0].lower() == "f"
        if flag:
            parts = parts[1:]
        if len(parts) != 2:
            print("Invalid input. Example: 3 5  or  f 3 5")
            continue

        try:
            x = int(parts[0])
            y = int(parts[1])
        except ValueError:
            print("Invalid input. Coordinates must be integers.")
            continue

        if flag:
            game.toggle_flag(x, y)
            print(game.format_board(reveal_all=False))
            continue

        status, _ = game.reveal(x, y)

        print(f"\nYou decided to reveal ({x}, {y}).\n")
        print(game.format_board(reveal_all=False))

        if status == LOST:
            print("\nYou hit a mine. You lost.")
            print("\nFull board:")
            print(game.format_board(reveal_all=True))
            labels = game.postmortem()
            verdict = labels.get((x, y))
            if verdict == "was_undetermined":
                print("\nThat cell could not be deduced: it was a guess.")
            elif verdict == "was_forced_mine":
                print("\nThat cell was deducibly a mine.")
            return

        if status == WON:
            print("\nYou revealed all safe cells. You won!")
            print("\nFull board:")
            print(game.format_board(reveal_all=True))
            return
