"""Forced-move solver used to check boards are guess-free and to simulate play."""

import logging
import random
from typing import Any, Dict, FrozenSet, List, Optional, Set, Tuple, cast

from .board import Board, BoardView
from .config import AUTOPILOT, MINDLESS, GameConfig
from .deduction import Deduction, deduce, deduce_trivially

logger = logging.getLogger(__name__)


class LayoutOracle:
    """
    Answers reveals from a fixed mine layout, with the engine's (status, payload) shape.

    Used while generating boards: nothing is committed beyond what the
    simulated reveals touch, and the layout never changes.
    """

    def __init__(self, config: GameConfig, layout: FrozenSet[int]) -> None:
        self.config: GameConfig = config
        self.width: int = config.width
        self.height: int = config.height
        self.mine_count: int = config.mine_count
        self._layout = layout
        self._board = Board(config)
        self._board.set_layout(layout)

    def reveal(self, x: int, y: int) -> Tuple[int, Dict[str, Any]]:
        board = self._board
        cid = board.cell_id(x, y)
        if board.is_revealed(cid):
            return 0, {}
        if cid in self._layout:
            return -1, {"losing_cell": (x, y), "all_mines": self._layout}
        revealed_cells = board.flood_reveal(cid)
        if board.hidden_safe_count == 0:
            return 1, {"revealed_cells": revealed_cells}
        return 0, {"revealed_cells": revealed_cells}


class MinesweeperSolver:
    """
    Plays a game using only logically forced moves.

    Each round the solver deduces the status of every hidden cell from the
    numbers it has seen and reveals all forced-safe cells. When nothing is
    forced it either stops (guess-free play) or, if ``allow_guessing`` is
    set, reveals a random undetermined cell.

    In "mindless" mode only cells made safe by a single number count as
    forced. In "autopilot" mode those cells are revealed for free before
    every deduction, so only the remaining reveals count as moves.
    """

    def __init__(
        self,
        game: Any,
        enumeration_ceiling: Optional[int] = None,
        max_workers: int = 1,
        allow_guessing: bool = False,
        rng: Optional[random.Random] = None,
        mode: Optional[str] = None,
    ) -> None:
        """
        Initialize a solver bound to a game.

        Args:
            game: Anything with ``width``, ``height``, ``mine_count``, ``config``
                and ``reveal(x, y) -> (status, payload)``; the engine and
                :class:`LayoutOracle` both qualify.
            enumeration_ceiling: Largest region enumerated exhaustively
                (defaults to the game's config).
            max_workers: Worker threads for region counting.
            allow_guessing: If True, reveal a random undetermined cell when stuck.
            rng: Random source for guesses.
            mode: Game mode (defaults to the game's config).
        """
        self.game = game
        self.board_width: int = game.width
        self.board_height: int = game.height
        self.mine_count: int = game.mine_count
        self.enumeration_ceiling: int = (
            enumeration_ceiling
            if enumeration_ceiling is not None
            else game.config.enumeration_ceiling
        )
        self.max_workers = max_workers
        self.allow_guessing = allow_guessing
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.mode: str = mode if mode is not None else game.config.mode

        # knowledge: revealed cell id -> number; deduced mines and safe cells
        self.numbers: Dict[int, int] = {}
        self.known_mines: Set[int] = set()

        # Metrics / counters (for analysis)
        self.reveal_moves_count: int = 0
        self.autopilot_moves_count: int = 0
        self.deduction_calls: int = 0
        self.inferred_eliminated_count: int = 0
        self.inferred_enumerated_count: int = 0
        self.inferred_global_count: int = 0
        self.guesses_count: int = 0
        self.max_region_size: int = 0
        self.incomplete_deductions: int = 0
        self.moves_sequence: List[Tuple[int, int, str]] = []

    # -------------------------------------------------------------------------
    # Knowledge
    # -------------------------------------------------------------------------

    def view(self) -> BoardView:
        return BoardView(
            self.board_width,
            self.board_height,
            self.mine_count,
            dict(self.numbers),
            frozenset(self.known_mines),
        )

    def number_view(self) -> BoardView:
        """Revealed numbers only, without anything deduced from them."""
        return BoardView(
            self.board_width, self.board_height, self.mine_count, dict(self.numbers)
        )

    def deduce(self) -> Deduction:
        """Run the deduction engine on current knowledge and remember forced mines."""
        if self.mode == MINDLESS:
            deduction = deduce_trivially(self.number_view())
            self.deduction_calls += 1
            self.inferred_eliminated_count += deduction.stats.get("eliminated", 0)
            return deduction

        deduction = deduce(self.view(), self.enumeration_ceiling, self.max_workers)
        self.deduction_calls += 1
        self.inferred_eliminated_count += deduction.stats.get("eliminated", 0)
        self.inferred_enumerated_count += deduction.stats.get("enumerated", 0)
        self.inferred_global_count += deduction.stats.get("global", 0)
        self.max_region_size = max(
            self.max_region_size, deduction.stats.get("largest_region", 0)
        )
        if not deduction.complete:
            self.incomplete_deductions += 1
        self.known_mines |= deduction.mines
        return deduction

    def reveal_cell(
        self, cid: int, by_autopilot: bool = False
    ) -> Tuple[int, Dict[str, Any]]:
        """Reveal a cell via the game and record the numbers it uncovers."""
        x, y = cid % self.board_width, cid // self.board_width
        self.moves_sequence.append((x, y, "A" if by_autopilot else "S"))
        status, payload = self.game.reveal(x, y)
        if by_autopilot:
            self.autopilot_moves_count += 1
        else:
            self.reveal_moves_count += 1

        for px, py, pv in cast(List[Tuple[int, int, str]], payload.get("revealed_cells", [])):
            self.numbers[py * self.board_width + px] = int(pv)

        return status, payload

    def run_autopilot(self) -> int:
        """Reveal trivially safe cells until none is left; returns the game status."""
        while True:
            trivial = deduce_trivially(self.number_view())
            moves = sorted(c for c in trivial.safe if c not in self.numbers)
            if not moves:
                return 0
            for cid in moves:
                if cid in self.numbers:
                    continue
                status, _ = self.reveal_cell(cid, by_autopilot=True)
                if status in (-1, 1):
                    return status

    def end_of_game_payload(self, status: int) -> Dict[str, Any]:
        """Terminal metrics payload (status -1 loss, 0 stuck, 1 win)."""
        return {
            "status": status,
            "reveal_moves_count": self.reveal_moves_count,
            "autopilot_moves_count": self.autopilot_moves_count,
            "moves_sequence": self.moves_sequence,
            "revealed_cells_count": len(self.numbers),
            "markings_count": len(self.known_mines),
            "deduction_calls": self.deduction_calls,
            "inferred_eliminated_count": self.inferred_eliminated_count,
            "inferred_enumerated_count": self.inferred_enumerated_count,
            "inferred_global_count": self.inferred_global_count,
            "guesses_count": self.guesses_count,
            "max_region_size": self.max_region_size,
            "incomplete_deductions": self.incomplete_deductions,
        }

    # -------------------------------------------------------------------------
    # Main solving loop
    # -------------------------------------------------------------------------

    def solve(
        self, first_click: Optional[Tuple[int, int]] = None
    ) -> Tuple[int, Dict[str, Any]]:
        """
        Play until the game is won, lost, or no forced move remains.

        Args:
            first_click: Opening cell; defaults to the board center.

        Returns:
            Tuple of (status, payload) where status is -1 (loss), 0 (stuck
            without a forced move) or 1 (win).
        """
        if first_click is None:
            first_click = (self.board_width // 2, self.board_height // 2)

        fx, fy = first_click
        status, _ = self.reveal_cell(fy * self.board_width + fx)
        if status in (-1, 1):
            return status, self.end_of_game_payload(status)

        while True:
            if self.mode == AUTOPILOT:
                status = self.run_autopilot()
                if status in (-1, 1):
                    return status, self.end_of_game_payload(status)

            deduction = self.deduce()
            safe_moves = sorted(c for c in deduction.safe if c not in self.numbers)

            if not safe_moves:
                if not self.allow_guessing or not deduction.undetermined:
                    logger.debug("No forced move left after %d reveals", self.reveal_moves_count)
                    return 0, self.end_of_game_payload(0)
                guess = self.rng.choice(sorted(deduction.undetermined))
                self.guesses_count += 1
                safe_moves = [guess]

            for cid in safe_moves:
                if cid in self.numbers:
                    continue
                status, _ = self.reveal_cell(cid)
                if status in (-1, 1):
                    return status, self.end_of_game_payload(status)


def is_solvable_without_guessing(
    config: GameConfig,
    layout: FrozenSet[int],
    first_click: Tuple[int, int],
) -> Tuple[bool, int]:
    """
    Check that a layout can be won from the first click using forced moves only.

    Which moves count as forced, and which are made for free, follows
    ``config.mode``.

    Returns:
        (solvable, number of reveal moves the player made, the first click
        included).
    """
    oracle = LayoutOracle(config, layout)
    solver = MinesweeperSolver(oracle)
    status, payload = solver.solve(first_click)
    return status == 1, cast(int, payload["reveal_moves_count"])
