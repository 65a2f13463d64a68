"""
Mindsweeper

Minesweeper boards that never require a guess:
- Constraint derivation: revealed numbers become "k of these cells" constraints
- Deduction: subset elimination, exhaustive region enumeration, global budget
- Exact counting: per-region generating functions convolved with the free pool
- Uniform sampling: layouts drawn with exact integer weights
- Lazy commitment: mines are fixed only when a reveal needs them, and
  guesses can be punished
- Game modes: "mindless" boards need only single-number reasoning, and
  "autopilot" reveals those cells for the player
"""

from .analysis import (
    chi_square,
    enumerate_layouts,
    format_deduction,
    run_solver_many_tests,
    run_solver_single_test,
    run_standard_levels_analysis,
    simulate_games,
    tabulate_arrangements,
)
from .board import Board, BoardView
from .config import AUTOPILOT, MINDLESS, MODES, NORMAL, PRESETS, GameConfig, configure_logging
from .deduction import (
    FORCED_MINE,
    FORCED_SAFE,
    UNDETERMINED,
    Deduction,
    deduce,
    deduce_trivially,
)
from .engine import LOST, ONGOING, WON, Minesweeper, new_board, play_cli
from .errors import InternalInconsistency, InvalidConfiguration, MindsweeperError
from .postmortem import WAS_FORCED_MINE, WAS_FORCED_SAFE, WAS_UNDETERMINED
from .sampler import count_consistent, sample_layout
from .solver import MinesweeperSolver, is_solvable_without_guessing

__version__ = "1.0.0"

__all__ = [
    # Core classes
    "Minesweeper",
    "MinesweeperSolver",
    "Board",
    "BoardView",
    "GameConfig",
    "Deduction",
    # Board-state API
    "new_board",
    "LOST",
    "ONGOING",
    "WON",
    "FORCED_SAFE",
    "FORCED_MINE",
    "UNDETERMINED",
    "WAS_FORCED_SAFE",
    "WAS_FORCED_MINE",
    "WAS_UNDETERMINED",
    # Solving and sampling
    "deduce",
    "deduce_trivially",
    "count_consistent",
    "sample_layout",
    "is_solvable_without_guessing",
    # Configuration and errors
    "PRESETS",
    "MODES",
    "NORMAL",
    "MINDLESS",
    "AUTOPILOT",
    "configure_logging",
    "MindsweeperError",
    "InvalidConfiguration",
    "InternalInconsistency",
    # CLI
    "play_cli",
    # Analysis functions
    "format_deduction",
    "enumerate_layouts",
    "tabulate_arrangements",
    "chi_square",
    "run_solver_single_test",
    "run_solver_many_tests",
    "run_standard_levels_analysis",
    "simulate_games",
]
