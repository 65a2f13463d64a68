"""Analysis and benchmarking tools for guess-free boards."""

import itertools
import logging
import random
from collections import Counter
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np

from .board import BoardView
from .config import PRESETS, GameConfig
from .deduction import Deduction
from .engine import WON, Minesweeper
from .errors import InternalInconsistency
from .sampler import sample_layout
from .solver import MinesweeperSolver

logger = logging.getLogger(__name__)


def format_deduction(
    view: BoardView, deduction: Deduction, *, show_coords: bool = True
) -> str:
    """
    Format a deduction over a snapshot as a human-readable grid.

    Revealed cells show their number, forced mines "*", hidden forced-safe
    cells "s" and undetermined cells ".".
    """
    w, h = view.width, view.height

    def cell_char(x: int, y: int) -> str:
        cid = y * w + x
        if cid in view.numbers:
            return str(view.numbers[cid])
        if cid in deduction.mines:
            return "*"
        if cid in deduction.undetermined:
            return "."
        return "s"

    lines: List[str] = []
    if show_coords:
        header = " ".join(f"{x:2d}" for x in range(w))
        lines.append("   " + header)
        lines.append("   " + "-" * (3 * w - 1))

    for y in range(h):
        row = " ".join(f" {cell_char(x, y)}" for x in range(w))
        lines.append(f"{y:2d} |" + row if show_coords else row)

    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Uniformity checks
# -----------------------------------------------------------------------------


def enumerate_layouts(view: BoardView) -> List[FrozenSet[int]]:
    """
    Brute-force every full layout consistent with a snapshot.

    Exponential in the number of unknown cells; meant for tiny boards only.
    """
    unknown = view.unknown_cells()
    remaining = view.remaining_mines
    if remaining < 0 or remaining > len(unknown):
        return []

    layouts: List[FrozenSet[int]] = []
    for chosen in itertools.combinations(unknown, remaining):
        mines = view.known_mines | frozenset(chosen)
        if all(
            sum(1 for n in view.neighborhoods[cid] if n in mines) == shown
            for cid, shown in view.numbers.items()
        ):
            layouts.append(mines)
    return layouts


def tabulate_arrangements(
    view: BoardView,
    samples: int,
    rng: Optional[random.Random] = None,
) -> Dict[FrozenSet[int], Tuple[int, float]]:
    """
    Sample layouts repeatedly and compare with the uniform expectation.

    Args:
        view: Snapshot of a small board.
        samples: Number of draws.
        rng: Random source (a fresh one if omitted).

    Returns:
        Layout -> (observed count, expected count). Every consistent layout
        appears, with expected count samples / number of consistent layouts.
    """
    rng = rng if rng is not None else random.Random()
    layouts = enumerate_layouts(view)
    if not layouts:
        return {}

    observed: Counter = Counter(sample_layout(view, rng) for _ in range(samples))
    expected = samples / len(layouts)
    table = {layout: (observed.get(layout, 0), expected) for layout in layouts}

    unexpected = set(observed) - set(table)
    if unexpected:
        raise InternalInconsistency(f"Sampler produced {len(unexpected)} inconsistent layout(s).")
    return table


def chi_square(table: Dict[FrozenSet[int], Tuple[int, float]]) -> float:
    """Pearson chi-square statistic of a table from tabulate_arrangements()."""
    if not table:
        return 0.0
    observed = np.array([o for o, _ in table.values()], dtype=float)
    expected = np.array([e for _, e in table.values()], dtype=float)
    return float(np.sum((observed - expected) ** 2 / expected))


# -----------------------------------------------------------------------------
# Simulated play
# -----------------------------------------------------------------------------


def run_solver_single_test(
    config: GameConfig,
    *,
    show_boards: bool = False,
    allow_guessing: bool = False,
    rng: Optional[random.Random] = None,
) -> Dict[str, object]:
    """
    Run one end-to-end game with MinesweeperSolver on a fresh Minesweeper instance.

    Args:
        config: Game configuration.
        show_boards: If True, print the underlying board and the solver's final
            deduction.
        allow_guessing: If True, the solver reveals a random undetermined cell
            when no forced-safe cell exists.
        rng: Random source for guesses.

    Returns:
        The solver's terminal payload augmented with "status" (-1 loss,
        0 stuck, 1 win) and "generation_attempts".
    """
    game = Minesweeper(config)
    solver = MinesweeperSolver(
        game,
        max_workers=config.max_workers,
        allow_guessing=allow_guessing,
        rng=rng,
    )

    status, payload = solver.solve()

    if show_boards:
        print(f"Board: {config.describe()}")
        print("Underlying board (mines visible):")
        print(game.format_board(reveal_all=True))
        print()
        view = solver.view()
        print("Solver deduction (undetermined cells shown as '.'):")
        print(format_deduction(view, solver.deduce(), show_coords=True))
        print()
        print(f"Finished with status {status}.")

    out = dict(payload)
    out["status"] = status
    out["generation_attempts"] = game.generation_attempts
    return out


def simulate_games(
    config: GameConfig,
    games: int,
    *,
    allow_guessing: bool = False,
    seed: Optional[int] = None,
) -> Dict[str, int]:
    """
    Play many games with forced moves only (plus optional guesses).

    Seeds are derived from ``seed`` so runs are reproducible.

    Returns:
        Counts of "wins", "losses", "stuck" games and total "guesses".
    """
    rng = random.Random(seed)
    totals = {"wins": 0, "losses": 0, "stuck": 0, "guesses": 0}
    for _ in range(games):
        game_config = config.with_options(seed=rng.randrange(2 ** 32))
        result = run_solver_single_test(
            game_config,
            allow_guessing=allow_guessing,
            rng=random.Random(rng.randrange(2 ** 32)),
        )
        status = result["status"]
        if status == WON:
            totals["wins"] += 1
        elif status == 0:
            totals["stuck"] += 1
        else:
            totals["losses"] += 1
        totals["guesses"] += int(result["guesses_count"])  # type: ignore[call-overload]
    logger.info("Simulated %d games on %s: %s", games, config.describe(), totals)
    return totals


def run_solver_many_tests(
    config: GameConfig,
    runs: int,
    *,
    allow_guessing: bool = False,
    seed: Optional[int] = None,
) -> Dict[str, float]:
    """
    Run many independent solver games and return averaged terminal metrics plus win rate.

    Args:
        config: Game configuration (its seed is replaced per run).
        runs: Number of independent games to run.
        allow_guessing: Let the solver guess when stuck.
        seed: Seed for the per-run seeds.

    Returns:
        Averages of numeric payload metrics (prefixed with "avg_"), plus
        win_rate, stuck_rate and forced_moves_per_deduction.
    """
    if runs <= 0:
        raise ValueError("runs must be positive.")

    rng = random.Random(seed)
    rows: Dict[str, List[float]] = {}
    statuses: List[int] = []

    for _ in range(runs):
        result = run_solver_single_test(
            config.with_options(seed=rng.randrange(2 ** 32)),
            allow_guessing=allow_guessing,
            rng=random.Random(rng.randrange(2 ** 32)),
        )
        statuses.append(int(result["status"]))  # type: ignore[call-overload]
        for k, v in result.items():
            if k == "status":
                continue
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                rows.setdefault(k, []).append(float(v))

    out: Dict[str, float] = {f"avg_{k}": float(np.mean(v)) for k, v in rows.items()}
    status_arr = np.array(statuses)
    out["win_rate"] = float(np.mean(status_arr == WON))
    out["stuck_rate"] = float(np.mean(status_arr == 0))

    forced = sum(
        np.sum(rows.get(k, [0.0]))
        for k in ("inferred_eliminated_count", "inferred_enumerated_count", "inferred_global_count")
    )
    calls = float(np.sum(rows.get("deduction_calls", [0.0])))
    out["forced_moves_per_deduction"] = float(forced / calls) if calls > 0 else 0.0
    return out


def run_standard_levels_analysis(
    runs: int,
    *,
    levels: Optional[Iterable[str]] = None,
    allow_guessing: bool = False,
    show: bool = True,
) -> Dict[str, Dict[str, float]]:
    """
    Run aggregated solver tests on the preset difficulty levels and plot summaries.

    Args:
        runs: Number of independent games per level.
        levels: Preset names (defaults to every preset).
        allow_guessing: Let the solver guess when stuck.
        show: If True, display the plots.

    Returns:
        Mapping from level name to statistics dict returned by run_solver_many_tests().
    """
    level_names = list(levels) if levels is not None else list(PRESETS)

    results: Dict[str, Dict[str, float]] = {}
    for level in level_names:
        results[level] = run_solver_many_tests(
            GameConfig.preset(level), runs, allow_guessing=allow_guessing
        )

    x = np.arange(len(level_names))
    bar_w = 0.25

    # 1) Forced cells found, by deduction stage
    eliminated = [results[n].get("avg_inferred_eliminated_count", 0.0) for n in level_names]
    enumerated = [results[n].get("avg_inferred_enumerated_count", 0.0) for n in level_names]
    global_ = [results[n].get("avg_inferred_global_count", 0.0) for n in level_names]

    plt.figure()  # type: ignore[misc]
    plt.bar(x - bar_w, eliminated, width=bar_w, label="elimination")  # type: ignore[misc]
    plt.bar(x, enumerated, width=bar_w, label="enumeration")  # type: ignore[misc]
    plt.bar(x + bar_w, global_, width=bar_w, label="global")  # type: ignore[misc]
    plt.xticks(x, level_names)  # type: ignore[misc]
    plt.ylabel("Average forced cells")  # type: ignore[misc]
    plt.title("Forced cells by deduction stage (per game)")  # type: ignore[misc]
    plt.legend()  # type: ignore[misc]
    plt.tight_layout()

    # 2) Generation attempts and largest region
    attempts = [results[n].get("avg_generation_attempts", 0.0) for n in level_names]
    regions = [results[n].get("avg_max_region_size", 0.0) for n in level_names]

    plt.figure()  # type: ignore[misc]
    plt.bar(x - bar_w / 2, attempts, width=bar_w, label="generation attempts")  # type: ignore[misc]
    plt.bar(x + bar_w / 2, regions, width=bar_w, label="largest region")  # type: ignore[misc]
    plt.xticks(x, level_names)  # type: ignore[misc]
    plt.title("Generation cost and region size (per game)")  # type: ignore[misc]
    plt.legend()  # type: ignore[misc]
    plt.tight_layout()

    # 3) Win rate by level
    win_rates = [results[n]["win_rate"] for n in level_names]

    plt.figure()  # type: ignore[misc]
    plt.bar(x, win_rates)  # type: ignore[misc]
    plt.xticks(x, level_names)  # type: ignore[misc]
    plt.ylabel("Win rate")  # type: ignore[misc]
    plt.ylim(0.0, 1.0)  # type: ignore[misc]
    plt.title("Win rate by difficulty level")  # type: ignore[misc]
    plt.tight_layout()

    if show:
        plt.show()  # type: ignore[misc]

    return results
