"""Game configuration, difficulty presets and logging setup."""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple

from .errors import InvalidConfiguration
from .utils import largest_protected_zone

# Largest region (in cells) solved by exhaustive enumeration during deduction.
DEFAULT_ENUMERATION_CEILING = 48

# Game modes: how many safe reveals the engine makes for the player.
NORMAL = "normal"
MINDLESS = "mindless"
AUTOPILOT = "autopilot"
MODES = (NORMAL, MINDLESS, AUTOPILOT)

# name -> (width, height, mine_count)
PRESETS: Dict[str, Tuple[int, int, int]] = {
    "beginner": (9, 9, 10),
    "intermediate": (16, 16, 40),
    "expert": (30, 16, 99),
    "evil": (30, 20, 130),
}


@dataclass(frozen=True)
class GameConfig:
    """
    Immutable description of a game.

    Attributes:
        width: Number of columns, must be > 0.
        height: Number of rows, must be > 0.
        mine_count: Total mines M, 0 <= M < width * height.
        first_click_safe_radius: Cells within this Chebyshev distance of the
            first click are never mines (1 gives the classic 3x3 opening).
        punish_guessing: If True, revealing an undetermined cell is a loss.
        mode: "normal"; "mindless" (boards and hints only need each number
            read on its own); or "autopilot" (the engine reveals those
            trivially safe cells by itself after every reveal).
        enumeration_ceiling: Largest region solved exhaustively by deduction.
        max_workers: Worker threads used for per-region counting.
        max_generation_attempts: Layouts tried when looking for a guess-free board.
        seed: Optional seed for the game's private random generator.
    """

    width: int
    height: int
    mine_count: int
    first_click_safe_radius: int = 1
    punish_guessing: bool = True
    mode: str = NORMAL
    enumeration_ceiling: int = DEFAULT_ENUMERATION_CEILING
    max_workers: int = 1
    max_generation_attempts: int = 1000
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidConfiguration("Width and height must be positive.")
        if self.mine_count < 0:
            raise InvalidConfiguration("mine_count must be non-negative.")
        if self.mine_count >= self.cell_count:
            raise InvalidConfiguration(
                f"mine_count ({self.mine_count}) must be smaller than the "
                f"number of cells ({self.cell_count})."
            )
        if self.mode not in MODES:
            raise InvalidConfiguration(f"mode must be one of {MODES}, got {self.mode!r}.")
        if self.first_click_safe_radius < 0:
            raise InvalidConfiguration("first_click_safe_radius must be non-negative.")

        zone = largest_protected_zone(
            self.width, self.height, self.first_click_safe_radius
        )
        if self.mine_count > self.cell_count - zone:
            raise InvalidConfiguration(
                f"Cannot keep {zone} cells around the first click safe "
                f"with {self.mine_count} mines on {self.cell_count} cells."
            )
        if self.enumeration_ceiling < 1:
            raise InvalidConfiguration("enumeration_ceiling must be at least 1.")
        if self.max_workers < 1:
            raise InvalidConfiguration("max_workers must be at least 1.")
        if self.max_generation_attempts < 1:
            raise InvalidConfiguration("max_generation_attempts must be at least 1.")

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    def with_options(self, **changes: object) -> "GameConfig":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)  # type: ignore[arg-type]

    @classmethod
    def preset(cls, name: str, **options: object) -> "GameConfig":
        """
        Build a config from a named difficulty level.

        Args:
            name: One of "beginner", "intermediate", "expert", "evil".
            **options: Any other GameConfig field.

        Raises:
            InvalidConfiguration: If the name is unknown.
        """
        try:
            width, height, mine_count = PRESETS[name.lower()]
        except KeyError:
            raise InvalidConfiguration(
                f"Unknown preset {name!r}; expected one of {sorted(PRESETS)}."
            ) from None
        return cls(width, height, mine_count, **options)  # type: ignore[arg-type]

    def describe(self) -> str:
        """Human-readable label, e.g. "Expert (30x16 with 99 mines)"."""
        description = f"{self.width}x{self.height} with {self.mine_count} mines"
        for name, dims in PRESETS.items():
            if dims == (self.width, self.height, self.mine_count):
                return f"{name.capitalize()} ({description})"
        return description


def configure_logging(level: int = logging.INFO) -> None:
    """Install a basic stream handler for scripts and the demo app."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
