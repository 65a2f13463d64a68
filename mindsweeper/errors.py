"""Exception hierarchy for the mindsweeper core."""


class MindsweeperError(Exception):
    """Base class for every error raised by this package."""


class InvalidConfiguration(MindsweeperError, ValueError):
    """Board dimensions, mine count or options cannot produce a game."""


class InternalInconsistency(MindsweeperError, RuntimeError):
    """
    The revealed clues admit no mine arrangement.

    Raised when a derived constraint needs a negative number of mines or more
    mines than it has hidden cells, or when no split of the remaining mine
    budget over regions and free cells satisfies every constraint. Seeing
    this means commitment went wrong earlier; it is not recoverable.
    """
