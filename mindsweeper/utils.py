"""Grid helpers shared by the board model and the solver."""

from typing import Dict, FrozenSet, List, Tuple

# Module-level cache: (width, height) -> ((neighbor ids of cell 0), (... of cell 1), ...)
_NEIGHBORHOODS_CACHE: Dict[Tuple[int, int], Tuple[Tuple[int, ...], ...]] = {}


def get_neighborhoods(width: int, height: int) -> Tuple[Tuple[int, ...], ...]:
    """
    Precompute and cache 8-connected neighbor ids for every cell in a grid.

    Cells are addressed by integer id ``y * width + x``.

    Args:
        width: Grid width (number of columns). Must be positive.
        height: Grid height (number of rows). Must be positive.

    Returns:
        Tuple indexed by cell id; entry ``i`` holds the ids of every valid
        neighbor of cell ``i`` under 8-connectivity, in ascending order.

    Raises:
        ValueError: If width or height is non-positive.
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive.")

    key = (width, height)
    cached = _NEIGHBORHOODS_CACHE.get(key)
    if cached is not None:
        return cached

    neighborhoods: List[Tuple[int, ...]] = []
    for y in range(height):
        for x in range(width):
            nbrs: List[int] = []
            for dy in (-1, 0, 1):
                for dx in (-1, 0, 1):
                    if dx == 0 and dy == 0:
                        continue
                    nx, ny = x + dx, y + dy
                    if 0 <= nx < width and 0 <= ny < height:
                        nbrs.append(ny * width + nx)
            neighborhoods.append(tuple(nbrs))

    result = tuple(neighborhoods)
    _NEIGHBORHOODS_CACHE[key] = result
    return result


def cell_id(width: int, x: int, y: int) -> int:
    """Flatten (x, y) into a cell id."""
    return y * width + x


def cell_xy(width: int, cid: int) -> Tuple[int, int]:
    """Expand a cell id back into (x, y)."""
    return cid % width, cid // width


def protected_zone(
    width: int, height: int, x: int, y: int, radius: int
) -> FrozenSet[int]:
    """
    Return the ids of all cells within Chebyshev distance ``radius`` of (x, y).

    This is the set of cells guaranteed safe around the first click.
    """
    zone: List[int] = []
    for ny in range(max(0, y - radius), min(height, y + radius + 1)):
        for nx in range(max(0, x - radius), min(width, x + radius + 1)):
            zone.append(ny * width + nx)
    return frozenset(zone)


def largest_protected_zone(width: int, height: int, radius: int) -> int:
    """Size of the biggest protected zone any first click can produce."""
    return min(width, 2 * radius + 1) * min(height, 2 * radius + 1)
