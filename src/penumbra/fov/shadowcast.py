from __future__ import annotations

import logging
from typing import FrozenSet, Set

from ..dungeon.tiles import Position, TileGrid

logger = logging.getLogger(__name__)

# Octant transforms: for octant i, a (col, row) offset maps to
# (col * xx + row * xy, col * yx + row * yy).
_MULT = (
    (1, 0, 0, -1, -1, 0, 0, 1),
    (0, 1, -1, 0, 0, -1, 1, 0),
    (0, 1, 1, 0, 0, -1, -1, 0),
    (1, 0, 0, 1, -1, 0, 0, -1),
)


def compute_visible(grid: TileGrid, origin: Position, radius: int) -> FrozenSet[Position]:
    """
    Recursive shadowcasting field of view.

    Sweeps the eight octants around origin row by row, tracking the open slope
    interval [end, start]. Opaque tiles are lit themselves but narrow the
    interval for every row behind them. Tiles outside the grid count as opaque
    and are never returned. The origin is always visible.
    """
    ox, oy = origin
    if not grid.in_bounds(ox, oy):
        raise ValueError("Origin out of bounds")
    if radius < 0:
        raise ValueError("radius must be >= 0")

    visible: Set[Position] = {origin}
    if radius > 0:
        for oct_ in range(8):
            _cast_light(
                grid, ox, oy, 1, 1.0, 0.0, radius,
                _MULT[0][oct_], _MULT[1][oct_], _MULT[2][oct_], _MULT[3][oct_],
                visible,
            )
    logger.debug("FOV from (%d,%d) radius %d -> %d visible tiles", ox, oy, radius, len(visible))
    return frozenset(visible)


def _cast_light(
    grid: TileGrid,
    cx: int,
    cy: int,
    row: int,
    start: float,
    end: float,
    radius: int,
    xx: int,
    xy: int,
    yx: int,
    yy: int,
    visible: Set[Position],
) -> None:
    if start < end:
        return
    reach = radius * radius + radius
    new_start = start
    for j in range(row, radius + 1):
        dx, dy = -j - 1, -j
        blocked = False
        while dx <= 0:
            dx += 1
            x = cx + dx * xx + dy * xy
            y = cy + dx * yx + dy * yy
            l_slope = (dx - 0.5) / (dy + 0.5)
            r_slope = (dx + 0.5) / (dy - 0.5)
            if start < r_slope:
                continue
            if end > l_slope:
                break
            if dx * dx + dy * dy <= reach and grid.in_bounds(x, y):
                visible.add((x, y))
            if blocked:
                if grid.is_opaque(x, y):
                    new_start = r_slope
                    continue
                blocked = False
                start = new_start
            elif grid.is_opaque(x, y) and j < radius:
                blocked = True
                _cast_light(grid, cx, cy, j + 1, start, l_slope, radius, xx, xy, yx, yy, visible)
                new_start = r_slope
        if blocked:
            break
