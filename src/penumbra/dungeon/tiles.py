from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Sequence, Tuple

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


class TileKind(str, Enum):
    WALL = "#"
    FLOOR = "."
    CORRIDOR = ","
    ENTRANCE = "<"
    EXIT = ">"
    HEALING = "~"

    @property
    def walkable(self) -> bool:
        return self is not TileKind.WALL

    @property
    def opaque(self) -> bool:
        return self is TileKind.WALL


class Direction(Enum):
    NORTH = (0, -1)
    SOUTH = (0, 1)
    WEST = (-1, 0)
    EAST = (1, 0)

    @property
    def delta(self) -> Position:
        return self.value

    def step(self, pos: Position) -> Position:
        dx, dy = self.value
        return (pos[0] + dx, pos[1] + dy)

    @classmethod
    def between(cls, a: Position, b: Position) -> "Direction":
        """Direction of a single orthogonal step from a to b."""
        return cls((b[0] - a[0], b[1] - a[1]))


# Fixed neighbor order; pathfinding and random moves depend on it.
DIRECTIONS: Tuple[Direction, ...] = (Direction.NORTH, Direction.SOUTH, Direction.WEST, Direction.EAST)


def manhattan(a: Position, b: Position) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    w: int
    h: int

    def center(self) -> Position:
        return (self.x + self.w // 2, self.y + self.h // 2)

    def contains(self, pos: Position) -> bool:
        x, y = pos
        return self.x <= x < self.x + self.w and self.y <= y < self.y + self.h

    def interior_contains(self, pos: Position) -> bool:
        x, y = pos
        return self.x < x < self.x + self.w - 1 and self.y < y < self.y + self.h - 1

    def interior(self) -> List[Position]:
        """Floor positions inside the walls in row-major order."""
        return [
            (x, y)
            for y in range(self.y + 1, self.y + self.h - 1)
            for x in range(self.x + 1, self.x + self.w - 1)
        ]

    @property
    def interior_area(self) -> int:
        return max(0, self.w - 2) * max(0, self.h - 2)


class TileGrid:
    """A tile grid addressed as tiles[y][x].

    Coordinates are (x, y) with (0,0) at top-left; x grows to the right, y grows down.
    Anything outside the grid is treated as solid wall.
    """

    def __init__(self, width: int, height: int, fill: TileKind = TileKind.WALL) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("TileGrid width/height must be > 0")
        self.width = width
        self.height = height
        self.tiles: List[List[TileKind]] = [[fill for _ in range(width)] for _ in range(height)]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> TileKind:
        if not self.in_bounds(x, y):
            return TileKind.WALL
        return self.tiles[y][x]

    def set(self, x: int, y: int, kind: TileKind) -> None:
        if not self.in_bounds(x, y):
            raise IndexError("Tile out of bounds")
        self.tiles[y][x] = kind

    def is_walkable(self, x: int, y: int) -> bool:
        return self.get(x, y).walkable

    def is_opaque(self, x: int, y: int) -> bool:
        return self.get(x, y).opaque

    def neighbors4(self, x: int, y: int) -> Iterator[Position]:
        for d in DIRECTIONS:
            nx, ny = d.step((x, y))
            if self.in_bounds(nx, ny):
                yield nx, ny

    def to_ascii(self) -> List[str]:
        return ["".join(t.value for t in row) for row in self.tiles]

    @classmethod
    def from_ascii(cls, rows: Sequence[str]) -> "TileGrid":
        """
        Build a TileGrid from ASCII rows for tests/tools/snapshots.
        Characters are TileKind values; unknown characters raise ValueError.
        """
        if not rows:
            raise ValueError("rows must not be empty")
        height = len(rows)
        width = len(rows[0])
        for r in rows:
            if len(r) != width:
                raise ValueError("All rows must be same width")
        grid = cls(width, height)
        for y, row in enumerate(rows):
            for x, ch in enumerate(row):
                grid.tiles[y][x] = TileKind(ch)
        return grid

    def copy(self) -> "TileGrid":
        clone = TileGrid(self.width, self.height)
        clone.tiles = [row[:] for row in self.tiles]
        return clone

    def __repr__(self) -> str:
        return f"TileGrid({self.width}x{self.height})"
