from __future__ import annotations

import logging
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Set

from ..dungeon.tiles import Position, TileGrid
from .shadowcast import compute_visible

logger = logging.getLogger(__name__)


class FogTileState(str, Enum):
    UNSEEN = "unseen"         # never seen; fully dark
    SEEN = "seen"             # seen before but not currently visible; dim
    VISIBLE = "visible"       # currently visible; full brightness


class FogOfWar:
    """
    Current visibility plus explored-tile memory over a TileGrid.

    Renderers read get_state() or explored; the simulation only needs
    visible. reveal_all() marks the whole grid explored (map scrolls).
    """

    def __init__(self, grid: TileGrid, vision_radius: int = 5, explored: Optional[Iterable[Position]] = None) -> None:
        if vision_radius < 0:
            raise ValueError("vision_radius must be >= 0")
        self.grid = grid
        self.vision_radius = vision_radius
        self._explored: Set[Position] = set(explored or ())
        self._visible: FrozenSet[Position] = frozenset()

    @property
    def visible(self) -> FrozenSet[Position]:
        return self._visible

    @property
    def explored(self) -> FrozenSet[Position]:
        return frozenset(self._explored)

    def update(self, observer: Position, *, radius: Optional[int] = None) -> FrozenSet[Position]:
        """Recompute visibility from observer and remember everything seen."""
        use_radius = self.vision_radius if radius is None else radius
        self._visible = compute_visible(self.grid, observer, use_radius)
        self._explored.update(self._visible)
        logger.debug("FogOfWar updated at %s; %d visible, %d explored", observer, len(self._visible), len(self._explored))
        return self._visible

    def reveal_all(self) -> None:
        for y in range(self.grid.height):
            for x in range(self.grid.width):
                self._explored.add((x, y))
        logger.debug("FogOfWar revealed whole map")

    def get_state(self, x: int, y: int) -> FogTileState:
        if not self.grid.in_bounds(x, y):
            raise IndexError("Tile out of bounds")
        if (x, y) in self._visible:
            return FogTileState.VISIBLE
        if (x, y) in self._explored:
            return FogTileState.SEEN
        return FogTileState.UNSEEN

    def explored_list(self) -> List[List[int]]:
        """Explored tiles as sorted [x, y] pairs for snapshots."""
        return [list(p) for p in sorted(self._explored)]
