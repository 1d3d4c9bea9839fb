from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from ..combat.entities import Enemy
from ..items.models import Item
from .tiles import Position, Rect, TileGrid

logger = logging.getLogger(__name__)


class RoomKind(str, Enum):
    STANDARD = "standard"
    BOSS = "boss"
    SANCTUARY = "sanctuary"
    TREASURE = "treasure"


@dataclass
class Room:
    """One day of history. bounds is the outer footprint, walls included."""

    id: int
    bounds: Rect
    kind: RoomKind
    entrance: Position
    exit: Position
    enemies: List[int] = field(default_factory=list)
    items: List[int] = field(default_factory=list)
    cleared: bool = False
    day: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bounds": [self.bounds.x, self.bounds.y, self.bounds.w, self.bounds.h],
            "kind": self.kind.value,
            "entrance": list(self.entrance),
            "exit": list(self.exit),
            "enemies": list(self.enemies),
            "items": list(self.items),
            "cleared": self.cleared,
            "day": None if self.day is None else self.day.isoformat(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Room":
        x, y, w, h = data["bounds"]
        day = data.get("day")
        return Room(
            id=int(data["id"]),
            bounds=Rect(int(x), int(y), int(w), int(h)),
            kind=RoomKind(data["kind"]),
            entrance=tuple(data["entrance"]),
            exit=tuple(data["exit"]),
            enemies=[int(e) for e in data.get("enemies", [])],
            items=[int(i) for i in data.get("items", [])],
            cleared=bool(data.get("cleared", False)),
            day=None if day is None else date.fromisoformat(day),
        )


class Dungeon:
    """Rooms, corridors and the entity arenas they reference by id.

    Enemies and items live in flat dicts keyed by integer id; rooms hold id
    lists. A tile -> room index built from room bounds answers room_at().
    """

    def __init__(
        self,
        rooms: List[Room],
        corridors: Set[Tuple[int, int]],
        tile_grid: TileGrid,
        seed: int,
        enemies: Optional[Dict[int, Enemy]] = None,
        items: Optional[Dict[int, Item]] = None,
        item_positions: Optional[Dict[int, Position]] = None,
    ) -> None:
        self.rooms = rooms
        self.corridors = set(corridors)
        self.tile_grid = tile_grid
        self.seed = seed
        self.enemies: Dict[int, Enemy] = dict(enemies or {})
        self.items: Dict[int, Item] = dict(items or {})
        self.item_positions: Dict[int, Position] = dict(item_positions or {})
        self._next_enemy_id = max(self.enemies, default=-1) + 1
        self._next_item_id = max(self.items, default=-1) + 1
        self._room_index: Dict[Position, int] = {}
        for room in rooms:
            b = room.bounds
            for y in range(b.y, b.y + b.h):
                for x in range(b.x, b.x + b.w):
                    self._room_index[(x, y)] = room.id

    # Lookups

    def room(self, room_id: int) -> Room:
        return self.rooms[room_id]

    def room_at(self, pos: Position) -> Optional[Room]:
        rid = self._room_index.get(pos)
        return None if rid is None else self.rooms[rid]

    def enemy_at(self, pos: Position) -> Optional[Enemy]:
        room = self.room_at(pos)
        if room is None:
            return None
        for eid in room.enemies:
            enemy = self.enemies[eid]
            if enemy.alive and enemy.position == pos:
                return enemy
        return None

    def item_at(self, pos: Position) -> Optional[int]:
        for iid, ipos in self.item_positions.items():
            if ipos == pos:
                return iid
        return None

    def living_enemies(self, room: Room) -> List[Enemy]:
        return [self.enemies[eid] for eid in room.enemies if self.enemies[eid].alive]

    def interior(self, room: Room) -> List[Position]:
        """Walkable interior tiles of a room in row-major order."""
        return [p for p in room.bounds.interior() if self.tile_grid.is_walkable(*p)]

    def is_last_room(self, room: Room) -> bool:
        return room.id == len(self.rooms) - 1

    # Mutation

    def spawn_enemy(self, enemy: Enemy) -> Enemy:
        """Assign the next enemy id, store the enemy and attach it to its room."""
        enemy.id = self._next_enemy_id
        self._next_enemy_id += 1
        self.enemies[enemy.id] = enemy
        room = self.rooms[enemy.room_id]
        room.enemies.append(enemy.id)
        room.cleared = False
        logger.debug("Spawned %s #%d in room %d at %s", enemy.kind.value, enemy.id, room.id, enemy.position)
        return enemy

    def remove_enemy(self, enemy_id: int) -> Room:
        """Detach a defeated enemy from its room; marks the room cleared when it empties."""
        enemy = self.enemies[enemy_id]
        room = self.rooms[enemy.room_id]
        if enemy_id in room.enemies:
            room.enemies.remove(enemy_id)
        if not room.enemies and not room.cleared:
            room.cleared = True
            logger.info("Room %d cleared", room.id)
        return room

    def add_item(self, room: Room, item: Item, pos: Position) -> int:
        iid = self._next_item_id
        self._next_item_id += 1
        self.items[iid] = item
        self.item_positions[iid] = pos
        room.items.append(iid)
        return iid

    def take_item(self, item_id: int) -> Item:
        """Remove an item from the floor and return it."""
        item = self.items.pop(item_id)
        pos = self.item_positions.pop(item_id)
        room = self.room_at(pos)
        if room is not None and item_id in room.items:
            room.items.remove(item_id)
        return item

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "rooms": [r.to_dict() for r in self.rooms],
            "corridors": sorted([a, b] for a, b in self.corridors),
            "tiles": self.tile_grid.to_ascii(),
            "enemies": [self.enemies[k].to_dict() for k in sorted(self.enemies)],
            "items": [
                {"id": k, "item": self.items[k].to_dict(), "position": list(self.item_positions[k])}
                for k in sorted(self.items)
            ],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Dungeon":
        enemies = {}
        for raw in data.get("enemies", []):
            enemy = Enemy.from_dict(raw)
            enemies[enemy.id] = enemy
        items: Dict[int, Item] = {}
        positions: Dict[int, Position] = {}
        for raw in data.get("items", []):
            iid = int(raw["id"])
            items[iid] = Item.from_dict(raw["item"])
            positions[iid] = tuple(raw["position"])
        return Dungeon(
            rooms=[Room.from_dict(r) for r in data["rooms"]],
            corridors={(int(a), int(b)) for a, b in data.get("corridors", [])},
            tile_grid=TileGrid.from_ascii(data["tiles"]),
            seed=int(data["seed"]),
            enemies=enemies,
            items=items,
            item_positions=positions,
        )

    def __repr__(self) -> str:
        return f"Dungeon(rooms={len(self.rooms)}, enemies={len(self.enemies)}, items={len(self.items)})"
