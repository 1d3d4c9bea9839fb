from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..combat.entities import Enemy, EnemyKind
from ..config import CombatSettings, GenerationSettings, Settings
from ..errors import GenerationError
from ..history.events import EventCategory, HistoryEvent, group_by_day
from ..items.models import Item, ItemKind, Rarity
from ..rng import RandomSource, derive_seed
from .model import Dungeon, Room, RoomKind
from .pathfinding import farthest_tile
from .tiles import Position, Rect, TileGrid, TileKind

logger = logging.getLogger(__name__)

MIN_ROOM_SIZE = 5

# (hp, damage, defense) at tier 0.
BASE_STATS: Dict[EnemyKind, Tuple[int, int, int]] = {
    EnemyKind.BUG: (10, 3, 0),
    EnemyKind.REGRESSION: (20, 5, 1),
    EnemyKind.TECH_DEBT: (30, 4, 2),
    EnemyKind.MERGE_CONFLICT: (50, 8, 3),
}

TIER_HP_MULTIPLIERS = (1.0, 1.5, 2.0, 3.0)

ENEMY_FOR_CATEGORY: Dict[EventCategory, EnemyKind] = {
    EventCategory.NORMAL: EnemyKind.BUG,
    EventCategory.REVERT: EnemyKind.REGRESSION,
    EventCategory.REFACTOR: EnemyKind.TECH_DEBT,
    EventCategory.MERGE: EnemyKind.MERGE_CONFLICT,
}

ITEM_FOR_CATEGORY: Tuple[Tuple[EventCategory, ItemKind], ...] = (
    (EventCategory.DOC, ItemKind.MAP_SCROLL),
    (EventCategory.TEST, ItemKind.HEALTH_POTION),
    (EventCategory.CONFIG, ItemKind.BUFF_ITEM),
)

TREASURE_WEIGHTS: Dict[ItemKind, float] = {
    ItemKind.HEALTH_POTION: 3.0,
    ItemKind.BUFF_ITEM: 2.0,
    ItemKind.MAP_SCROLL: 1.0,
}


def room_size(total_magnitude: int) -> int:
    """Outer side length of a square room, walls included."""
    if total_magnitude >= 200:
        return 11
    if total_magnitude >= 50:
        return 9
    if total_magnitude >= 20:
        return 7
    return MIN_ROOM_SIZE


def difficulty_tier(magnitude: int) -> int:
    if magnitude >= 500:
        return 3
    if magnitude >= 200:
        return 2
    if magnitude >= 50:
        return 1
    return 0


def room_kind(events: Sequence[HistoryEvent]) -> RoomKind:
    """Merge beats a strict Test majority, which beats a strict Config majority."""
    if any(e.category is EventCategory.MERGE for e in events):
        return RoomKind.BOSS
    total = len(events)
    tests = sum(1 for e in events if e.category is EventCategory.TEST)
    if tests * 2 > total:
        return RoomKind.SANCTUARY
    configs = sum(1 for e in events if e.category is EventCategory.CONFIG)
    if configs * 2 > total:
        return RoomKind.TREASURE
    return RoomKind.STANDARD


def enemy_stats(kind: EnemyKind, magnitude: int) -> Tuple[int, int, int, int]:
    """Return (hp, damage, defense, tier) before hp jitter; each is monotonic in magnitude."""
    tier = difficulty_tier(magnitude)
    base_hp, base_damage, base_defense = BASE_STATS[kind]
    hp = int(base_hp * TIER_HP_MULTIPLIERS[tier])
    return hp, base_damage + tier, base_defense + tier // 2, tier


def enemy_cap(bounds: Rect, settings: GenerationSettings) -> int:
    return max(1, min(settings.max_enemies_per_room, bounds.interior_area // 4))


def validate_event(event: object) -> HistoryEvent:
    if not isinstance(event, HistoryEvent):
        raise GenerationError(f"not a HistoryEvent: {event!r}")
    if not isinstance(event.timestamp, date):
        raise GenerationError(f"event timestamp is not a date: {event.timestamp!r}")
    if isinstance(event.magnitude, bool) or not isinstance(event.magnitude, int) or event.magnitude < 0:
        raise GenerationError(f"event magnitude must be a non-negative int: {event.magnitude!r}")
    if event.attendee_or_author_count < 0:
        raise GenerationError("attendee_or_author_count must be >= 0")
    return event


@dataclass
class _RoomPlan:
    day: Optional[date]
    events: List[HistoryEvent]
    size: int
    kind: RoomKind


class DungeonGenerator:
    """Deterministic history -> dungeon generator.

    One RandomSource derived from (seed, "generation") feeds every roll, in a
    fixed per-room order: pillar texture, enemies (placement then hp jitter,
    in event order), item drops, then treasure bonus items. Identical
    (events, seed) pairs therefore produce identical dungeons.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()

    @property
    def gen(self) -> GenerationSettings:
        return self.settings.generation

    @property
    def combat(self) -> CombatSettings:
        return self.settings.combat

    def generate(self, events: Sequence[HistoryEvent], seed: int) -> Dungeon:
        rng = RandomSource(derive_seed(seed, "generation"))
        plans = self._plan_rooms(events)
        grid, rooms = self._layout(plans)
        dungeon = Dungeon(rooms=rooms, corridors={(i, i + 1) for i in range(len(rooms) - 1)},
                          tile_grid=grid, seed=seed)

        for plan, room in zip(plans, rooms):
            self._texture(dungeon, room, rng)
            self._populate_enemies(dungeon, room, plan.events, rng)
            self._drop_items(dungeon, room, plan.events, rng)
            if room.kind is RoomKind.TREASURE:
                self._treasure_bonus(dungeon, room, plan.events, rng)
            room.cleared = not room.enemies

        logger.info(
            "Generated dungeon seed=%d: %d rooms, %d enemies, %d items (%d draws)",
            seed,
            len(rooms),
            len(dungeon.enemies),
            len(dungeon.items),
            rng.draws,
        )
        return dungeon

    # Planning and layout

    def _plan_rooms(self, events: Sequence[HistoryEvent]) -> List[_RoomPlan]:
        valid: List[HistoryEvent] = []
        for event in events:
            try:
                valid.append(validate_event(event))
            except GenerationError as exc:
                logger.warning("Skipping malformed event: %s", exc)
        plans = []
        for day, day_events in group_by_day(valid):
            total = sum(e.magnitude for e in day_events)
            plans.append(_RoomPlan(day, day_events, room_size(total), room_kind(day_events)))
        if not plans:
            logger.info("No usable events; generating a single empty room")
            plans.append(_RoomPlan(None, [], MIN_ROOM_SIZE, RoomKind.STANDARD))
        return plans

    def _layout(self, plans: List[_RoomPlan]) -> Tuple[TileGrid, List[Room]]:
        """Rooms sit left to right on one shared middle row, joined by straight corridors."""
        gap = self.gen.corridor_length
        height = max(p.size for p in plans)
        width = sum(p.size for p in plans) + gap * (len(plans) - 1)
        grid = TileGrid(width, height)
        mid = height // 2
        rooms: List[Room] = []
        x0 = 0
        for idx, plan in enumerate(plans):
            s = plan.size
            bounds = Rect(x0, (height - s) // 2, s, s)
            floor = TileKind.HEALING if plan.kind is RoomKind.SANCTUARY else TileKind.FLOOR
            for x, y in bounds.interior():
                grid.set(x, y, floor)
            entrance = (bounds.x, mid)
            exit_ = (bounds.x + s - 1, mid)
            grid.set(*entrance, TileKind.ENTRANCE)
            grid.set(*exit_, TileKind.EXIT)
            if idx > 0:
                for cx in range(x0 - gap, x0):
                    grid.set(cx, mid, TileKind.CORRIDOR)
            rooms.append(Room(id=idx, bounds=bounds, kind=plan.kind, entrance=entrance, exit=exit_, day=plan.day))
            x0 += s + gap
        return grid, rooms

    def _texture(self, dungeon: Dungeon, room: Room, rng: RandomSource) -> None:
        """Scatter pillars on even local coordinates; odd rows and columns stay open."""
        if room.kind not in (RoomKind.STANDARD, RoomKind.TREASURE):
            return
        b = room.bounds
        if b.w - 2 < 5:
            return
        for ly in range(2, b.h - 2, 2):
            if ly == b.h // 2:
                continue
            for lx in range(2, b.w - 2, 2):
                if rng.chance(self.gen.pillar_chance):
                    dungeon.tile_grid.set(b.x + lx, b.y + ly, TileKind.WALL)

    # Population

    def _free_tiles(self, dungeon: Dungeon, room: Room) -> List[Position]:
        taken: Set[Position] = {dungeon.enemies[e].position for e in room.enemies}
        taken.update(dungeon.item_positions[i] for i in room.items)
        return [p for p in dungeon.interior(room) if p not in taken]

    def _make_enemy(self, kind: EnemyKind, magnitude: int, room: Room, pos: Position, rng: RandomSource) -> Enemy:
        hp, damage, defense, tier = enemy_stats(kind, magnitude)
        hp += rng.randint(0, tier)
        cap = int(damage * self.combat.techdebt_cap_multiplier) if kind is EnemyKind.TECH_DEBT else damage
        return Enemy(
            id=-1,
            kind=kind,
            room_id=room.id,
            position=pos,
            hp=hp,
            max_hp=hp,
            base_damage=damage,
            defense=defense,
            tier=tier,
            damage_cap=cap,
        )

    def _populate_enemies(
        self, dungeon: Dungeon, room: Room, events: List[HistoryEvent], rng: RandomSource
    ) -> None:
        if room.kind is RoomKind.SANCTUARY:
            return
        cap = enemy_cap(room.bounds, self.gen)
        spawned = 0

        if room.kind is RoomKind.BOSS:
            merge_total = sum(e.magnitude for e in events if e.category is EventCategory.MERGE)
            interior = dungeon.interior(room)
            inside = set(interior)
            pos = farthest_tile(room.entrance, interior, inside.__contains__) or interior[-1]
            boss = self._make_enemy(EnemyKind.MERGE_CONFLICT, merge_total, room, pos, rng)
            dungeon.spawn_enemy(boss)
            spawned += 1
            logger.debug("Boss room %d: merge total %d, boss hp %d at %s", room.id, merge_total, boss.hp, pos)

        for event in events:
            kind = ENEMY_FOR_CATEGORY.get(event.category)
            if kind is None or kind is EnemyKind.MERGE_CONFLICT:
                continue
            if spawned >= cap:
                logger.debug("Room %d hit enemy cap %d", room.id, cap)
                break
            free = self._free_tiles(dungeon, room)
            if not free:
                break
            pos = free[rng.randrange(len(free))]
            dungeon.spawn_enemy(self._make_enemy(kind, event.magnitude, room, pos, rng))
            spawned += 1

    def _place_item(self, dungeon: Dungeon, room: Room, item: Item, rng: RandomSource) -> None:
        free = self._free_tiles(dungeon, room)
        if not free:
            logger.warning("No free tile for %s in room %d; dropped", item.name, room.id)
            return
        pos = free[rng.randrange(len(free))]
        dungeon.add_item(room, item, pos)

    def _drop_items(self, dungeon: Dungeon, room: Room, events: List[HistoryEvent], rng: RandomSource) -> None:
        for category, kind in ITEM_FOR_CATEGORY:
            matching = [e for e in events if e.category is category]
            if not matching:
                continue
            rarity = Rarity.from_magnitude(sum(e.magnitude for e in matching))
            self._place_item(dungeon, room, Item(kind, rarity), rng)

    def _treasure_bonus(self, dungeon: Dungeon, room: Room, events: List[HistoryEvent], rng: RandomSource) -> None:
        rarity = Rarity.from_magnitude(sum(e.magnitude for e in events if e.category is EventCategory.CONFIG))
        for _ in range(rng.randint(1, 2)):
            kind = rng.weighted_choice(TREASURE_WEIGHTS)
            self._place_item(dungeon, room, Item(kind, rarity), rng)


def generate(events: Sequence[HistoryEvent], seed: int, settings: Optional[Settings] = None) -> Dungeon:
    """Build a dungeon from normalized history events."""
    return DungeonGenerator(settings).generate(events, seed)


__all__ = [
    "DungeonGenerator",
    "generate",
    "room_size",
    "room_kind",
    "difficulty_tier",
    "enemy_stats",
    "enemy_cap",
]
