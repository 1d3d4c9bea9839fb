from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set

from ..combat.ai import Attack as AIAttack
from ..combat.ai import EnemyAI
from ..combat.ai import Move as AIMove
from ..combat.engine import CombatAction, CombatEngine
from ..combat.entities import AIState, Enemy, Player, PlayerClass
from ..config import Settings
from ..dungeon.generation import generate
from ..dungeon.model import Dungeon, Room
from ..dungeon.tiles import DIRECTIONS, Position, TileKind
from ..errors import InvalidAction, StateCorruption
from ..fov.fog_of_war import FogOfWar
from ..history.events import HistoryEvent
from ..progression.modifiers import StatModifiers
from ..rng import RandomSource, derive_seed
from ..save import snapshot as snap
from . import events as ev
from .actions import Attack, Defend, Move, PlayerAction, UseItem, Wait, energy_cost
from .events import EventBus, GameEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnOutcome:
    events: List[GameEvent]
    visible: FrozenSet[Position]
    run_over: bool
    victory: bool


@dataclass(frozen=True)
class RunSummary:
    enemies_killed: int
    rooms_cleared: int
    victory: bool
    turns: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enemies_killed": self.enemies_killed,
            "rooms_cleared": self.rooms_cleared,
            "victory": self.victory,
            "turns": self.turns,
        }


@dataclass
class RunStats:
    turn: int = 0
    enemies_killed: int = 0
    rooms_cleared: int = 0
    run_over: bool = False
    victory: bool = False
    visited_rooms: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn": self.turn,
            "enemies_killed": self.enemies_killed,
            "rooms_cleared": self.rooms_cleared,
            "run_over": self.run_over,
            "victory": self.victory,
            "visited_rooms": list(self.visited_rooms),
        }


class GameSession:
    """One run through a generated dungeon, advanced one player action at a time.

    advance_turn() validates the action first and raises InvalidAction before
    touching any state. A valid action is resolved, visibility is recomputed,
    then every living enemy in the player's room (in room order, as of the
    start of the enemy phase) runs its turn-start behavior, decides and acts.
    All randomness comes from one RandomSource derived from (seed, "simulation").
    """

    def __init__(
        self,
        dungeon: Dungeon,
        player: Player,
        seed: int,
        settings: Optional[Settings] = None,
        rng: Optional[RandomSource] = None,
        stats: Optional[RunStats] = None,
        bus: Optional[EventBus] = None,
        fog: Optional[FogOfWar] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.dungeon = dungeon
        self.player = player
        self.seed = seed
        self.rng = rng or RandomSource(derive_seed(seed, "simulation"))
        self.stats = stats or RunStats()
        self.bus = bus
        self.fog = fog or FogOfWar(dungeon.tile_grid, self.settings.gameplay.vision_radius)
        self.engine = CombatEngine(self.rng, self.settings.combat, self.settings.gameplay.buff_duration)
        self.ai = EnemyAI(self.rng, self.settings.ai)
        self._fresh_enemies: Set[int] = set()
        self.visible = self.fog.update(self.player.position)
        self._enter_room(self.current_room())

    @classmethod
    def new_run(
        cls,
        events: Sequence[HistoryEvent],
        seed: int,
        settings: Optional[Settings] = None,
        modifiers: Optional[StatModifiers] = None,
        player_class: Optional[PlayerClass] = None,
        bus: Optional[EventBus] = None,
    ) -> "GameSession":
        settings = settings or Settings()
        dungeon = generate(events, seed, settings)
        player = Player.new(dungeon.rooms[0].entrance, modifiers, player_class or PlayerClass.WANDERER)
        logger.info("New run seed=%d with %d rooms", seed, len(dungeon.rooms))
        return cls(dungeon, player, seed, settings=settings, bus=bus)

    # Read-only helpers

    @property
    def run_over(self) -> bool:
        return self.stats.run_over

    @property
    def victory(self) -> bool:
        return self.stats.victory

    @property
    def turn(self) -> int:
        return self.stats.turn

    def current_room(self) -> Optional[Room]:
        return self.dungeon.room_at(self.player.position)

    def summary(self) -> RunSummary:
        return RunSummary(
            enemies_killed=self.stats.enemies_killed,
            rooms_cleared=self.stats.rooms_cleared,
            victory=self.stats.victory,
            turns=self.stats.turn,
        )

    # Turn loop

    def validate(self, action: PlayerAction) -> None:
        """Raise InvalidAction if action cannot be taken now. Never mutates state."""
        if self.stats.run_over:
            raise InvalidAction("the run is over")
        if not self.player.alive:
            raise InvalidAction("the player is defeated")
        if not isinstance(action, (Move, Attack, UseItem, Defend, Wait)):
            raise InvalidAction(f"unknown action: {action!r}")
        cost = energy_cost(action, self.settings.gameplay)
        if cost > self.player.energy:
            raise InvalidAction(f"not enough energy ({self.player.energy} < {cost})")

        if isinstance(action, Move):
            target = action.direction.step(self.player.position)
            grid = self.dungeon.tile_grid
            if not grid.is_walkable(*target):
                raise InvalidAction(f"cannot move into {target}")
            if self.dungeon.enemy_at(target) is not None:
                raise InvalidAction("an enemy blocks the way")
            if grid.get(*target) is TileKind.EXIT:
                room = self.dungeon.room_at(target)
                if room is not None and not room.cleared:
                    raise InvalidAction("defeat every enemy before leaving the room")
        elif isinstance(action, Attack):
            target = action.direction.step(self.player.position)
            if self.dungeon.enemy_at(target) is None:
                raise InvalidAction("nothing to attack there")
        elif isinstance(action, UseItem):
            if not (0 <= action.index < len(self.player.inventory)):
                raise InvalidAction(f"no item at inventory index {action.index}")

    def advance_turn(self, action: PlayerAction) -> TurnOutcome:
        self.validate(action)
        events: List[GameEvent] = []
        player = self.player
        gameplay = self.settings.gameplay

        self._fresh_enemies.clear()
        player.defending = False
        cost = energy_cost(action, gameplay)
        if cost:
            player.spend_energy(cost)

        if isinstance(action, Move):
            self._player_move(action, events)
        elif isinstance(action, Attack):
            self._player_attack(action, events)
        elif isinstance(action, UseItem):
            result = self.engine.resolve(player, player, CombatAction.USE_ITEM, action.index)
            events.append(GameEvent(ev.ITEM_USED, {
                "item": result.item.to_dict() if result.item else None,
                "healed": result.healed,
                "buffed": result.buffed,
            }))
            if result.revealed_map:
                self.fog.reveal_all()
                events.append(GameEvent(ev.MAP_REVEALED, {}))
        elif isinstance(action, Defend):
            self.engine.resolve(player, player, CombatAction.DEFEND)
            events.append(GameEvent(ev.PLAYER_DEFENDING, {}))
        else:
            regained = player.regen_energy(gameplay.wait_regen)
            events.append(GameEvent(ev.PLAYER_WAITED, {"energy": regained}))

        self.visible = self.fog.update(player.position)

        if not self.stats.run_over:
            self._enemy_phase(events)
        if not self.stats.run_over:
            self._end_of_turn(events)

        self.stats.turn += 1
        if self.bus is not None:
            for event in events:
                self.bus.publish(event)
        return TurnOutcome(events=events, visible=self.visible, run_over=self.stats.run_over,
                           victory=self.stats.victory)

    def _player_move(self, action: Move, events: List[GameEvent]) -> None:
        player = self.player
        player.position = action.direction.step(player.position)
        events.append(GameEvent(ev.PLAYER_MOVED, {"position": list(player.position)}))
        self._enter_room(self.dungeon.room_at(player.position))

        item_id = self.dungeon.item_at(player.position)
        if item_id is not None and self.settings.gameplay.auto_pickup:
            self._pick_up(item_id, events)

        grid = self.dungeon.tile_grid
        room = self.dungeon.room_at(player.position)
        if grid.get(*player.position) is TileKind.EXIT and room is not None and self.dungeon.is_last_room(room):
            self.stats.victory = True
            self.stats.run_over = True
            events.append(GameEvent(ev.VICTORY, {"turn": self.stats.turn}))
            logger.info("Victory on turn %d", self.stats.turn)

    def _enter_room(self, room: Optional[Room]) -> None:
        """Record a first visit; a room already cleared on arrival counts as cleared then."""
        if room is None or room.id in self.stats.visited_rooms:
            return
        self.stats.visited_rooms.append(room.id)
        if room.cleared:
            self.stats.rooms_cleared += 1
            logger.debug("Entered room %d, already clear", room.id)

    def _pick_up(self, item_id: int, events: List[GameEvent]) -> None:
        player = self.player
        if len(player.inventory) >= self.settings.gameplay.inventory_limit:
            events.append(GameEvent(ev.INVENTORY_FULL, {"item_id": item_id}))
            return
        item = self.dungeon.take_item(item_id)
        upgraded = False
        if player.loot_luck > 0 and self.rng.chance(player.loot_luck):
            better = item.rarity.upgraded()
            upgraded = better is not item.rarity
            item = item.with_rarity(better)
        player.inventory.append(item)
        events.append(GameEvent(ev.ITEM_PICKED_UP, {"item": item.to_dict(), "upgraded": upgraded}))

    def _player_attack(self, action: Attack, events: List[GameEvent]) -> None:
        target = action.direction.step(self.player.position)
        enemy = self.dungeon.enemy_at(target)
        result = self.engine.resolve(self.player, enemy, CombatAction.ATTACK)
        events.append(GameEvent(ev.PLAYER_ATTACKED, {
            "enemy_id": enemy.id,
            "hit": result.hit,
            "damage": result.damage_dealt,
            "enemy_hp": result.defender_hp_after,
            "critical": result.critical,
        }))
        if result.split_hp > 0:
            self._spawn_split(enemy, result.split_hp, events)
        if result.defeated:
            self.stats.enemies_killed += 1
            room = self.dungeon.remove_enemy(enemy.id)
            events.append(GameEvent(ev.ENEMY_DEFEATED, {"enemy_id": enemy.id, "kind": enemy.kind.value}))
            if room.cleared:
                self.stats.rooms_cleared += 1
                events.append(GameEvent(ev.ROOM_CLEARED, {"room_id": room.id}))

    def _spawn_split(self, original: Enemy, split_hp: int, events: List[GameEvent]) -> None:
        """Place the clone on the first free orthogonal neighbor of the original.

        With every neighbor blocked no clone appears and the split hp goes back
        to the original.
        """
        for d in DIRECTIONS:
            pos = d.step(original.position)
            if self.ai.is_free(pos, original, self.dungeon, self.player):
                clone = Enemy(
                    id=-1,
                    kind=original.kind,
                    room_id=original.room_id,
                    position=pos,
                    hp=split_hp,
                    max_hp=original.max_hp,
                    base_damage=original.base_damage,
                    defense=original.defense,
                    tier=original.tier,
                    damage_cap=original.damage_cap,
                    split_done=True,
                    ai_state=original.ai_state,
                )
                self.dungeon.spawn_enemy(clone)
                self._fresh_enemies.add(clone.id)
                events.append(GameEvent(ev.ENEMY_SPLIT, {
                    "enemy_id": original.id,
                    "clone_id": clone.id,
                    "hp": original.hp,
                    "clone_hp": split_hp,
                }))
                return
        original.hp += split_hp
        logger.debug("No room for MergeConflict #%d to split into; hp stays %d", original.id, original.hp)

    def _enemy_phase(self, events: List[GameEvent]) -> None:
        room = self.current_room()
        if room is None:
            return
        player = self.player
        for enemy in self.dungeon.living_enemies(room):
            if enemy.id in self._fresh_enemies:
                continue
            effect = self.engine.start_of_turn(enemy)
            if effect.healed:
                events.append(GameEvent(ev.ENEMY_HEALED, {"enemy_id": enemy.id, "amount": effect.healed}))
            if effect.damage_gain:
                events.append(GameEvent(ev.ENEMY_GREW, {"enemy_id": enemy.id, "damage": enemy.base_damage}))

            decision = self.ai.decide(enemy, self.dungeon, player)
            if isinstance(decision, AIMove):
                dest = decision.direction.step(enemy.position)
                if self.ai.is_free(dest, enemy, self.dungeon, player):
                    enemy.position = dest
            elif isinstance(decision, AIAttack):
                result = self.engine.attack(enemy, player)
                events.append(GameEvent(ev.ENEMY_ATTACKED, {
                    "enemy_id": enemy.id,
                    "hit": result.hit,
                    "damage": result.damage_dealt,
                    "player_hp": result.defender_hp_after,
                }))
                if result.defeated:
                    self.stats.run_over = True
                    events.append(GameEvent(ev.PLAYER_DEFEATED, {"enemy_id": enemy.id, "turn": self.stats.turn}))
                    logger.info("Player defeated by %s #%d on turn %d", enemy.kind.value, enemy.id, self.stats.turn)
                    return

    def _end_of_turn(self, events: List[GameEvent]) -> None:
        player = self.player
        if self.dungeon.tile_grid.get(*player.position) is TileKind.HEALING:
            healed = player.heal(self.settings.gameplay.sanctuary_heal)
            if healed:
                events.append(GameEvent(ev.SANCTUARY_HEAL, {"amount": healed}))
        for buff in player.tick_buffs():
            events.append(GameEvent(ev.BUFF_EXPIRED, {"amount": buff.amount}))

    # Persistence hand-off

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe snapshot of everything needed to resume bit-identically."""
        payload = {
            "seed": self.seed,
            "rng": self.rng.state(),
            "turn": self.stats.turn,
            "stats": self.stats.to_dict(),
            "dungeon": self.dungeon.to_dict(),
            "player": self.player.to_dict(),
            "explored": self.fog.explored_list(),
        }
        return snap.seal(payload)

    @classmethod
    def restore(
        cls,
        data: Dict[str, Any],
        settings: Optional[Settings] = None,
        bus: Optional[EventBus] = None,
    ) -> "GameSession":
        snap.verify(data)
        settings = settings or Settings()
        try:
            seed = int(data["seed"])
            rng_state = data["rng"]
            if int(rng_state["seed"]) != derive_seed(seed, "simulation"):
                raise StateCorruption("rng stream does not belong to this seed")
            rng = RandomSource.from_state(rng_state)
            dungeon = Dungeon.from_dict(data["dungeon"])
            player = Player.from_dict(data["player"])
            raw_stats = data["stats"]
            stats = RunStats(
                turn=int(raw_stats["turn"]),
                enemies_killed=int(raw_stats["enemies_killed"]),
                rooms_cleared=int(raw_stats["rooms_cleared"]),
                run_over=bool(raw_stats["run_over"]),
                victory=bool(raw_stats["victory"]),
                visited_rooms=[int(r) for r in raw_stats.get("visited_rooms", [])],
            )
            explored = [tuple(p) for p in data.get("explored", [])]
        except StateCorruption:
            raise
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            raise StateCorruption(f"malformed snapshot: {exc}") from exc

        if dungeon.seed != seed or stats.turn != int(data["turn"]):
            raise StateCorruption("snapshot header disagrees with its body")
        cls._check_consistency(dungeon, player, stats)
        fog = FogOfWar(dungeon.tile_grid, settings.gameplay.vision_radius, explored=explored)
        logger.info("Restored run seed=%d at turn %d", seed, stats.turn)
        return cls(dungeon, player, seed, settings=settings, rng=rng, stats=stats, bus=bus, fog=fog)

    @staticmethod
    def _check_consistency(dungeon: Dungeon, player: Player, stats: RunStats) -> None:
        grid = dungeon.tile_grid
        if not player.alive and not stats.run_over:
            raise StateCorruption("player has no hp left but the run is still going")
        if not grid.is_walkable(*player.position):
            raise StateCorruption(f"player stands on a wall at {player.position}")
        for idx, room in enumerate(dungeon.rooms):
            if room.id != idx:
                raise StateCorruption(f"room ids out of order at {room.id}")
            for eid in room.enemies:
                enemy = dungeon.enemies.get(eid)
                if enemy is None:
                    raise StateCorruption(f"room {room.id} references missing enemy {eid}")
                if enemy.room_id != room.id or not room.bounds.interior_contains(enemy.position):
                    raise StateCorruption(f"enemy {eid} is outside room {room.id}")
                if not enemy.alive or enemy.ai_state is AIState.DEAD:
                    raise StateCorruption(f"room {room.id} lists defeated enemy {eid}")
            if room.cleared and room.enemies:
                raise StateCorruption(f"room {room.id} is cleared but has enemies")
        for iid in dungeon.items:
            if iid not in dungeon.item_positions:
                raise StateCorruption(f"item {iid} has no position")
