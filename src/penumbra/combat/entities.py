from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..dungeon.tiles import Position
from ..items.models import Item, ItemKind
from ..progression.modifiers import StatModifiers

logger = logging.getLogger(__name__)

PLAYER_BASE_HP = 50
PLAYER_BASE_ENERGY = 100
PLAYER_BASE_DAMAGE = 10
PLAYER_BASE_FOCUS = 50

# Every 10 focus adds one percentage point of hit chance.
FOCUS_PER_ACCURACY = 1000.0


class EnemyKind(str, Enum):
    BUG = "bug"
    REGRESSION = "regression"
    TECH_DEBT = "tech_debt"
    MERGE_CONFLICT = "merge_conflict"


class AIState(str, Enum):
    IDLE = "idle"
    PURSUING = "pursuing"
    ATTACKING = "attacking"
    DEAD = "dead"


class PlayerClass(str, Enum):
    CODE_WARRIOR = "code_warrior"
    MEETING_SURVIVOR = "meeting_survivor"
    INBOX_KNIGHT = "inbox_knight"
    WANDERER = "wanderer"

    @property
    def bonuses(self) -> Dict[str, int]:
        """Flat (hp, focus, damage) bonuses; focus feeds hit chance."""
        return _CLASS_BONUSES[self]


_CLASS_BONUSES: Dict[PlayerClass, Dict[str, int]] = {
    PlayerClass.CODE_WARRIOR: {"hp": 0, "focus": 0, "damage": 10},
    PlayerClass.MEETING_SURVIVOR: {"hp": 20, "focus": 0, "damage": 0},
    PlayerClass.INBOX_KNIGHT: {"hp": 0, "focus": 10, "damage": 0},
    PlayerClass.WANDERER: {"hp": 5, "focus": 5, "damage": 5},
}


@dataclass
class Enemy:
    """An enemy instance stored in the dungeon's enemy arena.

    damage_cap bounds TechDebt growth; split_done marks a MergeConflict that
    has already split (clones are born with it set).
    """

    id: int
    kind: EnemyKind
    room_id: int
    position: Position
    hp: int
    max_hp: int
    base_damage: int
    defense: int = 0
    tier: int = 0
    turn_counter: int = 0
    damage_cap: int = 0
    split_done: bool = False
    ai_state: AIState = AIState.IDLE

    def __post_init__(self) -> None:
        if self.max_hp <= 0:
            raise ValueError("max_hp must be positive")
        if not (0 <= self.hp <= self.max_hp):
            raise ValueError("hp must be within [0, max_hp]")
        if self.base_damage < 0 or self.defense < 0:
            raise ValueError("base_damage and defense must be non-negative")
        if self.damage_cap < self.base_damage:
            self.damage_cap = self.base_damage
        self.position = (int(self.position[0]), int(self.position[1]))

    @property
    def alive(self) -> bool:
        return self.hp > 0

    @property
    def accuracy(self) -> float:
        # Enemies hit at the flat base rate.
        return 0.0

    @property
    def effective_damage(self) -> int:
        return self.base_damage

    def take_damage(self, amount: int) -> int:
        """Apply damage, clamping hp at 0. Returns the damage actually applied."""
        if amount < 0:
            raise ValueError("Damage amount cannot be negative.")
        before = self.hp
        self.hp = max(0, self.hp - amount)
        if self.hp == 0:
            self.ai_state = AIState.DEAD
        return before - self.hp

    def heal(self, amount: int) -> int:
        if amount < 0:
            raise ValueError("Heal amount cannot be negative.")
        before = self.hp
        self.hp = min(self.max_hp, self.hp + amount)
        return self.hp - before

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "room_id": self.room_id,
            "position": list(self.position),
            "hp": self.hp,
            "max_hp": self.max_hp,
            "base_damage": self.base_damage,
            "defense": self.defense,
            "tier": self.tier,
            "turn_counter": self.turn_counter,
            "damage_cap": self.damage_cap,
            "split_done": self.split_done,
            "ai_state": self.ai_state.value,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Enemy":
        return Enemy(
            id=int(data["id"]),
            kind=EnemyKind(data["kind"]),
            room_id=int(data["room_id"]),
            position=tuple(data["position"]),
            hp=int(data["hp"]),
            max_hp=int(data["max_hp"]),
            base_damage=int(data["base_damage"]),
            defense=int(data.get("defense", 0)),
            tier=int(data.get("tier", 0)),
            turn_counter=int(data.get("turn_counter", 0)),
            damage_cap=int(data.get("damage_cap", 0)),
            split_done=bool(data.get("split_done", False)),
            ai_state=AIState(data.get("ai_state", AIState.IDLE.value)),
        )


@dataclass
class Buff:
    amount: int
    turns_left: int

    def to_dict(self) -> Dict[str, int]:
        return {"amount": self.amount, "turns_left": self.turns_left}


@dataclass
class Player:
    position: Position
    hp: int
    max_hp: int
    energy: int
    max_energy: int
    base_damage: int
    defense: int = 0
    inventory: List[Item] = field(default_factory=list)
    defending: bool = False
    buffs: List[Buff] = field(default_factory=list)
    player_class: PlayerClass = PlayerClass.WANDERER
    loot_luck: float = 0.0
    focus: int = PLAYER_BASE_FOCUS

    def __post_init__(self) -> None:
        if self.max_hp <= 0 or self.max_energy < 0:
            raise ValueError("max_hp must be positive and max_energy non-negative")
        if not (0 <= self.hp <= self.max_hp):
            raise ValueError("hp must be within [0, max_hp]")
        if not (0 <= self.energy <= self.max_energy):
            raise ValueError("energy must be within [0, max_energy]")
        if self.focus < 0:
            raise ValueError("focus must be non-negative")
        if not (0.0 <= self.loot_luck <= 1.0):
            raise ValueError("loot_luck must be between 0.0 and 1.0")
        self.position = (int(self.position[0]), int(self.position[1]))

    @classmethod
    def new(
        cls,
        position: Position,
        modifiers: Optional[StatModifiers] = None,
        player_class: PlayerClass = PlayerClass.WANDERER,
    ) -> "Player":
        """Create a fresh player with class bonuses and permanent modifiers applied once."""
        mods = modifiers or StatModifiers()
        bonus = player_class.bonuses
        max_hp = PLAYER_BASE_HP + bonus["hp"] + mods.bonus_max_hp
        max_energy = PLAYER_BASE_ENERGY + mods.bonus_max_energy
        inventory: List[Item] = []
        if mods.starting_item_tier is not None:
            inventory.append(Item(ItemKind.HEALTH_POTION, mods.starting_item_tier))
        player = cls(
            position=position,
            hp=max_hp,
            max_hp=max_hp,
            energy=max_energy,
            max_energy=max_energy,
            base_damage=PLAYER_BASE_DAMAGE + bonus["damage"] + mods.bonus_base_damage,
            inventory=inventory,
            player_class=player_class,
            loot_luck=mods.loot_luck,
            focus=PLAYER_BASE_FOCUS + bonus["focus"],
        )
        logger.info(
            "New %s: hp=%d energy=%d damage=%d focus=%d",
            player_class.value,
            player.max_hp,
            player.max_energy,
            player.base_damage,
            player.focus,
        )
        return player

    @property
    def alive(self) -> bool:
        return self.hp > 0

    @property
    def accuracy(self) -> float:
        return self.focus / FOCUS_PER_ACCURACY

    @property
    def effective_damage(self) -> int:
        return self.base_damage + sum(b.amount for b in self.buffs)

    def take_damage(self, amount: int, defend_multiplier: float = 0.5) -> int:
        """
        Apply incoming damage. While defending, damage is multiplied by
        defend_multiplier and floored, but stays at least 1.
        Returns the damage actually applied.
        """
        if amount < 0:
            raise ValueError("Damage amount cannot be negative.")
        if self.defending and amount > 0:
            reduced = max(1, math.floor(amount * defend_multiplier))
            logger.debug("Player defending (%.2f): %d -> %d", defend_multiplier, amount, reduced)
            amount = reduced
        before = self.hp
        self.hp = max(0, self.hp - amount)
        return before - self.hp

    def heal(self, amount: int) -> int:
        if amount < 0:
            raise ValueError("Heal amount cannot be negative.")
        before = self.hp
        self.hp = min(self.max_hp, self.hp + amount)
        return self.hp - before

    def spend_energy(self, cost: int) -> None:
        if cost > self.energy:
            raise ValueError("not enough energy")
        self.energy -= cost

    def regen_energy(self, amount: int) -> int:
        before = self.energy
        self.energy = min(self.max_energy, self.energy + amount)
        return self.energy - before

    def add_buff(self, amount: int, duration: int) -> None:
        self.buffs.append(Buff(amount=amount, turns_left=duration))

    def tick_buffs(self) -> List[Buff]:
        """Count every buff down one turn; returns the buffs that expired."""
        for b in self.buffs:
            b.turns_left -= 1
        expired = [b for b in self.buffs if b.turns_left <= 0]
        self.buffs = [b for b in self.buffs if b.turns_left > 0]
        return expired

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": list(self.position),
            "hp": self.hp,
            "max_hp": self.max_hp,
            "energy": self.energy,
            "max_energy": self.max_energy,
            "base_damage": self.base_damage,
            "defense": self.defense,
            "inventory": [i.to_dict() for i in self.inventory],
            "defending": self.defending,
            "buffs": [b.to_dict() for b in self.buffs],
            "player_class": self.player_class.value,
            "loot_luck": self.loot_luck,
            "focus": self.focus,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Player":
        return Player(
            position=tuple(data["position"]),
            hp=int(data["hp"]),
            max_hp=int(data["max_hp"]),
            energy=int(data["energy"]),
            max_energy=int(data["max_energy"]),
            base_damage=int(data["base_damage"]),
            defense=int(data.get("defense", 0)),
            inventory=[Item.from_dict(i) for i in data.get("inventory", [])],
            defending=bool(data.get("defending", False)),
            buffs=[Buff(int(b["amount"]), int(b["turns_left"])) for b in data.get("buffs", [])],
            player_class=PlayerClass(data.get("player_class", PlayerClass.WANDERER.value)),
            loot_luck=float(data.get("loot_luck", 0.0)),
            focus=int(data.get("focus", PLAYER_BASE_FOCUS)),
        )
