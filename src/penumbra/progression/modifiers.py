from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..items.models import Rarity

logger = logging.getLogger(__name__)

# Per-level increments for permanent upgrades bought outside the run.
HP_PER_LEVEL = 5
ENERGY_PER_LEVEL = 2
DAMAGE_PER_LEVEL = 1
LUCK_PCT_PER_LEVEL = 5


@dataclass(frozen=True)
class StatModifiers:
    """Permanent cross-run bonuses, applied once when a Player is created.

    - bonus_max_hp / bonus_max_energy / bonus_base_damage: flat additions.
    - starting_item_tier: when set, the run starts with a health potion of that rarity.
    - loot_luck_pct: percent chance (0-100) that a picked up item is upgraded one rarity.
    """

    bonus_max_hp: int = 0
    bonus_max_energy: int = 0
    bonus_base_damage: int = 0
    starting_item_tier: Optional[Rarity] = None
    loot_luck_pct: int = 0

    def __post_init__(self) -> None:
        for name in ("bonus_max_hp", "bonus_max_energy", "bonus_base_damage"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if not (0 <= self.loot_luck_pct <= 100):
            raise ValueError("loot_luck_pct must be between 0 and 100")

    @property
    def loot_luck(self) -> float:
        return self.loot_luck_pct / 100.0

    @staticmethod
    def from_upgrades(levels: Dict[str, int], starting_item_tier: Optional[Rarity] = None) -> "StatModifiers":
        """Translate upgrade levels {"hp", "energy", "damage", "luck"} into modifiers."""
        mods = StatModifiers(
            bonus_max_hp=HP_PER_LEVEL * int(levels.get("hp", 0)),
            bonus_max_energy=ENERGY_PER_LEVEL * int(levels.get("energy", 0)),
            bonus_base_damage=DAMAGE_PER_LEVEL * int(levels.get("damage", 0)),
            starting_item_tier=starting_item_tier,
            loot_luck_pct=min(100, LUCK_PCT_PER_LEVEL * int(levels.get("luck", 0))),
        )
        logger.debug("Upgrade levels %s => %s", levels, mods)
        return mods

    def combine(self, other: "StatModifiers") -> "StatModifiers":
        """Add two modifier sets; the higher starting item tier wins and luck saturates at 100."""
        tiers = [t for t in (self.starting_item_tier, other.starting_item_tier) if t is not None]
        return StatModifiers(
            bonus_max_hp=self.bonus_max_hp + other.bonus_max_hp,
            bonus_max_energy=self.bonus_max_energy + other.bonus_max_energy,
            bonus_base_damage=self.bonus_base_damage + other.bonus_base_damage,
            starting_item_tier=max(tiers) if tiers else None,
            loot_luck_pct=min(100, self.loot_luck_pct + other.loot_luck_pct),
        )

    def to_dict(self) -> Dict:
        return {
            "bonus_max_hp": self.bonus_max_hp,
            "bonus_max_energy": self.bonus_max_energy,
            "bonus_base_damage": self.bonus_base_damage,
            "starting_item_tier": None if self.starting_item_tier is None else int(self.starting_item_tier),
            "loot_luck_pct": self.loot_luck_pct,
        }

    @staticmethod
    def from_dict(data: Dict) -> "StatModifiers":
        tier = data.get("starting_item_tier")
        return StatModifiers(
            bonus_max_hp=int(data.get("bonus_max_hp", 0)),
            bonus_max_energy=int(data.get("bonus_max_energy", 0)),
            bonus_base_damage=int(data.get("bonus_base_damage", 0)),
            starting_item_tier=None if tier is None else Rarity(int(tier)),
            loot_luck_pct=int(data.get("loot_luck_pct", 0)),
        )
