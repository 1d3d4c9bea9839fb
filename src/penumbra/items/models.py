from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict

logger = logging.getLogger(__name__)


class ItemKind(str, Enum):
    MAP_SCROLL = "map_scroll"
    HEALTH_POTION = "health_potion"
    BUFF_ITEM = "buff_item"


class Rarity(IntEnum):
    COMMON = 0
    UNCOMMON = 1
    RARE = 2
    LEGENDARY = 3

    @classmethod
    def from_magnitude(cls, total: int) -> "Rarity":
        """Saturating step: 0-49 common, 50-199 uncommon, 200-499 rare, 500+ legendary."""
        if total >= 500:
            return cls.LEGENDARY
        if total >= 200:
            return cls.RARE
        if total >= 50:
            return cls.UNCOMMON
        return cls.COMMON

    def upgraded(self) -> "Rarity":
        return Rarity(min(int(self) + 1, int(Rarity.LEGENDARY)))


HEAL_AMOUNTS: Dict[Rarity, int] = {
    Rarity.COMMON: 10,
    Rarity.UNCOMMON: 20,
    Rarity.RARE: 35,
    Rarity.LEGENDARY: 50,
}

BUFF_AMOUNTS: Dict[Rarity, int] = {
    Rarity.COMMON: 2,
    Rarity.UNCOMMON: 4,
    Rarity.RARE: 6,
    Rarity.LEGENDARY: 10,
}


@dataclass(frozen=True)
class Item:
    kind: ItemKind
    rarity: Rarity = Rarity.COMMON

    @property
    def name(self) -> str:
        return f"{self.rarity.name.title()} {self.kind.value.replace('_', ' ').title()}"

    @property
    def heal_amount(self) -> int:
        return HEAL_AMOUNTS[self.rarity] if self.kind is ItemKind.HEALTH_POTION else 0

    @property
    def buff_amount(self) -> int:
        return BUFF_AMOUNTS[self.rarity] if self.kind is ItemKind.BUFF_ITEM else 0

    def with_rarity(self, rarity: Rarity) -> "Item":
        return Item(kind=self.kind, rarity=rarity)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "rarity": int(self.rarity)}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Item":
        return Item(kind=ItemKind(data["kind"]), rarity=Rarity(int(data["rarity"])))
