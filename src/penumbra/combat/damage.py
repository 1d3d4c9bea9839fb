from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import CombatSettings
from ..rng import RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DamageBreakdown:
    """Details of a computed damage roll.

    Attributes:
        base: attacker damage minus defender defense, before jitter.
        jitter: the rolled offset in [-damage_jitter, damage_jitter].
        final: the damage dealt (>= 1).
    """

    base: int
    jitter: int
    final: int


class DamageCalculator:
    """Hit chance and damage rolls for one attack.

    hit_chance = clamp(base_hit + accuracy - defense_penalty * defense, min_hit, max_hit)
    damage     = max(1, damage - defense + jitter)

    Notes:
    - The clamp band keeps every attack uncertain; nothing is a guaranteed hit or miss.
    - A hit always deals at least 1 damage.
    """

    def __init__(self, settings: Optional[CombatSettings] = None) -> None:
        self.settings = settings or CombatSettings()

    def hit_chance(self, accuracy: float, defense: int) -> float:
        s = self.settings
        raw = s.base_hit_chance + accuracy - s.defense_hit_penalty * max(0, defense)
        return min(s.max_hit_chance, max(s.min_hit_chance, raw))

    def roll_hit(self, accuracy: float, defense: int, rng: RandomSource) -> bool:
        return rng.chance(self.hit_chance(accuracy, defense))

    def compute_damage(self, damage: int, defense: int, rng: RandomSource) -> int:
        return self.compute_damage_with_breakdown(damage, defense, rng).final

    def compute_damage_with_breakdown(self, damage: int, defense: int, rng: RandomSource) -> DamageBreakdown:
        if damage < 0 or defense < 0:
            logger.warning("Negative stat detected (damage=%s, defense=%s); clamping to zero.", damage, defense)
            damage = max(0, damage)
            defense = max(0, defense)
        spread = self.settings.damage_jitter
        jitter = rng.randint(-spread, spread) if spread > 0 else 0
        base = damage - defense
        return DamageBreakdown(base=base, jitter=jitter, final=max(1, base + jitter))
