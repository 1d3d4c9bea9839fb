from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from ..config import CombatSettings
from .entities import Enemy, EnemyKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnEffect:
    healed: int = 0
    damage_gain: int = 0


TurnHook = Callable[[Enemy, CombatSettings], TurnEffect]
# Returns the hp handed to a clone (0 means no split).
DamagedHook = Callable[[Enemy, CombatSettings], int]


@dataclass(frozen=True)
class KindBehavior:
    on_turn_start: TurnHook
    on_damaged: DamagedHook


def _no_turn_effect(enemy: Enemy, settings: CombatSettings) -> TurnEffect:
    return TurnEffect()


def _no_split(enemy: Enemy, settings: CombatSettings) -> int:
    return 0


def _regression_turn(enemy: Enemy, settings: CombatSettings) -> TurnEffect:
    """Below half health, patch itself back up by a fraction of max hp."""
    if not enemy.alive or enemy.hp * 2 >= enemy.max_hp:
        return TurnEffect()
    amount = max(1, int(enemy.max_hp * settings.regression_heal_fraction))
    healed = enemy.heal(amount)
    logger.debug("Regression #%d regenerates %d hp -> %d", enemy.id, healed, enemy.hp)
    return TurnEffect(healed=healed)


def _techdebt_turn(enemy: Enemy, settings: CombatSettings) -> TurnEffect:
    """Interest accrues: damage grows each survived turn up to damage_cap."""
    if not enemy.alive or enemy.turn_counter <= 1:
        return TurnEffect()
    gain = max(0, min(settings.techdebt_growth, enemy.damage_cap - enemy.base_damage))
    enemy.base_damage += gain
    if gain:
        logger.debug("TechDebt #%d damage grows to %d", enemy.id, enemy.base_damage)
    return TurnEffect(damage_gain=gain)


def _merge_conflict_damaged(enemy: Enemy, settings: CombatSettings) -> int:
    """
    Split once when hp first falls to or below the threshold while alive.
    The clone takes hp // 2 and the original keeps the remainder, so the pair
    never holds more hp than the original had.
    """
    if enemy.split_done or not enemy.alive:
        return 0
    if enemy.hp > enemy.max_hp * settings.split_threshold:
        return 0
    enemy.split_done = True
    split_hp = enemy.hp // 2
    enemy.hp -= split_hp
    logger.debug("MergeConflict #%d splits: keeps %d, clone gets %d", enemy.id, enemy.hp, split_hp)
    return split_hp


BEHAVIORS: Dict[EnemyKind, KindBehavior] = {
    EnemyKind.BUG: KindBehavior(_no_turn_effect, _no_split),
    EnemyKind.REGRESSION: KindBehavior(_regression_turn, _no_split),
    EnemyKind.TECH_DEBT: KindBehavior(_techdebt_turn, _no_split),
    EnemyKind.MERGE_CONFLICT: KindBehavior(_no_turn_effect, _merge_conflict_damaged),
}


def behavior_for(kind: EnemyKind) -> KindBehavior:
    return BEHAVIORS[kind]
