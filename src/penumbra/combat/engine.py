from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..config import CombatSettings
from ..errors import InvalidAction
from ..items.models import Item, ItemKind
from ..rng import RandomSource
from .behaviors import TurnEffect, behavior_for
from .damage import DamageCalculator
from .entities import Enemy, Player

logger = logging.getLogger(__name__)

Combatant = Union[Player, Enemy]


class CombatAction(str, Enum):
    ATTACK = "attack"
    USE_ITEM = "use_item"
    DEFEND = "defend"


@dataclass(frozen=True)
class CombatResult:
    """Outcome of one resolved combat action.

    For USE_ITEM and DEFEND the acting combatant is also the one reported in
    defender_hp_after.
    """

    hit: bool
    damage_dealt: int
    defender_hp_after: int
    defeated: bool
    split_hp: int = 0
    healed: int = 0
    buffed: int = 0
    revealed_map: bool = False
    item: Optional[Item] = None
    critical: bool = False


class CombatEngine:
    """Resolves attacks, item use and defend stances between a Player and Enemies."""

    def __init__(
        self,
        rng: RandomSource,
        settings: Optional[CombatSettings] = None,
        buff_duration: int = 5,
        damage_calculator: Optional[DamageCalculator] = None,
    ) -> None:
        self.rng = rng
        self.settings = settings or CombatSettings()
        self.buff_duration = buff_duration
        self.damage_calculator = damage_calculator or DamageCalculator(self.settings)

    def resolve(
        self,
        attacker: Combatant,
        defender: Combatant,
        action: CombatAction,
        item_index: Optional[int] = None,
    ) -> CombatResult:
        if action is CombatAction.ATTACK:
            return self.attack(attacker, defender)
        if action is CombatAction.USE_ITEM:
            if not isinstance(attacker, Player):
                raise InvalidAction("only the player can use items")
            return self.use_item(attacker, item_index)
        if action is CombatAction.DEFEND:
            if not isinstance(attacker, Player):
                raise InvalidAction("only the player can defend")
            attacker.defending = True
            return CombatResult(hit=False, damage_dealt=0, defender_hp_after=attacker.hp, defeated=False)
        raise InvalidAction(f"unknown combat action: {action!r}")

    def attack(self, attacker: Combatant, defender: Combatant) -> CombatResult:
        """Roll to hit, then roll damage. A miss changes nothing."""
        if not attacker.alive:
            logger.warning("Defeated combatant attempted to attack; no action taken.")
            return CombatResult(hit=False, damage_dealt=0, defender_hp_after=defender.hp,
                                defeated=not defender.alive)

        calc = self.damage_calculator
        if not calc.roll_hit(attacker.accuracy, defender.defense, self.rng):
            logger.debug("Attack missed (defender hp %d)", defender.hp)
            return CombatResult(hit=False, damage_dealt=0, defender_hp_after=defender.hp,
                                defeated=not defender.alive)

        dmg = calc.compute_damage(attacker.effective_damage, defender.defense, self.rng)
        critical = isinstance(attacker, Player) and self._roll_crit()
        if critical:
            dmg = int(dmg * self.settings.crit_multiplier)
        if isinstance(defender, Player):
            applied = defender.take_damage(dmg, self.settings.defend_multiplier)
        else:
            applied = defender.take_damage(dmg)

        split_hp = 0
        if isinstance(defender, Enemy) and defender.alive:
            split_hp = behavior_for(defender.kind).on_damaged(defender, self.settings)

        defeated = not defender.alive
        logger.debug("Attack hit for %d (hp now %d, defeated=%s, critical=%s)", applied, defender.hp, defeated, critical)
        return CombatResult(
            hit=True,
            damage_dealt=applied,
            defender_hp_after=defender.hp,
            defeated=defeated,
            split_hp=split_hp,
            critical=critical,
        )

    def _roll_crit(self) -> bool:
        chance = self.settings.crit_chance
        return chance > 0 and self.rng.random() < chance

    def use_item(self, user: Player, item_index: Optional[int]) -> CombatResult:
        """Consume an inventory item and apply its effect to the user. No hit roll."""
        if item_index is None or not (0 <= item_index < len(user.inventory)):
            raise InvalidAction(f"no item at inventory index {item_index!r}")
        item = user.inventory.pop(item_index)
        healed = buffed = 0
        revealed = False
        if item.kind is ItemKind.HEALTH_POTION:
            healed = user.heal(item.heal_amount)
        elif item.kind is ItemKind.BUFF_ITEM:
            buffed = item.buff_amount
            user.add_buff(buffed, self.buff_duration)
        elif item.kind is ItemKind.MAP_SCROLL:
            revealed = True
        logger.debug("Used %s: healed=%d buffed=%d revealed=%s", item.name, healed, buffed, revealed)
        return CombatResult(
            hit=False,
            damage_dealt=0,
            defender_hp_after=user.hp,
            defeated=False,
            healed=healed,
            buffed=buffed,
            revealed_map=revealed,
            item=item,
        )

    def start_of_turn(self, enemy: Enemy) -> TurnEffect:
        """Advance an enemy's turn counter and run its kind's turn-start behavior."""
        if not enemy.alive:
            return TurnEffect()
        enemy.turn_counter += 1
        return behavior_for(enemy.kind).on_turn_start(enemy, self.settings)
