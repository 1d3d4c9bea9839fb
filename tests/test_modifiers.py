from __future__ import annotations

import pytest

from penumbra.combat.entities import PlayerClass, Player
from penumbra.items import ItemKind, Rarity
from penumbra.progression import StatModifiers


def test_class_and_modifiers_apply_once() -> None:
    mods = StatModifiers(bonus_max_hp=5, bonus_max_energy=2, bonus_base_damage=1)
    p = Player.new((0, 0), mods, PlayerClass.CODE_WARRIOR)
    assert (p.max_hp, p.max_energy, p.base_damage) == (55, 102, 21)
    assert p.hp == p.max_hp and p.energy == p.max_energy
    assert p.inventory == []


def test_default_class_is_wanderer() -> None:
    p = Player.new((2, 3))
    assert p.player_class is PlayerClass.WANDERER
    assert (p.max_hp, p.max_energy, p.base_damage) == (55, 100, 15)
    assert p.focus == 55
    assert p.position == (2, 3)


def test_starting_item_tier_grants_potion() -> None:
    p = Player.new((0, 0), StatModifiers(starting_item_tier=Rarity.RARE), PlayerClass.MEETING_SURVIVOR)
    assert p.max_hp == 70
    assert len(p.inventory) == 1
    assert p.inventory[0].kind is ItemKind.HEALTH_POTION
    assert p.inventory[0].rarity is Rarity.RARE


def test_from_upgrades() -> None:
    mods = StatModifiers.from_upgrades({"hp": 2, "energy": 3, "damage": 1, "luck": 4})
    assert mods.bonus_max_hp == 10
    assert mods.bonus_max_energy == 6
    assert mods.bonus_base_damage == 1
    assert mods.loot_luck == pytest.approx(0.2)
    assert StatModifiers.from_upgrades({"luck": 50}).loot_luck_pct == 100


def test_combine_saturates_luck_and_keeps_best_tier() -> None:
    a = StatModifiers(bonus_max_hp=3, loot_luck_pct=70, starting_item_tier=Rarity.UNCOMMON)
    b = StatModifiers(bonus_max_hp=4, loot_luck_pct=50, starting_item_tier=Rarity.COMMON)
    c = a.combine(b)
    assert c.bonus_max_hp == 7
    assert c.loot_luck_pct == 100
    assert c.starting_item_tier is Rarity.UNCOMMON


def test_invalid_modifiers() -> None:
    with pytest.raises(ValueError):
        StatModifiers(loot_luck_pct=101)
    with pytest.raises(ValueError):
        StatModifiers(bonus_max_hp=-1)


def test_modifiers_dict_round_trip() -> None:
    mods = StatModifiers(bonus_max_energy=4, starting_item_tier=Rarity.LEGENDARY, loot_luck_pct=15)
    assert StatModifiers.from_dict(mods.to_dict()) == mods


def test_player_rejects_out_of_range_vitals() -> None:
    with pytest.raises(ValueError):
        Player(position=(0, 0), hp=-5, max_hp=50, energy=10, max_energy=100, base_damage=10)
    with pytest.raises(ValueError):
        Player(position=(0, 0), hp=60, max_hp=50, energy=10, max_energy=100, base_damage=10)
    with pytest.raises(ValueError):
        Player(position=(0, 0), hp=50, max_hp=50, energy=101, max_energy=100, base_damage=10)
    with pytest.raises(ValueError):
        Player(position=(0, 0), hp=50, max_hp=50, energy=-1, max_energy=100, base_damage=10)


def test_focus_survives_round_trip() -> None:
    p = Player.new((1, 1), player_class=PlayerClass.INBOX_KNIGHT)
    assert Player.from_dict(p.to_dict()).focus == 60
