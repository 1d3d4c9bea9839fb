import pytest

from penumbra.combat.damage import DamageCalculator
from penumbra.combat.engine import CombatAction, CombatEngine
from penumbra.combat.entities import Player, PlayerClass
from penumbra.config import CombatSettings
from penumbra.errors import InvalidAction
from penumbra.items import Item, ItemKind, Rarity
from penumbra.rng import RandomSource

from helpers import FixedRolls, make_enemy, make_player


def test_lethal_hit_clamps_player_hp_to_zero():
    engine = CombatEngine(FixedRolls(hit=True, jitter=0))
    player = make_player(hp=10)
    enemy = make_enemy(damage=15, defense=0)
    result = engine.resolve(enemy, player, CombatAction.ATTACK)
    assert result.hit
    assert result.defender_hp_after == 0
    assert result.defeated
    assert player.hp == 0
    assert result.damage_dealt == 10


def test_miss_changes_nothing():
    engine = CombatEngine(FixedRolls(hit=False))
    enemy = make_enemy(hp=10)
    result = engine.resolve(make_player(), enemy, CombatAction.ATTACK)
    assert not result.hit
    assert result.damage_dealt == 0
    assert enemy.hp == 10
    assert not result.defeated


def test_hit_always_deals_at_least_one():
    engine = CombatEngine(FixedRolls(hit=True, jitter=-1))
    enemy = make_enemy(hp=10, defense=10)
    result = engine.resolve(make_player(damage=1), enemy, CombatAction.ATTACK)
    assert result.damage_dealt == 1
    assert enemy.hp == 9


def test_hit_chance_stays_in_band():
    calc = DamageCalculator(CombatSettings())
    for accuracy in (-5.0, -0.5, 0.0, 0.3, 5.0):
        for defense in (0, 1, 3, 10, 100):
            p = calc.hit_chance(accuracy, defense)
            assert 0.05 <= p <= 0.95


def test_defense_lowers_hit_chance():
    calc = DamageCalculator()
    assert calc.hit_chance(0.0, 0) == pytest.approx(0.80)
    assert calc.hit_chance(0.0, 2) == pytest.approx(0.70)


def test_damage_jitter_range_with_real_rng():
    engine = CombatEngine(RandomSource(11), CombatSettings(crit_chance=0.0))
    for _ in range(200):
        enemy = make_enemy(hp=100, defense=2)
        result = engine.attack(make_player(damage=10), enemy)
        if result.hit:
            assert 7 <= result.damage_dealt <= 9


def test_defending_player_takes_half_damage():
    engine = CombatEngine(FixedRolls(hit=True, jitter=0))
    player = make_player(hp=50)
    player.defending = True
    engine.attack(make_enemy(damage=9), player)
    assert player.hp == 50 - 4


def test_defeated_attacker_does_nothing():
    engine = CombatEngine(FixedRolls(hit=True))
    dead = make_enemy(hp=0, max_hp=10)
    player = make_player()
    result = engine.attack(dead, player)
    assert not result.hit and player.hp == 50


def test_use_health_potion_heals_and_consumes():
    engine = CombatEngine(FixedRolls())
    player = make_player(hp=30, max_hp=50)
    player.inventory.append(Item(ItemKind.HEALTH_POTION, Rarity.RARE))
    result = engine.resolve(player, player, CombatAction.USE_ITEM, item_index=0)
    assert result.healed == 20
    assert player.hp == 50
    assert player.inventory == []
    assert not result.hit


def test_use_buff_raises_damage_until_it_expires():
    engine = CombatEngine(FixedRolls(), buff_duration=3)
    player = make_player(damage=10)
    player.inventory.append(Item(ItemKind.BUFF_ITEM, Rarity.UNCOMMON))
    result = engine.resolve(player, player, CombatAction.USE_ITEM, item_index=0)
    assert result.buffed == 4
    assert player.effective_damage == 14
    player.tick_buffs()
    player.tick_buffs()
    assert player.effective_damage == 14
    expired = player.tick_buffs()
    assert [b.amount for b in expired] == [4]
    assert player.effective_damage == 10


def test_use_map_scroll_reports_reveal():
    engine = CombatEngine(FixedRolls())
    player = make_player()
    player.inventory.append(Item(ItemKind.MAP_SCROLL))
    assert engine.resolve(player, player, CombatAction.USE_ITEM, item_index=0).revealed_map


def test_use_item_bad_index_raises():
    engine = CombatEngine(FixedRolls())
    player = make_player()
    with pytest.raises(InvalidAction):
        engine.resolve(player, player, CombatAction.USE_ITEM, item_index=0)


def test_defend_sets_stance():
    engine = CombatEngine(FixedRolls())
    player = make_player()
    engine.resolve(player, player, CombatAction.DEFEND)
    assert player.defending


def test_focus_raises_player_hit_chance():
    calc = DamageCalculator()
    knight = Player.new((0, 0), player_class=PlayerClass.INBOX_KNIGHT)
    warrior = Player.new((0, 0), player_class=PlayerClass.CODE_WARRIOR)
    assert knight.focus == 60 and warrior.focus == 50
    assert calc.hit_chance(knight.accuracy, 0) == pytest.approx(0.86)
    assert calc.hit_chance(warrior.accuracy, 0) == pytest.approx(0.85)
    assert calc.hit_chance(make_enemy().accuracy, 0) == pytest.approx(0.80)


def test_player_critical_hit_doubles_damage():
    engine = CombatEngine(FixedRolls(hit=True, jitter=0, crit=True))
    enemy = make_enemy(hp=50, defense=2)
    result = engine.attack(make_player(damage=10), enemy)
    assert result.critical
    assert result.damage_dealt == 16
    assert enemy.hp == 34


def test_enemies_never_crit():
    engine = CombatEngine(FixedRolls(hit=True, jitter=0, crit=True))
    player = make_player(hp=50)
    result = engine.attack(make_enemy(damage=5), player)
    assert not result.critical
    assert player.hp == 45


def test_crit_roll_can_be_disabled():
    rng = RandomSource(3)
    engine = CombatEngine(rng, CombatSettings(crit_chance=0.0, damage_jitter=0))
    result = engine.attack(make_player(damage=10), make_enemy(hp=50))
    assert not result.critical
    # hit roll only
    assert rng.draws == 1
