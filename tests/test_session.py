from datetime import date

import pytest

from penumbra.combat.entities import EnemyKind
from penumbra.config import CombatSettings, Settings
from penumbra.dungeon.model import RoomKind
from penumbra.dungeon.tiles import Direction, TileKind
from penumbra.errors import InvalidAction
from penumbra.game import events as ev
from penumbra.game.actions import Attack, Defend, Move, UseItem, Wait
from penumbra.game.events import EventBus
from penumbra.game.session import GameSession
from penumbra.history import EventCategory as C
from penumbra.history import HistoryEvent
from penumbra.items import Item, ItemKind, Rarity

from helpers import make_enemy, make_player, one_room_dungeon

NO_CRIT = Settings(combat=CombatSettings(crit_chance=0.0))


def names(outcome):
    return [e.name for e in outcome.events]


def session_with(enemies=(), player=None, kind=RoomKind.STANDARD, bus=None, settings=None):
    dungeon = one_room_dungeon(enemies, kind=kind)
    return GameSession(dungeon, player or make_player(position=(1, 3)), seed=1, bus=bus, settings=settings)


def test_new_run_places_player_at_first_entrance():
    session = GameSession.new_run([HistoryEvent(date(2024, 1, 1), 5)], seed=3)
    assert session.player.position == session.dungeon.rooms[0].entrance
    assert session.player.position in session.visible
    assert session.player.hp == 55


def test_invalid_actions_leave_state_unchanged():
    session = GameSession.new_run([], seed=3)
    before = session.snapshot()
    for action in (Move(Direction.WEST), Attack(Direction.EAST), UseItem(4), "dance"):
        with pytest.raises(InvalidAction):
            session.advance_turn(action)
    assert session.snapshot() == before


def test_not_enough_energy_is_rejected():
    session = session_with()
    session.player.energy = 2
    with pytest.raises(InvalidAction):
        session.advance_turn(Defend())
    assert session.player.energy == 2


def test_energy_costs_and_wait_regen():
    session = session_with()
    session.advance_turn(Move(Direction.EAST))
    assert session.player.energy == 99
    session.advance_turn(Defend())
    assert session.player.energy == 96
    assert session.player.defending
    session.advance_turn(Wait())
    assert session.player.energy == 98
    assert not session.player.defending
    assert session.turn == 3


def test_walking_out_of_last_room_wins():
    session = GameSession.new_run([], seed=9)
    room = session.dungeon.rooms[0]
    assert room.cleared
    outcome = None
    for _ in range(room.bounds.w - 1):
        outcome = session.advance_turn(Move(Direction.EAST))
    assert session.player.position == room.exit
    assert outcome.victory and outcome.run_over
    assert ev.VICTORY in names(outcome)
    assert session.summary().victory
    assert session.summary().rooms_cleared == 1
    with pytest.raises(InvalidAction):
        session.advance_turn(Wait())


def test_exit_is_locked_until_room_cleared():
    session = session_with([make_enemy(EnemyKind.REGRESSION, position=(1, 1))],
                           player=make_player(position=(5, 3)))
    with pytest.raises(InvalidAction):
        session.advance_turn(Move(Direction.EAST))
    assert session.player.position == (5, 3)


def test_killing_last_enemy_clears_room():
    session = session_with([make_enemy(EnemyKind.TECH_DEBT, hp=1, position=(2, 3))])
    seen = []
    for _ in range(20):
        outcome = session.advance_turn(Attack(Direction.EAST))
        seen += names(outcome)
        if ev.ENEMY_DEFEATED in seen:
            break
    room = session.dungeon.rooms[0]
    assert ev.ROOM_CLEARED in seen
    assert room.cleared and room.enemies == []
    summary = session.summary()
    assert summary.enemies_killed == 1
    assert summary.rooms_cleared == 1
    assert not session.run_over


def test_player_death_ends_run():
    session = session_with([make_enemy(EnemyKind.REGRESSION, damage=30, position=(2, 3))],
                           player=make_player(hp=1))
    outcome = None
    for _ in range(50):
        outcome = session.advance_turn(Wait())
        if outcome.run_over:
            break
    assert outcome.run_over and not outcome.victory
    assert session.player.hp == 0
    assert ev.PLAYER_DEFEATED in names(outcome)
    with pytest.raises(InvalidAction):
        session.advance_turn(Wait())


def test_item_pickup_and_use():
    session = session_with()
    room = session.dungeon.rooms[0]
    session.dungeon.add_item(room, Item(ItemKind.HEALTH_POTION, Rarity.COMMON), (2, 3))
    outcome = session.advance_turn(Move(Direction.EAST))
    assert ev.ITEM_PICKED_UP in names(outcome)
    assert session.player.inventory == [Item(ItemKind.HEALTH_POTION, Rarity.COMMON)]
    assert session.dungeon.items == {} and room.items == []

    session.player.hp = 30
    outcome = session.advance_turn(UseItem(0))
    assert ev.ITEM_USED in names(outcome)
    assert session.player.hp == 40
    assert session.player.inventory == []


def test_full_inventory_leaves_item_on_floor():
    session = session_with()
    session.player.inventory = [Item(ItemKind.MAP_SCROLL)] * 10
    room = session.dungeon.rooms[0]
    iid = session.dungeon.add_item(room, Item(ItemKind.BUFF_ITEM), (2, 3))
    outcome = session.advance_turn(Move(Direction.EAST))
    assert ev.INVENTORY_FULL in names(outcome)
    assert iid in session.dungeon.items
    assert len(session.player.inventory) == 10


def test_loot_luck_upgrades_rarity():
    session = session_with(player=make_player(loot_luck=1.0))
    session.dungeon.add_item(session.dungeon.rooms[0], Item(ItemKind.HEALTH_POTION, Rarity.COMMON), (2, 3))
    session.advance_turn(Move(Direction.EAST))
    assert session.player.inventory[0].rarity is Rarity.UNCOMMON


def test_map_scroll_reveals_whole_map():
    session = session_with()
    session.player.inventory.append(Item(ItemKind.MAP_SCROLL))
    outcome = session.advance_turn(UseItem(0))
    grid = session.dungeon.tile_grid
    assert ev.MAP_REVEALED in names(outcome)
    assert len(session.fog.explored) == grid.width * grid.height


def test_sanctuary_floor_heals():
    events = [HistoryEvent(date(2024, 1, 1), 10, C.TEST) for _ in range(3)]
    session = GameSession.new_run(events, seed=4)
    assert session.dungeon.rooms[0].kind is RoomKind.SANCTUARY
    session.player.hp = 40
    outcome = session.advance_turn(Move(Direction.EAST))
    assert session.dungeon.tile_grid.get(*session.player.position) is TileKind.HEALING
    assert session.player.hp == 41
    assert ev.SANCTUARY_HEAL in names(outcome)


def test_buffs_expire_after_duration():
    session = session_with()
    session.player.inventory.append(Item(ItemKind.BUFF_ITEM, Rarity.COMMON))
    session.advance_turn(UseItem(0))
    assert session.player.effective_damage == 12
    for _ in range(3):
        session.advance_turn(Wait())
    assert session.player.effective_damage == 12
    outcome = session.advance_turn(Wait())
    assert ev.BUFF_EXPIRED in names(outcome)
    assert session.player.effective_damage == 10


def test_merge_conflict_split_spawns_adjacent_clone():
    session = session_with([make_enemy(EnemyKind.MERGE_CONFLICT, hp=50, position=(2, 3))],
                           player=make_player(damage=30), settings=NO_CRIT)
    split_events = []
    for _ in range(20):
        outcome = session.advance_turn(Attack(Direction.EAST))
        split_events = [e for e in outcome.events if e.name == ev.ENEMY_SPLIT]
        if split_events:
            break
    assert split_events
    payload = split_events[0].payload
    room = session.dungeon.rooms[0]
    living = session.dungeon.living_enemies(room)
    assert len(living) == 2
    clone = session.dungeon.enemies[payload["clone_id"]]
    assert clone.split_done
    assert clone.hp == payload["clone_hp"]
    assert payload["hp"] + payload["clone_hp"] <= 25


def test_event_bus_receives_turn_events():
    bus = EventBus()
    received = []
    bus.subscribe("*", received.append)
    session = session_with(bus=bus)
    session.advance_turn(Wait())
    assert [e.name for e in received] == [ev.PLAYER_WAITED]


def test_blocked_split_keeps_hp_on_original():
    conflict = make_enemy(EnemyKind.MERGE_CONFLICT, hp=50, position=(1, 1))
    session = session_with([conflict], player=make_player(damage=30, position=(2, 1)), settings=NO_CRIT)
    session.dungeon.tile_grid.set(1, 2, TileKind.WALL)
    for _ in range(20):
        outcome = session.advance_turn(Attack(Direction.WEST))
        hits = [e for e in outcome.events if e.name == ev.PLAYER_ATTACKED and e.payload["hit"]]
        if hits:
            break
    assert ev.ENEMY_SPLIT not in names(outcome)
    assert conflict.split_done
    assert conflict.hp == 50 - hits[0].payload["damage"]
    assert len(session.dungeon.enemies) == 1


def test_defeated_player_cannot_act():
    session = session_with()
    session.player.hp = 0
    with pytest.raises(InvalidAction):
        session.advance_turn(Wait())
    assert session.turn == 0


def test_entering_an_empty_room_counts_it_cleared_once():
    events = [HistoryEvent(date(2024, 1, 1), 10, C.DOC), HistoryEvent(date(2024, 1, 2), 10, C.DOC)]
    session = GameSession.new_run(events, seed=2)
    first, second = session.dungeon.rooms
    assert first.cleared and second.cleared
    assert session.summary().rooms_cleared == 1

    while session.player.position != second.entrance:
        session.advance_turn(Move(Direction.EAST))
        assert not session.run_over
    assert session.summary().rooms_cleared == 2
    session.advance_turn(Move(Direction.WEST))
    session.advance_turn(Move(Direction.EAST))
    assert session.summary().rooms_cleared == 2
