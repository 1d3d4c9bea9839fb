from penumbra.combat.entities import Enemy, EnemyKind, Player
from penumbra.dungeon.model import Dungeon, Room, RoomKind
from penumbra.dungeon.tiles import Rect, TileGrid

ROOM_7 = [
    "#######",
    "#.....#",
    "#.....#",
    "<.....>",
    "#.....#",
    "#.....#",
    "#######",
]


class FixedRolls:
    """Stands in for RandomSource with predetermined outcomes."""

    def __init__(self, hit=True, jitter=0, crit=False):
        self.hit = hit
        self.jitter = jitter
        self.crit = crit

    def chance(self, probability):
        return self.hit

    def randint(self, a, b):
        return max(a, min(b, self.jitter))

    def random(self):
        return 0.0 if self.crit else 0.999


def make_enemy(kind=EnemyKind.BUG, hp=10, damage=3, defense=0, position=(3, 3), room_id=0, **kw):
    return Enemy(id=-1, kind=kind, room_id=room_id, position=position, hp=hp, max_hp=kw.pop("max_hp", hp),
                 base_damage=damage, defense=defense, **kw)


def make_player(hp=50, damage=10, position=(1, 3), **kw):
    return Player(position=position, hp=hp, max_hp=kw.pop("max_hp", hp), energy=kw.pop("energy", 100),
                  max_energy=100, base_damage=damage, **kw)


def one_room_dungeon(enemies=(), kind=RoomKind.STANDARD, seed=1):
    grid = TileGrid.from_ascii(ROOM_7)
    room = Room(id=0, bounds=Rect(0, 0, 7, 7), kind=kind, entrance=(0, 3), exit=(6, 3))
    dungeon = Dungeon([room], set(), grid, seed=seed)
    for enemy in enemies:
        dungeon.spawn_enemy(enemy)
    room.cleared = not room.enemies
    return dungeon
