from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Union

from ..config import AISettings
from ..dungeon.pathfinding import find_path
from ..dungeon.tiles import DIRECTIONS, Direction, Position, manhattan
from ..rng import RandomSource
from .entities import AIState, Enemy, EnemyKind, Player

if TYPE_CHECKING:
    from ..dungeon.model import Dungeon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Move:
    direction: Direction


@dataclass(frozen=True)
class Attack:
    target: Position


@dataclass(frozen=True)
class Idle:
    pass


EnemyDecision = Union[Move, Attack, Idle]


class EnemyAI:
    """Per-enemy decision making.

    Enemies only wake up while the player stands inside their room. Awake
    enemies attack when orthogonally adjacent and otherwise step along a BFS
    shortest path over free interior tiles. Bugs roll every awake turn for an
    erratic step in a random open direction instead.
    """

    def __init__(self, rng: RandomSource, settings: Optional[AISettings] = None) -> None:
        self.rng = rng
        self.settings = settings or AISettings()

    def decide(self, enemy: Enemy, dungeon: "Dungeon", player: Player) -> EnemyDecision:
        if not enemy.alive:
            enemy.ai_state = AIState.DEAD
            return Idle()

        player_room = dungeon.room_at(player.position)
        if player_room is None or player_room.id != enemy.room_id:
            enemy.ai_state = AIState.IDLE
            return Idle()

        if enemy.kind is EnemyKind.BUG and self.rng.chance(self.settings.bug_erratic_chance):
            options = self.open_directions(enemy, dungeon, player)
            if options:
                enemy.ai_state = AIState.PURSUING
                direction = self.rng.choice(options)
                logger.debug("Bug #%d wanders %s", enemy.id, direction.name)
                return Move(direction)

        if manhattan(enemy.position, player.position) == 1:
            enemy.ai_state = AIState.ATTACKING
            return Attack(player.position)

        enemy.ai_state = AIState.PURSUING
        path = find_path(enemy.position, player.position, lambda p: self.is_free(p, enemy, dungeon, player))
        if path:
            return Move(Direction.between(enemy.position, path[0]))

        # Blocked in: take any step that closes the distance.
        here = manhattan(enemy.position, player.position)
        for d in self.open_directions(enemy, dungeon, player):
            if manhattan(d.step(enemy.position), player.position) < here:
                return Move(d)
        return Idle()

    def open_directions(self, enemy: Enemy, dungeon: "Dungeon", player: Player) -> List[Direction]:
        return [d for d in DIRECTIONS if self.is_free(d.step(enemy.position), enemy, dungeon, player)]

    @staticmethod
    def is_free(pos: Position, enemy: Enemy, dungeon: "Dungeon", player: Player) -> bool:
        room = dungeon.room(enemy.room_id)
        if not room.bounds.interior_contains(pos) or not dungeon.tile_grid.is_walkable(*pos):
            return False
        if pos == player.position:
            return False
        other = dungeon.enemy_at(pos)
        return other is None or other.id == enemy.id
