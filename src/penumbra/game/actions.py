from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..config import GameplaySettings
from ..dungeon.tiles import Direction


@dataclass(frozen=True)
class Move:
    direction: Direction


@dataclass(frozen=True)
class Attack:
    direction: Direction


@dataclass(frozen=True)
class UseItem:
    index: int


@dataclass(frozen=True)
class Defend:
    pass


@dataclass(frozen=True)
class Wait:
    pass


PlayerAction = Union[Move, Attack, UseItem, Defend, Wait]


def energy_cost(action: PlayerAction, gameplay: GameplaySettings) -> int:
    """Energy spent by an action; Wait is free and regenerates instead."""
    if isinstance(action, Move):
        return gameplay.move_cost
    if isinstance(action, Attack):
        return gameplay.attack_cost
    if isinstance(action, UseItem):
        return gameplay.use_item_cost
    if isinstance(action, Defend):
        return gameplay.defend_cost
    return 0


def action_from_dict(data: dict) -> PlayerAction:
    """Parse {"type": "move", "direction": "north"} style commands."""
    kind = str(data.get("type", "")).lower()
    if kind in ("move", "attack"):
        direction = Direction[str(data["direction"]).upper()]
        return Move(direction) if kind == "move" else Attack(direction)
    if kind == "use_item":
        return UseItem(int(data["index"]))
    if kind == "defend":
        return Defend()
    if kind == "wait":
        return Wait()
    raise ValueError(f"Unknown action type: {kind!r}")
