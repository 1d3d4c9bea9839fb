from .actions import Attack, Defend, Move, PlayerAction, UseItem, Wait
from .events import EventBus, GameEvent
from .session import GameSession, RunSummary, TurnOutcome

__all__ = [
    "Attack",
    "Defend",
    "EventBus",
    "GameEvent",
    "GameSession",
    "Move",
    "PlayerAction",
    "RunSummary",
    "TurnOutcome",
    "UseItem",
    "Wait",
]
