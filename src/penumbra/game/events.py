import logging
from collections import defaultdict
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

# Event names published by GameSession.
PLAYER_MOVED = "player_moved"
PLAYER_ATTACKED = "player_attacked"
PLAYER_DEFENDING = "player_defending"
PLAYER_WAITED = "player_waited"
ITEM_PICKED_UP = "item_picked_up"
ITEM_USED = "item_used"
INVENTORY_FULL = "inventory_full"
MAP_REVEALED = "map_revealed"
ENEMY_ATTACKED = "enemy_attacked"
ENEMY_DEFEATED = "enemy_defeated"
ENEMY_SPLIT = "enemy_split"
ENEMY_HEALED = "enemy_healed"
ENEMY_GREW = "enemy_grew"
ROOM_CLEARED = "room_cleared"
SANCTUARY_HEAL = "sanctuary_heal"
BUFF_EXPIRED = "buff_expired"
PLAYER_DEFEATED = "player_defeated"
VICTORY = "victory"


@dataclass(frozen=True)
class GameEvent:
    """Something that happened during a turn.

    Attributes:
        name: one of the event name constants in this module.
        payload: JSON-safe details.
    """
    name: str
    payload: Dict[str, Any]


class EventBus:
    """A lightweight publish/subscribe bus for renderers and progression hooks.

    Callbacks registered for an event name are invoked in registration order.
    Subscribing to "*" receives every event.
    """

    WILDCARD = "*"

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Callable[[GameEvent], None]]] = defaultdict(list)
        self._lock = RLock()

    def subscribe(self, event_name: str, callback: Callable[[GameEvent], None]) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._subs[event_name].append(callback)
            logger.debug("Subscribed %s to '%s'", getattr(callback, "__name__", str(callback)), event_name)

    def unsubscribe(self, event_name: str, callback: Callable[[GameEvent], None]) -> None:
        with self._lock:
            if event_name in self._subs and callback in self._subs[event_name]:
                self._subs[event_name].remove(callback)

    def publish(self, event: GameEvent) -> None:
        with self._lock:
            subs = list(self._subs.get(event.name, [])) + list(self._subs.get(self.WILDCARD, []))
        logger.debug("Publishing '%s' to %d subscribers", event.name, len(subs))
        for cb in subs:
            try:
                cb(event)
            except Exception:  # pragma: no cover - guard rail
                logger.exception("Unhandled exception in event subscriber for '%s'", event.name)
