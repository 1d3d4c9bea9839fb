from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from itertools import groupby
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple, Union

logger = logging.getLogger(__name__)


class EventCategory(str, Enum):
    NORMAL = "normal"
    REVERT = "revert"
    REFACTOR = "refactor"
    MERGE = "merge"
    TEST = "test"
    CONFIG = "config"
    DOC = "doc"

    @classmethod
    def parse(cls, value: Any) -> "EventCategory":
        """Map a raw category value onto the enum; anything unrecognized is NORMAL."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug("Unrecognized event category %r mapped to normal", value)
            return cls.NORMAL


@dataclass(frozen=True)
class HistoryEvent:
    """One normalized source action: a commit or a calendar entry.

    magnitude is lines changed for commits or a duration-derived intensity for
    calendar events.
    """

    timestamp: Union[date, datetime]
    magnitude: int
    category: EventCategory = EventCategory.NORMAL
    attendee_or_author_count: int = 1

    @property
    def day(self) -> date:
        if isinstance(self.timestamp, datetime):
            return self.timestamp.date()
        return self.timestamp

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "magnitude": self.magnitude,
            "category": self.category.value,
            "attendee_or_author_count": self.attendee_or_author_count,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "HistoryEvent":
        raw_ts = data["timestamp"]
        if isinstance(raw_ts, (date, datetime)):
            ts: Union[date, datetime] = raw_ts
        elif "T" in str(raw_ts) or " " in str(raw_ts).strip():
            ts = datetime.fromisoformat(str(raw_ts))
        else:
            ts = date.fromisoformat(str(raw_ts))
        return HistoryEvent(
            timestamp=ts,
            magnitude=int(data.get("magnitude", 0)),
            category=EventCategory.parse(data.get("category")),
            attendee_or_author_count=int(data.get("attendee_or_author_count", 1)),
        )


def group_by_day(events: Iterable[HistoryEvent]) -> List[Tuple[date, List[HistoryEvent]]]:
    """Group events into calendar days, oldest day first.

    Events keep their input order within a day; the sort is stable.
    """
    ordered = sorted(events, key=lambda e: e.day)
    return [(day, list(group)) for day, group in groupby(ordered, key=lambda e: e.day)]


def events_from_dicts(rows: Iterable[Dict[str, Any]]) -> List[HistoryEvent]:
    """Parse already-normalized event dicts, skipping rows that cannot be parsed."""
    events: List[HistoryEvent] = []
    for idx, row in enumerate(rows):
        try:
            events.append(HistoryEvent.from_dict(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping event #%d: %s", idx, exc)
    return events


def load_events(path: Path) -> List[HistoryEvent]:
    """Load a JSON array of event dicts from disk."""
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON array of events")
    events = events_from_dicts(raw)
    logger.info("Loaded %d events from %s", len(events), path)
    return events
