from .events import EventCategory, HistoryEvent, events_from_dicts, group_by_day, load_events

__all__ = ["EventCategory", "HistoryEvent", "events_from_dicts", "group_by_day", "load_events"]
