"""Calendar provider abstractions and implementations."""

from .base import CalendarEvent, CalendarProvider, event_key

__all__ = ["CalendarProvider", "CalendarEvent", "event_key"]
