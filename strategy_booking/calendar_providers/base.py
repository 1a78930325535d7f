"""Abstract base class for calendar providers.

Defines the interface the booking orchestrator needs: create one event,
cancel it again (compensation), and probe that the configured calendar is
reachable. Any calendar backend implements this ABC.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from strategy_booking.models import CalendarEventResult

# (method, minutes before start)
DEFAULT_REMINDERS: tuple[tuple[str, int], ...] = (
    ("email", 24 * 60),
    ("popup", 30),
)


@dataclass
class CalendarEvent:
    """Represents a calendar event to be created."""

    summary: str
    start: datetime
    end: datetime
    time_zone: str
    description: str = ""
    event_id: str = ""  # idempotency key; empty lets the provider assign one
    reminders: list[tuple[str, int]] = field(
        default_factory=lambda: list(DEFAULT_REMINDERS)
    )


def event_key(email: str, start: datetime, end: datetime) -> str:
    """Deterministic event id for a booking.

    The same visitor submitting the same slot twice maps to the same id, so
    the second insert is rejected by the calendar instead of duplicating the
    session. Hex digits are a subset of Google's base32hex id alphabet.
    """
    raw = f"{email.strip().lower()}|{start.isoformat()}|{end.isoformat()}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


class CalendarProvider(ABC):
    """Abstract calendar backend.

    Implementations raise AuthError for credential problems and
    RemoteServiceError (or OutboundTimeoutError) for everything else.
    """

    @abstractmethod
    async def create_event(
        self, calendar_id: str, event: CalendarEvent
    ) -> CalendarEventResult:
        """Create a calendar event.

        If ``event.event_id`` is set and an event with that id already
        exists, the existing event is returned instead of a new one.
        """

    @abstractmethod
    async def cancel_event(self, calendar_id: str, event_id: str) -> None:
        """Cancel / delete a calendar event."""

    @abstractmethod
    async def check_access(self, calendar_id: str) -> dict:
        """Confirm the credentials can read ``calendar_id``.

        Returns:
            Dict with ``"calendarId"`` and ``"hasEvents"``.
        """
