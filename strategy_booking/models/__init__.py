"""Data models for the booking pipeline."""

from .booking import (
    BookingRequest,
    CalendarEventResult,
    ContactDetails,
    EmailDispatchResult,
    ResolvedSlot,
)

__all__ = [
    "BookingRequest",
    "CalendarEventResult",
    "ContactDetails",
    "EmailDispatchResult",
    "ResolvedSlot",
]
