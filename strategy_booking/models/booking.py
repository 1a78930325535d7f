"""Pydantic models for booking requests and pipeline results."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class ContactDetails(BaseModel):
    """Contact block of the booking form (``formData`` on the wire)."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    additional_info: str = Field(default="", alias="additionalInfo")
    marketing_consent: bool = Field(default=False, alias="marketingConsent")

    @field_validator("additional_info", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _single_line(cls, value: str) -> str:
        # Names end up in mail headers (Subject)
        if "\n" in value or "\r" in value:
            raise ValueError("must be a single line")
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class BookingRequest(BaseModel):
    """A validated booking submission, before time normalization."""

    contact: ContactDetails
    date: dt.date
    time_of_day: str


@dataclass(frozen=True)
class ResolvedSlot:
    """Absolute start/end of a booked session in the event time zone."""

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("slot instants must be timezone-aware")
        # Compare instants; same-tzinfo datetimes compare by wall clock
        if self.end.timestamp() <= self.start.timestamp():
            raise ValueError("slot end must be after start")

    @property
    def duration_minutes(self) -> int:
        return int(self.end.timestamp() - self.start.timestamp()) // 60


class CalendarEventResult(BaseModel):
    """The event created (or found, for a repeated submission) on the calendar."""

    external_id: str
    shareable_link: str = ""
    # True when a repeated submission matched an event that already existed
    reused: bool = False

    def to_response(self) -> dict:
        return {"id": self.external_id, "htmlLink": self.shareable_link}


class EmailDispatchResult(BaseModel):
    """Message ids of the two notification emails.

    ``admin_message_id`` is None when the admin email failed or is not
    configured; the client email is always present on a returned result.
    """

    client_message_id: Optional[str] = None
    admin_message_id: Optional[str] = None

    def to_response(self) -> dict:
        return {
            "success": True,
            "clientEmail": (
                {"messageId": self.client_message_id}
                if self.client_message_id
                else None
            ),
            "adminEmail": (
                {"messageId": self.admin_message_id}
                if self.admin_message_id
                else None
            ),
        }
