"""Booking orchestrator — validation, calendar event, notifications.

One submission walks a small state machine:

    VALIDATING -> CREATING_EVENT -> NOTIFYING -> DONE
         \\              \\              \\
          +--------------+--------------+--> FAILED

Validation and format errors stop the run before any outbound call. A
calendar failure stops it before any email. If the client confirmation
cannot be sent after the event was created, the event is deleted again so
that a failed booking leaves nothing on the calendar. A client email that
timed out is the exception: it may still be delivered, so its event stays.
Nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from strategy_booking.calendar_providers import CalendarEvent, CalendarProvider, event_key
from strategy_booking.errors import (
    BookingError,
    FormatError,
    OutboundTimeoutError,
    ValidationError,
)
from strategy_booking.mail import NotificationDispatcher
from strategy_booking.models import (
    BookingRequest,
    CalendarEventResult,
    ContactDetails,
    EmailDispatchResult,
    ResolvedSlot,
)
from strategy_booking.timeslots import (
    DEFAULT_TIMEZONE,
    SESSION_DURATION_MINUTES,
    format_display_date,
    format_display_time,
    get_zone,
    parse_date_value,
    parse_time_token,
    resolve_slot,
)
from strategy_booking.util import redact_pii

log = logging.getLogger("strategy_booking.orchestrator")

REQUIRED_CONTACT_FIELDS = ("firstName", "lastName", "email", "phone")
REQUIRED_SLOT_FIELDS = ("selectedDate", "selectedTime")


class BookingState(str, Enum):
    VALIDATING = "validating"
    CREATING_EVENT = "creating_event"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_booking_payload(body: Any, tz_name: str = DEFAULT_TIMEZONE) -> BookingRequest:
    """Turn a raw request body into a BookingRequest.

    Missing fields are reported together and by wire name, e.g.
    ``["lastName", "phone"]``. Present but malformed contact fields are
    reported as invalid fields. Date/time problems raise FormatError.
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object", invalid_fields=["body"])

    form = body.get("formData")
    if form is not None and not isinstance(form, dict):
        raise ValidationError("formData must be an object", invalid_fields=["formData"])
    form = form or {}

    missing = [name for name in REQUIRED_CONTACT_FIELDS if _blank(form.get(name))]
    missing += [name for name in REQUIRED_SLOT_FIELDS if _blank(body.get(name))]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing
        )

    try:
        contact = ContactDetails.model_validate(form)
    except PydanticValidationError as exc:
        invalid = sorted(
            {str(err["loc"][0]) if err["loc"] else "formData" for err in exc.errors()}
        )
        raise ValidationError(
            f"Invalid form fields: {', '.join(invalid)}", invalid_fields=invalid
        ) from exc

    time_token = body["selectedTime"]
    if not isinstance(time_token, str):
        raise FormatError(f"Invalid time format: {time_token!r}")
    parse_time_token(time_token)

    day = parse_date_value(body["selectedDate"], get_zone(tz_name))
    return BookingRequest(contact=contact, date=day, time_of_day=time_token)


@dataclass
class BookingOutcome:
    """Result of one run. ``history`` lists every state entered, in order."""

    state: BookingState = BookingState.VALIDATING
    history: list[BookingState] = field(default_factory=lambda: [BookingState.VALIDATING])
    request: Optional[BookingRequest] = None
    slot: Optional[ResolvedSlot] = None
    calendar: Optional[CalendarEventResult] = None
    email: Optional[EmailDispatchResult] = None
    error: Optional[BookingError] = None
    compensated: bool = False

    @property
    def success(self) -> bool:
        return self.state is BookingState.DONE

    def advance(self, state: BookingState) -> None:
        self.state = state
        self.history.append(state)

    def to_response(self) -> dict:
        if not self.success:
            return self.error.to_dict() if self.error else {"error": "Booking failed"}
        return {
            "success": True,
            "calendar": self.calendar.to_response(),
            "email": self.email.to_response(),
        }


class BookingOrchestrator:
    """Runs the booking pipeline over injected calendar and mail collaborators."""

    def __init__(
        self,
        provider: CalendarProvider,
        dispatcher: NotificationDispatcher,
        calendar_id: str,
        timezone: str = DEFAULT_TIMEZONE,
        duration_minutes: int = SESSION_DURATION_MINUTES,
    ) -> None:
        self._provider = provider
        self._dispatcher = dispatcher
        self._calendar_id = calendar_id
        self._timezone = timezone
        self._duration = duration_minutes

    @classmethod
    def from_settings(
        cls,
        app_settings,
        provider: CalendarProvider | None = None,
        transport=None,
    ) -> "BookingOrchestrator":
        """Wire the pipeline from configuration.

        ``provider`` and ``transport`` override the configured collaborators;
        tests pass fakes here.
        """
        from strategy_booking.mail import build_mail_transport

        if provider is None:
            from strategy_booking.calendar_providers.google import GoogleCalendarProvider

            provider = GoogleCalendarProvider(
                client_email=app_settings.google_client_email,
                private_key=app_settings.google_private_key,
                timeout=app_settings.outbound_timeout_seconds,
            )
        dispatcher = NotificationDispatcher(
            transport or build_mail_transport(app_settings),
            sender=app_settings.sender_address,
            admin_email=app_settings.admin_email,
            brand_name=app_settings.brand_name,
            timeout=app_settings.outbound_timeout_seconds,
        )
        return cls(
            provider,
            dispatcher,
            calendar_id=app_settings.google_calendar_id,
            timezone=app_settings.calendar_timezone,
            duration_minutes=app_settings.session_duration_minutes,
        )

    @property
    def provider(self) -> CalendarProvider:
        return self._provider

    @property
    def calendar_id(self) -> str:
        return self._calendar_id

    # ── Steps ─────────────────────────────────────────────────────

    def prepare(self, payload: Any) -> tuple[BookingRequest, ResolvedSlot]:
        request = validate_booking_payload(payload, self._timezone)
        slot = resolve_slot(
            request.date,
            request.time_of_day,
            tz_name=self._timezone,
            duration_minutes=self._duration,
        )
        return request, slot

    def build_event(self, request: BookingRequest, slot: ResolvedSlot) -> CalendarEvent:
        contact = request.contact
        tz_label = slot.start.tzname()
        description = (
            f"Strategy Session with {contact.full_name}\n"
            "\n"
            "CLIENT DETAILS:\n"
            f"- Name: {contact.full_name}\n"
            f"- Phone: {contact.phone}\n"
            f"- Email: {contact.email}\n"
            "\n"
            "ADDITIONAL INFORMATION:\n"
            f"{contact.additional_info or 'None provided'}\n"
            "\n"
            "BOOKING DETAILS:\n"
            f"- Date: {format_display_date(slot.start)}\n"
            f"- Time: {format_display_time(slot.start)} - "
            f"{format_display_time(slot.end)} ({tz_label})\n"
            f"- Duration: {slot.duration_minutes} minutes\n"
            f"- Marketing consent: {'Yes' if contact.marketing_consent else 'No'}\n"
        )
        return CalendarEvent(
            summary=f"Strategy Session with {contact.full_name}",
            start=slot.start,
            end=slot.end,
            time_zone=self._timezone,
            description=description,
            event_id=event_key(contact.email, slot.start, slot.end),
        )

    async def create_calendar_event(self, payload: Any) -> CalendarEventResult:
        """Validate and run only the calendar step."""
        request, slot = self.prepare(payload)
        return await self._provider.create_event(
            self._calendar_id, self.build_event(request, slot)
        )

    async def send_notifications(self, payload: Any) -> EmailDispatchResult:
        """Validate and run only the email step.

        ``payload["calendarLink"]`` is the link returned by an earlier
        calendar call, if any.
        """
        request, slot = self.prepare(payload)
        link = payload.get("calendarLink") or None
        if link is not None and not isinstance(link, str):
            raise ValidationError("calendarLink must be a string", invalid_fields=["calendarLink"])
        return await self._dispatcher.dispatch(request, slot, link)

    # ── Full pipeline ─────────────────────────────────────────────

    async def run(self, payload: Any) -> BookingOutcome:
        """Run a submission to DONE or FAILED. BookingErrors end up in the outcome."""
        outcome = BookingOutcome()

        try:
            request, slot = self.prepare(payload)
        except BookingError as exc:
            return self._fail(outcome, exc)
        outcome.request, outcome.slot = request, slot
        log.info(
            "Booking request from %s for %s",
            redact_pii(request.contact.email),
            slot.start.isoformat(),
        )

        outcome.advance(BookingState.CREATING_EVENT)
        try:
            outcome.calendar = await self._provider.create_event(
                self._calendar_id, self.build_event(request, slot)
            )
        except BookingError as exc:
            return self._fail(outcome, exc)

        outcome.advance(BookingState.NOTIFYING)
        try:
            outcome.email = await self._dispatcher.dispatch(
                request, slot, outcome.calendar.shareable_link or None
            )
        except OutboundTimeoutError as exc:
            # The send may still complete in its worker thread
            log.warning(
                "Keeping event %s: client email timed out and may still arrive",
                outcome.calendar.external_id,
            )
            return self._fail(outcome, exc)
        except BookingError as exc:
            await self._compensate(outcome)
            return self._fail(outcome, exc)

        outcome.advance(BookingState.DONE)
        log.info(
            "Booking complete: event=%s client_email=%s admin_email=%s",
            outcome.calendar.external_id,
            outcome.email.client_message_id,
            outcome.email.admin_message_id or "-",
        )
        return outcome

    async def _compensate(self, outcome: BookingOutcome) -> None:
        calendar = outcome.calendar
        if calendar is None or calendar.reused:
            return
        try:
            await self._provider.cancel_event(self._calendar_id, calendar.external_id)
        except BookingError as exc:
            log.error(
                "Could not remove event %s after failed notification: %s",
                calendar.external_id,
                exc,
            )
            return
        outcome.compensated = True

    @staticmethod
    def _fail(outcome: BookingOutcome, exc: BookingError) -> BookingOutcome:
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        log.log(
            level,
            "Booking failed in %s: %s (%s)",
            outcome.state.value,
            exc.message,
            exc.details,
        )
        outcome.error = exc
        outcome.advance(BookingState.FAILED)
        return outcome
