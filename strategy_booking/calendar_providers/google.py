"""Google Calendar provider implementation.

Uses a Google Cloud service account to interact with the Calendar API v3.
The account is described by two environment values, ``GOOGLE_CLIENT_EMAIL``
and ``GOOGLE_PRIVATE_KEY``, rather than a key file, so it can be injected
into a container or serverless runtime as plain secrets.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from strategy_booking.errors import AuthError, RemoteServiceError
from strategy_booking.models import CalendarEventResult
from strategy_booking.util import run_blocking

from .base import CalendarEvent, CalendarProvider

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Failures below the HTTP layer: DNS, refused connections, TLS, sockets
NETWORK_ERRORS = (TransportError, httplib2.HttpLib2Error, OSError)


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3.

    The API client is built on first use. A missing credential therefore
    fails the booking that needs it with AuthError (401) instead of
    preventing the service from starting.
    """

    def __init__(
        self,
        client_email: str,
        private_key: str,
        timeout: float = 10.0,
    ) -> None:
        self._client_email = client_email
        # Keys pasted into env files usually carry literal "\n" sequences
        self._private_key = private_key.replace("\\n", "\n") if private_key else ""
        self._timeout = timeout
        self._service = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_service(self):
        if self._service is not None:
            return self._service

        if not self._client_email or not self._private_key:
            logger.error(
                "Missing Google credentials (client_email=%s, private_key=%s)",
                bool(self._client_email),
                bool(self._private_key),
            )
            raise AuthError("Missing required environment variables for Google Calendar")

        info = {
            "type": "service_account",
            "client_email": self._client_email,
            "private_key": self._private_key,
            "token_uri": TOKEN_URI,
        }
        try:
            credentials = Credentials.from_service_account_info(info, scopes=SCOPES)
        except (ValueError, GoogleAuthError) as exc:
            raise AuthError("Invalid Google service account credentials", str(exc)) from exc

        try:
            self._service = build(
                "calendar", "v3", credentials=credentials, cache_discovery=False
            )
        except NETWORK_ERRORS as exc:
            raise RemoteServiceError(
                "Could not reach Google Calendar", str(exc)
            ) from exc
        return self._service

    async def _execute(self, request, operation: str) -> Any:
        """Execute a prepared API request off the event loop, mapping errors."""
        try:
            return await run_blocking(
                request.execute, timeout=self._timeout, operation=operation
            )
        except RefreshError as exc:
            raise AuthError("Google authorization failed", str(exc)) from exc
        except HttpError as exc:
            status = exc.resp.status
            reason = getattr(exc, "reason", None) or str(exc)
            if status == 401:
                raise AuthError("Google rejected the service account", reason) from exc
            raise RemoteServiceError(
                f"Google Calendar {operation} failed", reason, remote_status=status
            ) from exc
        except NETWORK_ERRORS as exc:
            logger.error("Google Calendar %s could not connect: %s", operation, exc)
            raise RemoteServiceError(
                f"Google Calendar {operation} failed", str(exc)
            ) from exc

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    @classmethod
    def _event_body(cls, event: CalendarEvent) -> dict[str, Any]:
        body: dict[str, Any] = {
            "summary": event.summary,
            "description": event.description,
            "start": {
                "dateTime": cls._to_rfc3339(event.start),
                "timeZone": event.time_zone,
            },
            "end": {
                "dateTime": cls._to_rfc3339(event.end),
                "timeZone": event.time_zone,
            },
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": method, "minutes": minutes}
                    for method, minutes in event.reminders
                ],
            },
        }
        if event.event_id:
            body["id"] = event.event_id
        return body

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def create_event(
        self, calendar_id: str, event: CalendarEvent
    ) -> CalendarEventResult:
        """Insert an event into the Google Calendar.

        Google answers 409 when ``event.event_id`` is already taken; that is
        a repeated submission, so the existing event is returned. Deleted
        events keep their id, so a cancelled one is restored instead.
        """
        service = self._get_service()
        body = self._event_body(event)

        try:
            result = await self._execute(
                service.events().insert(
                    calendarId=calendar_id, body=body, sendUpdates="none"
                ),
                "event insert",
            )
        except RemoteServiceError as exc:
            if exc.remote_status != 409 or not event.event_id:
                raise
            return await self._reuse_existing(service, calendar_id, event, body)

        logger.info("Created event %s on calendar %s", result["id"], calendar_id)
        return CalendarEventResult(
            external_id=result["id"],
            shareable_link=result.get("htmlLink", ""),
        )

    async def _reuse_existing(
        self, service, calendar_id: str, event: CalendarEvent, body: dict
    ) -> CalendarEventResult:
        existing = await self._execute(
            service.events().get(calendarId=calendar_id, eventId=event.event_id),
            "event lookup",
        )
        if existing.get("status") != "cancelled":
            logger.info(
                "Event %s already exists on calendar %s, reusing it",
                event.event_id,
                calendar_id,
            )
            return CalendarEventResult(
                external_id=existing["id"],
                shareable_link=existing.get("htmlLink", ""),
                reused=True,
            )

        restored = await self._execute(
            service.events().update(
                calendarId=calendar_id,
                eventId=event.event_id,
                body={**body, "status": "confirmed"},
                sendUpdates="none",
            ),
            "event restore",
        )
        logger.info("Restored cancelled event %s on calendar %s", event.event_id, calendar_id)
        return CalendarEventResult(
            external_id=restored["id"],
            shareable_link=restored.get("htmlLink", ""),
        )

    async def cancel_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an event from Google Calendar."""
        service = self._get_service()
        await self._execute(
            service.events().delete(calendarId=calendar_id, eventId=event_id),
            "event delete",
        )
        logger.info("Cancelled event %s on calendar %s", event_id, calendar_id)

    async def check_access(self, calendar_id: str) -> dict:
        """List a single event to verify the account can see the calendar."""
        service = self._get_service()
        response = await self._execute(
            service.events().list(calendarId=calendar_id, maxResults=1),
            "event list",
        )
        return {
            "calendarId": calendar_id,
            "hasEvents": bool(response.get("items")),
        }
