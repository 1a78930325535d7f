"""Function-trigger adapter for serverless deployments.

Serverless HTTP runtimes hand a handler the method and body and expect a
status, headers and body back. ``BookingFunction`` does that translation
over the same BookingOrchestrator the FastAPI app uses, so both
deployments share one pipeline. Every answer carries CORS headers.

Endpoint names:

  bookSession         full pipeline
  calendar            calendar step only
  sendBookingEmails   email step only
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from strategy_booking.config import Settings, settings
from strategy_booking.errors import BookingError, ValidationError
from strategy_booking.orchestrator import BookingOrchestrator

logger = logging.getLogger(__name__)

ENDPOINTS = ("bookSession", "calendar", "sendBookingEmails")


@dataclass
class FunctionResponse:
    status: int
    body: Any = ""
    headers: dict[str, str] = field(default_factory=dict)


class BookingFunction:
    def __init__(self, orchestrator: BookingOrchestrator, allow_origin: str = "*") -> None:
        self._orchestrator = orchestrator
        self._headers = {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        }

    def _respond(self, status: int, body: Any = "") -> FunctionResponse:
        return FunctionResponse(status=status, body=body, headers=dict(self._headers))

    async def handle(self, endpoint: str, method: str, body: Any = None) -> FunctionResponse:
        method = method.upper()
        if method == "OPTIONS":
            return self._respond(204)
        if method != "POST":
            return self._respond(405, "Method Not Allowed")
        if endpoint not in ENDPOINTS:
            return self._respond(404, {"error": f"Unknown endpoint {endpoint!r}"})

        try:
            payload = self._decode(body)
            if endpoint == "bookSession":
                outcome = await self._orchestrator.run(payload)
                status = 200 if outcome.success else outcome.error.status_code
                return self._respond(status, outcome.to_response())
            if endpoint == "calendar":
                result = await self._orchestrator.create_calendar_event(payload)
                return self._respond(200, {"success": True, **result.to_response()})
            emails = await self._orchestrator.send_notifications(payload)
            return self._respond(200, emails.to_response())
        except BookingError as exc:
            logger.warning("%s failed: %s", endpoint, exc.message)
            return self._respond(exc.status_code, exc.to_dict())

    def __call__(self, endpoint: str, method: str, body: Any = None) -> FunctionResponse:
        """Synchronous entry point for runtimes without an event loop."""
        return asyncio.run(self.handle(endpoint, method, body))

    @staticmethod
    def _decode(body: Any) -> Any:
        if isinstance(body, (bytes, bytearray, str)):
            try:
                if not isinstance(body, str):
                    body = body.decode("utf-8")
                return json.loads(body)
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid request format: {exc}", invalid_fields=["body"]
                ) from exc
        return body


def create_function(
    app_settings: Settings | None = None,
    provider=None,
    transport=None,
) -> BookingFunction:
    cfg = app_settings or settings
    for warning in cfg.validate_startup():
        logger.warning(warning)
    orchestrator = BookingOrchestrator.from_settings(cfg, provider=provider, transport=transport)
    return BookingFunction(orchestrator, allow_origin=cfg.cors_allow_origin)
