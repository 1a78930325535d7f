"""FastAPI application — HTTP endpoints for strategy-session bookings.

Endpoints:

  POST /api/book-session          Full pipeline: calendar event + both emails
  POST /api/calendar              Calendar step only
  POST /api/send-booking-emails   Email step only (accepts calendarLink)
  GET  /api/calendar/test         Service-account / calendar access probe
  GET  /health                    Health check

The three POST paths also answer an OPTIONS preflight with 204 and
permissive CORS headers; any other method on them is a 405.

Request body (POST):
  {"formData": {"firstName", "lastName", "email", "phone",
                "additionalInfo"?, "marketingConsent"?},
   "selectedDate": "2025-06-10" | ISO-8601 timestamp,
   "selectedTime": "15:00" | "03:00 PM",
   "calendarLink"?: str}
"""

from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

import logging
import time
from typing import Any

# Configure root logger early so all strategy_booking loggers have a
# handler when run via `uvicorn strategy_booking.app:app`.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from strategy_booking.calendar_providers import CalendarProvider
from strategy_booking.config import Settings, settings
from strategy_booking.errors import BookingError, ValidationError
from strategy_booking.mail import MailTransport
from strategy_booking.orchestrator import BookingOrchestrator

log = logging.getLogger("strategy_booking.app")

_START_TIME = time.time()

BOOKING_PATHS = ("/api/book-session", "/api/calendar", "/api/send-booking-emails")


def cors_headers(allow_origin: str = "*") -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def create_app(
    app_settings: Settings | None = None,
    provider: CalendarProvider | None = None,
    transport: MailTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    cfg = app_settings or settings
    for warning in cfg.validate_startup():
        log.warning(warning)

    orchestrator = BookingOrchestrator.from_settings(cfg, provider=provider, transport=transport)
    cors = cors_headers(cfg.cors_allow_origin)

    app = FastAPI(
        title="Strategy Session Booking",
        description="Books strategy sessions on Google Calendar and confirms them by email",
        version="0.1.0",
    )
    app.state.orchestrator = orchestrator

    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
        return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=cors)

    async def _read_body(request: Request) -> Any:
        try:
            return await request.json()
        except ValueError as exc:
            log.warning("Failed to parse request body: %s", exc)
            raise ValidationError(
                f"Invalid request format: {exc}", invalid_fields=["body"]
            ) from exc

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health check — confirms the event loop is responsive."""
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Booking pipeline ───────────────────────────────────────

    @app.post("/api/book-session")
    async def book_session(request: Request) -> JSONResponse:
        """Validate, create the calendar event, then send both emails."""
        body = await _read_body(request)
        outcome = await orchestrator.run(body)
        if not outcome.success:
            raise outcome.error
        return JSONResponse(outcome.to_response(), headers=cors)

    @app.post("/api/calendar")
    async def create_calendar_event(request: Request) -> JSONResponse:
        body = await _read_body(request)
        result = await orchestrator.create_calendar_event(body)
        return JSONResponse({"success": True, **result.to_response()}, headers=cors)

    @app.post("/api/send-booking-emails")
    async def send_booking_emails(request: Request) -> JSONResponse:
        body = await _read_body(request)
        result = await orchestrator.send_notifications(body)
        return JSONResponse(result.to_response(), headers=cors)

    async def preflight() -> Response:
        return Response(status_code=204, headers=cors)

    for path in BOOKING_PATHS:
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    # ── Diagnostics ────────────────────────────────────────────

    @app.get("/api/calendar/test")
    async def calendar_test() -> JSONResponse:
        """Check that the service account can reach the configured calendar."""
        try:
            result = await orchestrator.provider.check_access(orchestrator.calendar_id)
        except BookingError as exc:
            return JSONResponse(
                {
                    "success": False,
                    "error": exc.message,
                    "details": exc.details,
                    "type": type(exc).__name__,
                }
            )
        return JSONResponse({"success": True, **result})

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "strategy_booking.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
