"""Error taxonomy for the booking pipeline.

Every error carries the HTTP status it maps to, so the HTTP app and the
function adapter can turn any of them into the same ``{error, details}``
body without a second lookup table.

  ValidationError       400  missing / malformed request fields
  FormatError           400  unparseable date or time token
  AuthError             401  missing or rejected calendar credentials
  ConfigError           500  mail transport failed its connectivity check
  RemoteServiceError    500  calendar or mail API call failed
  OutboundTimeoutError  504  an outbound call exceeded its time budget
"""

from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for every failure the pipeline reports to a caller."""

    status_code = 500
    error = "Failed to process booking"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "details": self.details if self.details is not None else self.message,
        }


class ValidationError(BookingError):
    status_code = 400
    error = "Missing required fields"

    def __init__(
        self,
        message: str,
        missing_fields: list[str] | None = None,
        invalid_fields: list[str] | None = None,
    ) -> None:
        self.missing_fields = list(missing_fields or [])
        self.invalid_fields = list(invalid_fields or [])
        details: dict[str, Any] = {}
        if self.missing_fields:
            details["missingFields"] = self.missing_fields
        if self.invalid_fields:
            details["invalidFields"] = self.invalid_fields
        super().__init__(message, details or None)
        if not self.missing_fields:
            self.error = "Invalid request format"


class FormatError(BookingError):
    status_code = 400
    error = "Invalid date or time format"


class AuthError(BookingError):
    status_code = 401
    error = "Authentication failed. Please check your Google Calendar credentials."


class ConfigError(BookingError):
    status_code = 500
    error = "Email configuration error"


class RemoteServiceError(BookingError):
    status_code = 500
    error = "Remote service call failed"

    def __init__(
        self,
        message: str,
        details: Any = None,
        remote_status: int | None = None,
    ) -> None:
        super().__init__(message, details)
        self.remote_status = remote_status


class OutboundTimeoutError(RemoteServiceError):
    status_code = 504
    error = "Remote service timed out"
