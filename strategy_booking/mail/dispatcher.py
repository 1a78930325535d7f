"""Notification dispatcher — client confirmation and admin notification.

The client email is the one that matters: the visitor must learn that the
session is booked, so its failure fails the whole dispatch. The admin email
goes out only after that, and a failure there is logged and reported as a
missing ``admin_message_id``.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from strategy_booking.errors import ConfigError, OutboundTimeoutError, RemoteServiceError
from strategy_booking.models import BookingRequest, EmailDispatchResult, ResolvedSlot
from strategy_booking.util import redact_pii, run_blocking

from .base import MailTransport
from .templates import RenderedEmail, render_admin_notification, render_client_confirmation

logger = logging.getLogger(__name__)

# Failures a transport may raise while connecting or sending
TRANSPORT_ERRORS = (smtplib.SMTPException, OSError)


class NotificationDispatcher:
    """Sends the two booking emails through an injected MailTransport.

    The transport is verified once, on first use. Concurrent first requests
    wait on the same lock, so the probe runs at most once per dispatcher.
    """

    def __init__(
        self,
        transport: MailTransport,
        sender: str,
        admin_email: str = "",
        brand_name: str = "Scailer",
        timeout: float = 10.0,
    ) -> None:
        self._transport = transport
        self._sender = sender
        self._admin_email = admin_email
        self._brand = brand_name
        self._timeout = timeout
        self._verified = False
        self._verify_lock = asyncio.Lock()

    async def ensure_ready(self) -> None:
        if self._verified:
            return
        async with self._verify_lock:
            if self._verified:
                return
            try:
                await run_blocking(
                    self._transport.verify,
                    timeout=self._timeout,
                    operation="mail transport verify",
                )
            except (OutboundTimeoutError, *TRANSPORT_ERRORS) as exc:
                logger.error("Mail transport verification failed: %s", exc)
                raise ConfigError(f"Email configuration error: {exc}") from exc
            self._verified = True

    def _build(self, rendered: RenderedEmail, to: str, display_name: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((display_name, self._sender))
        message["To"] = to
        message["Subject"] = rendered.subject
        message.set_content(rendered.text)
        message.add_alternative(rendered.html, subtype="html")
        return message

    async def _send(self, message: EmailMessage, label: str) -> str:
        try:
            return await run_blocking(
                self._transport.send, message, timeout=self._timeout, operation=f"{label} send"
            )
        except TRANSPORT_ERRORS as exc:
            raise RemoteServiceError(f"Failed to send {label}", str(exc)) from exc

    async def send_client_confirmation(
        self,
        request: BookingRequest,
        slot: ResolvedSlot,
        calendar_link: Optional[str] = None,
    ) -> str:
        rendered = render_client_confirmation(request, slot, self._brand, calendar_link)
        message = self._build(rendered, request.contact.email, f"{self._brand} Booking")
        message_id = await self._send(message, "client confirmation email")
        logger.info(
            "Client confirmation email sent to %s (%s)",
            redact_pii(request.contact.email),
            message_id,
        )
        return message_id

    async def send_admin_notification(
        self,
        request: BookingRequest,
        slot: ResolvedSlot,
        calendar_link: Optional[str] = None,
    ) -> str:
        rendered = render_admin_notification(request, slot, self._brand, calendar_link)
        message = self._build(rendered, self._admin_email, f"{self._brand} Booking System")
        message_id = await self._send(message, "admin notification email")
        logger.info("Admin notification email sent (%s)", message_id)
        return message_id

    async def dispatch(
        self,
        request: BookingRequest,
        slot: ResolvedSlot,
        calendar_link: Optional[str] = None,
    ) -> EmailDispatchResult:
        """Send both emails.

        Raises:
            ConfigError: the transport failed its first-use verification.
            RemoteServiceError: the client confirmation could not be sent.
        """
        await self.ensure_ready()

        client_id = await self.send_client_confirmation(request, slot, calendar_link)

        admin_id: Optional[str] = None
        if not self._admin_email:
            logger.warning("ADMIN_EMAIL not configured, skipping admin notification")
        else:
            try:
                admin_id = await self.send_admin_notification(request, slot, calendar_link)
            except RemoteServiceError as exc:
                # Client already has their confirmation; report partial success
                logger.error("Failed to send admin notification email: %s", exc.details or exc)

        return EmailDispatchResult(client_message_id=client_id, admin_message_id=admin_id)
