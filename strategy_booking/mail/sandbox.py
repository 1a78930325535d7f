"""In-memory transport for local development and tests."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from email.utils import make_msgid

from .base import MailTransport

logger = logging.getLogger(__name__)


class SandboxTransport(MailTransport):
    """Keeps every sent message in ``outbox``. Nothing leaves the process."""

    def __init__(self) -> None:
        self.outbox: list[EmailMessage] = []

    def verify(self) -> None:
        return None

    def send(self, message: EmailMessage) -> str:
        if "Message-ID" not in message:
            message["Message-ID"] = make_msgid(domain="sandbox.local")
        self.outbox.append(message)
        logger.info(
            "Sandbox mail to %s: %s", message["To"], message["Subject"]
        )
        return message["Message-ID"]
