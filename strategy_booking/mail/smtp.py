"""SMTP transport built on smtplib."""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid

from .base import MailTransport

logger = logging.getLogger(__name__)


class SMTPTransport(MailTransport):
    """Opens one SMTP connection per call.

    ``use_ssl`` selects implicit TLS (usually port 465). Otherwise the
    connection is upgraded with STARTTLS when the server offers it.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_ssl: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        # App passwords are displayed in groups of four, e.g. "abcd efgh ijkl mnop"
        self.password = "".join(password.split()) if password else ""
        self.use_ssl = use_ssl
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            smtp: smtplib.SMTP = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            )
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=context)
                smtp.ehlo()
        try:
            if self.username:
                smtp.login(self.username, self.password)
        except smtplib.SMTPException:
            smtp.close()
            raise
        return smtp

    def verify(self) -> None:
        with self._connect() as smtp:
            smtp.noop()
        logger.info("SMTP connection to %s:%s verified", self.host, self.port)

    def send(self, message: EmailMessage) -> str:
        if "Message-ID" not in message:
            message["Message-ID"] = make_msgid()
        with self._connect() as smtp:
            smtp.send_message(message)
        return message["Message-ID"]
