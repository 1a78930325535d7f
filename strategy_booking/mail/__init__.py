"""Mail transports, templates and the notification dispatcher."""

from .base import MailTransport
from .dispatcher import NotificationDispatcher
from .sandbox import SandboxTransport
from .smtp import SMTPTransport

__all__ = [
    "MailTransport",
    "NotificationDispatcher",
    "SMTPTransport",
    "SandboxTransport",
    "build_mail_transport",
]


def build_mail_transport(settings) -> MailTransport:
    """Pick the transport named by ``settings.mail_transport``."""
    if settings.mail_transport == "sandbox":
        return SandboxTransport()
    if settings.mail_transport == "smtp":
        return SMTPTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            use_ssl=settings.smtp_secure,
            timeout=settings.outbound_timeout_seconds,
        )
    raise ValueError(f"Unknown mail transport: {settings.mail_transport!r}")
