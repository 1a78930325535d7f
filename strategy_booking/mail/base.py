"""Abstract mail transport.

A transport is chosen by configuration (``MAIL_TRANSPORT``) and built once
at startup. Both methods are blocking; the dispatcher runs them off the
event loop.
"""

from abc import ABC, abstractmethod
from email.message import EmailMessage


class MailTransport(ABC):
    """Sends fully-built messages."""

    @abstractmethod
    def verify(self) -> None:
        """Connectivity probe. Raises on failure."""

    @abstractmethod
    def send(self, message: EmailMessage) -> str:
        """Send ``message`` and return its Message-ID."""
