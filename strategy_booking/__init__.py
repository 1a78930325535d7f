"""Strategy-session booking service: calendar event + confirmation emails."""

__version__ = "0.1.0"
