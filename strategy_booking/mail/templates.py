"""Plain-text and HTML bodies for the two booking emails.

Every value that came from the visitor is passed through ``html.escape``
before it reaches an HTML body. The calendar link is only rendered as a
link when it is an http(s) URL.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from strategy_booking.models import BookingRequest, ResolvedSlot
from strategy_booking.timeslots import format_display_date, format_display_time

ACCENT = "#25D366"


@dataclass
class RenderedEmail:
    subject: str
    text: str
    html: str


def _esc(value: object) -> str:
    return html.escape(str(value), quote=True)


def safe_link(link: Optional[str]) -> Optional[str]:
    """Return ``link`` if it is an absolute http(s) URL, else None."""
    if not link:
        return None
    parsed = urlparse(link)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return link


def _wrap(title: str, inner: str, brand: str) -> str:
    year = datetime.now().year
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; '
        'margin: 0 auto; padding: 20px; color: #333;">'
        f'<div style="background-color: {ACCENT}; padding: 20px; '
        f'text-align: center; color: white;">'
        f'<h1 style="margin: 0;">{_esc(title)}</h1></div>'
        '<div style="padding: 20px; background-color: #f9f9f9; '
        'border: 1px solid #ddd;">'
        f"{inner}"
        "</div>"
        '<div style="text-align: center; padding: 20px; color: #777; '
        'font-size: 12px;">'
        f"<p>&copy; {year} {_esc(brand)}. All rights reserved.</p>"
        "</div></div>"
    )


def render_client_confirmation(
    request: BookingRequest,
    slot: ResolvedSlot,
    brand: str,
    calendar_link: Optional[str] = None,
) -> RenderedEmail:
    contact = request.contact
    when_date = format_display_date(slot.start)
    when_time = format_display_time(slot.start)
    link = safe_link(calendar_link)

    text_lines = [
        f"Hello {contact.first_name},",
        "",
        f"Thank you for booking a strategy session with {brand}!",
        "",
        f"Your session has been scheduled for {when_date} at {when_time} "
        f"({slot.duration_minutes} minutes).",
    ]
    if link:
        text_lines += ["", f"Add to your calendar: {link}"]
    text_lines += [
        "",
        "If you need to reschedule or have any questions, please reply to this email.",
        "",
        "Best regards,",
        f"The {brand} Team",
    ]

    link_html = ""
    if link:
        link_html = (
            f'<p><a href="{_esc(link)}" style="display: inline-block; '
            f"background-color: {ACCENT}; color: white; padding: 10px 15px; "
            'text-decoration: none; border-radius: 4px;">Add to Calendar</a></p>'
        )

    inner = (
        f"<p>Hello {_esc(contact.first_name)},</p>"
        f"<p>Thank you for booking a strategy session with {_esc(brand)}!</p>"
        f'<div style="background-color: #fff; border-left: 4px solid {ACCENT}; '
        'padding: 15px; margin: 20px 0;">'
        f'<p style="margin: 0;"><strong>Date:</strong> {_esc(when_date)}</p>'
        f'<p style="margin: 10px 0 0;"><strong>Time:</strong> {_esc(when_time)}</p>'
        f'<p style="margin: 10px 0 0;"><strong>Duration:</strong> '
        f"{slot.duration_minutes} minutes</p>"
        "</div>"
        f"{link_html}"
        "<p>If you need to reschedule or have any questions, please reply to this email.</p>"
        f"<p>Best regards,<br>The {_esc(brand)} Team</p>"
    )

    return RenderedEmail(
        subject="Your Strategy Session Confirmation",
        text="\n".join(text_lines) + "\n",
        html=_wrap("Strategy Session Confirmation", inner, brand),
    )


def render_admin_notification(
    request: BookingRequest,
    slot: ResolvedSlot,
    brand: str,
    calendar_link: Optional[str] = None,
) -> RenderedEmail:
    contact = request.contact
    when_date = format_display_date(slot.start)
    when_time = format_display_time(slot.start)
    additional = contact.additional_info or "None provided"
    consent = "Yes" if contact.marketing_consent else "No"
    link = safe_link(calendar_link)

    text = (
        "New Strategy Session Booking\n"
        "\n"
        f"Client: {contact.full_name}\n"
        f"Email: {contact.email}\n"
        f"Phone: {contact.phone}\n"
        "\n"
        f"Date: {when_date}\n"
        f"Time: {when_time} ({slot.start.tzname()})\n"
        f"Duration: {slot.duration_minutes} minutes\n"
        "\n"
        "Additional Information:\n"
        f"{additional}\n"
        "\n"
        f"Marketing Consent: {consent}\n"
    )
    if link:
        text += f"\nCalendar event: {link}\n"

    heading = f'<h2 style="color: {ACCENT}; margin-top: 20px;">'
    inner = (
        f'<h2 style="color: {ACCENT}; margin-top: 0;">Client Details</h2>'
        f"<p><strong>Name:</strong> {_esc(contact.full_name)}</p>"
        f"<p><strong>Email:</strong> {_esc(contact.email)}</p>"
        f"<p><strong>Phone:</strong> {_esc(contact.phone)}</p>"
        f"{heading}Session Details</h2>"
        f"<p><strong>Date:</strong> {_esc(when_date)}</p>"
        f"<p><strong>Time:</strong> {_esc(when_time)} ({_esc(slot.start.tzname())})</p>"
        f"<p><strong>Duration:</strong> {slot.duration_minutes} minutes</p>"
        f"{heading}Additional Information</h2>"
        f"<p>{_esc(additional)}</p>"
        f"<p><strong>Marketing Consent:</strong> {consent}</p>"
    )
    if link:
        inner += f'<p><a href="{_esc(link)}">Open calendar event</a></p>'

    return RenderedEmail(
        subject=f"New Booking: Strategy Session with {contact.full_name}",
        text=text,
        html=_wrap("New Strategy Session Booking", inner, brand),
    )
