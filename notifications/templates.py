"""Message wording for each notification kind."""

from html import escape
from typing import Any, Dict, NamedTuple

from notifications.base import CONTACT_KINDS, NotificationKind

SIGNATURE = "Best regards,\nThe Appointment Team"


class RenderedMessage(NamedTuple):
    subject: str
    text: str
    html: str


_CUSTOMER_COPY = {
    NotificationKind.CREATED: (
        "We Received Your Appointment Request",
        "We have received your appointment request:",
        "We will review your request and send you a confirmation once it is approved.",
    ),
    NotificationKind.CONFIRMED: (
        "Your Appointment is Confirmed",
        "Your appointment has been confirmed:",
        "We look forward to seeing you.",
    ),
    NotificationKind.UPDATED: (
        "Your Appointment Details Were Updated",
        "Your appointment details have been updated:",
        "If you did not request this change, please contact the salon.",
    ),
    NotificationKind.CANCELLED: (
        "Your Appointment Has Been Cancelled",
        "Your appointment has been cancelled:",
        "If this was a mistake or you wish to reschedule, please make a new booking.",
    ),
}


def _details(payload: Dict[str, Any], include_contact: bool, include_status: bool):
    rows = []
    if include_contact:
        rows += [
            ("Name", payload.get("name")),
            ("Email", payload.get("email")),
            ("Phone", payload.get("phone")),
        ]
    rows += [
        ("Service", payload.get("service_type")),
        ("Date", payload.get("date")),
        ("Time", payload.get("time")),
    ]
    if include_status:
        rows.append(("Status", payload.get("status")))
    return rows


def _html(title: str, paragraphs, rows) -> str:
    items = "".join(
        f"<li><strong>{escape(label)}:</strong> {escape(str(value))}</li>"
        for label, value in rows
    )
    listing = f"<ul>{items}</ul>" if items else ""
    body = "".join(f"<p>{escape(p)}</p>" for p in paragraphs[:-1])
    return (
        '<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #111;">'
        f"<h2>{escape(title)}</h2>{body}{listing}"
        f"<p>{escape(paragraphs[-1])}</p></div>"
    )


def _render_contact(kind: NotificationKind, payload: Dict[str, Any]) -> RenderedMessage:
    name = payload.get("name", "")
    email = payload.get("email", "")
    message = payload.get("message", "")

    if kind == NotificationKind.CONTACT_RECEIVED:
        subject = f"New Contact Form Message from {name}"
        text = f"New contact message from {name} <{email}>:\n\n{message}"
        html = _html(
            "New Contact Message",
            [message],
            [("Name", name), ("Email", email)],
        )
        return RenderedMessage(subject, text, html)

    subject = "We received your message"
    greeting = f"Hi {name},"
    text = (
        f"{greeting}\n\nWe received your message and will get back to you soon.\n\n"
        f"Your message:\n{message}\n\n{SIGNATURE}\n"
    )
    html = _html(
        subject,
        [greeting, "Thanks for reaching out. We have received your message:", message,
         "We will get back to you as soon as possible."],
        [],
    )
    return RenderedMessage(subject, text, html)


def render_message(kind: NotificationKind, payload: Dict[str, Any]) -> RenderedMessage:
    """Build subject, plain text and HTML for a notification."""
    if kind in CONTACT_KINDS:
        return _render_contact(kind, payload)

    if kind == NotificationKind.ADMIN_NOTIFIED:
        subject = "New Appointment Request"
        rows = _details(payload, include_contact=True, include_status=False)
        lines = "\n".join(f"{label}: {value}" for label, value in rows)
        text = (
            f"New appointment request:\n\n{lines}\n\n"
            "Login to the admin dashboard to review."
        )
        html = _html(subject, ["Login to the admin dashboard to review."], rows)
        return RenderedMessage(subject, text, html)

    subject, intro, outro = _CUSTOMER_COPY[kind]
    rows = _details(
        payload, include_contact=False, include_status=kind == NotificationKind.UPDATED
    )
    lines = "\n".join(f"{label}: {value}" for label, value in rows)
    greeting = f"Dear {payload.get('name', 'customer')},"
    text = f"{greeting}\n\n{intro}\n\n{lines}\n\n{outro}\n\n{SIGNATURE}\n"
    html = _html(subject, [greeting, intro, outro], rows)
    return RenderedMessage(subject, text, html)


def render_telegram(kind: NotificationKind, payload: Dict[str, Any]) -> str:
    """Short HTML-formatted Telegram message."""
    message = render_message(kind, payload)
    if kind in CONTACT_KINDS:
        return (
            f"📩 <b>{escape(message.subject)}</b>\n\n"
            f"• Email: {escape(str(payload.get('email')))}\n\n"
            f"{escape(str(payload.get('message')))}"
        )

    rows = _details(
        payload,
        include_contact=kind == NotificationKind.ADMIN_NOTIFIED,
        include_status=True,
    )
    lines = "\n".join(
        f"• {escape(label)}: {escape(str(value))}" for label, value in rows
    )
    return f"🔔 <b>{escape(message.subject)}</b>\n\n{lines}"
