"""
Field checks shared by the request models and the Supabase store.
"""

import re

_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)
# Control characters other than tab and newline
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")


def validate_email(email: str) -> bool:
    """Customer email check (simplified RFC 5322 address)."""
    return isinstance(email, str) and bool(_EMAIL_PATTERN.match(email))


def validate_uuid(appointment_id: str) -> bool:
    """
    Check that an appointment id has the uuid shape Postgres expects.

    Ids of any other shape cannot exist in the ``appointments`` table, so
    the store reports them as not found without a round trip.
    """
    return isinstance(appointment_id, str) and bool(
        _UUID_PATTERN.match(appointment_id.lower())
    )


def sanitize_text(text: str, max_length: int) -> str:
    """
    Clean a customer-supplied text field.

    Strips control characters and surrounding whitespace, then truncates to
    ``max_length``. Blank input comes back as an empty string so callers can
    report the field as missing.
    """
    if not text:
        return ""

    cleaned = _CONTROL_CHARS.sub("", str(text)).strip()
    return cleaned[:max_length]
