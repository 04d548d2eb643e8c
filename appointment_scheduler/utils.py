"""Shared utilities used across the scheduling engine."""

import uuid
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from appointment_scheduler.errors import ValidationError


def normalize_email(value: str) -> str:
    """Normalize an email address by trimming whitespace and lowercasing.

    Examples:
        >>> normalize_email("  John@Example.COM ")
        'john@example.com'
    """
    return value.strip().lower()


def generate_appointment_id() -> str:
    """Generate an opaque appointment identifier such as ``apt_3f9c1a2b7d4e``."""
    return f"apt_{uuid.uuid4().hex[:12]}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime, field_name: str = "timestamp") -> datetime:
    """Convert an aware datetime to UTC, rejecting naive values."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError(f"{field_name} must include a timezone offset")
    return value.astimezone(timezone.utc)


def parse_iso_datetime(value: str, field_name: str = "timestamp") -> datetime:
    """Parse an ISO-8601 timestamp with offset (``Z`` accepted) into UTC."""
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid ISO-8601 timestamp: {value!r}") from None
    return to_utc(parsed, field_name)


def resolve_timezone(name: str) -> ZoneInfo:
    """Look up an IANA timezone name."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ValidationError(f"Unknown timezone: {name!r}") from None
