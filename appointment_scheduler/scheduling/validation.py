"""
Field rules for appointment owners and notes.

Every problem is collected before raising, so a caller correcting input
sees all of them in one ValidationError.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from appointment_scheduler.config import LimitsConfig, settings
from appointment_scheduler.errors import ValidationError
from appointment_scheduler.utils import normalize_email

# local@domain.tld, no quoted local parts
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
MAX_EMAIL_LENGTH = 255


@dataclass(frozen=True)
class OwnerFields:
    """Normalized booking subject details."""
    owner_email: str
    owner_name: str
    notes: Optional[str]


def _email_errors(value: str) -> list[str]:
    if not value or not value.strip():
        return ["owner_email is required"]
    if len(value.strip()) > MAX_EMAIL_LENGTH:
        return [f"owner_email must be at most {MAX_EMAIL_LENGTH} characters"]
    if not EMAIL_PATTERN.match(value.strip()):
        return [f"owner_email is not a valid email address: {value!r}"]
    return []


def _name_errors(value: str, limits: LimitsConfig) -> list[str]:
    name = (value or "").strip()
    if not name:
        return ["owner_name is required"]
    if len(name) > limits.max_name_length:
        return [f"owner_name must be at most {limits.max_name_length} characters"]
    return []


def _notes_errors(value: Optional[str], limits: LimitsConfig) -> list[str]:
    if value is not None and len(value.strip()) > limits.max_notes_length:
        return [f"notes must be at most {limits.max_notes_length} characters"]
    return []


def clean_notes(value: Optional[str], limits: LimitsConfig = settings.limits) -> Optional[str]:
    """Validate notes and return them trimmed, or None when blank."""
    errors = _notes_errors(value, limits)
    if errors:
        raise ValidationError(errors)
    if value is None:
        return None
    return value.strip() or None


def validate_owner_fields(
    owner_email: str,
    owner_name: str,
    notes: Optional[str] = None,
    limits: LimitsConfig = settings.limits,
) -> OwnerFields:
    """Check email shape, name and notes length; return normalized values."""
    errors = (
        _email_errors(owner_email)
        + _name_errors(owner_name, limits)
        + _notes_errors(notes, limits)
    )
    if errors:
        raise ValidationError(errors)
    return OwnerFields(
        owner_email=normalize_email(owner_email),
        owner_name=owner_name.strip(),
        notes=clean_notes(notes, limits),
    )


def validate_slot_duration(duration: timedelta, limits: LimitsConfig = settings.limits) -> None:
    minutes = duration.total_seconds() / 60
    if not limits.min_slot_minutes <= minutes <= limits.max_slot_minutes:
        raise ValidationError(
            f"slot duration must be between {limits.min_slot_minutes} and "
            f"{limits.max_slot_minutes} minutes, got {minutes:g}"
        )
