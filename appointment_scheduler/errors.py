"""
Typed failures raised by the scheduling engine.

Every failure carries a stable ``code`` and the HTTP status the calling
layer should map it to, so handlers never inspect message strings.
"""

from enum import Enum
from typing import Any, Optional


class ConflictKind(str, Enum):
    """Why a booking could not be committed."""

    OVERLAP = "overlap"
    DUPLICATE_ID = "duplicate_id"
    DUPLICATE_OVERLAP = "duplicate_overlap"


class SchedulingError(Exception):
    """Base class for all engine failures."""

    code = "scheduling_error"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error_code": self.code, "message": self.message, "http_status": self.http_status}


class ValidationError(SchedulingError):
    """Malformed input: bad interval, field length, or email shape."""

    code = "validation_error"
    http_status = 400

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = list(self.errors)
        return data


class ConflictError(SchedulingError):
    """Candidate interval collides with one or more confirmed appointments."""

    code = "appointment_conflict"
    http_status = 409

    def __init__(
        self,
        conflicts: Optional[list] = None,
        kind: ConflictKind = ConflictKind.OVERLAP,
    ) -> None:
        self.kind = kind
        self.conflicts = list(conflicts or [])
        if self.conflicts:
            ids = ", ".join(c.id for c in self.conflicts)
            message = f"Requested time conflicts with appointment(s) {ids}."
        else:
            message = "Requested time conflicts with an existing appointment."
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind.value
        data["conflicts"] = [c.model_dump(mode="json", by_alias=True) for c in self.conflicts]
        return data


class NotFoundError(SchedulingError):
    """Operation referenced an appointment id that does not exist."""

    code = "appointment_not_found"
    http_status = 404

    def __init__(self, appointment_id: str) -> None:
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found.")


class InvalidStateError(SchedulingError):
    """Mutation attempted on an appointment in a terminal status."""

    code = "invalid_state"
    http_status = 409

    def __init__(self, appointment_id: str, status: str, action: str) -> None:
        self.appointment_id = appointment_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} appointment {appointment_id}: it is {status}.")


class StoreError(SchedulingError):
    """The backing store failed for a reason unrelated to booking rules."""

    code = "store_error"
    http_status = 500


class StoreConflictError(StoreError):
    """A constraint in the store rejected the write at commit time."""

    code = "store_conflict"
    http_status = 409

    def __init__(self, kind: ConflictKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)
