"""
Booking operations for the HTTP layer.

Each function takes a JSON-shaped payload (camelCase keys, ISO-8601
timestamps with offsets), calls the BookingCoordinator and returns a result
dict. Failures are returned, not raised, with the error code and HTTP status
the handler should respond with.
"""

import logging
from typing import Any, Optional, TypedDict

from pydantic import ValidationError as PydanticValidationError

from appointment_scheduler.errors import ConflictError, SchedulingError, ValidationError
from appointment_scheduler.logging_context import request_scope
from appointment_scheduler.scheduling.engine import SchedulingEngine
from appointment_scheduler.schemas.booking_schema import (
    CreateAppointmentRequest,
    RescheduleRequest,
    UpcomingAppointmentsRequest,
    UpdateAppointmentRequest,
)
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.tools.engine import get_engine
from appointment_scheduler.utils import resolve_timezone, utc_now

logger = logging.getLogger(__name__)


class BookingResult(TypedDict, total=False):
    """Result from create, update, cancel, reschedule, get or list_upcoming."""

    success: bool
    message: str
    appointment: dict[str, Any]
    appointments: list[dict[str, Any]]
    error_code: str
    http_status: int
    errors: list[str]
    conflicts: list[dict[str, Any]]
    suggestions: list[dict[str, Any]]


def _pydantic_errors(exc: PydanticValidationError) -> ValidationError:
    messages = [
        f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
        for err in exc.errors()
    ]
    return ValidationError(messages)


def _failure(exc: SchedulingError) -> BookingResult:
    result: BookingResult = {
        "success": False,
        "message": exc.message,
        "error_code": exc.code,
        "http_status": exc.http_status,
    }
    if isinstance(exc, ValidationError):
        result["errors"] = list(exc.errors)
    if isinstance(exc, ConflictError):
        result["conflicts"] = [c.model_dump(mode="json", by_alias=True) for c in exc.conflicts]
    return result


def _success(message: str, appointment, http_status: int = 200) -> BookingResult:
    return {
        "success": True,
        "message": message,
        "appointment": appointment.model_dump(mode="json", by_alias=True),
        "http_status": http_status,
    }


def _conflict_with_suggestions(
    exc: ConflictError,
    interval: TimeInterval,
    engine: SchedulingEngine,
    timezone_name: str,
    exclude_id: Optional[str] = None,
) -> BookingResult:
    result = _failure(exc)
    suggestions = engine.planner.suggest_alternative_slots(
        interval, timezone_name=timezone_name, exclude_id=exclude_id
    )
    result["suggestions"] = [s.model_dump(mode="json", by_alias=True) for s in suggestions]
    return result


def create_appointment(
    payload: dict[str, Any],
    engine: Optional[SchedulingEngine] = None,
    request_id: Optional[str] = None,
) -> BookingResult:
    """Create a confirmed appointment from ``{startTime, endTime, ownerEmail, ownerName, notes?, timezone?}``."""
    engine = engine or get_engine()
    with request_scope(request_id):
        try:
            request = CreateAppointmentRequest.model_validate(payload)
            interval = TimeInterval(request.start_time, request.end_time)
            resolve_timezone(request.timezone)
        except PydanticValidationError as exc:
            return _failure(_pydantic_errors(exc))
        except ValidationError as exc:
            return _failure(exc)

        try:
            appointment = engine.coordinator.create(
                request.owner_email, request.owner_name, interval, request.notes
            )
        except ConflictError as exc:
            return _conflict_with_suggestions(exc, interval, engine, request.timezone)
        except SchedulingError as exc:
            logger.info("Create rejected: %s", exc.message)
            return _failure(exc)

    return _success(f"Appointment {appointment.id} confirmed.", appointment, http_status=201)


def update_appointment(
    payload: dict[str, Any],
    engine: Optional[SchedulingEngine] = None,
    request_id: Optional[str] = None,
) -> BookingResult:
    """Change the interval and/or notes of ``{id, startTime?, endTime?, notes?}``."""
    engine = engine or get_engine()
    with request_scope(request_id):
        try:
            request = UpdateAppointmentRequest.model_validate(payload)
        except PydanticValidationError as exc:
            return _failure(_pydantic_errors(exc))

        interval = None
        try:
            resolve_timezone(request.timezone)
            if request.start_time is not None or request.end_time is not None:
                if request.start_time is None or request.end_time is None:
                    raise ValidationError("startTime and endTime must be changed together")
                interval = TimeInterval(request.start_time, request.end_time)
            appointment = engine.coordinator.update(request.id, interval, request.notes)
        except ConflictError as exc:
            if interval is None:
                return _failure(exc)
            return _conflict_with_suggestions(
                exc, interval, engine, request.timezone, exclude_id=request.id
            )
        except SchedulingError as exc:
            return _failure(exc)

    return _success(f"Appointment {appointment.id} updated.", appointment)


def cancel_appointment(
    appointment_id: str,
    engine: Optional[SchedulingEngine] = None,
    request_id: Optional[str] = None,
) -> BookingResult:
    """Cancel an existing appointment by id."""
    engine = engine or get_engine()
    with request_scope(request_id):
        try:
            appointment = engine.coordinator.cancel(appointment_id)
        except SchedulingError as exc:
            return _failure(exc)
    return _success(f"Appointment {appointment_id} has been cancelled.", appointment)


def reschedule_appointment(
    payload: dict[str, Any],
    engine: Optional[SchedulingEngine] = None,
    request_id: Optional[str] = None,
) -> BookingResult:
    """Move ``{id, startTime, endTime, notes?}`` to a new confirmed appointment."""
    engine = engine or get_engine()
    with request_scope(request_id):
        try:
            request = RescheduleRequest.model_validate(payload)
            interval = TimeInterval(request.start_time, request.end_time)
            resolve_timezone(request.timezone)
        except PydanticValidationError as exc:
            return _failure(_pydantic_errors(exc))
        except ValidationError as exc:
            return _failure(exc)

        try:
            successor = engine.coordinator.reschedule(request.id, interval, request.notes)
        except ConflictError as exc:
            return _conflict_with_suggestions(
                exc, interval, engine, request.timezone, exclude_id=request.id
            )
        except SchedulingError as exc:
            return _failure(exc)

    return _success(
        f"Appointment {request.id} rescheduled as {successor.id}.", successor, http_status=201
    )


def get_appointment(
    appointment_id: str, engine: Optional[SchedulingEngine] = None
) -> BookingResult:
    """Retrieve an appointment by id."""
    engine = engine or get_engine()
    try:
        appointment = engine.coordinator.get(appointment_id)
    except SchedulingError as exc:
        return _failure(exc)
    return _success(f"Appointment {appointment_id} is {appointment.status.value}.", appointment)


def list_upcoming_appointments(
    payload: dict[str, Any], engine: Optional[SchedulingEngine] = None
) -> BookingResult:
    """An owner's next confirmed appointments for ``{ownerEmail, now?, limit?}``."""
    engine = engine or get_engine()
    try:
        request = UpcomingAppointmentsRequest.model_validate(payload)
        appointments = engine.coordinator.list_upcoming(
            request.owner_email, request.now or utc_now(), request.limit
        )
    except PydanticValidationError as exc:
        return _failure(_pydantic_errors(exc))
    except SchedulingError as exc:
        return _failure(exc)

    return {
        "success": True,
        "message": f"{len(appointments)} upcoming appointment(s) for {request.owner_email}.",
        "appointments": [a.model_dump(mode="json", by_alias=True) for a in appointments],
        "http_status": 200,
    }
