"""
Availability queries for the HTTP layer.

Read-only: these functions report conflicts as data and never fail with an
overlap error.
"""

import logging
from datetime import timedelta
from typing import Any, Optional, TypedDict

from pydantic import ValidationError as PydanticValidationError

from appointment_scheduler.errors import SchedulingError
from appointment_scheduler.scheduling.engine import SchedulingEngine
from appointment_scheduler.schemas.availability_schema import OperatingHours
from appointment_scheduler.schemas.booking_schema import AvailabilityRequest, MonthOverviewRequest
from appointment_scheduler.tools.booking import _failure, _pydantic_errors
from appointment_scheduler.tools.engine import get_engine

logger = logging.getLogger(__name__)


class AvailabilityResult(TypedDict, total=False):
    """Result from check_availability."""

    success: bool
    date: str
    timezone: str
    slots: list[dict[str, Any]]
    available_count: int
    message: str
    error_code: str
    http_status: int
    errors: list[str]


class MonthOverviewResult(TypedDict, total=False):
    """Result from get_month_overview."""

    success: bool
    year: int
    month: int
    timezone: str
    days: list[dict[str, Any]]
    message: str
    error_code: str
    http_status: int
    errors: list[str]


def check_availability(
    payload: dict[str, Any],
    operating_hours: Optional[OperatingHours] = None,
    engine: Optional[SchedulingEngine] = None,
) -> AvailabilityResult:
    """
    Slots for ``{date, timezone, slotMinutes?}``.

    Returns an ordered list of ``{startTime, endTime, isAvailable,
    conflictingAppointmentId?}`` in the ``slots`` key.
    """
    engine = engine or get_engine()
    try:
        request = AvailabilityRequest.model_validate(payload)
        duration = (
            timedelta(minutes=request.slot_minutes) if request.slot_minutes is not None else None
        )
        slots = engine.planner.get_day_slots(
            request.date, operating_hours, duration, request.timezone
        )
    except PydanticValidationError as exc:
        return _failure(_pydantic_errors(exc))  # type: ignore[return-value]
    except SchedulingError as exc:
        return _failure(exc)  # type: ignore[return-value]

    available = sum(1 for s in slots if s.is_available)
    return {
        "success": True,
        "date": request.date.isoformat(),
        "timezone": request.timezone,
        "slots": [
            s.model_dump(mode="json", by_alias=True, exclude={"is_past"}) for s in slots
        ],
        "available_count": available,
        "message": f"{available} of {len(slots)} slots available on {request.date.isoformat()}.",
    }


def get_month_overview(
    payload: dict[str, Any],
    operating_hours: Optional[OperatingHours] = None,
    engine: Optional[SchedulingEngine] = None,
) -> MonthOverviewResult:
    """Per-day summary for ``{year, month, timezone}``."""
    engine = engine or get_engine()
    try:
        request = MonthOverviewRequest.model_validate(payload)
        days = engine.planner.get_month_overview(
            request.year, request.month, operating_hours, request.timezone
        )
    except PydanticValidationError as exc:
        return _failure(_pydantic_errors(exc))  # type: ignore[return-value]
    except SchedulingError as exc:
        return _failure(exc)  # type: ignore[return-value]

    busy = sum(1 for d in days if d.has_appointments)
    logger.debug("Month overview %d-%02d: %d busy day(s)", request.year, request.month, busy)
    return {
        "success": True,
        "year": request.year,
        "month": request.month,
        "timezone": request.timezone,
        "days": [d.model_dump(mode="json", by_alias=True) for d in days],
        "message": f"{busy} day(s) with appointments in {request.year}-{request.month:02d}.",
    }
