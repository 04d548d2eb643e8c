"""
Day and month availability views.

Slots are generated in the caller's timezone and converted to UTC before
being checked, one by one, against the same ConflictDetector the
BookingCoordinator uses, so the two can never disagree about a conflict.
The reference date, timezone and "now" are always explicit arguments.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from appointment_scheduler.config import LimitsConfig, settings
from appointment_scheduler.errors import ValidationError
from appointment_scheduler.scheduling.conflict_detector import ConflictDetector
from appointment_scheduler.scheduling.validation import validate_slot_duration
from appointment_scheduler.schemas.availability_schema import (
    AlternativeSlot,
    DaySummary,
    OperatingHours,
    SlotView,
)
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.utils import resolve_timezone, to_utc

logger = logging.getLogger(__name__)

# How many slot-lengths to probe on each side of a rejected interval
SUGGESTION_PROBES = 3


def default_operating_hours() -> OperatingHours:
    """Operating hours from configuration."""
    return OperatingHours(
        start=time.fromisoformat(settings.schedule.open_time),
        end=time.fromisoformat(settings.schedule.close_time),
    )


def default_slot_duration() -> timedelta:
    return timedelta(minutes=settings.schedule.slot_duration_minutes)


def _local_midnight_utc(day: date, tz) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


class AvailabilityPlanner:
    """Builds calendar views from operating hours and confirmed bookings."""

    def __init__(self, detector: ConflictDetector, limits: LimitsConfig = settings.limits) -> None:
        self._detector = detector
        self._limits = limits

    def operating_window(
        self, day: date, operating_hours: OperatingHours, timezone_name: str = "UTC"
    ) -> TimeInterval:
        """The day's opening window as a UTC interval."""
        tz = resolve_timezone(timezone_name)
        opens = datetime.combine(day, operating_hours.start, tzinfo=tz)
        closes = datetime.combine(day, operating_hours.end, tzinfo=tz)
        return TimeInterval(opens, closes)

    def get_day_slots(
        self,
        day: date,
        operating_hours: Optional[OperatingHours] = None,
        slot_duration: Optional[timedelta] = None,
        timezone_name: str = "UTC",
        now: Optional[datetime] = None,
    ) -> list[SlotView]:
        """
        Contiguous slots from opening to closing time on ``day``.

        A slot is never emitted if its end would pass closing time. Each slot
        is unavailable iff a confirmed appointment overlaps it, in which case
        the earliest such appointment's id is attached. When ``now`` is given,
        slots starting at or before it are flagged ``is_past``.
        """
        hours = operating_hours or default_operating_hours()
        duration = slot_duration or default_slot_duration()
        validate_slot_duration(duration, self._limits)
        window = self.operating_window(day, hours, timezone_name)
        cutoff = to_utc(now, "now") if now is not None else None

        slots: list[SlotView] = []
        cursor = window.start
        while cursor + duration <= window.end:
            interval = TimeInterval(cursor, cursor + duration)
            conflicts = self._detector.list_conflicts(interval)
            slots.append(SlotView(
                start_time=interval.start,
                end_time=interval.end,
                is_available=not conflicts,
                conflicting_appointment_id=conflicts[0].id if conflicts else None,
                is_past=cutoff is not None and interval.start <= cutoff,
            ))
            cursor = interval.end

        logger.debug(
            "Generated %d slots for %s (%s), %d available",
            len(slots), day.isoformat(), timezone_name,
            sum(1 for s in slots if s.is_available),
        )
        return slots

    def get_month_overview(
        self,
        year: int,
        month: int,
        operating_hours: Optional[OperatingHours] = None,
        timezone_name: str = "UTC",
    ) -> list[DaySummary]:
        """
        One summary per calendar day of the month, without slot detail.

        ``day_of_week`` counts from 0 = Sunday. A day has appointments if any
        confirmed appointment intersects that local calendar day.
        """
        if not 1 <= month <= 12:
            raise ValidationError(f"month must be between 1 and 12, got {month}")
        if not 1 <= year <= 9998:
            raise ValidationError(f"year out of range: {year}")

        hours = operating_hours or default_operating_hours()
        tz = resolve_timezone(timezone_name)
        days_in_month = calendar.monthrange(year, month)[1]
        first = date(year, month, 1)
        after_last = first + timedelta(days=days_in_month)

        appointments = self._detector.list_confirmed_between(
            _local_midnight_utc(first, tz), _local_midnight_utc(after_last, tz)
        )

        summaries: list[DaySummary] = []
        for offset in range(days_in_month):
            day = first + timedelta(days=offset)
            day_start = _local_midnight_utc(day, tz)
            day_end = _local_midnight_utc(day + timedelta(days=1), tz)
            count = sum(
                1 for a in appointments if a.start_time < day_end and day_start < a.end_time
            )
            window = self.operating_window(day, hours, timezone_name)
            summaries.append(DaySummary(
                date=day,
                day_of_week=(day.weekday() + 1) % 7,
                has_appointments=count > 0,
                appointment_count=count,
                opens_at=window.start,
                closes_at=window.end,
            ))
        return summaries

    def get_available_slots(
        self,
        from_day: date,
        to_day: date,
        operating_hours: Optional[OperatingHours] = None,
        slot_duration: Optional[timedelta] = None,
        timezone_name: str = "UTC",
        now: Optional[datetime] = None,
    ) -> list[SlotView]:
        """Bookable slots across an inclusive range of days."""
        if to_day < from_day:
            raise ValidationError("to_day must not be before from_day")

        available: list[SlotView] = []
        day = from_day
        while day <= to_day:
            available.extend(
                slot
                for slot in self.get_day_slots(day, operating_hours, slot_duration, timezone_name, now)
                if slot.is_available and not slot.is_past
            )
            day += timedelta(days=1)
        return available

    def suggest_alternative_slots(
        self,
        interval: TimeInterval,
        operating_hours: Optional[OperatingHours] = None,
        timezone_name: str = "UTC",
        max_suggestions: Optional[int] = None,
        exclude_id: Optional[str] = None,
    ) -> list[AlternativeSlot]:
        """
        Free intervals of the same length near ``interval``.

        Probes up to three lengths earlier and later, keeps candidates that
        fit inside the day's operating hours and have no conflict, and orders
        them by distance from the request (earlier wins a tie). Pass
        ``exclude_id`` when moving an existing appointment so its current
        interval does not block its own alternatives.
        """
        hours = operating_hours or default_operating_hours()
        limit = max_suggestions or settings.schedule.max_suggestions
        tz = resolve_timezone(timezone_name)
        duration = interval.duration

        candidates: list[AlternativeSlot] = []
        for direction in (-1, 1):
            for step in range(1, SUGGESTION_PROBES + 1):
                shift = duration * step * direction
                candidate = interval.shift(shift)
                local_day = candidate.start.astimezone(tz).date()
                window = self.operating_window(local_day, hours, timezone_name)
                if not window.contains(candidate):
                    continue
                if self._detector.has_conflict(candidate, exclude_id):
                    continue
                candidates.append(AlternativeSlot(
                    start_time=candidate.start,
                    end_time=candidate.end,
                    offset_minutes=int(shift.total_seconds() // 60),
                ))

        candidates.sort(key=lambda c: abs(c.offset_minutes))
        return candidates[:limit]
