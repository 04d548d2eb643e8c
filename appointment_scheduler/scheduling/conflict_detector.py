"""
Read-side overlap decisions.

Two intervals overlap iff ``a.start < b.end and b.start < a.end``. The
inequalities are strict, so back-to-back bookings never conflict. Only
confirmed appointments are considered; the store query already filters on
status, and this module never mutates anything.
"""

import logging
from datetime import datetime
from typing import Optional

from appointment_scheduler.schemas.appointment_schema import Appointment, ConflictSummary
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store.base import IntervalStore

logger = logging.getLogger(__name__)


class ConflictDetector:
    """Answers "does this interval collide with a confirmed booking?"."""

    def __init__(self, store: IntervalStore) -> None:
        self._store = store

    def has_conflict(self, interval: TimeInterval, exclude_id: Optional[str] = None) -> bool:
        return bool(self.list_conflicts(interval, exclude_id))

    def list_conflicts(
        self, interval: TimeInterval, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        """Confirmed appointments colliding with ``interval``, ordered by start time."""
        conflicts = self._store.find_overlapping(interval, exclude_id)
        if conflicts:
            logger.debug(
                "%s conflicts with %s", interval, ", ".join(a.id for a in conflicts)
            )
        return conflicts

    def list_confirmed_between(self, start: datetime, end: datetime) -> list[Appointment]:
        return self._store.list_by_date_range(start, end)

    @staticmethod
    def summarize(appointments: list[Appointment]) -> list[ConflictSummary]:
        return [ConflictSummary.from_appointment(a) for a in appointments]

    def find_overlap_violations(
        self, start: datetime, end: datetime
    ) -> list[tuple[Appointment, Appointment]]:
        """
        Audit scan for confirmed pairs that overlap inside ``[start, end)``.

        Always empty while the booking invariant holds; a non-empty result
        means a writer bypassed both the coordinator and the store constraint.
        """
        appointments = self._store.list_by_date_range(start, end)
        violations = []
        for i, first in enumerate(appointments):
            for second in appointments[i + 1:]:
                if second.start_time >= first.end_time:
                    break
                if first.interval.overlaps(second.interval):
                    violations.append((first, second))
        if violations:
            logger.error("Found %d overlapping confirmed pair(s)", len(violations))
        return violations
