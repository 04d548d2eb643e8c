"""
In-process appointment store.

Suitable for tests and single-process deployments. All access goes through
one re-entrant lock, so a transaction is both isolated and serialized.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from appointment_scheduler.errors import ConflictKind, NotFoundError, StoreConflictError
from appointment_scheduler.schemas.appointment_schema import Appointment, AppointmentPatch
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store.base import IntervalStore
from appointment_scheduler.utils import utc_now

logger = logging.getLogger(__name__)


class InMemoryIntervalStore(IntervalStore):
    """Dictionary-backed store with snapshot rollback."""

    def __init__(self) -> None:
        self._records: dict[str, Appointment] = {}
        self._lock = threading.RLock()
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = dict(self._records)
            self._depth = 1
            try:
                yield
            except BaseException:
                self._records = snapshot
                logger.debug("Transaction rolled back (%d records restored)", len(snapshot))
                raise
            finally:
                self._depth = 0

    def insert(self, appointment: Appointment) -> Appointment:
        with self._lock:
            if appointment.id in self._records:
                raise StoreConflictError(
                    ConflictKind.DUPLICATE_ID, f"Appointment id {appointment.id} already exists."
                )
            self._check_exclusion(appointment)
            self._records[appointment.id] = appointment
            return appointment

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            return self._records.get(appointment_id)

    def find_overlapping(
        self, interval: TimeInterval, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        with self._lock:
            matches = [
                a for a in self._records.values()
                if a.is_confirmed
                and a.id != exclude_id
                and a.start_time < interval.end
                and interval.start < a.end_time
            ]
        return sorted(matches, key=lambda a: (a.start_time, a.id))

    def update(self, appointment_id: str, patch: AppointmentPatch) -> Appointment:
        with self._lock:
            current = self._records.get(appointment_id)
            if current is None:
                raise NotFoundError(appointment_id)
            changes = patch.changes()
            changes["updated_at"] = changes.get("updated_at") or utc_now()
            updated = current.model_copy(update=changes)
            # model_copy skips validation; building the interval enforces end > start.
            TimeInterval(updated.start_time, updated.end_time)
            self._check_exclusion(updated)
            self._records[appointment_id] = updated
            return updated

    def list_by_date_range(self, start: datetime, end: datetime) -> list[Appointment]:
        with self._lock:
            matches = [
                a for a in self._records.values()
                if a.is_confirmed and a.start_time < end and start < a.end_time
            ]
        return sorted(matches, key=lambda a: (a.start_time, a.id))

    def list_by_owner(self, owner_email: str) -> list[Appointment]:
        with self._lock:
            matches = [a for a in self._records.values() if a.owner_email == owner_email]
        return sorted(matches, key=lambda a: (a.start_time, a.id))

    def list_upcoming(self, owner_email: str, start: datetime, limit: int) -> list[Appointment]:
        with self._lock:
            matches = [
                a for a in self._records.values()
                if a.owner_email == owner_email and a.is_confirmed and a.start_time >= start
            ]
        return sorted(matches, key=lambda a: (a.start_time, a.id))[:limit]

    def _check_exclusion(self, candidate: Appointment) -> None:
        if not candidate.is_confirmed:
            return
        for other in self._records.values():
            if (
                other.id != candidate.id
                and other.is_confirmed
                and other.start_time < candidate.end_time
                and candidate.start_time < other.end_time
            ):
                raise StoreConflictError(
                    ConflictKind.DUPLICATE_OVERLAP,
                    f"Appointment {candidate.id} overlaps confirmed appointment {other.id}.",
                )
