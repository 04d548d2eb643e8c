"""
Storage contract for appointment records.

A store owns no booking rules beyond its exclusion constraint: it must refuse
any write that would leave two confirmed appointments overlapping, so that a
bug in the coordinator can never corrupt the calendar.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Optional

from appointment_scheduler.schemas.appointment_schema import Appointment, AppointmentPatch
from appointment_scheduler.schemas.interval import TimeInterval


class IntervalStore(ABC):
    """Durable record of appointments with range queries."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """
        Atomic unit for a check followed by writes.

        Nested use joins the outer transaction. Any exception inside the
        outermost block rolls back every write made in it.
        """

    @abstractmethod
    def insert(self, appointment: Appointment) -> Appointment:
        """Persist a new record.

        Raises:
            StoreConflictError: DUPLICATE_ID if the id exists, DUPLICATE_OVERLAP
                if a confirmed record would overlap another confirmed record.
        """

    @abstractmethod
    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        ...

    @abstractmethod
    def find_overlapping(
        self, interval: TimeInterval, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        """Confirmed appointments overlapping ``interval``, ordered by start time."""

    @abstractmethod
    def update(self, appointment_id: str, patch: AppointmentPatch) -> Appointment:
        """Apply a partial update and return the new record.

        Raises:
            NotFoundError: If the id is absent.
            StoreConflictError: DUPLICATE_OVERLAP as for ``insert``.
        """

    @abstractmethod
    def list_by_date_range(self, start: datetime, end: datetime) -> list[Appointment]:
        """Confirmed appointments intersecting ``[start, end)``, ordered by start time."""

    @abstractmethod
    def list_by_owner(self, owner_email: str) -> list[Appointment]:
        """Every appointment for an owner regardless of status, ordered by start time."""

    @abstractmethod
    def list_upcoming(self, owner_email: str, start: datetime, limit: int) -> list[Appointment]:
        """An owner's confirmed appointments starting at or after ``start``, soonest first."""

    def close(self) -> None:
        """Release any resources held by the store."""
