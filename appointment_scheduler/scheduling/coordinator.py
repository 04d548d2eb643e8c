"""
The single write path for appointments.

Every mutation runs its conflict check and its writes inside one store
transaction, so no other mutation can act between the check and the write.
The store's own exclusion constraint backs this up; if it fires at commit
time the whole operation is retried once with a fresh check, and a second
failure is reported to the caller as an ordinary overlap.

Usage:
    coordinator = BookingCoordinator(InMemoryIntervalStore())
    appt = coordinator.create("john@example.com", "John Doe", interval)
    coordinator.reschedule(appt.id, later_interval)
"""

from datetime import datetime
from typing import Callable, Optional

from appointment_scheduler.config import LimitsConfig, settings
from appointment_scheduler.errors import (
    ConflictError,
    ConflictKind,
    NotFoundError,
    StoreConflictError,
    StoreError,
    ValidationError,
)
from appointment_scheduler.logging_context import get_request_logger
from appointment_scheduler.scheduling.conflict_detector import ConflictDetector
from appointment_scheduler.scheduling.lifecycle import StatusTrigger, next_status
from appointment_scheduler.scheduling.validation import clean_notes, validate_owner_fields
from appointment_scheduler.schemas.appointment_schema import (
    Appointment,
    AppointmentPatch,
    AppointmentStatus,
)
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store.base import IntervalStore
from appointment_scheduler.utils import generate_appointment_id, normalize_email, to_utc, utc_now

logger = get_request_logger(__name__)

DEFAULT_UPCOMING_LIMIT = 10


class BookingCoordinator:
    """Creates, amends, cancels and reschedules appointments atomically."""

    def __init__(
        self,
        store: IntervalStore,
        detector: Optional[ConflictDetector] = None,
        limits: LimitsConfig = settings.limits,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._detector = detector or ConflictDetector(store)
        self._limits = limits
        self._clock = clock

    @property
    def detector(self) -> ConflictDetector:
        return self._detector

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, appointment_id: str) -> Appointment:
        appointment = self._store.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError(appointment_id)
        return appointment

    def list_for_owner(self, owner_email: str) -> list[Appointment]:
        return self._store.list_by_owner(normalize_email(owner_email))

    def list_upcoming(
        self, owner_email: str, now: datetime, limit: int = DEFAULT_UPCOMING_LIMIT
    ) -> list[Appointment]:
        """Confirmed appointments of ``owner_email`` starting at or after ``now``, soonest first.

        Raises:
            ValidationError: ``now`` is naive or ``limit`` is out of range.
        """
        if not 1 <= limit <= self._limits.max_upcoming_results:
            raise ValidationError(
                f"limit must be between 1 and {self._limits.max_upcoming_results}, got {limit}"
            )
        return self._store.list_upcoming(normalize_email(owner_email), to_utc(now, "now"), limit)

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(
        self,
        owner_email: str,
        owner_name: str,
        interval: TimeInterval,
        notes: Optional[str] = None,
    ) -> Appointment:
        """Confirm a new appointment.

        Raises:
            ValidationError: Bad email, name or notes.
            ConflictError: ``interval`` overlaps a confirmed appointment.
        """
        fields = validate_owner_fields(owner_email, owner_name, notes, self._limits)

        def operation() -> Appointment:
            self._ensure_no_conflict(interval)
            now = self._clock()
            return self._store.insert(Appointment(
                id=generate_appointment_id(),
                start_time=interval.start,
                end_time=interval.end,
                owner_email=fields.owner_email,
                owner_name=fields.owner_name,
                notes=fields.notes,
                status=AppointmentStatus.CONFIRMED,
                created_at=now,
                updated_at=now,
            ))

        appointment = self._atomic("create", operation, interval)
        logger.info(
            "Appointment %s confirmed for %s %s",
            appointment.id, appointment.owner_email, appointment.interval,
        )
        return appointment

    def update(
        self,
        appointment_id: str,
        new_interval: Optional[TimeInterval] = None,
        new_notes: Optional[str] = None,
    ) -> Appointment:
        """Move and/or annotate a confirmed appointment, keeping its id.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: The appointment is cancelled or rescheduled.
            ConflictError: ``new_interval`` overlaps another confirmed appointment.
        """
        if new_interval is None and new_notes is None:
            raise ValidationError("update requires a new interval or new notes")
        notes = clean_notes(new_notes, self._limits) if new_notes is not None else None

        def operation() -> Appointment:
            current = self.get(appointment_id)
            next_status(appointment_id, current.status, StatusTrigger.AMEND)

            changes: dict = {"updated_at": self._clock()}
            if new_interval is not None:
                self._ensure_no_conflict(new_interval, exclude_id=appointment_id)
                changes["start_time"] = new_interval.start
                changes["end_time"] = new_interval.end
            if new_notes is not None:
                changes["notes"] = notes
            return self._store.update(appointment_id, AppointmentPatch(**changes))

        appointment = self._atomic("update", operation, new_interval, appointment_id)
        logger.info("Appointment %s updated to %s", appointment.id, appointment.interval)
        return appointment

    def cancel(self, appointment_id: str) -> Appointment:
        """Cancel an appointment. Cancelling twice returns the cancelled record.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: The appointment was already rescheduled.
        """

        def operation() -> Appointment:
            current = self.get(appointment_id)
            target = next_status(appointment_id, current.status, StatusTrigger.CANCEL)
            if target == current.status:
                logger.debug("Appointment %s already cancelled", appointment_id)
                return current
            return self._store.update(
                appointment_id,
                AppointmentPatch(status=target, updated_at=self._clock()),
            )

        appointment = self._atomic("cancel", operation)
        logger.info("Appointment %s cancelled", appointment.id)
        return appointment

    def reschedule(
        self,
        appointment_id: str,
        new_interval: TimeInterval,
        notes: Optional[str] = None,
    ) -> Appointment:
        """
        Supersede an appointment with a new confirmed one at ``new_interval``.

        The original is marked ``rescheduled`` and linked to its successor in
        the same transaction that inserts the successor. If the new interval
        conflicts, nothing changes. The successor keeps the owner and, unless
        ``notes`` is given, the notes of the original.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: The appointment is cancelled or rescheduled.
            ConflictError: ``new_interval`` overlaps another confirmed appointment.
        """
        new_notes = clean_notes(notes, self._limits) if notes is not None else None

        def operation() -> Appointment:
            current = self.get(appointment_id)
            target = next_status(appointment_id, current.status, StatusTrigger.RESCHEDULE)
            self._ensure_no_conflict(new_interval, exclude_id=appointment_id)

            now = self._clock()
            successor_id = generate_appointment_id()
            self._store.update(
                appointment_id,
                AppointmentPatch(status=target, rescheduled_to_id=successor_id, updated_at=now),
            )
            return self._store.insert(Appointment(
                id=successor_id,
                start_time=new_interval.start,
                end_time=new_interval.end,
                owner_email=current.owner_email,
                owner_name=current.owner_name,
                notes=new_notes if notes is not None else current.notes,
                status=AppointmentStatus.CONFIRMED,
                created_at=now,
                updated_at=now,
                rescheduled_from_id=appointment_id,
            ))

        successor = self._atomic("reschedule", operation, new_interval, appointment_id)
        logger.info(
            "Appointment %s rescheduled as %s %s",
            appointment_id, successor.id, successor.interval,
        )
        return successor

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_no_conflict(
        self, interval: TimeInterval, exclude_id: Optional[str] = None
    ) -> None:
        conflicts = self._detector.list_conflicts(interval, exclude_id)
        if conflicts:
            logger.warning(
                "Rejected %s: overlaps %s", interval, ", ".join(a.id for a in conflicts)
            )
            raise ConflictError(self._detector.summarize(conflicts))

    def _run_once(self, operation: Callable[[], Appointment]) -> Appointment:
        with self._store.transaction():
            return operation()

    def _atomic(
        self,
        action: str,
        operation: Callable[[], Appointment],
        interval: Optional[TimeInterval] = None,
        exclude_id: Optional[str] = None,
    ) -> Appointment:
        try:
            return self._run_once(operation)
        except StoreConflictError as exc:
            logger.warning(
                "%s rejected by store (%s); retrying with a fresh conflict check",
                action, exc.kind.value,
            )

        try:
            return self._run_once(operation)
        except StoreConflictError as exc:
            if exc.kind == ConflictKind.DUPLICATE_ID:
                raise StoreError(f"Could not allocate a unique id for {action}") from exc
            conflicts = self._detector.list_conflicts(interval, exclude_id) if interval else []
            raise ConflictError(self._detector.summarize(conflicts)) from exc
