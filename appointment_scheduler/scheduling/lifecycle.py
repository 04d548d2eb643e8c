"""
Appointment status lifecycle as an explicit transition table.

    confirmed --amend-->      confirmed
    confirmed --cancel-->     cancelled    (terminal)
    confirmed --reschedule--> rescheduled  (terminal, paired with a successor)

Once an appointment leaves ``confirmed`` it never returns. Cancelling an
already-cancelled appointment is a self-loop so client retries succeed.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from appointment_scheduler.errors import InvalidStateError
from appointment_scheduler.schemas.appointment_schema import AppointmentStatus

logger = logging.getLogger(__name__)


class StatusTrigger(str, Enum):
    """Coordinator actions that touch an existing appointment."""
    AMEND = "amend"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"


@dataclass(frozen=True)
class StatusTransition:
    """A single valid status transition."""
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    trigger: StatusTrigger


TRANSITIONS: list[StatusTransition] = [
    StatusTransition(AppointmentStatus.CONFIRMED, AppointmentStatus.CONFIRMED,
                     StatusTrigger.AMEND),
    StatusTransition(AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED,
                     StatusTrigger.CANCEL),
    StatusTransition(AppointmentStatus.CONFIRMED, AppointmentStatus.RESCHEDULED,
                     StatusTrigger.RESCHEDULE),

    # --- Terminal ---
    StatusTransition(AppointmentStatus.CANCELLED, AppointmentStatus.CANCELLED,
                     StatusTrigger.CANCEL),
]

_VERBS = {
    StatusTrigger.AMEND: "update",
    StatusTrigger.CANCEL: "cancel",
    StatusTrigger.RESCHEDULE: "reschedule",
}


def next_status(
    appointment_id: str, current: AppointmentStatus, trigger: StatusTrigger
) -> AppointmentStatus:
    """
    Resolve the status an appointment moves to.

    Raises:
        InvalidStateError: If ``trigger`` is not allowed from ``current``.
    """
    for t in TRANSITIONS:
        if t.from_status == current and t.trigger == trigger:
            logger.debug(
                "Status transition for %s: %s -> %s (trigger: %s)",
                appointment_id, current.value, t.to_status.value, trigger.value,
            )
            return t.to_status
    raise InvalidStateError(appointment_id, current.value, _VERBS[trigger])


def valid_triggers(status: AppointmentStatus) -> list[StatusTrigger]:
    """Return all triggers valid from ``status``."""
    return [t.trigger for t in TRANSITIONS if t.from_status == status]


def is_terminal(status: AppointmentStatus) -> bool:
    return status != AppointmentStatus.CONFIRMED
