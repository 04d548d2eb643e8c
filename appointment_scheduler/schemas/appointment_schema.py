"""Appointment record, partial updates and conflict summaries."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from appointment_scheduler.schemas.interval import TimeInterval


class AppointmentStatus(str, Enum):
    """Lifecycle status. Only CONFIRMED blocks other bookings."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class Appointment(BaseModel):
    """A stored booking. Instances are immutable snapshots of a row."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    start_time: datetime
    end_time: datetime
    owner_email: str
    owner_name: str
    notes: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    created_at: datetime
    updated_at: datetime
    rescheduled_from_id: Optional[str] = None
    rescheduled_to_id: Optional[str] = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    @property
    def is_confirmed(self) -> bool:
        return self.status == AppointmentStatus.CONFIRMED


class AppointmentPatch(BaseModel):
    """Partial update applied by the store; only explicitly set fields change."""

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    rescheduled_to_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ConflictSummary(BaseModel):
    """What a caller needs to know about a colliding appointment."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    owner_email: str
    owner_name: str
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "ConflictSummary":
        return cls(
            id=appointment.id,
            owner_email=appointment.owner_email,
            owner_name=appointment.owner_name,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            status=appointment.status,
        )
