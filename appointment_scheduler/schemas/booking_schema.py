"""Request payloads accepted by the tools layer (camelCase on the wire)."""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from appointment_scheduler.config import settings


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CreateAppointmentRequest(_Payload):
    """Validated booking request data."""
    start_time: dt.datetime
    end_time: dt.datetime
    owner_email: str
    owner_name: str
    notes: Optional[str] = None
    timezone: str = settings.schedule.timezone


class UpdateAppointmentRequest(_Payload):
    """Interval and/or notes change for an existing appointment."""
    id: str
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    notes: Optional[str] = None
    timezone: str = settings.schedule.timezone


class RescheduleRequest(_Payload):
    id: str
    start_time: dt.datetime
    end_time: dt.datetime
    notes: Optional[str] = None
    timezone: str = settings.schedule.timezone


class UpcomingAppointmentsRequest(_Payload):
    """An owner's next confirmed appointments; ``now`` defaults to the request time."""
    owner_email: str
    now: Optional[dt.datetime] = None
    limit: int = Field(default=10, ge=1)


class AvailabilityRequest(_Payload):
    """Day availability query."""
    date: dt.date
    timezone: str = settings.schedule.timezone
    slot_minutes: Optional[int] = None


class MonthOverviewRequest(_Payload):
    year: int
    month: int
    timezone: str = settings.schedule.timezone
