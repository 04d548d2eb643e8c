"""Availability views: operating hours, day slots, month summaries."""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class OperatingHours(BaseModel):
    """Daily opening window in local wall-clock time."""

    model_config = ConfigDict(frozen=True)

    start: dt.time
    end: dt.time

    @model_validator(mode="after")
    def _check_window(self) -> "OperatingHours":
        if self.end <= self.start:
            raise ValueError("operating hours must end after they start")
        return self


class SlotView(BaseModel):
    """A candidate slot for display; not a stored entity."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_time: dt.datetime
    end_time: dt.datetime
    is_available: bool
    conflicting_appointment_id: Optional[str] = None
    is_past: bool = False


class DaySummary(BaseModel):
    """Month-view entry for a single calendar day."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: dt.date
    day_of_week: int
    has_appointments: bool
    appointment_count: int = 0
    opens_at: dt.datetime
    closes_at: dt.datetime


class AlternativeSlot(BaseModel):
    """A free slot near a requested interval, offered after a conflict."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_time: dt.datetime
    end_time: dt.datetime
    offset_minutes: int
