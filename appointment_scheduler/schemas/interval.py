"""Half-open time interval ``[start, end)`` stored in UTC."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from appointment_scheduler.errors import ValidationError
from appointment_scheduler.utils import parse_iso_datetime, to_utc


@dataclass(frozen=True)
class TimeInterval:
    """
    A booking window. Both ends are timezone-aware and normalized to UTC.

    The end instant is excluded, so ``[10:00, 11:00)`` and ``[11:00, 12:00)``
    touch without overlapping.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = to_utc(self.start, "start_time")
        end = to_utc(self.end, "end_time")
        if end <= start:
            raise ValidationError("end_time must be after start_time")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeInterval":
        """Build an interval from two ISO-8601 strings with offsets."""
        return cls(parse_iso_datetime(start, "start_time"), parse_iso_datetime(end, "end_time"))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "TimeInterval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def shift(self, delta: timedelta) -> "TimeInterval":
        return TimeInterval(self.start + delta, self.end + delta)

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
