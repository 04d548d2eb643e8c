"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from appointment_scheduler.scheduling.engine import build_engine
from appointment_scheduler.schemas.appointment_schema import Appointment, AppointmentStatus
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store import InMemoryIntervalStore, SQLiteIntervalStore
from appointment_scheduler.tools import engine as tools_engine


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def span(day: str, start: str, end: str) -> TimeInterval:
    """Interval on a UTC day, e.g. ``span("2024-12-15", "10:00", "11:00")``."""
    return TimeInterval.parse(f"{day}T{start}:00Z", f"{day}T{end}:00Z")


def make_appointment(
    appointment_id: str,
    interval: TimeInterval,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    owner_email: str = "john@example.com",
    owner_name: str = "John Doe",
    notes: Optional[str] = None,
) -> Appointment:
    """Helper to create an Appointment record for direct store tests."""
    created = utc(2024, 12, 1, 8)
    return Appointment(
        id=appointment_id,
        start_time=interval.start,
        end_time=interval.end,
        owner_email=owner_email,
        owner_name=owner_name,
        notes=notes,
        status=status,
        created_at=created,
        updated_at=created,
    )


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = utc(2024, 12, 1, 12)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = InMemoryIntervalStore()
    else:
        s = SQLiteIntervalStore(tmp_path / "appointments.db")
    yield s
    s.close()


@pytest.fixture
def engine(store):
    return build_engine(store)


@pytest.fixture
def coordinator(engine):
    return engine.coordinator


@pytest.fixture
def detector(engine):
    return engine.detector


@pytest.fixture
def planner(engine):
    return engine.planner


@pytest.fixture
def tools_default_engine():
    """Fresh in-memory engine behind the module-level tools functions."""
    eng = tools_engine.reset(InMemoryIntervalStore())
    yield eng
    tools_engine.reset(InMemoryIntervalStore())
