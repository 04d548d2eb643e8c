"""Concurrent writers must never produce overlapping confirmed appointments."""

import random
import threading
from datetime import timedelta

import pytest

from appointment_scheduler.errors import ConflictError, InvalidStateError
from appointment_scheduler.scheduling.engine import build_engine
from appointment_scheduler.schemas.appointment_schema import AppointmentStatus
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store import SQLiteIntervalStore
from tests.conftest import span, utc

WORKERS = 8


def _race(target, count: int = WORKERS) -> list:
    """Run ``target(i)`` on ``count`` threads released together; collect outcomes."""
    barrier = threading.Barrier(count)
    outcomes: list = [None] * count

    def run(i: int) -> None:
        barrier.wait()
        try:
            outcomes[i] = target(i)
        except Exception as exc:
            outcomes[i] = exc

    threads = [threading.Thread(target=run, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


def _assert_no_overlaps(detector) -> None:
    assert detector.find_overlap_violations(utc(2024, 12, 1), utc(2025, 1, 1)) == []


class TestSameSlotRace:
    def test_exactly_one_create_wins(self, coordinator, detector):
        outcomes = _race(
            lambda i: coordinator.create(f"user{i}@example.com", f"User {i}", span("2024-12-15", "10:00", "11:00"))
        )
        winners = [o for o in outcomes if not isinstance(o, Exception)]
        losers = [o for o in outcomes if isinstance(o, Exception)]
        assert len(winners) == 1
        assert all(isinstance(o, ConflictError) for o in losers)
        _assert_no_overlaps(detector)

    def test_staggered_overlaps_one_wins(self, coordinator, detector):
        outcomes = _race(
            lambda i: coordinator.create(
                f"user{i}@example.com", f"User {i}",
                span("2024-12-15", f"10:{i * 5:02d}", f"11:{i * 5:02d}"),
            )
        )
        assert sum(1 for o in outcomes if not isinstance(o, Exception)) == 1
        _assert_no_overlaps(detector)

    def test_reschedules_into_same_slot(self, coordinator, detector):
        originals = [
            coordinator.create(f"user{i}@example.com", f"User {i}", span("2024-12-15", f"{8 + i:02d}:00", f"{8 + i:02d}:30"))
            for i in range(WORKERS)
        ]
        outcomes = _race(
            lambda i: coordinator.reschedule(originals[i].id, span("2024-12-20", "10:00", "11:00"))
        )
        assert sum(1 for o in outcomes if not isinstance(o, Exception)) == 1
        _assert_no_overlaps(detector)


class TestRandomSequences:
    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_invariant_holds_under_mixed_operations(self, coordinator, detector, seed):
        rng = random.Random(seed)
        booked: list[str] = []
        lock = threading.Lock()

        def random_interval() -> TimeInterval:
            start = utc(2024, 12, 15, 8) + timedelta(minutes=rng.randrange(0, 10 * 60, 15))
            return TimeInterval(start, start + timedelta(minutes=rng.choice([15, 30, 45, 60, 90])))

        def worker(i: int) -> None:
            for _ in range(25):
                with lock:
                    action = rng.random()
                    interval = random_interval()
                    target = rng.choice(booked) if booked else None
                try:
                    if action < 0.5 or target is None:
                        appt = coordinator.create(f"user{i}@example.com", f"User {i}", interval)
                        with lock:
                            booked.append(appt.id)
                    elif action < 0.7:
                        coordinator.cancel(target)
                    elif action < 0.85:
                        coordinator.update(target, interval)
                    else:
                        successor = coordinator.reschedule(target, interval)
                        with lock:
                            booked.append(successor.id)
                except (ConflictError, InvalidStateError):
                    continue
                with lock:
                    _assert_no_overlaps(detector)

        outcomes = _race(worker, count=4)
        assert [o for o in outcomes if isinstance(o, Exception)] == []
        _assert_no_overlaps(detector)


class TestSharedDatabaseFile:
    def test_two_processes_worth_of_connections(self, tmp_path):
        path = tmp_path / "shared.db"
        engines = [build_engine(SQLiteIntervalStore(path)) for _ in range(2)]
        try:
            outcomes = _race(
                lambda i: engines[i % 2].coordinator.create(
                    f"user{i}@example.com", f"User {i}", span("2024-12-15", "10:00", "11:00")
                ),
                count=6,
            )
            assert sum(1 for o in outcomes if not isinstance(o, Exception)) == 1
            assert all(
                isinstance(o, ConflictError) for o in outcomes if isinstance(o, Exception)
            )
            confirmed = engines[0].store.list_by_date_range(utc(2024, 12, 15), utc(2024, 12, 16))
            assert len(confirmed) == 1
            assert confirmed[0].status == AppointmentStatus.CONFIRMED
        finally:
            for engine in engines:
                engine.close()
