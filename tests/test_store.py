"""Tests for both IntervalStore backends, including the exclusion constraint."""

import sqlite3

import pytest

from appointment_scheduler.errors import ConflictKind, NotFoundError, StoreConflictError, StoreError
from appointment_scheduler.schemas.appointment_schema import AppointmentPatch, AppointmentStatus
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store import SQLiteIntervalStore, create_store
from appointment_scheduler.store.memory import InMemoryIntervalStore
from tests.conftest import make_appointment, span, utc


class TestInsertAndGet:
    def test_round_trip(self, store):
        appt = make_appointment("apt_1", span("2024-12-15", "10:00", "11:00"), notes="first visit")
        store.insert(appt)
        assert store.get_by_id("apt_1") == appt

    def test_missing_id_returns_none(self, store):
        assert store.get_by_id("apt_missing") is None

    def test_duplicate_id_rejected(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        with pytest.raises(StoreConflictError) as exc_info:
            store.insert(make_appointment("apt_1", span("2024-12-16", "10:00", "11:00")))
        assert exc_info.value.kind == ConflictKind.DUPLICATE_ID

    def test_overlapping_confirmed_rejected(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        with pytest.raises(StoreConflictError) as exc_info:
            store.insert(make_appointment("apt_2", span("2024-12-15", "10:30", "11:30")))
        assert exc_info.value.kind == ConflictKind.DUPLICATE_OVERLAP
        assert store.get_by_id("apt_2") is None

    def test_overlapping_cancelled_allowed(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        store.insert(make_appointment(
            "apt_2", span("2024-12-15", "10:30", "11:30"), status=AppointmentStatus.CANCELLED
        ))
        assert store.get_by_id("apt_2").status == AppointmentStatus.CANCELLED

    def test_adjacent_confirmed_allowed(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        store.insert(make_appointment("apt_2", span("2024-12-15", "11:00", "12:00")))
        assert store.get_by_id("apt_2") is not None


class TestFindOverlapping:
    def test_only_confirmed_and_ordered(self, store):
        store.insert(make_appointment("apt_b", span("2024-12-15", "11:00", "12:00")))
        store.insert(make_appointment("apt_a", span("2024-12-15", "09:30", "10:30")))
        store.insert(make_appointment(
            "apt_c", span("2024-12-15", "10:00", "11:00"), status=AppointmentStatus.CANCELLED
        ))
        found = store.find_overlapping(span("2024-12-15", "10:00", "11:30"))
        assert [a.id for a in found] == ["apt_a", "apt_b"]

    def test_exclude_id(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        assert store.find_overlapping(span("2024-12-15", "10:00", "11:00"), exclude_id="apt_1") == []

    def test_touching_boundaries_not_returned(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        assert store.find_overlapping(span("2024-12-15", "11:00", "12:00")) == []
        assert store.find_overlapping(span("2024-12-15", "09:00", "10:00")) == []


class TestUpdate:
    def test_partial_update_sets_updated_at(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00"), notes="keep"))
        stamp = utc(2024, 12, 2, 9)
        updated = store.update("apt_1", AppointmentPatch(
            start_time=utc(2024, 12, 15, 14), end_time=utc(2024, 12, 15, 15), updated_at=stamp,
        ))
        assert updated.start_time == utc(2024, 12, 15, 14)
        assert updated.notes == "keep"
        assert updated.updated_at == stamp
        assert store.get_by_id("apt_1") == updated

    def test_explicit_none_clears_notes(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00"), notes="x"))
        assert store.update("apt_1", AppointmentPatch(notes=None)).notes is None

    def test_missing_id(self, store):
        with pytest.raises(NotFoundError):
            store.update("apt_missing", AppointmentPatch(notes="x"))

    def test_move_into_overlap_rejected(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        store.insert(make_appointment("apt_2", span("2024-12-15", "12:00", "13:00")))
        with pytest.raises(StoreConflictError):
            store.update("apt_2", AppointmentPatch(
                start_time=utc(2024, 12, 15, 10, 30), end_time=utc(2024, 12, 15, 11, 30),
            ))
        assert store.get_by_id("apt_2").start_time == utc(2024, 12, 15, 12)

    def test_status_change_frees_interval(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        store.update("apt_1", AppointmentPatch(status=AppointmentStatus.CANCELLED))
        store.insert(make_appointment("apt_2", span("2024-12-15", "10:00", "11:00")))
        assert store.find_overlapping(span("2024-12-15", "10:00", "11:00"))[0].id == "apt_2"


class TestListing:
    def test_date_range_intersection(self, store):
        store.insert(make_appointment("apt_early", span("2024-12-14", "23:00", "23:59")))
        cross_midnight = TimeInterval(utc(2024, 12, 14, 23, 59), utc(2024, 12, 15, 0, 30))
        store.insert(make_appointment("apt_cross", cross_midnight))
        store.insert(make_appointment("apt_noon", span("2024-12-15", "12:00", "13:00")))
        store.insert(make_appointment("apt_next", span("2024-12-16", "00:00", "01:00")))
        found = store.list_by_date_range(utc(2024, 12, 15), utc(2024, 12, 16))
        assert [a.id for a in found] == ["apt_cross", "apt_noon"]

    def test_list_by_owner_includes_all_statuses(self, store):
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        store.insert(make_appointment(
            "apt_2", span("2024-12-14", "10:00", "11:00"), status=AppointmentStatus.CANCELLED
        ))
        store.insert(make_appointment(
            "apt_3", span("2024-12-15", "12:00", "13:00"), owner_email="jane@example.com"
        ))
        assert [a.id for a in store.list_by_owner("john@example.com")] == ["apt_2", "apt_1"]

    def test_list_upcoming_confirmed_from_start(self, store):
        store.insert(make_appointment("apt_past", span("2024-12-14", "10:00", "11:00")))
        store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        store.insert(make_appointment("apt_2", span("2024-12-16", "10:00", "11:00")))
        store.insert(make_appointment("apt_3", span("2024-12-17", "10:00", "11:00")))
        store.insert(make_appointment(
            "apt_cancelled", span("2024-12-15", "12:00", "13:00"), status=AppointmentStatus.CANCELLED
        ))
        store.insert(make_appointment(
            "apt_other", span("2024-12-15", "14:00", "15:00"), owner_email="jane@example.com"
        ))

        upcoming = store.list_upcoming("john@example.com", utc(2024, 12, 15, 10), 2)
        assert [a.id for a in upcoming] == ["apt_1", "apt_2"]
        assert store.list_upcoming("john@example.com", utc(2024, 12, 18), 10) == []


class TestTransactions:
    def test_exception_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
                raise RuntimeError("boom")
        assert store.get_by_id("apt_1") is None

    def test_nested_transaction_joins_outer(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
                store.insert(make_appointment("apt_2", span("2024-12-15", "12:00", "13:00")))
                raise RuntimeError("boom")
        assert store.get_by_id("apt_1") is None
        assert store.get_by_id("apt_2") is None

    def test_commit_on_success(self, store):
        with store.transaction():
            store.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        assert store.get_by_id("apt_1") is not None


class TestSQLitePersistence:
    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "nested" / "appointments.db"
        first = SQLiteIntervalStore(path)
        first.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
        first.close()

        second = SQLiteIntervalStore(path)
        try:
            assert second.get_by_id("apt_1").owner_name == "John Doe"
        finally:
            second.close()

    def test_trigger_blocks_raw_sql_overlap(self, tmp_path):
        s = SQLiteIntervalStore(tmp_path / "appointments.db")
        try:
            s.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))
            with pytest.raises(sqlite3.IntegrityError, match="appointment_overlap"):
                s.conn.execute(
                    "INSERT INTO appointments (id, start_time, end_time, owner_email, owner_name, "
                    "status, created_at, updated_at) VALUES (?, ?, ?, ?, ?, 'confirmed', ?, ?)",
                    (
                        "apt_raw",
                        "2024-12-15T10:30:00.000000Z",
                        "2024-12-15T11:30:00.000000Z",
                        "jane@example.com",
                        "Jane",
                        "2024-12-01T00:00:00.000000Z",
                        "2024-12-01T00:00:00.000000Z",
                    ),
                )
        finally:
            s.close()

    def test_failed_commit_rolls_back_and_store_recovers(self, tmp_path):
        path = tmp_path / "appointments.db"
        s = SQLiteIntervalStore(path, busy_timeout_sec=0.1)
        reader = sqlite3.connect(str(path), isolation_level=None)
        try:
            # An open read transaction keeps a shared lock, so COMMIT cannot finish
            reader.execute("BEGIN")
            reader.execute("SELECT * FROM appointments").fetchall()
            with pytest.raises(StoreError, match="locked"):
                with s.transaction():
                    s.insert(make_appointment("apt_1", span("2024-12-15", "10:00", "11:00")))

            assert not s.conn.in_transaction
            assert s.get_by_id("apt_1") is None

            reader.execute("ROLLBACK")
            with s.transaction():
                s.insert(make_appointment("apt_2", span("2024-12-15", "12:00", "13:00")))
            assert s.get_by_id("apt_2") is not None
        finally:
            reader.close()
            s.close()


class TestCreateStore:
    def test_memory(self):
        assert isinstance(create_store("memory"), InMemoryIntervalStore)

    def test_sqlite(self, tmp_path):
        s = create_store("sqlite", str(tmp_path / "a.db"))
        assert isinstance(s, SQLiteIntervalStore)
        s.close()

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown store backend"):
            create_store("redis")
