"""SQLite appointment store.

The exclusion rule lives in BEFORE INSERT/UPDATE triggers so the database
rejects an overlapping confirmed pair even if a writer skips the
coordinator. Timestamps are stored as fixed-width UTC strings, which keeps
lexical and chronological order identical for range comparisons.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from appointment_scheduler.errors import (
    ConflictKind,
    NotFoundError,
    StoreConflictError,
    StoreError,
)
from appointment_scheduler.schemas.appointment_schema import Appointment, AppointmentPatch
from appointment_scheduler.schemas.interval import TimeInterval
from appointment_scheduler.store.base import IntervalStore
from appointment_scheduler.utils import utc_now

logger = logging.getLogger(__name__)

_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_OVERLAP_MESSAGE = "appointment_overlap"

_SCHEMA = f"""
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        owner_email TEXT NOT NULL,
        owner_name TEXT NOT NULL,
        notes TEXT,
        status TEXT NOT NULL DEFAULT 'confirmed'
            CHECK(status IN ('confirmed', 'cancelled', 'rescheduled')),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        rescheduled_from_id TEXT,
        rescheduled_to_id TEXT,
        CHECK(end_time > start_time)
    );

    CREATE INDEX IF NOT EXISTS idx_appointments_confirmed_range
        ON appointments(start_time, end_time) WHERE status = 'confirmed';
    CREATE INDEX IF NOT EXISTS idx_appointments_owner
        ON appointments(owner_email);

    CREATE TRIGGER IF NOT EXISTS appointments_no_overlap_insert
    BEFORE INSERT ON appointments
    WHEN NEW.status = 'confirmed'
    BEGIN
        SELECT RAISE(ABORT, '{_OVERLAP_MESSAGE}')
        WHERE EXISTS (
            SELECT 1 FROM appointments
            WHERE id != NEW.id
              AND status = 'confirmed'
              AND start_time < NEW.end_time
              AND NEW.start_time < end_time
        );
    END;

    CREATE TRIGGER IF NOT EXISTS appointments_no_overlap_update
    BEFORE UPDATE OF start_time, end_time, status ON appointments
    WHEN NEW.status = 'confirmed'
    BEGIN
        SELECT RAISE(ABORT, '{_OVERLAP_MESSAGE}')
        WHERE EXISTS (
            SELECT 1 FROM appointments
            WHERE id != NEW.id
              AND status = 'confirmed'
              AND start_time < NEW.end_time
              AND NEW.start_time < end_time
        );
    END;
"""

_COLUMNS = (
    "id, start_time, end_time, owner_email, owner_name, notes, status, "
    "created_at, updated_at, rescheduled_from_id, rescheduled_to_id"
)


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(_TS_FORMAT)


def _parse_ts(value: str) -> datetime:
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=timezone.utc)


def _row_to_appointment(row: sqlite3.Row) -> Appointment:
    return Appointment(
        id=row["id"],
        start_time=_parse_ts(row["start_time"]),
        end_time=_parse_ts(row["end_time"]),
        owner_email=row["owner_email"],
        owner_name=row["owner_name"],
        notes=row["notes"],
        status=row["status"],
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
        rescheduled_from_id=row["rescheduled_from_id"],
        rescheduled_to_id=row["rescheduled_to_id"],
    )


class SQLiteIntervalStore(IntervalStore):
    """SQLite-backed store. Writers are serialized with BEGIN IMMEDIATE."""

    def __init__(self, db_path: str | Path = ":memory:", busy_timeout_sec: float = 5.0):
        """Open (and create if needed) the database.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory.
            busy_timeout_sec: How long to wait for another process's write lock.
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(
            self.db_path,
            timeout=busy_timeout_sec,
            check_same_thread=False,
            isolation_level=None,
        )
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        self.init_schema()

    def init_schema(self) -> None:
        """Create tables, indexes and triggers if they don't exist."""
        with self._lock:
            self.conn.executescript(_SCHEMA)

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                logger.debug("Transaction rolled back on %s", self.db_path)
                raise
            else:
                try:
                    self._execute("COMMIT")
                except StoreError:
                    if self.conn.in_transaction:
                        self.conn.execute("ROLLBACK")
                    logger.warning("Commit failed on %s; transaction rolled back", self.db_path)
                    raise
            finally:
                self._depth = 0

    def _execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.IntegrityError as exc:
            message = str(exc)
            if _OVERLAP_MESSAGE in message:
                raise StoreConflictError(ConflictKind.DUPLICATE_OVERLAP, message) from exc
            if "UNIQUE constraint failed: appointments.id" in message:
                raise StoreConflictError(ConflictKind.DUPLICATE_ID, message) from exc
            raise StoreError(f"Constraint violation: {message}") from exc
        except sqlite3.OperationalError as exc:
            raise StoreError(f"Database error: {exc}") from exc

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._execute(
                f"INSERT INTO appointments ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    appointment.id,
                    _ts(appointment.start_time),
                    _ts(appointment.end_time),
                    appointment.owner_email,
                    appointment.owner_name,
                    appointment.notes,
                    appointment.status.value,
                    _ts(appointment.created_at),
                    _ts(appointment.updated_at),
                    appointment.rescheduled_from_id,
                    appointment.rescheduled_to_id,
                ),
            )
        return appointment

    def update(self, appointment_id: str, patch: AppointmentPatch) -> Appointment:
        changes = patch.changes()
        changes["updated_at"] = changes.get("updated_at") or utc_now()

        assignments = []
        params: list = []
        for column, value in changes.items():
            if isinstance(value, datetime):
                value = _ts(value)
            elif isinstance(value, Enum):
                value = value.value
            assignments.append(f"{column} = ?")
            params.append(value)
        params.append(appointment_id)

        with self._lock:
            cursor = self._execute(
                f"UPDATE appointments SET {', '.join(assignments)} WHERE id = ?", params
            )
            if cursor.rowcount == 0:
                raise NotFoundError(appointment_id)
            row = self._execute(
                f"SELECT {_COLUMNS} FROM appointments WHERE id = ?", (appointment_id,)
            ).fetchone()
        return _row_to_appointment(row)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_by_id(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            row = self._execute(
                f"SELECT {_COLUMNS} FROM appointments WHERE id = ?", (appointment_id,)
            ).fetchone()
        return _row_to_appointment(row) if row is not None else None

    def find_overlapping(
        self, interval: TimeInterval, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        query = (
            f"SELECT {_COLUMNS} FROM appointments "
            "WHERE status = 'confirmed' AND start_time < ? AND ? < end_time"
        )
        params: list = [_ts(interval.end), _ts(interval.start)]
        if exclude_id:
            query += " AND id != ?"
            params.append(exclude_id)
        query += " ORDER BY start_time, id"
        with self._lock:
            rows = self._execute(query, params).fetchall()
        return [_row_to_appointment(row) for row in rows]

    def list_by_date_range(self, start: datetime, end: datetime) -> list[Appointment]:
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM appointments "
                "WHERE status = 'confirmed' AND start_time < ? AND ? < end_time "
                "ORDER BY start_time, id",
                (_ts(end), _ts(start)),
            ).fetchall()
        return [_row_to_appointment(row) for row in rows]

    def list_by_owner(self, owner_email: str) -> list[Appointment]:
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM appointments WHERE owner_email = ? "
                "ORDER BY start_time, id",
                (owner_email,),
            ).fetchall()
        return [_row_to_appointment(row) for row in rows]

    def list_upcoming(self, owner_email: str, start: datetime, limit: int) -> list[Appointment]:
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM appointments "
                "WHERE owner_email = ? AND status = 'confirmed' AND start_time >= ? "
                "ORDER BY start_time, id LIMIT ?",
                (owner_email, _ts(start), limit),
            ).fetchall()
        return [_row_to_appointment(row) for row in rows]
