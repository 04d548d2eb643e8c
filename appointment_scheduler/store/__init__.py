from appointment_scheduler.store.base import IntervalStore
from appointment_scheduler.store.memory import InMemoryIntervalStore
from appointment_scheduler.store.sqlite import SQLiteIntervalStore


def create_store(backend: str = "memory", database_path: str = ":memory:",
                 busy_timeout_sec: float = 5.0) -> IntervalStore:
    """Build the store named by ``backend`` ("memory" or "sqlite")."""
    if backend == "memory":
        return InMemoryIntervalStore()
    if backend == "sqlite":
        return SQLiteIntervalStore(database_path, busy_timeout_sec=busy_timeout_sec)
    raise ValueError(f"Unknown store backend: {backend!r}")


__all__ = [
    "IntervalStore",
    "InMemoryIntervalStore",
    "SQLiteIntervalStore",
    "create_store",
]
