"""Wiring of store, detector, planner and coordinator from configuration."""

from dataclasses import dataclass
from typing import Optional

from appointment_scheduler.config import AppConfig, settings
from appointment_scheduler.scheduling.availability import AvailabilityPlanner
from appointment_scheduler.scheduling.conflict_detector import ConflictDetector
from appointment_scheduler.scheduling.coordinator import BookingCoordinator
from appointment_scheduler.store import IntervalStore, create_store


@dataclass
class SchedulingEngine:
    """The four collaborating components sharing one store."""
    store: IntervalStore
    detector: ConflictDetector
    planner: AvailabilityPlanner
    coordinator: BookingCoordinator

    def close(self) -> None:
        self.store.close()


def build_engine(
    store: Optional[IntervalStore] = None, config: AppConfig = settings
) -> SchedulingEngine:
    """Assemble an engine, creating the configured store when none is given."""
    if store is None:
        store = create_store(
            config.store.backend,
            config.store.database_path,
            config.store.busy_timeout_sec,
        )
    detector = ConflictDetector(store)
    return SchedulingEngine(
        store=store,
        detector=detector,
        planner=AvailabilityPlanner(detector, config.limits),
        coordinator=BookingCoordinator(store, detector, config.limits),
    )
