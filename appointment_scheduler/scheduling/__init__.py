from appointment_scheduler.scheduling.availability import AvailabilityPlanner
from appointment_scheduler.scheduling.conflict_detector import ConflictDetector
from appointment_scheduler.scheduling.coordinator import BookingCoordinator
from appointment_scheduler.scheduling.engine import SchedulingEngine, build_engine
from appointment_scheduler.scheduling.lifecycle import StatusTrigger, next_status

__all__ = [
    "AvailabilityPlanner",
    "ConflictDetector",
    "BookingCoordinator",
    "SchedulingEngine",
    "build_engine",
    "StatusTrigger",
    "next_status",
]
