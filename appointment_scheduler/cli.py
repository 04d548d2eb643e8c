"""
Command-line front end for the scheduling engine.

Reads and writes the SQLite file at DATABASE_PATH (or ``--db``) so bookings
survive between invocations, and prints JSON results. STORE_BACKEND=memory
is ignored here since each command runs in a fresh process.

Usage:
    python main.py book --start 2024-12-15T10:00Z --end 2024-12-15T11:00Z \\
        --email john@example.com --name "John Doe"
    python main.py slots --date 2024-12-15 --timezone Europe/Istanbul
    python main.py month --year 2024 --month 12
    python main.py cancel apt_1a2b3c4d5e6f
"""

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from appointment_scheduler.config import settings
from appointment_scheduler.scheduling.engine import SchedulingEngine, build_engine
from appointment_scheduler.store import SQLiteIntervalStore
from appointment_scheduler.tools import availability, booking

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Book appointments and inspect availability."
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to a SQLite database (default: DATABASE_PATH).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    book = commands.add_parser("book", help="Create a confirmed appointment.")
    book.add_argument("--start", required=True, help="ISO-8601 start with offset.")
    book.add_argument("--end", required=True, help="ISO-8601 end with offset.")
    book.add_argument("--email", required=True)
    book.add_argument("--name", required=True)
    book.add_argument("--notes", default=None)

    update = commands.add_parser("update", help="Change an appointment's time or notes.")
    update.add_argument("id")
    update.add_argument("--start", default=None)
    update.add_argument("--end", default=None)
    update.add_argument("--notes", default=None)

    cancel = commands.add_parser("cancel", help="Cancel an appointment.")
    cancel.add_argument("id")

    reschedule = commands.add_parser("reschedule", help="Move an appointment to a new time.")
    reschedule.add_argument("id")
    reschedule.add_argument("--start", required=True)
    reschedule.add_argument("--end", required=True)
    reschedule.add_argument("--notes", default=None)

    show = commands.add_parser("show", help="Print one appointment.")
    show.add_argument("id")

    upcoming = commands.add_parser("upcoming", help="List an owner's next appointments.")
    upcoming.add_argument("--email", required=True)
    upcoming.add_argument("--limit", type=int, default=10)

    slots = commands.add_parser("slots", help="List the slots of one day.")
    slots.add_argument("--date", required=True, help="Calendar date, YYYY-MM-DD.")
    slots.add_argument("--timezone", default=settings.schedule.timezone)
    slots.add_argument("--slot-minutes", type=int, default=None)

    month = commands.add_parser("month", help="Summarize a month.")
    month.add_argument("--year", type=int, required=True)
    month.add_argument("--month", type=int, required=True)
    month.add_argument("--timezone", default=settings.schedule.timezone)

    return parser


def _dispatch(args: argparse.Namespace, engine: SchedulingEngine) -> dict:
    if args.command == "book":
        return booking.create_appointment({
            "startTime": args.start,
            "endTime": args.end,
            "ownerEmail": args.email,
            "ownerName": args.name,
            "notes": args.notes,
        }, engine=engine)
    if args.command == "update":
        payload = {"id": args.id, "notes": args.notes}
        if args.start or args.end:
            payload.update(startTime=args.start, endTime=args.end)
        return booking.update_appointment(payload, engine=engine)
    if args.command == "cancel":
        return booking.cancel_appointment(args.id, engine=engine)
    if args.command == "reschedule":
        return booking.reschedule_appointment({
            "id": args.id,
            "startTime": args.start,
            "endTime": args.end,
            "notes": args.notes,
        }, engine=engine)
    if args.command == "show":
        return booking.get_appointment(args.id, engine=engine)
    if args.command == "upcoming":
        return booking.list_upcoming_appointments(
            {"ownerEmail": args.email, "limit": args.limit}, engine=engine
        )
    if args.command == "slots":
        return availability.check_availability({
            "date": args.date,
            "timezone": args.timezone,
            "slotMinutes": args.slot_minutes,
        }, engine=engine)
    return availability.get_month_overview({
        "year": args.year,
        "month": args.month,
        "timezone": args.timezone,
    }, engine=engine)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    store = SQLiteIntervalStore(
        args.db or settings.store.database_path, settings.store.busy_timeout_sec
    )
    engine = build_engine(store, settings)
    try:
        result = _dispatch(args, engine)
    finally:
        engine.close()

    sys.stdout.write(json.dumps(result, indent=2) + "\n")
    if not result.get("success"):
        logger.error("%s failed: %s", args.command, result.get("message"))
        return 1
    return 0
