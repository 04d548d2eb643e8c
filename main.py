"""
Scheduling engine command-line entry point.

Usage:
    python main.py slots --date 2024-12-15
    python main.py book --start 2024-12-15T10:00Z --end 2024-12-15T11:00Z \
        --email john@example.com --name "John Doe"
    python main.py --db ./appointments.db month --year 2024 --month 12
"""

import sys

from appointment_scheduler.cli import main

if __name__ == "__main__":
    sys.exit(main())
