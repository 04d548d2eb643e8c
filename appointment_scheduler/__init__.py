"""Appointment slot-conflict and availability engine."""

__version__ = "0.1.0"
