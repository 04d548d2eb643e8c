"""
Centralized configuration with environment variable overrides.

Operating hours, slot sizing, field limits and store selection are all
configurable here. Nothing is hardcoded in the scheduling logic.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, time

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

STORE_BACKENDS = ("memory", "sqlite")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _parse_clock(name: str, value: str) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError:
        raise ValueError(f"{name} must be HH:MM, got {value!r}") from None


@dataclass(frozen=True)
class ScheduleConfig:
    """Default operating-hours template used when callers do not pass one."""

    open_time: str = os.getenv("SCHEDULE_OPEN_TIME", "09:00")
    close_time: str = os.getenv("SCHEDULE_CLOSE_TIME", "17:00")
    slot_duration_minutes: int = _safe_int("SLOT_DURATION_MINUTES", "60")
    timezone: str = os.getenv("SCHEDULE_TIMEZONE", "UTC")
    max_suggestions: int = _safe_int("MAX_SUGGESTIONS", "5")


@dataclass(frozen=True)
class LimitsConfig:
    """Field and slot size limits."""

    min_slot_minutes: int = _safe_int("MIN_SLOT_MINUTES", "15")
    max_slot_minutes: int = _safe_int("MAX_SLOT_MINUTES", "480")
    max_name_length: int = _safe_int("MAX_NAME_LENGTH", "100")
    max_notes_length: int = _safe_int("MAX_NOTES_LENGTH", "500")
    max_upcoming_results: int = _safe_int("MAX_UPCOMING_RESULTS", "100")


@dataclass(frozen=True)
class StoreConfig:
    """Backing store selection."""

    backend: str = os.getenv("STORE_BACKEND", "memory")
    database_path: str = os.getenv("DATABASE_PATH", "./appointments.db")
    busy_timeout_sec: float = _safe_float("STORE_BUSY_TIMEOUT_SEC", "5.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    opens = _parse_clock("SCHEDULE_OPEN_TIME", config.schedule.open_time)
    closes = _parse_clock("SCHEDULE_CLOSE_TIME", config.schedule.close_time)
    if closes <= opens:
        raise ValueError(
            "SCHEDULE_CLOSE_TIME must be after SCHEDULE_OPEN_TIME, "
            f"got {config.schedule.open_time}-{config.schedule.close_time}"
        )
    if config.limits.min_slot_minutes < 1:
        raise ValueError(
            f"MIN_SLOT_MINUTES must be >= 1, got {config.limits.min_slot_minutes}"
        )
    if config.limits.max_slot_minutes < config.limits.min_slot_minutes:
        raise ValueError(
            "MAX_SLOT_MINUTES must be >= MIN_SLOT_MINUTES, "
            f"got {config.limits.max_slot_minutes}"
        )
    if not (
        config.limits.min_slot_minutes
        <= config.schedule.slot_duration_minutes
        <= config.limits.max_slot_minutes
    ):
        raise ValueError(
            "SLOT_DURATION_MINUTES must be between MIN_SLOT_MINUTES and MAX_SLOT_MINUTES, "
            f"got {config.schedule.slot_duration_minutes}"
        )
    if config.schedule.max_suggestions < 1:
        raise ValueError(
            f"MAX_SUGGESTIONS must be >= 1, got {config.schedule.max_suggestions}"
        )

    for limit_name, limit_value in [
        ("MAX_NAME_LENGTH", config.limits.max_name_length),
        ("MAX_NOTES_LENGTH", config.limits.max_notes_length),
        ("MAX_UPCOMING_RESULTS", config.limits.max_upcoming_results),
    ]:
        if limit_value < 1:
            raise ValueError(f"{limit_name} must be >= 1, got {limit_value}")

    if config.store.backend not in STORE_BACKENDS:
        raise ValueError(
            f"STORE_BACKEND must be one of {STORE_BACKENDS}, got {config.store.backend!r}"
        )
    if config.store.busy_timeout_sec <= 0:
        raise ValueError(
            f"STORE_BUSY_TIMEOUT_SEC must be > 0, got {config.store.busy_timeout_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info(
        "Configuration loaded: hours %s-%s %s, store=%s",
        config.schedule.open_time,
        config.schedule.close_time,
        config.schedule.timezone,
        config.store.backend,
    )
    return config


# Singleton instance
settings = load_config()
