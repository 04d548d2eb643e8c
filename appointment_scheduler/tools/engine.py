"""
Process-wide engine used by the tools functions.

In a web deployment the HTTP layer would build one engine at startup and
pass it in explicitly; the module default keeps the tools callable on their
own from the CLI and tests.
"""

import logging
from typing import Optional

from appointment_scheduler.scheduling.engine import SchedulingEngine, build_engine
from appointment_scheduler.store import IntervalStore

logger = logging.getLogger(__name__)

_engine: Optional[SchedulingEngine] = None


def get_engine() -> SchedulingEngine:
    global _engine
    if _engine is None:
        _engine = build_engine()
        logger.debug("Built default scheduling engine on %s", type(_engine.store).__name__)
    return _engine


def reset(store: Optional[IntervalStore] = None) -> SchedulingEngine:
    """Replace the default engine. Used by test fixtures for isolation."""
    global _engine
    if _engine is not None:
        _engine.close()
    _engine = build_engine(store)
    return _engine
