"""Route schedule synthesis: build, reflow and recalculate a day itinerary."""

from .builder import build_schedule
from .engine import RecalculationEngine
from .models import BuildResult, ScheduleOptions
from .timeline import ScheduleInvariantError, assert_invariants, order_items

__all__ = [
    "build_schedule",
    "RecalculationEngine",
    "BuildResult",
    "ScheduleOptions",
    "ScheduleInvariantError",
    "assert_invariants",
    "order_items",
]
