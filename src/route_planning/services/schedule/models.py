"""Value types shared by the schedule builder and recalculation engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ...config import Settings
from ...models.domain import ScheduleItem, Stop, VisitOverride
from ..geospatial import TravelEstimator


@dataclass(slots=True, frozen=True)
class ScheduleOptions:
    day_start: time = time(9, 0)
    default_visit_minutes: int = 120
    estimator: TravelEstimator = TravelEstimator()
    first_stop_uses_day_start: bool = True
    validate_time_ranges: bool = False

    @classmethod
    def from_settings(cls, config: Settings) -> "ScheduleOptions":
        return cls(
            day_start=config.day_start,
            default_visit_minutes=config.default_visit_minutes,
            estimator=TravelEstimator(
                average_speed_mph=config.average_speed_mph,
                buffer_minutes=config.travel_buffer_minutes,
            ),
            first_stop_uses_day_start=config.first_stop_uses_day_start,
            validate_time_ranges=config.validate_time_ranges,
        )


@dataclass(slots=True, frozen=True)
class VisitPlan:
    """How one stop's visit window is decided during a reflow.

    A plan with ``start``/``end`` is fixed in place: either pinned by a saved
    visit time or anchored (the first stop of the day). A plan without them
    follows the running clock and lasts ``duration_minutes``.
    """

    stop: Stop
    duration_minutes: int
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    pinned: bool = False

    @property
    def is_fixed(self) -> bool:
        return self.start is not None and self.end is not None


@dataclass(slots=True, frozen=True)
class ReflowResult:
    items: tuple[ScheduleItem, ...]
    shifted: tuple[VisitOverride, ...] = ()


@dataclass(slots=True, frozen=True)
class BuildResult:
    items: tuple[ScheduleItem, ...]
    shifted: tuple[VisitOverride, ...]
    excluded_stop_count: int
