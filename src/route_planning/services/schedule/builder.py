"""Initial itinerary construction from stops and saved route state."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Sequence

from ...models.domain import OperationalItem, RouteContext, VisitOverride
from .clock import parse_planned_date
from .models import BuildResult, ScheduleOptions, VisitPlan
from .reflow import reflow

logger = logging.getLogger(__name__)


def plan_visits(
    context: RouteContext,
    overrides: Sequence[VisitOverride],
    options: ScheduleOptions,
) -> list[VisitPlan]:
    """Decide each routable stop's visit window source.

    The first stop starts at the configured day start; with
    ``first_stop_uses_day_start`` enabled that holds even when it has a saved
    visit time. Later stops use their saved visit time verbatim or follow the
    running clock with the default visit length.
    """

    day_start = datetime.combine(parse_planned_date(context.key.planned_date), options.day_start)
    by_stop = {override.stop_id: override for override in overrides}
    default_length = timedelta(minutes=options.default_visit_minutes)

    plans: list[VisitPlan] = []
    for index, stop in enumerate(context.routable_stops):
        override = by_stop.get(stop.stop_id)
        if index == 0 and (override is None or options.first_stop_uses_day_start):
            plans.append(
                VisitPlan(
                    stop=stop,
                    duration_minutes=options.default_visit_minutes,
                    start=day_start,
                    end=day_start + default_length,
                )
            )
        elif override is not None:
            plans.append(
                VisitPlan(
                    stop=stop,
                    duration_minutes=int((override.end - override.start).total_seconds() // 60),
                    start=override.start,
                    end=override.end,
                    pinned=True,
                )
            )
        else:
            plans.append(VisitPlan(stop=stop, duration_minutes=options.default_visit_minutes))
    return plans


def build_schedule(
    context: RouteContext,
    overrides: Sequence[VisitOverride],
    operations: Sequence[OperationalItem],
    options: ScheduleOptions,
) -> BuildResult:
    """Pure build of a day itinerary.

    Rebuilding from the same saved state, once the returned ``shifted`` visit
    times have been saved, reproduces the same items.
    """

    excluded = context.excluded_stop_count
    if excluded:
        logger.warning(
            "Excluded %d stop(s) without coordinates from route %s/%s",
            excluded,
            context.key.manager_id,
            context.key.planned_date,
        )

    if not context.routable_stops:
        return BuildResult(items=(), shifted=(), excluded_stop_count=excluded)

    plans = plan_visits(context, overrides, options)
    result = reflow(plans, operations, context.home, options.estimator)
    return BuildResult(items=result.items, shifted=result.shifted, excluded_stop_count=excluded)
