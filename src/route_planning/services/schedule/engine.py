"""Recalculation of a day itinerary after live edits."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from ...config import settings
from ...models.domain import (
    ItemKind,
    OperationalItem,
    RouteContext,
    ScheduleItem,
    Timeline,
    VisitOverride,
)
from ...persistence.gateway import PersistenceError, PersistenceGateway
from .builder import build_schedule
from .clock import at_clock
from .models import ScheduleOptions, VisitPlan
from .reflow import reflow
from .timeline import assert_invariants

logger = logging.getLogger(__name__)

ClockValue = datetime | time | str


class RecalculationEngine:
    """Builds itineraries and applies single edits to them.

    The engine keeps no route state between calls: the caller owns the
    ``Timeline`` value and the gateway owns everything that must survive a
    rebuild. Calls are synchronous and assume the caller serializes edits to
    the same route.
    """

    def __init__(self, gateway: PersistenceGateway, options: Optional[ScheduleOptions] = None) -> None:
        self.gateway = gateway
        self.options = options or ScheduleOptions.from_settings(settings)

    def build(self, context: RouteContext) -> Timeline:
        """Build from the saved route state and save any visit times it had to shift."""

        return self._build(context, version=1)

    def rebuild(self, timeline: Timeline) -> Timeline:
        return self._build(timeline.context, version=timeline.version + 1)

    def _build(self, context: RouteContext, *, version: int) -> Timeline:
        key = context.key
        overrides = self.gateway.get_visit_overrides(key)
        operations = self.gateway.get_operational_items(key)
        result = build_schedule(context, overrides, operations, self.options)
        timeline = Timeline(context=context, items=result.items, version=version)

        pinned = {override.stop_id: override for override in overrides}
        pinned.update({override.stop_id: override for override in result.shifted})
        assert_invariants(timeline.items, home_present=context.home is not None, overrides=pinned)
        self._save_visit_times(timeline, result.shifted)

        logger.info(
            "Built route %s/%s v%d: %d items, %d operational, %d shifted, %d excluded",
            key.manager_id,
            key.planned_date,
            version,
            len(timeline.items),
            len(operations),
            len(result.shifted),
            result.excluded_stop_count,
        )
        return timeline

    def pin_visit_time(self, timeline: Timeline, stop_id: str, start: ClockValue, end: ClockValue) -> Timeline:
        """Pin a visit window and reflow every item after it."""

        planned_date = timeline.context.key.planned_date
        start_at, end_at = at_clock(planned_date, start), at_clock(planned_date, end)
        self._check_range(start_at, end_at)
        if timeline.visit_for(stop_id) is None:
            raise ValueError(f"Stop '{stop_id}' is not on this route.")

        pin = VisitOverride(stop_id=stop_id, start=start_at, end=end_at)
        plans = self._plans_from(timeline, pin)
        # Leave-home only follows an edit to the first visit.
        first_edited = plans[0].stop.stop_id == stop_id
        result = reflow(
            plans,
            timeline.operational_items(),
            timeline.context.home,
            self.options.estimator,
            leave_home=None if first_edited else self._leave_home(timeline),
        )
        updated = replace(timeline, items=result.items, version=timeline.version + 1)

        to_save = {stop_id: pin}
        to_save.update({override.stop_id: override for override in result.shifted})
        assert_invariants(updated.items, home_present=updated.context.home is not None, overrides=to_save)
        self._save_visit_times(updated, to_save.values())

        logger.info(
            "Pinned visit %s to %s-%s on route %s/%s (v%d)",
            stop_id,
            start_at.strftime("%H:%M"),
            end_at.strftime("%H:%M"),
            timeline.context.key.manager_id,
            planned_date,
            updated.version,
        )
        return updated

    def add_operational_item(
        self,
        timeline: Timeline,
        title: str,
        start: ClockValue,
        duration_minutes: int,
        location: Optional[str] = None,
    ) -> Timeline:
        """Insert a fixed block and move any visit it overlaps to start when it ends."""

        start_at = at_clock(timeline.context.key.planned_date, start)
        self._check_range(start_at, start_at + timedelta(minutes=duration_minutes))
        item = OperationalItem(title=title, start=start_at, duration_minutes=duration_minutes, location=location or None)

        try:
            item_id = self.gateway.save_operational_item(timeline.context.key, item)
        except PersistenceError as exc:
            exc.timeline = self._with_operation(timeline, item)[0]
            logger.error(f"Failed to save operational item '{title}': {exc}")
            raise

        updated, shifted = self._with_operation(timeline, replace(item, item_id=item_id))
        self._save_visit_times(updated, shifted)

        logger.info(
            "Added operational item '%s' at %s (%d min), %d visit(s) shifted (v%d)",
            title,
            start_at.strftime("%H:%M"),
            duration_minutes,
            len(shifted),
            updated.version,
        )
        return updated

    def edit_operational_item(
        self,
        timeline: Timeline,
        item_id: str,
        title: str,
        start: ClockValue,
        duration_minutes: int,
        location: Optional[str] = None,
    ) -> Timeline:
        """Save the edited block, then rebuild the whole day from the store."""

        self._require_operation(timeline, item_id)
        start_at = at_clock(timeline.context.key.planned_date, start)
        self._check_range(start_at, start_at + timedelta(minutes=duration_minutes))
        item = OperationalItem(
            title=title,
            start=start_at,
            duration_minutes=duration_minutes,
            location=location or None,
            item_id=item_id,
        )
        try:
            self.gateway.update_operational_item(item)
        except PersistenceError as exc:
            exc.timeline = timeline
            logger.error(f"Failed to update operational item '{item_id}': {exc}")
            raise
        return self.rebuild(timeline)

    def delete_operational_item(self, timeline: Timeline, item_id: str) -> Timeline:
        """Remove a block, then rebuild the whole day from the store."""

        self._require_operation(timeline, item_id)
        try:
            self.gateway.delete_operational_item(item_id)
        except PersistenceError as exc:
            exc.timeline = timeline
            logger.error(f"Failed to delete operational item '{item_id}': {exc}")
            raise
        return self.rebuild(timeline)

    def _with_operation(self, timeline: Timeline, item: OperationalItem) -> tuple[Timeline, tuple[VisitOverride, ...]]:
        operations = [*timeline.operational_items(), item]
        result = reflow(
            self._plans_from(timeline),
            operations,
            timeline.context.home,
            self.options.estimator,
            leave_home=self._leave_home(timeline),
        )
        updated = replace(timeline, items=result.items, version=timeline.version + 1)
        assert_invariants(
            updated.items,
            home_present=updated.context.home is not None,
            overrides={override.stop_id: override for override in result.shifted},
        )
        return updated, result.shifted

    def _plans_from(self, timeline: Timeline, pin: Optional[VisitOverride] = None) -> list[VisitPlan]:
        """Derive visit plans from the current itinerary.

        Pinned visits and the first visit stay where they are, the edited visit
        takes its new window, and every other visit keeps its own length and
        follows the clock.
        """

        plans: list[VisitPlan] = []
        for index, stop in enumerate(timeline.context.routable_stops):
            visit = timeline.visit_for(stop.stop_id)
            if pin is not None and stop.stop_id == pin.stop_id:
                plans.append(
                    VisitPlan(
                        stop=stop,
                        duration_minutes=int((pin.end - pin.start).total_seconds() // 60),
                        start=pin.start,
                        end=pin.end,
                        pinned=True,
                    )
                )
            elif visit is None:
                plans.append(VisitPlan(stop=stop, duration_minutes=self.options.default_visit_minutes))
            elif visit.pinned or index == 0:
                plans.append(
                    VisitPlan(
                        stop=stop,
                        duration_minutes=visit.duration_minutes or 0,
                        start=visit.start,
                        end=visit.end,
                        pinned=visit.pinned,
                    )
                )
            else:
                plans.append(VisitPlan(stop=stop, duration_minutes=visit.duration_minutes or 0))
        return plans

    @staticmethod
    def _leave_home(timeline: Timeline) -> Optional[ScheduleItem]:
        for item in timeline.items:
            if item.kind is ItemKind.LEAVE_HOME:
                return item
        return None

    @staticmethod
    def _require_operation(timeline: Timeline, item_id: str) -> None:
        if not any(op.item_id == item_id for op in timeline.operational_items()):
            raise ValueError(f"Operational item '{item_id}' is not on this route.")

    def _check_range(self, start: datetime, end: datetime) -> None:
        if self.options.validate_time_ranges and end < start:
            raise ValueError(
                f"End time {end.strftime('%H:%M')} is before start time {start.strftime('%H:%M')}."
            )

    def _save_visit_times(self, timeline: Timeline, overrides: Iterable[VisitOverride]) -> None:
        key = timeline.context.key
        for override in overrides:
            try:
                self.gateway.save_visit_override(key, override)
            except PersistenceError as exc:
                exc.timeline = timeline
                logger.error(f"Failed to save visit time for stop '{override.stop_id}': {exc}")
                raise
