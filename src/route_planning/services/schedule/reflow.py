"""Forward reflow of visits, travel legs and home legs around fixed blocks.

Both the initial build and the incremental edits funnel through ``reflow``;
they differ only in how they derive the per-stop ``VisitPlan`` list.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...models.domain import (
    ItemKind,
    ManagerHome,
    OperationalItem,
    ScheduleItem,
    Stop,
    VisitOverride,
)
from ..geospatial import TravelEstimator
from .models import ReflowResult, VisitPlan
from .timeline import blocking_operations, order_items

logger = logging.getLogger(__name__)


def departure_time(
    ready: datetime,
    travel_minutes: int,
    operations: Sequence[OperationalItem],
    arrive_by: Optional[datetime] = None,
) -> datetime:
    """Pick when a travel leg leaves.

    The leg never leaves before ``ready`` and never runs through an
    operational block. With ``arrive_by`` it leaves as late as still lets it
    arrive on time; when that is impossible it leaves as early as it can.
    """

    travel = timedelta(minutes=travel_minutes)
    if arrive_by is not None:
        depart = arrive_by - travel
        while depart >= ready:
            blocking = blocking_operations(depart, depart + travel, operations)
            if not blocking:
                return depart
            depart = min(op.start for op in blocking) - travel

    depart = ready
    while True:
        blocking = blocking_operations(depart, depart + travel, operations)
        if not blocking:
            return depart
        depart = max(op.end for op in blocking)


def clear_of_operations(
    start: datetime, end: datetime, operations: Sequence[OperationalItem]
) -> tuple[datetime, datetime]:
    """Push a visit window past every operational block it overlaps, keeping its length."""

    while True:
        blocking = blocking_operations(start, end, operations)
        if not blocking:
            return start, end
        shift = max(op.end for op in blocking) - start
        start, end = start + shift, end + shift


def travel_item(
    origin: Stop,
    destination: Optional[Stop],
    depart: datetime,
    miles: float,
    minutes: int,
) -> ScheduleItem:
    if destination is None:
        item_id = f"travel-{origin.stop_id}-home"
        location = f"{origin.label} → Home"
    else:
        item_id = f"travel-{origin.stop_id}-{destination.stop_id}"
        location = f"{origin.label} → {destination.label}"
    return ScheduleItem(
        item_id=item_id,
        kind=ItemKind.TRAVEL,
        start=depart,
        location=location,
        stop_id=origin.stop_id,
        destination_stop_id=destination.stop_id if destination else None,
        travel_minutes=minutes,
        distance_miles=miles,
    )


def operational_schedule_item(op: OperationalItem, index: int = 0) -> ScheduleItem:
    return ScheduleItem(
        item_id=f"operational-{op.item_id or f'new-{index}'}",
        kind=ItemKind.OPERATIONAL,
        start=op.start,
        end=op.end,
        location=op.location or "",
        operational_id=op.item_id,
        title=op.title,
    )


def leave_home_item(home: ManagerHome, first_stop: Stop, first_start: datetime, estimator: TravelEstimator) -> ScheduleItem:
    miles, minutes = estimator.leg(home.coordinates, first_stop.coordinates)
    return ScheduleItem(
        item_id="leave-home",
        kind=ItemKind.LEAVE_HOME,
        start=first_start - timedelta(minutes=minutes),
        location=home.address,
        destination_stop_id=first_stop.stop_id,
        travel_minutes=minutes,
        distance_miles=miles,
    )


def reflow(
    plans: Sequence[VisitPlan],
    operations: Sequence[OperationalItem],
    home: Optional[ManagerHome],
    estimator: TravelEstimator,
    *,
    leave_home: Optional[ScheduleItem] = None,
) -> ReflowResult:
    """Lay out a full itinerary from ordered visit plans.

    Visits overlapping an operational block are moved to start when the block
    ends, and fixed visits that an earlier delay makes unreachable are moved
    to the travel arrival. Either way the visit keeps its length and is
    reported in ``shifted`` so the caller can save it as a visit time.
    ``leave_home`` is reused verbatim when given; otherwise it is derived
    from the first plan's start.
    """

    ordered_ops = sorted(operations, key=lambda op: op.start)
    items: list[ScheduleItem] = [operational_schedule_item(op, index) for index, op in enumerate(ordered_ops)]
    shifted: list[VisitOverride] = []
    if not plans:
        return ReflowResult(items=order_items(items))

    if not plans[0].is_fixed:
        raise ValueError("The first visit of a route needs a fixed start and end.")

    previous: Optional[Stop] = None
    previous_end: Optional[datetime] = None
    for plan in plans:
        stop = plan.stop
        leg: Optional[tuple[float, int]] = None
        depart: Optional[datetime] = None
        if previous is not None:
            leg = estimator.leg(previous.coordinates, stop.coordinates)

        moved_from: Optional[datetime] = None
        if plan.is_fixed:
            start, end = plan.start, plan.end
            if leg is not None:
                depart = departure_time(previous_end, leg[1], ordered_ops, arrive_by=start)
                arrival = depart + timedelta(minutes=leg[1])
                # A fixed visit the travel cannot reach in time starts on arrival.
                if arrival > start:
                    moved_from = start
                    start, end = arrival, end + (arrival - start)
        else:
            depart = departure_time(previous_end, leg[1], ordered_ops)
            start = depart + timedelta(minutes=leg[1])
            end = start + timedelta(minutes=plan.duration_minutes)

        pinned = plan.pinned
        new_start, new_end = clear_of_operations(start, end, ordered_ops)
        if new_start != start:
            moved_from = moved_from or start
            start, end = new_start, new_end
        if moved_from is not None:
            logger.info(
                "Visit to '%s' moved from %s to %s",
                stop.stop_id,
                moved_from.strftime("%H:%M"),
                start.strftime("%H:%M"),
            )
            pinned = True
            shifted.append(VisitOverride(stop_id=stop.stop_id, start=start, end=end))
            if leg is not None:
                depart = departure_time(previous_end, leg[1], ordered_ops, arrive_by=start)

        if leg is not None:
            items.append(travel_item(previous, stop, depart, leg[0], leg[1]))
        items.append(
            ScheduleItem(
                item_id=f"visit-{stop.stop_id}",
                kind=ItemKind.VISIT,
                start=start,
                end=end,
                location=stop.name,
                stop_id=stop.stop_id,
                pinned=pinned,
            )
        )
        previous, previous_end = stop, end

    if home is not None:
        items.append(leave_home or leave_home_item(home, plans[0].stop, plans[0].start, estimator))
        miles, minutes = estimator.leg(previous.coordinates, home.coordinates)
        depart = departure_time(previous_end, minutes, ordered_ops)
        items.append(travel_item(previous, None, depart, miles, minutes))
        items.append(
            ScheduleItem(
                item_id="arrive-home",
                kind=ItemKind.ARRIVE_HOME,
                start=depart + timedelta(minutes=minutes),
                location=home.address,
            )
        )

    return ReflowResult(items=order_items(items), shifted=tuple(shifted))
