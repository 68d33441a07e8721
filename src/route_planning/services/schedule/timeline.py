"""Ordering and invariant checks for a day itinerary."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from ...models.domain import ItemKind, OperationalItem, ScheduleItem, VisitOverride

_RANK = {ItemKind.LEAVE_HOME: 0, ItemKind.ARRIVE_HOME: 2}


class ScheduleInvariantError(AssertionError):
    """Raised when a computed itinerary breaks one of its ordering rules."""

    def __init__(self, problems: Sequence[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


def order_items(items: Iterable[ScheduleItem]) -> tuple[ScheduleItem, ...]:
    """Leave-home first, arrive-home last, everything else by start time.

    The sort is stable, so items sharing a start keep their construction order.
    """

    return tuple(sorted(items, key=lambda item: (_RANK.get(item.kind, 1), item.start)))


def item_window_end(item: ScheduleItem) -> datetime:
    if item.end is not None:
        return item.end
    if item.travel_minutes is not None and item.kind is ItemKind.TRAVEL:
        return item.start + timedelta(minutes=item.travel_minutes)
    return item.start


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


def blocking_operations(
    start: datetime, end: datetime, operations: Iterable[OperationalItem]
) -> list[OperationalItem]:
    return [op for op in operations if overlaps(start, end, op.start, op.end)]


def assert_invariants(
    items: Sequence[ScheduleItem],
    *,
    home_present: bool,
    overrides: Optional[Mapping[str, VisitOverride]] = None,
) -> None:
    """Check an ordered itinerary and raise ``ScheduleInvariantError`` on any breach."""

    problems: list[str] = []
    leave_home = [index for index, item in enumerate(items) if item.kind is ItemKind.LEAVE_HOME]
    arrive_home = [index for index, item in enumerate(items) if item.kind is ItemKind.ARRIVE_HOME]
    has_visits = any(item.kind is ItemKind.VISIT for item in items)

    if home_present and has_visits and len(leave_home) != 1:
        problems.append(f"expected exactly one leave-home item, found {len(leave_home)}")
    if not home_present and leave_home:
        problems.append("leave-home item present without a manager home")
    if leave_home and leave_home[0] != 0:
        problems.append("leave-home item is not first")
    if len(arrive_home) > 1:
        problems.append(f"expected at most one arrive-home item, found {len(arrive_home)}")
    if arrive_home and arrive_home[-1] != len(items) - 1:
        problems.append("arrive-home item is not last")

    body = [item for item in items if item.kind not in _RANK]
    for previous, current in zip(body, body[1:]):
        if current.start < previous.start:
            problems.append(f"'{current.item_id}' starts before '{previous.item_id}'")

    visits = {item.stop_id: item for item in items if item.kind is ItemKind.VISIT}
    operations = [item for item in items if item.kind is ItemKind.OPERATIONAL]

    for item in items:
        if item.kind is not ItemKind.TRAVEL:
            continue
        origin = visits.get(item.stop_id)
        if origin is not None and origin.end is not None and item.start < origin.end:
            problems.append(f"'{item.item_id}' departs before '{origin.item_id}' ends")
        travel_end = item_window_end(item)
        destination = visits.get(item.destination_stop_id) if item.destination_stop_id else None
        if destination is not None and travel_end > destination.start:
            problems.append(f"'{item.item_id}' arrives after '{destination.item_id}' starts")
        for op in operations:
            if overlaps(item.start, travel_end, op.start, item_window_end(op)):
                problems.append(f"'{item.item_id}' overlaps '{op.item_id}'")

    by_start = sorted(visits.values(), key=lambda visit: visit.start)
    for previous, current in zip(by_start, by_start[1:]):
        if overlaps(previous.start, item_window_end(previous), current.start, item_window_end(current)):
            problems.append(f"'{previous.item_id}' overlaps '{current.item_id}'")

    for visit in visits.values():
        visit_end = item_window_end(visit)
        for op in operations:
            if overlaps(visit.start, visit_end, op.start, item_window_end(op)):
                problems.append(f"'{visit.item_id}' overlaps '{op.item_id}'")
        override = (overrides or {}).get(visit.stop_id)
        if override is not None and visit.pinned and (visit.start, visit.end) != (override.start, override.end):
            problems.append(f"'{visit.item_id}' does not match its saved visit time")

    if problems:
        raise ScheduleInvariantError(problems)
