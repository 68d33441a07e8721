"""Serializers and summaries for computed itineraries."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import List, Optional

from ...models.domain import ItemKind, ScheduleItem, Timeline
from ..schedule.clock import format_clock
from ..schedule.timeline import item_window_end


@dataclass(slots=True)
class RouteSegment:
    origin: str
    destination: str
    distance_miles: float
    duration_minutes: int


@dataclass(slots=True)
class ScheduleSummary:
    total_travel_miles: float
    total_travel_minutes: int
    visit_count: int
    operational_count: int
    excluded_stop_count: int
    route_window: Optional[str]


def route_segments(timeline: Timeline) -> List[RouteSegment]:
    """Driving legs in itinerary order, including the leg from home."""

    stops = {stop.stop_id: stop for stop in timeline.context.stops}
    home = timeline.context.home
    segments: List[RouteSegment] = []
    for item in timeline.items:
        if item.kind is ItemKind.LEAVE_HOME and home is not None:
            destination = stops.get(item.destination_stop_id or "")
            segments.append(
                RouteSegment(
                    origin=home.address,
                    destination=destination.label if destination else "",
                    distance_miles=item.distance_miles or 0.0,
                    duration_minutes=item.travel_minutes or 0,
                )
            )
        elif item.kind is ItemKind.TRAVEL:
            origin = stops.get(item.stop_id or "")
            destination = stops.get(item.destination_stop_id or "")
            segments.append(
                RouteSegment(
                    origin=origin.label if origin else "",
                    destination=destination.label if destination else (home.address if home else "Home"),
                    distance_miles=item.distance_miles or 0.0,
                    duration_minutes=item.travel_minutes or 0,
                )
            )
    return segments


def summarize(timeline: Timeline) -> ScheduleSummary:
    counted = [item for item in timeline.items if item.kind in (ItemKind.TRAVEL, ItemKind.LEAVE_HOME)]
    route_window = None
    if timeline.items:
        first, last = timeline.items[0], timeline.items[-1]
        route_window = f"{format_clock(first.start)} - {format_clock(item_window_end(last))}"
    return ScheduleSummary(
        total_travel_miles=round(sum(item.distance_miles or 0.0 for item in counted), 1),
        total_travel_minutes=sum(item.travel_minutes or 0 for item in counted),
        visit_count=sum(1 for item in timeline.items if item.kind is ItemKind.VISIT),
        operational_count=sum(1 for item in timeline.items if item.kind is ItemKind.OPERATIONAL),
        excluded_stop_count=timeline.excluded_stop_count,
        route_window=route_window,
    )


def schedule_item_to_json(item: ScheduleItem) -> dict:
    return {
        "id": item.item_id,
        "kind": item.kind.value,
        "start": item.start.isoformat(),
        "end": item.end.isoformat() if item.end else None,
        "location": item.location,
        "stop_id": item.stop_id,
        "destination_stop_id": item.destination_stop_id,
        "travel_minutes": item.travel_minutes,
        "distance_miles": item.distance_miles,
        "pinned": item.pinned,
        "operational_id": item.operational_id,
        "title": item.title,
    }


def schedule_to_json(timeline: Timeline) -> dict:
    summary = summarize(timeline)
    key = timeline.context.key
    return {
        "manager_id": key.manager_id,
        "planned_date": key.planned_date,
        "area": key.area,
        "version": timeline.version,
        "excluded_stop_count": timeline.excluded_stop_count,
        "summary": {
            "total_travel_miles": summary.total_travel_miles,
            "total_travel_minutes": summary.total_travel_minutes,
            "visit_count": summary.visit_count,
            "operational_count": summary.operational_count,
            "route_window": summary.route_window,
        },
        "items": [schedule_item_to_json(item) for item in timeline.items],
    }


def schedule_to_csv(timeline: Timeline) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "kind",
        "start",
        "end",
        "location",
        "stop_id",
        "travel_minutes",
        "distance_miles",
        "pinned",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for sequence, item in enumerate(timeline.items, start=1):
        writer.writerow(
            {
                "sequence": sequence,
                "kind": item.kind.value,
                "start": format_clock(item.start),
                "end": format_clock(item.end) if item.end else "",
                "location": item.location,
                "stop_id": item.stop_id or "",
                "travel_minutes": item.travel_minutes if item.travel_minutes is not None else "",
                "distance_miles": f"{item.distance_miles:.1f}" if item.distance_miles is not None else "",
                "pinned": item.pinned,
            }
        )
    return buffer.getvalue()
