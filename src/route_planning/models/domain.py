"""Domain models for route stops, persisted overrides and schedule items."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class ItemKind(str, Enum):
    """Kinds of entries on a day itinerary."""

    LEAVE_HOME = "leave_home"
    VISIT = "visit"
    TRAVEL = "travel"
    OPERATIONAL = "operational"
    ARRIVE_HOME = "arrive_home"


@dataclass(slots=True, frozen=True)
class Stop:
    """A site to be visited, as supplied by the caller for one day."""

    stop_id: str
    name: str
    latitude: Optional[float]
    longitude: Optional[float]
    postcode: Optional[str] = None
    address: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinates(self) -> tuple[float, float]:
        if not self.has_coordinates:
            raise ValueError(f"Stop '{self.stop_id}' has no coordinates.")
        return (self.latitude, self.longitude)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.postcode})" if self.postcode else self.name


@dataclass(slots=True, frozen=True)
class ManagerHome:
    """Start and end point of the manager's day."""

    latitude: float
    longitude: float
    address: str

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True, frozen=True)
class RouteKey:
    """Identifies one planned route: a manager's day in an area."""

    manager_id: str
    planned_date: str
    area: Optional[str] = None


@dataclass(slots=True, frozen=True)
class VisitOverride:
    """A persisted, user-pinned visit window."""

    stop_id: str
    start: datetime
    end: datetime
    override_id: Optional[str] = None


@dataclass(slots=True, frozen=True)
class OperationalItem:
    """A persisted fixed block (meeting, break) that is not tied to a stop."""

    title: str
    start: datetime
    duration_minutes: int
    location: Optional[str] = None
    item_id: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)


@dataclass(slots=True, frozen=True)
class ScheduleItem:
    """One entry on the computed itinerary. Recomputed on every build or edit."""

    item_id: str
    kind: ItemKind
    start: datetime
    end: Optional[datetime] = None
    location: str = ""
    stop_id: Optional[str] = None
    destination_stop_id: Optional[str] = None
    travel_minutes: Optional[int] = None
    distance_miles: Optional[float] = None
    pinned: bool = False
    operational_id: Optional[str] = None
    title: Optional[str] = None

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.end is None:
            return None
        return int((self.end - self.start).total_seconds() // 60)


@dataclass(slots=True, frozen=True)
class RouteContext:
    """Caller-supplied, read-only inputs for one route."""

    key: RouteKey
    stops: tuple[Stop, ...]
    home: Optional[ManagerHome] = None

    @property
    def routable_stops(self) -> tuple[Stop, ...]:
        return tuple(stop for stop in self.stops if stop.has_coordinates)

    @property
    def excluded_stop_count(self) -> int:
        return len(self.stops) - len(self.routable_stops)

    def stop(self, stop_id: str) -> Optional[Stop]:
        for stop in self.stops:
            if stop.stop_id == stop_id:
                return stop
        return None


@dataclass(slots=True, frozen=True)
class Timeline:
    """Versioned itinerary value owned by the caller."""

    context: RouteContext
    items: tuple[ScheduleItem, ...] = field(default_factory=tuple)
    version: int = 1

    @property
    def excluded_stop_count(self) -> int:
        return self.context.excluded_stop_count

    def visit_for(self, stop_id: str) -> Optional[ScheduleItem]:
        for item in self.items:
            if item.kind is ItemKind.VISIT and item.stop_id == stop_id:
                return item
        return None

    def operational_items(self) -> list[OperationalItem]:
        return [
            OperationalItem(
                title=item.title or "",
                start=item.start,
                duration_minutes=item.duration_minutes or 0,
                location=item.location or None,
                item_id=item.operational_id,
            )
            for item in self.items
            if item.kind is ItemKind.OPERATIONAL
        ]
