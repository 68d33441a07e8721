"""Schedule request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import ManagerHome, RouteContext, RouteKey, Stop


class StopModel(BaseModel):
    id: str
    name: str
    postcode: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ManagerHomeModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = ""


class RouteRequest(BaseModel):
    manager_id: str
    planned_date: str = Field(..., description="Planned day in YYYY-MM-DD form.")
    area: Optional[str] = Field(default=None, description="Region the route belongs to.")
    stops: List[StopModel] = Field(..., description="Stops in visiting order.")
    home: Optional[ManagerHomeModel] = None
    completed_stop_ids: List[str] = Field(default_factory=list)

    def to_context(self) -> RouteContext:
        return RouteContext(
            key=RouteKey(manager_id=self.manager_id, planned_date=self.planned_date, area=self.area),
            stops=tuple(
                Stop(
                    stop_id=stop.id,
                    name=stop.name,
                    latitude=stop.latitude,
                    longitude=stop.longitude,
                    postcode=stop.postcode,
                    address=stop.address,
                )
                for stop in self.stops
            ),
            home=ManagerHome(**self.home.model_dump()) if self.home else None,
        )


class PinVisitRequest(RouteRequest):
    stop_id: str
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")


class OperationalItemRequest(RouteRequest):
    title: str = Field(..., min_length=1)
    location: Optional[str] = None
    start_time: str = Field(..., description="HH:MM")
    duration_minutes: int = Field(..., ge=0)


class ExportRequest(RouteRequest):
    manager_name: str = ""


class ScheduleItemModel(BaseModel):
    id: str
    kind: str
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


class ScheduleSummaryModel(BaseModel):
    total_travel_miles: float
    total_travel_minutes: int
    visit_count: int
    operational_count: int
    route_window: Optional[str] = None


class ScheduleResponse(BaseModel):
    manager_id: str
    planned_date: str
    area: Optional[str] = None
    version: int
    excluded_stop_count: int
    summary: ScheduleSummaryModel
    items: List[ScheduleItemModel]
    directions_url: Optional[str] = None
