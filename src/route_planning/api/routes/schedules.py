"""Route schedule endpoints."""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, HTTPException, Response, status

from ...models.domain import Timeline
from ...persistence.gateway import InMemoryGateway, PersistenceError, PersistenceGateway
from ...schemas.schedule import (
    ExportRequest,
    OperationalItemRequest,
    PinVisitRequest,
    RouteRequest,
    ScheduleResponse,
)
from ...services.export import build_directions_url, generate_ics, ics_filename
from ...services.outputs.schedule_formatter import schedule_to_json
from ...services.schedule import RecalculationEngine

router = APIRouter(prefix="/schedules", tags=["schedules"])

logger = logging.getLogger(__name__)


@lru_cache()
def get_gateway() -> PersistenceGateway:
    """Supabase-backed store when configured, else a process-local one."""
    from ...db.supabase import get_supabase_client
    from ...persistence.route_schedule import SupabaseRouteGateway

    client = get_supabase_client()
    if client is None:
        logger.warning("Supabase not configured - route edits are kept in memory only")
        return InMemoryGateway()
    return SupabaseRouteGateway(client=client)


def get_engine() -> RecalculationEngine:
    return RecalculationEngine(get_gateway())


def _response(timeline: Timeline, payload: RouteRequest) -> ScheduleResponse:
    directions_url = build_directions_url(
        timeline.context.stops,
        timeline.context.home,
        completed_stop_ids=payload.completed_stop_ids,
    )
    return ScheduleResponse(**schedule_to_json(timeline), directions_url=directions_url)


def _run(description: str, action):
    try:
        return action()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error while trying to {description}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {description}: {str(exc)}",
        ) from exc


@router.post("/build", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
def build(payload: RouteRequest) -> ScheduleResponse:
    def action() -> ScheduleResponse:
        return _response(get_engine().build(payload.to_context()), payload)

    return _run("build route schedule", action)


@router.post("/visits/pin", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
def pin_visit(payload: PinVisitRequest) -> ScheduleResponse:
    """Pin one visit window; the itinerary is rebuilt from saved state first."""

    def action() -> ScheduleResponse:
        engine = get_engine()
        timeline = engine.build(payload.to_context())
        updated = engine.pin_visit_time(timeline, payload.stop_id, payload.start_time, payload.end_time)
        return _response(updated, payload)

    return _run("pin visit time", action)


@router.post("/operational-items", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def add_operational_item(payload: OperationalItemRequest) -> ScheduleResponse:
    def action() -> ScheduleResponse:
        engine = get_engine()
        timeline = engine.build(payload.to_context())
        updated = engine.add_operational_item(
            timeline,
            payload.title,
            payload.start_time,
            payload.duration_minutes,
            location=payload.location,
        )
        return _response(updated, payload)

    return _run("add operational item", action)


@router.put("/operational-items/{item_id}", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
def edit_operational_item(item_id: str, payload: OperationalItemRequest) -> ScheduleResponse:
    def action() -> ScheduleResponse:
        engine = get_engine()
        timeline = engine.build(payload.to_context())
        updated = engine.edit_operational_item(
            timeline,
            item_id,
            payload.title,
            payload.start_time,
            payload.duration_minutes,
            location=payload.location,
        )
        return _response(updated, payload)

    return _run("update operational item", action)


@router.post("/operational-items/{item_id}/delete", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
def delete_operational_item(item_id: str, payload: RouteRequest) -> ScheduleResponse:
    def action() -> ScheduleResponse:
        engine = get_engine()
        timeline = engine.build(payload.to_context())
        return _response(engine.delete_operational_item(timeline, item_id), payload)

    return _run("delete operational item", action)


@router.post("/export/ics", status_code=status.HTTP_200_OK)
def export_ics(payload: ExportRequest) -> Response:
    def action() -> Response:
        context = payload.to_context()
        timeline = get_engine().build(context)
        content = generate_ics(timeline.items, payload.planned_date, context.stops)
        filename = ics_filename(payload.manager_name or payload.manager_id, payload.planned_date)
        return Response(
            content=content,
            media_type="text/calendar; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return _run("export route calendar", action)
