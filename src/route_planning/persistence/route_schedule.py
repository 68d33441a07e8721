"""Supabase persistence for saved visit times and operational items."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import OperationalItem, RouteKey, VisitOverride
from ..services.schedule.clock import at_clock, format_clock
from .gateway import PersistenceError, PersistenceGateway

logger = logging.getLogger(__name__)

VISIT_TIME_COLUMNS = "id, store_id, start_time, end_time"
OPERATIONAL_ITEM_COLUMNS = "id, title, location, start_time, duration_minutes"


def _scoped(query: Any, key: RouteKey) -> Any:
    query = query.eq("manager_user_id", key.manager_id).eq("planned_date", key.planned_date)
    if key.area is None:
        return query.is_("region", "null")
    return query.eq("region", key.area)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SupabaseRouteGateway(PersistenceGateway):
    """Route state stored in the ``fa_route_visit_times`` and ``fa_route_operational_items`` tables."""

    def __init__(
        self,
        client: Any = None,
        visit_times_table: str | None = None,
        operational_items_table: str | None = None,
    ) -> None:
        self.client = client if client is not None else get_supabase_client()
        if self.client is None:
            raise PersistenceError("Supabase is not configured.")
        self.visit_times_table = visit_times_table or settings.visit_times_table
        self.operational_items_table = operational_items_table or settings.operational_items_table

    def _execute(self, description: str, query: Any) -> list[dict]:
        try:
            response = query.execute()
        except Exception as exc:
            logger.error(f"Failed to {description}: {exc}")
            raise PersistenceError(f"Failed to {description}: {exc}") from exc
        return response.data or []

    def get_visit_overrides(self, key: RouteKey) -> list[VisitOverride]:
        query = _scoped(self.client.table(self.visit_times_table).select(VISIT_TIME_COLUMNS), key)
        rows = self._execute("load visit times", query)
        return [
            VisitOverride(
                stop_id=str(row["store_id"]),
                start=at_clock(key.planned_date, row["start_time"]),
                end=at_clock(key.planned_date, row["end_time"]),
                override_id=str(row["id"]),
            )
            for row in rows
        ]

    def save_visit_override(self, key: RouteKey, override: VisitOverride) -> str:
        payload = {
            "manager_user_id": key.manager_id,
            "planned_date": key.planned_date,
            "region": key.area,
            "store_id": override.stop_id,
            "start_time": format_clock(override.start),
            "end_time": format_clock(override.end),
            "updated_at": _now(),
        }
        query = self.client.table(self.visit_times_table).upsert(
            payload,
            on_conflict="manager_user_id,planned_date,region,store_id",
        )
        rows = self._execute("save visit time", query)
        if not rows:
            raise PersistenceError(f"Saving visit time for store '{override.stop_id}' returned no row.")
        return str(rows[0]["id"])

    def delete_visit_override(self, override_id: str) -> None:
        self._execute("delete visit time", self.client.table(self.visit_times_table).delete().eq("id", override_id))

    def get_operational_items(self, key: RouteKey) -> list[OperationalItem]:
        query = _scoped(
            self.client.table(self.operational_items_table).select(OPERATIONAL_ITEM_COLUMNS),
            key,
        ).order("start_time")
        rows = self._execute("load operational items", query)
        return [
            OperationalItem(
                title=row["title"],
                start=at_clock(key.planned_date, row["start_time"]),
                duration_minutes=int(row["duration_minutes"]),
                location=row.get("location"),
                item_id=str(row["id"]),
            )
            for row in rows
        ]

    def save_operational_item(self, key: RouteKey, item: OperationalItem) -> str:
        payload = {
            "manager_user_id": key.manager_id,
            "planned_date": key.planned_date,
            "region": key.area,
            "title": item.title,
            "location": item.location,
            "start_time": format_clock(item.start),
            "duration_minutes": item.duration_minutes,
        }
        rows = self._execute("save operational item", self.client.table(self.operational_items_table).insert(payload))
        if not rows:
            raise PersistenceError(f"Saving operational item '{item.title}' returned no row.")
        return str(rows[0]["id"])

    def update_operational_item(self, item: OperationalItem) -> None:
        if not item.item_id:
            raise PersistenceError("Cannot update an operational item without an id.")
        payload = {
            "title": item.title,
            "location": item.location,
            "start_time": format_clock(item.start),
            "duration_minutes": item.duration_minutes,
            "updated_at": _now(),
        }
        query = self.client.table(self.operational_items_table).update(payload).eq("id", item.item_id)
        self._execute("update operational item", query)

    def delete_operational_item(self, item_id: str) -> None:
        query = self.client.table(self.operational_items_table).delete().eq("id", item_id)
        self._execute("delete operational item", query)

    def delete_all_visit_overrides(self, key: RouteKey) -> None:
        self._execute("clear visit times", _scoped(self.client.table(self.visit_times_table).delete(), key))

    def delete_all_operational_items(self, key: RouteKey) -> None:
        self._execute(
            "clear operational items",
            _scoped(self.client.table(self.operational_items_table).delete(), key),
        )
