"""Persistence contract for saved visit times and operational items."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from ..models.domain import OperationalItem, RouteKey, VisitOverride

if TYPE_CHECKING:
    from ..models.domain import Timeline


class PersistenceError(RuntimeError):
    """A read or write against the route store failed.

    When raised from an edit, ``timeline`` holds the post-edit itinerary that
    was computed before the store refused the write.
    """

    def __init__(self, message: str, timeline: Optional["Timeline"] = None):
        super().__init__(message)
        self.timeline = timeline


class PersistenceGateway(ABC):
    """Key-value store of route state, keyed by manager, date and area."""

    @abstractmethod
    def get_visit_overrides(self, key: RouteKey) -> list[VisitOverride]:
        raise NotImplementedError

    @abstractmethod
    def save_visit_override(self, key: RouteKey, override: VisitOverride) -> str:
        """Insert or replace the saved visit time for ``override.stop_id``; return its id."""
        raise NotImplementedError

    @abstractmethod
    def delete_visit_override(self, override_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_operational_items(self, key: RouteKey) -> list[OperationalItem]:
        raise NotImplementedError

    @abstractmethod
    def save_operational_item(self, key: RouteKey, item: OperationalItem) -> str:
        raise NotImplementedError

    @abstractmethod
    def update_operational_item(self, item: OperationalItem) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_operational_item(self, item_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_all_visit_overrides(self, key: RouteKey) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_all_operational_items(self, key: RouteKey) -> None:
        raise NotImplementedError


class InMemoryGateway(PersistenceGateway):
    """Dict-backed store with last-write-wins semantics."""

    def __init__(self) -> None:
        self._overrides: dict[RouteKey, dict[str, VisitOverride]] = {}
        self._operations: dict[RouteKey, dict[str, OperationalItem]] = {}

    def get_visit_overrides(self, key: RouteKey) -> list[VisitOverride]:
        return list(self._overrides.get(key, {}).values())

    def save_visit_override(self, key: RouteKey, override: VisitOverride) -> str:
        saved = self._overrides.setdefault(key, {})
        existing = saved.get(override.stop_id)
        override_id = existing.override_id if existing else uuid.uuid4().hex
        saved[override.stop_id] = replace(override, override_id=override_id)
        return override_id

    def delete_visit_override(self, override_id: str) -> None:
        for saved in self._overrides.values():
            for stop_id, override in list(saved.items()):
                if override.override_id == override_id:
                    del saved[stop_id]

    def get_operational_items(self, key: RouteKey) -> list[OperationalItem]:
        return sorted(self._operations.get(key, {}).values(), key=lambda item: item.start)

    def save_operational_item(self, key: RouteKey, item: OperationalItem) -> str:
        item_id = uuid.uuid4().hex
        self._operations.setdefault(key, {})[item_id] = replace(item, item_id=item_id)
        return item_id

    def update_operational_item(self, item: OperationalItem) -> None:
        for saved in self._operations.values():
            if item.item_id in saved:
                saved[item.item_id] = item
                return
        raise PersistenceError(f"Operational item '{item.item_id}' does not exist.")

    def delete_operational_item(self, item_id: str) -> None:
        for saved in self._operations.values():
            saved.pop(item_id, None)

    def delete_all_visit_overrides(self, key: RouteKey) -> None:
        self._overrides.pop(key, None)

    def delete_all_operational_items(self, key: RouteKey) -> None:
        self._operations.pop(key, None)
