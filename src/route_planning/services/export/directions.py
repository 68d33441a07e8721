"""Driving directions link for the stops still left on a route."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence
from urllib.parse import urlencode

from ...models.domain import ManagerHome, Stop

GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/"


def _coordinate(lat: float, lon: float) -> str:
    return f"{lat},{lon}"


def build_directions_url(
    stops: Sequence[Stop],
    home: Optional[ManagerHome] = None,
    completed_stop_ids: Iterable[str] = (),
) -> Optional[str]:
    """Return a Google Maps directions URL, or None when no stop is left.

    The route starts at home when known, ends at the last remaining stop and
    passes the others as waypoints in route order.
    """

    completed = set(completed_stop_ids)
    remaining = [stop for stop in stops if stop.has_coordinates and stop.stop_id not in completed]
    if not remaining:
        return None

    destination = remaining[-1]
    params = {
        "api": "1",
        "destination": _coordinate(destination.latitude, destination.longitude),
        "travelmode": "driving",
    }
    if home is not None:
        params["origin"] = _coordinate(home.latitude, home.longitude)
    waypoints = "|".join(_coordinate(stop.latitude, stop.longitude) for stop in remaining[:-1])
    if waypoints:
        params["waypoints"] = waypoints
    return f"{GOOGLE_MAPS_DIRECTIONS_URL}?{urlencode(params)}"
