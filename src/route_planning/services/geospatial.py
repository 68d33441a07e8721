"""Geospatial helper functions."""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def km_to_miles(distance_km: float) -> float:
    return distance_km * KM_TO_MILES


def distance_miles(origin: tuple[float, float], destination: tuple[float, float]) -> float:
    """Great-circle distance in miles between two (lat, lon) pairs."""

    return km_to_miles(haversine_km(origin[0], origin[1], destination[0], destination[1]))


@dataclass(slots=True, frozen=True)
class TravelEstimator:
    """Linear travel-time estimate over straight-line distance.

    The speed and buffer are tunable so callers can model urban or rural
    mixes; a zero distance yields exactly ``buffer_minutes``.
    """

    average_speed_mph: float = 31.0
    buffer_minutes: int = 10

    def estimate_minutes(self, miles: float) -> int:
        miles_per_minute = self.average_speed_mph / 60.0
        return round(miles / miles_per_minute) + self.buffer_minutes

    def leg(self, origin: tuple[float, float], destination: tuple[float, float]) -> tuple[float, int]:
        """Return ``(distance_miles, travel_minutes)`` between two coordinates."""

        miles = distance_miles(origin, destination)
        return miles, self.estimate_minutes(miles)
