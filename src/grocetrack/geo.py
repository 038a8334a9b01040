"""Coordinate validation and great-circle helpers.

Everything in here is pure and synchronous. Distances are only used for
sorting and labelling, never for routing.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, TypeVar

from grocetrack._constants import EARTH_RADIUS_KM, LATITUDE_RANGE, LONGITUDE_RANGE


class LatLngLike(Protocol):
    lat: float
    lng: float


TPoint = TypeVar("TPoint")


def is_valid_coordinate(value: Any) -> bool:
    """Return ``True`` when *value* is a finite real number.

    Rejects ``None``, NaN, infinities, strings and booleans.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_valid_latitude(value: Any) -> bool:
    return is_valid_coordinate(value) and LATITUDE_RANGE[0] <= value <= LATITUDE_RANGE[1]


def is_valid_longitude(value: Any) -> bool:
    return is_valid_coordinate(value) and LONGITUDE_RANGE[0] <= value <= LONGITUDE_RANGE[1]


def is_valid_lat_lng(lat: Any, lng: Any) -> bool:
    return is_valid_latitude(lat) and is_valid_longitude(lng)


def coordinates_of(point: Any) -> tuple[Any, Any]:
    """Extract ``(lat, lng)`` from a model, a plain object or a mapping."""
    if isinstance(point, Mapping):
        return point.get("lat"), point.get("lng")
    return getattr(point, "lat", None), getattr(point, "lng", None)


def haversine_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push ``a`` marginally outside [0, 1] for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def distance_between_km(a: Any, b: Any) -> float | None:
    """Distance between two lat/lng-like points, ``None`` if either is invalid."""
    lat1, lng1 = coordinates_of(a)
    lat2, lng2 = coordinates_of(b)
    if not (is_valid_lat_lng(lat1, lng1) and is_valid_lat_lng(lat2, lng2)):
        return None
    return haversine_distance_km(lat1, lng1, lat2, lng2)


def sort_by_proximity(points: Iterable[TPoint], origin: Any) -> list[TPoint]:
    """Stable sort of *points*, nearest to *origin* first.

    Points whose coordinates are invalid keep their relative order and go
    after every valid point. An invalid origin leaves the order unchanged.
    """
    items = list(points)
    lat0, lng0 = coordinates_of(origin)
    if not is_valid_lat_lng(lat0, lng0):
        return items

    def _key(point: TPoint) -> tuple[int, float]:
        distance = distance_between_km(origin, point)
        if distance is None:
            return (1, 0.0)
        return (0, distance)

    return sorted(items, key=_key)


def format_distance_km(distance_km: float) -> str:
    """Label used by store listings, e.g. ``"1.2 km"``."""
    return f"{distance_km:.1f} km"


def interpolate(start: LatLngLike, end: LatLngLike, progress: float) -> tuple[float, float]:
    """Linear interpolation between two points.

    *progress* is clamped to ``[0, 1]``; ``1`` yields *end* exactly.
    """
    t = min(1.0, max(0.0, progress))
    if t >= 1.0:
        return end.lat, end.lng
    lat = start.lat + (end.lat - start.lat) * t
    lng = start.lng + (end.lng - start.lng) * t
    return lat, lng


def offset_point(point: LatLngLike, degrees: float) -> tuple[float, float]:
    """Shift *point* north-east by *degrees* on both axes."""
    return point.lat + degrees, point.lng + degrees


def has_moved(previous: LatLngLike | None, current: LatLngLike, min_degrees: float) -> bool:
    """Whether *current* differs from *previous* by more than *min_degrees* on either axis."""
    if previous is None:
        return True
    return abs(current.lat - previous.lat) > min_degrees or abs(current.lng - previous.lng) > min_degrees
