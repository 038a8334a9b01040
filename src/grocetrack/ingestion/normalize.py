"""Normalization helpers.

Centralizes defensive parsing and placeholder handling for loosely-typed
records coming from the hosted store.
"""

from __future__ import annotations

import math
from typing import Any

from grocetrack.geo import is_valid_lat_lng


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def is_meaningful(value: Any) -> bool:
    """Return True if the value should be included in a patch."""

    if value is None:
        return False
    if value == "":
        return False
    if value == "--":
        return False
    if value == {}:
        return False
    return bool(value != [])


def prune_patch(data: Any) -> Any:
    """Recursively drop non-meaningful values from a record structure.

    - Dicts: remove keys with non-meaningful values; recurse into nested dicts/lists.
    - Lists: prune elements and drop non-meaningful items.
    - Scalars: returned as-is.
    """

    if isinstance(data, dict):
        pruned: dict[str, Any] = {}
        for key, value in data.items():
            cleaned = prune_patch(value)
            if is_meaningful(cleaned):
                pruned[key] = cleaned
        return pruned

    if isinstance(data, list):
        items: list[Any] = []
        for item in data:
            cleaned = prune_patch(item)
            if is_meaningful(cleaned):
                items.append(cleaned)
        return items

    return data


def lat_lng_from(value: Any) -> dict[str, float] | None:
    """Coerce ``{"lat", "lng"}`` (or ``lon``/``longitude``/``latitude``) into a clean pair.

    Returns ``None`` when the pair is missing or fails coordinate validation,
    so garbage coordinates never leave the boundary.
    """
    if not isinstance(value, dict):
        return None
    lat = safe_float(value.get("lat", value.get("latitude")))
    lng = safe_float(value.get("lng", value.get("lon", value.get("longitude"))))
    if not is_valid_lat_lng(lat, lng):
        return None
    return {"lat": lat, "lng": lng}


def lat_lng_from_flat(record: dict[str, Any], lat_key: str, lng_key: str) -> dict[str, float] | None:
    if lat_key not in record and lng_key not in record:
        return None
    return lat_lng_from({"lat": record.get(lat_key), "lng": record.get(lng_key)})
