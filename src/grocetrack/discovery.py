"""Store discovery ranking."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from grocetrack.geo import distance_between_km, format_distance_km, sort_by_proximity
from grocetrack.models.store import RankedStore, Store


def rank_stores_by_distance(stores: Iterable[Store | Mapping[str, Any]], origin: Any) -> list[RankedStore]:
    """Rank *stores* nearest-first from *origin* and label their distance.

    Raw store rows are normalized first. Stores without a valid location
    (or every store, when *origin* is invalid) keep their relative order
    and get no distance label.
    """
    normalized = [store if isinstance(store, Store) else Store.model_validate(dict(store)) for store in stores]
    ranked: list[RankedStore] = []
    for store in sort_by_proximity(normalized, origin):
        distance = distance_between_km(origin, store)
        ranked.append(
            RankedStore(
                store=store,
                distance_km=distance,
                distance_label=format_distance_km(distance) if distance is not None else None,
            )
        )
    return ranked
