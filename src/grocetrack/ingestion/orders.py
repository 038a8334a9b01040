"""Adapters from hosted-store order rows to typed orders and patches.

This is the narrow boundary where loosely-shaped records (nested
``stores`` joins, flat ``delivery_lat``/``driver_lat`` columns, mixed-case
status strings) become :class:`~grocetrack.models.order.Order` and
:class:`~grocetrack.state.events.OrderPatch` values.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from grocetrack._redact import redact_for_log
from grocetrack.exceptions import InvalidRecordError
from grocetrack.ingestion.normalize import lat_lng_from, lat_lng_from_flat, prune_patch, safe_str
from grocetrack.models.order import Order
from grocetrack.models.position import Position
from grocetrack.state.events import OrderPatch, UpdateSource

_logger = logging.getLogger(__name__)

_DRIVER_KEYS = ("driverLocation", "driverPosition", "driver_position", "driver_location")


def order_from_record(record: Mapping[str, Any]) -> Order:
    """Normalize a full order record into an :class:`Order`.

    Raises :class:`InvalidRecordError` when the record has no id or no
    valid store location.
    """
    if not isinstance(record, Mapping):
        raise InvalidRecordError(f"order record must be a mapping, got {type(record).__name__}")
    order_id = safe_str(record.get("id"))
    try:
        return Order.model_validate(dict(record))
    except ValidationError as exc:
        _logger.debug("Rejected order record %s", redact_for_log(dict(record)))
        raise InvalidRecordError(f"invalid order record: {exc.error_count()} error(s)", order_id=order_id) from exc


def _driver_position_from(record: Mapping[str, Any]) -> Position | None:
    for key in _DRIVER_KEYS:
        candidate = lat_lng_from(record.get(key))
        if candidate is not None:
            return Position.build(candidate["lat"], candidate["lng"])
    flat = lat_lng_from_flat(dict(record), "driver_lat", "driver_lng")
    if flat is not None:
        return Position.build(flat["lat"], flat["lng"])
    return None


def patch_from_record(
    record: Mapping[str, Any],
    *,
    source: UpdateSource = UpdateSource.PUSH,
) -> OrderPatch:
    """Build a partial patch from a pushed change row.

    Only status and driver coordinates are taken; invalid coordinates are
    dropped rather than propagated and unknown keys are ignored.
    """
    cleaned = prune_patch(dict(record)) if isinstance(record, Mapping) else {}
    status = cleaned.get("status")
    return OrderPatch(
        order_id=safe_str(cleaned.get("id")),
        source=source,
        status=status if isinstance(status, str) else None,
        driver_position=_driver_position_from(cleaned),
    )
