"""Rider position sources.

A position source answers one question per tick: where is the rider for
this order right now? ``None`` is a normal answer (nothing to show yet)
and is never treated as an error.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from grocetrack.config import TrackingConfig
from grocetrack.geo import interpolate, is_valid_lat_lng, offset_point
from grocetrack.lifecycle import is_in_transit
from grocetrack.models.order import Order, OrderStatus
from grocetrack.models.position import LatLng, Position
from grocetrack.state.events import UpdateSource

_logger = logging.getLogger(__name__)

DeviceLocationGetter = Callable[[], LatLng | None]


@runtime_checkable
class PositionSource(Protocol):
    """Capability shared by real and simulated sources."""

    kind: UpdateSource

    def sample(self, order: Order, tick: int) -> Position | None: ...


def order_offset(order_id: str) -> int:
    """Per-order phase offset used to desynchronize simulated riders.

    Derived from the id length so it is stable across processes.
    """
    return len(order_id)


class RealPositionSource:
    """Pass-through of the last driver position pushed by the store.

    No interpolation or smoothing: the pushed value is authoritative.
    """

    kind = UpdateSource.PUSH

    def sample(self, order: Order, tick: int) -> Position | None:
        return order.driver_position

    def __repr__(self) -> str:
        return "RealPositionSource()"


class SimulatedPositionSource:
    """Deterministic rider animation for demo/offline tracking.

    The phase tick is ``(tick + order_offset(order.id)) % loop_duration``
    and ``progress = phase / loop_duration``:

    * ``PACKING``: the rider moves from a point north-east of the store
      back to the store (arriving for pickup).
    * ``ON_THE_WAY`` (delivery only): the rider moves from the store to the
      destination, which is the freshest device fix if one is known, else
      the order's customer location, else a synthetic point near the store.

    Any other status, or invalid input coordinates, yields ``None``.
    """

    kind = UpdateSource.SIMULATED

    def __init__(
        self,
        config: TrackingConfig | None = None,
        *,
        device_location: DeviceLocationGetter | None = None,
    ) -> None:
        self._config = config or TrackingConfig()
        self._device_location = device_location

    @property
    def loop_duration(self) -> int:
        return self._config.loop_duration

    def phase_tick(self, order: Order, tick: int) -> int:
        return (tick + order_offset(order.id)) % self._config.loop_duration

    def sample(self, order: Order, tick: int) -> Position | None:
        phase = self.phase_tick(order, tick)
        return self.sample_at(order, phase / self._config.loop_duration, phase_tick=phase)

    def sample_at(self, order: Order, progress: float, *, phase_tick: int | None = None) -> Position | None:
        """Position of the simulated rider at *progress* (0..1) through the current phase."""
        store = order.store_location
        if not is_valid_lat_lng(store.lat, store.lng):
            return None

        if order.status == OrderStatus.PACKING:
            start_lat, start_lng = offset_point(store, self._config.pickup_start_offset)
            start = LatLng(lat=start_lat, lng=start_lng)
            lat, lng = interpolate(start, store, progress)
            return Position.build(lat, lng, phase_tick)

        if is_in_transit(order.status, order.mode):
            destination = self.destination_for(order)
            if destination is None:
                return None
            lat, lng = interpolate(store, destination, progress)
            return Position.build(lat, lng, phase_tick)

        return None

    def destination_for(self, order: Order) -> LatLng | None:
        """Where the simulated delivery is heading."""
        if self._device_location is not None:
            fix = self._device_location()
            if fix is not None and is_valid_lat_lng(fix.lat, fix.lng):
                return fix
        customer = order.customer_location
        if customer is not None and is_valid_lat_lng(customer.lat, customer.lng):
            return customer
        lat, lng = offset_point(order.store_location, self._config.synthetic_destination_offset)
        if not is_valid_lat_lng(lat, lng):
            return None
        return LatLng(lat=lat, lng=lng)

    def __repr__(self) -> str:
        return f"SimulatedPositionSource(loop_duration={self._config.loop_duration})"


def select_position_source(
    account_id: str | None,
    order: Order,
    config: TrackingConfig | None = None,
    *,
    device_location: DeviceLocationGetter | None = None,
) -> PositionSource:
    """Resolve the position source for a session, once.

    Demo/offline accounts always get the simulated rider. Other accounts
    get the real pass-through, unless ``simulate_without_telemetry`` is set
    and no driver position has arrived for the order yet.
    """
    config = config or TrackingConfig()
    if config.is_demo_account(account_id):
        reason = "demo account"
    elif config.simulate_without_telemetry and order.driver_position is None:
        reason = "no telemetry"
    else:
        _logger.debug("Using real position source order=%s", order.id)
        return RealPositionSource()
    _logger.debug("Using simulated position source order=%s reason=%s", order.id, reason)
    return SimulatedPositionSource(config, device_location=device_location)
