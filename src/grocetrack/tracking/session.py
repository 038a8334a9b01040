"""Per-order live tracking session."""

from __future__ import annotations

import logging
from collections.abc import Callable
from itertools import count

from grocetrack.config import TrackingConfig
from grocetrack.exceptions import SessionClosedError
from grocetrack.lifecycle import classify, ends_tracking, is_trackable
from grocetrack.models.order import Order
from grocetrack.models.position import Position
from grocetrack.models.view import OrderView
from grocetrack.state.events import OrderPatch, UpdateSource
from grocetrack.state.policy import should_accept_position
from grocetrack.tracking.clock import TickClock
from grocetrack.tracking.sources import PositionSource, RealPositionSource, order_offset

_logger = logging.getLogger(__name__)

ViewCallback = Callable[[OrderView], None]
CloseCallback = Callable[["TrackingSession"], None]


class TrackingSession:
    """Owns one order's live-tracking lifecycle.

    On every clock tick the bound position source is sampled; a sample is
    merged into ``driver_position`` and published, an absent sample leaves
    the last known position in place. Pushed changes are applied
    immediately through :meth:`push`. A pushed driver position locks the
    session onto real telemetry: simulated samples are ignored from then on.

    When the order reaches a state that ends tracking, the position is
    cleared, a final view (``tracking_active=False``) is published and the
    session destroys itself. After :meth:`destroy` no callback fires again.
    """

    def __init__(
        self,
        order: Order,
        source: PositionSource,
        clock: TickClock,
        *,
        config: TrackingConfig | None = None,
    ) -> None:
        self._order = order
        self._source = source
        self._clock = clock
        self._config = config or TrackingConfig()
        self.offset = order_offset(order.id)
        self._tick = clock.tick
        self._position_source: UpdateSource | None = None
        if order.driver_position is not None and source.kind == UpdateSource.PUSH:
            self._position_source = UpdateSource.PUSH
        self._telemetry_locked = False
        self._closed = False
        self._subscribers: dict[int, ViewCallback] = {}
        self._keys = count()
        self._close_listeners: dict[int, CloseCallback] = {}
        self._channel_unsubscribe: Callable[[], None] | None = None
        self._clock_subscription = clock.subscribe(self._on_tick)
        _logger.debug("Tracking session started order=%s source=%r offset=%d", order.id, source, self.offset)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def order_id(self) -> str:
        return self._order.id

    @property
    def order(self) -> Order:
        return self._order

    @property
    def source(self) -> PositionSource:
        return self._source

    @property
    def tick(self) -> int:
        """Last clock tick this session observed."""
        return self._tick

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def telemetry_locked(self) -> bool:
        return self._telemetry_locked

    def view(self, *, tracking_active: bool | None = None) -> OrderView:
        order = self._order
        info = classify(order.status, order.mode)
        return OrderView(
            order_id=order.id,
            status=order.status,
            mode=order.mode,
            progress_fraction=info.progress_fraction,
            current_index=info.current_index,
            steps=info.steps,
            driver_position=order.driver_position,
            position_source=self._position_source if order.driver_position is not None else None,
            tracking_active=not self._closed if tracking_active is None else tracking_active,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: ViewCallback) -> Callable[[], None]:
        """Register a view callback; returns an idempotent unsubscribe callable."""
        if self._closed:
            return lambda: None
        key = next(self._keys)
        self._subscribers[key] = callback

        def _unsubscribe() -> None:
            self._subscribers.pop(key, None)

        return _unsubscribe

    def on_closed(self, callback: CloseCallback) -> Callable[[], None]:
        """Run *callback* once the session is destroyed (immediately if it already is).

        Returns an idempotent callable that removes the listener again.
        """
        if self._closed:
            callback(self)
            return lambda: None
        key = next(self._keys)
        self._close_listeners[key] = callback

        def _remove() -> None:
            self._close_listeners.pop(key, None)

        return _remove

    def attach_channel(self, unsubscribe: Callable[[], None]) -> None:
        """Take ownership of the push channel handle for this order."""
        if self._closed:
            self._release_channel(unsubscribe)
            return
        previous = self._channel_unsubscribe
        self._channel_unsubscribe = unsubscribe
        if previous is not None:
            self._release_channel(previous)

    # ------------------------------------------------------------------
    # Update paths
    # ------------------------------------------------------------------

    def _on_tick(self, tick: int) -> None:
        if self._closed:
            return
        self._tick = tick
        if ends_tracking(self._order.status, self._order.mode):
            self._finish()
            return
        sample = self._source.sample(self._order, tick)
        if sample is None:
            return
        if self._merge_position(sample, self._source.kind):
            self._publish()

    def push(self, patch: OrderPatch) -> None:
        """Apply a change immediately, independent of the clock."""
        if self._closed:
            raise SessionClosedError(f"tracking session for order {self.order_id!r} is closed")
        if patch.order_id is not None and patch.order_id != self.order_id:
            _logger.debug("Ignoring patch for order=%s on session order=%s", patch.order_id, self.order_id)
            return

        changed = False
        if patch.driver_position is not None:
            if patch.source == UpdateSource.PUSH:
                self._lock_to_telemetry()
            changed = self._merge_position(patch.driver_position, patch.source)

        if patch.status is not None and patch.status != self._order.status:
            _logger.debug(
                "Order status order=%s %s -> %s source=%s",
                self.order_id,
                self._order.status,
                patch.status,
                patch.source,
            )
            was_trackable = is_trackable(self._order.status, self._order.mode)
            self._order = self._order.model_copy(update={"status": patch.status})
            if self._leaves_tracking(was_trackable):
                self._finish()
                return
            changed = True

        if changed:
            self._publish()

    def _leaves_tracking(self, was_trackable: bool) -> bool:
        status, mode = self._order.status, self._order.mode
        if ends_tracking(status, mode):
            return True
        # A rider position is only meaningful while the order is trackable.
        return was_trackable and not is_trackable(status, mode)

    def _lock_to_telemetry(self) -> None:
        if self._telemetry_locked:
            return
        self._telemetry_locked = True
        if not isinstance(self._source, RealPositionSource):
            _logger.debug("Telemetry received; disabling simulated source order=%s", self.order_id)
            self._source = RealPositionSource()

    def _merge_position(self, position: Position, source: UpdateSource) -> bool:
        if not should_accept_position(
            current_source=self._position_source,
            incoming_source=source,
            telemetry_locked=self._telemetry_locked,
        ):
            return False
        if position == self._order.driver_position and source == self._position_source:
            return False
        self._order = self._order.model_copy(update={"driver_position": position})
        self._position_source = source
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _finish(self) -> None:
        _logger.debug("Tracking finished order=%s status=%s", self.order_id, self._order.status)
        self._order = self._order.model_copy(update={"driver_position": None})
        self._position_source = None
        self._publish(view=self.view(tracking_active=False))
        self.destroy()

    def destroy(self) -> None:
        """Detach from the clock and the push channel. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._clock_subscription.cancel()
        unsubscribe = self._channel_unsubscribe
        self._channel_unsubscribe = None
        if unsubscribe is not None:
            self._release_channel(unsubscribe)
        self._subscribers.clear()
        listeners = self._close_listeners
        self._close_listeners = {}
        for listener in listeners.values():
            try:
                listener(self)
            except Exception:
                _logger.debug("Close listener failed order=%s", self.order_id, exc_info=True)
        _logger.debug("Tracking session destroyed order=%s", self.order_id)

    def _release_channel(self, unsubscribe: Callable[[], None]) -> None:
        try:
            unsubscribe()
        except Exception:
            _logger.warning("Unsubscribing order channel failed order=%s", self.order_id, exc_info=True)

    def _publish(self, view: OrderView | None = None) -> None:
        if self._closed:
            return
        snapshot = view or self.view()
        for key in list(self._subscribers):
            # A subscriber may destroy the session mid-dispatch.
            if self._closed:
                return
            callback = self._subscribers.get(key)
            if callback is None:
                continue
            try:
                callback(snapshot)
            except Exception:
                _logger.debug("View subscriber failed order=%s", self.order_id, exc_info=True)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "live"
        return f"TrackingSession(order_id={self.order_id!r}, status={self._order.status}, {state})"
