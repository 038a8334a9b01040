"""High-level tracking engine consumed by the presentation layer."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from typing import Any

from grocetrack._redact import redact_for_log
from grocetrack.config import TrackingConfig
from grocetrack.discovery import rank_stores_by_distance
from grocetrack.exceptions import InvalidRecordError, OrderNotTrackedError
from grocetrack.hub import OrderSubscriptionHub, StatusCommandSink
from grocetrack.ingestion.orders import order_from_record, patch_from_record
from grocetrack.lifecycle import can_transition, ends_tracking
from grocetrack.models.order import Order, OrderStatus
from grocetrack.models.position import DevicePosition, LatLng
from grocetrack.models.store import RankedStore, Store
from grocetrack.models.view import OrderView
from grocetrack.state.events import OrderPatch, UpdateSource
from grocetrack.tracking.clock import AsyncioClock, TickClock
from grocetrack.tracking.demo import DemoStatusSimulator
from grocetrack.tracking.device import DeviceLocationProvider, DevicePositionWatch, ErrorCallback
from grocetrack.tracking.session import TrackingSession
from grocetrack.tracking.sources import select_position_source

_logger = logging.getLogger(__name__)


class TrackingEngine:
    """Coordinates one tracking session per visible order on a shared clock.

    Usage::

        async with TrackingEngine(hub=hub, account_id=user_id) as engine:
            engine.track(order_row)
            async for view in engine.stream(order_id):
                render(view)

    Without an explicit *clock* the engine owns an :class:`AsyncioClock`
    that runs while the engine is entered as an async context manager.
    """

    def __init__(
        self,
        *,
        hub: OrderSubscriptionHub | None = None,
        clock: TickClock | None = None,
        config: TrackingConfig | None = None,
        account_id: str | None = None,
        command_sink: StatusCommandSink | None = None,
        location_provider: DeviceLocationProvider | None = None,
    ) -> None:
        self._config = config or TrackingConfig()
        self._owns_clock = clock is None
        self._clock: TickClock = clock if clock is not None else AsyncioClock(self._config.tick_interval)
        self._hub = hub
        self._account_id = account_id
        self._command_sink = command_sink
        self._location_provider = location_provider
        self._sessions: dict[str, TrackingSession] = {}
        self._device_fix: LatLng | None = None
        self._device_watch: DevicePositionWatch | None = None
        self._pending_commands: set[asyncio.Task[Any]] = set()
        self._closed = False
        self._demo: DemoStatusSimulator | None = None
        if self.is_demo:
            self._demo = DemoStatusSimulator(self._clock, self._sessions.values, config=self._config)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TrackingEngine:
        if self._owns_clock and isinstance(self._clock, AsyncioClock):
            self._clock.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()
        pending = list(self._pending_commands)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_clock and isinstance(self._clock, AsyncioClock):
            await self._clock.stop()

    def __enter__(self) -> TrackingEngine:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Destroy every session and stop background feeds. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for session in list(self._sessions.values()):
            session.destroy()
        self._sessions.clear()
        self.stop_device_watch()
        if self._demo is not None:
            self._demo.stop()
        _logger.debug("Tracking engine closed")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> TrackingConfig:
        return self._config

    @property
    def clock(self) -> TickClock:
        return self._clock

    @property
    def is_demo(self) -> bool:
        return self._config.is_demo_account(self._account_id)

    @property
    def device_location(self) -> LatLng | None:
        return self._device_fix

    @property
    def sessions(self) -> dict[str, TrackingSession]:
        return dict(self._sessions)

    def get_session(self, order_id: str) -> TrackingSession | None:
        return self._sessions.get(order_id)

    def _require_session(self, order_id: str) -> TrackingSession:
        session = self._sessions.get(order_id)
        if session is None or session.closed:
            raise OrderNotTrackedError(order_id)
        return session

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def track(self, order: Order | Mapping[str, Any]) -> TrackingSession | None:
        """Start (or return the existing) tracking session for *order*.

        Raw records are normalized first. Orders already past tracking
        (delivered, cancelled, ready for pickup...) get no session.
        """
        if self._closed:
            raise RuntimeError("tracking engine is closed")
        order = order_from_any(order)

        existing = self._sessions.get(order.id)
        if existing is not None and not existing.closed:
            return existing
        if ends_tracking(order.status, order.mode):
            _logger.debug("Not tracking order=%s status=%s", order.id, order.status)
            return None

        source = select_position_source(
            self._account_id,
            order,
            self._config,
            device_location=self._current_device_fix,
        )
        session = TrackingSession(order, source, self._clock, config=self._config)
        session.on_closed(self._forget)
        self._sessions[order.id] = session

        if self._hub is not None and not self.is_demo:
            order_id = order.id
            try:
                unsubscribe = self._hub.subscribe_order_changes(
                    order_id, lambda record: self._on_channel_record(order_id, record)
                )
            except Exception:
                # Channel errors are not retried; the session keeps its sticky state.
                _logger.warning("Subscribing to order changes failed order=%s", order_id, exc_info=True)
            else:
                session.attach_channel(unsubscribe)
        return session

    def untrack(self, order_id: str) -> None:
        """Destroy the session for *order_id*, if any."""
        session = self._sessions.pop(order_id, None)
        if session is not None:
            session.destroy()

    def _forget(self, session: TrackingSession) -> None:
        if self._sessions.get(session.order_id) is session:
            del self._sessions[session.order_id]

    def _on_channel_record(self, order_id: str, record: Mapping[str, Any]) -> None:
        session = self._sessions.get(order_id)
        if session is None or session.closed:
            return
        patch = patch_from_record(record)
        if patch.order_id is not None and patch.order_id != order_id:
            return
        session.push(patch)

    def handle_order_change(self, record: Mapping[str, Any]) -> bool:
        """Route a pushed change row (e.g. from a per-store channel) to its session.

        Returns ``True`` when a live session consumed it.
        """
        patch = patch_from_record(record)
        if patch.order_id is None:
            _logger.debug("Change without order id ignored record=%s", redact_for_log(dict(record)))
            return False
        session = self._sessions.get(patch.order_id)
        if session is None or session.closed or patch.is_empty:
            return False
        session.push(patch)
        return True

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def view(self, order_id: str) -> OrderView:
        return self._require_session(order_id).view()

    def observe_order(self, order_id: str, callback: Callable[[OrderView], None]) -> Callable[[], None]:
        """Call *callback* with the current view now and on every update.

        Returns an unsubscribe callable.
        """
        session = self._require_session(order_id)
        unsubscribe = session.subscribe(callback)
        callback(session.view())
        return unsubscribe

    async def stream(self, order_id: str) -> AsyncIterator[OrderView]:
        """Async iterator of views, finishing when the session ends."""
        session = self._require_session(order_id)
        queue: asyncio.Queue[OrderView | None] = asyncio.Queue()
        unsubscribe = session.subscribe(queue.put_nowait)
        queue.put_nowait(session.view())
        remove_close_listener = session.on_closed(lambda _session: queue.put_nowait(None))
        try:
            while True:
                view = await queue.get()
                if view is None:
                    return
                yield view
        finally:
            unsubscribe()
            remove_close_listener()

    def rank_stores_by_distance(self, stores: Iterable[Store | Mapping[str, Any]], origin: Any) -> list[RankedStore]:
        return rank_stores_by_distance(stores, origin)

    # ------------------------------------------------------------------
    # Status commands
    # ------------------------------------------------------------------

    def request_status_update(self, order_id: str, new_status: OrderStatus | str) -> bool:
        """Apply a status transition optimistically and issue it to the store.

        Returns ``False`` (and changes nothing) when the transition is not
        legal for the order's mode. The store command is fire-and-forget.
        """
        session = self._require_session(order_id)
        order = session.order
        target = OrderStatus.parse(new_status)
        if not can_transition(order.status, target, order.mode):
            _logger.debug("Rejected transition order=%s %s -> %s", order_id, order.status, target)
            return False
        session.push(OrderPatch(order_id=order_id, source=UpdateSource.OPTIMISTIC, status=target))
        self._issue_command(order_id, target)
        return True

    def _issue_command(self, order_id: str, status: OrderStatus) -> None:
        sink = self._command_sink
        if sink is None:
            return
        try:
            result = sink.issue_status_update(order_id, status.value)
        except Exception:
            _logger.warning("Status update command failed order=%s status=%s", order_id, status, exc_info=True)
            return
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("No running event loop; dropping status command order=%s", order_id)
            if inspect.iscoroutine(result):
                result.close()
            return
        task = loop.create_task(self._await_command(order_id, status, result))
        self._pending_commands.add(task)
        task.add_done_callback(self._pending_commands.discard)

    @staticmethod
    async def _await_command(order_id: str, status: OrderStatus, awaitable: Any) -> None:
        try:
            await awaitable
        except Exception:
            _logger.warning("Status update command failed order=%s status=%s", order_id, status, exc_info=True)

    # ------------------------------------------------------------------
    # Device location
    # ------------------------------------------------------------------

    def _current_device_fix(self) -> LatLng | None:
        return self._device_fix

    def start_device_watch(self, on_error: ErrorCallback | None = None) -> DevicePositionWatch:
        """Feed filtered device fixes into simulated deliveries as their destination."""
        if self._location_provider is None:
            raise RuntimeError("no device location provider configured")
        if self._device_watch is not None and self._device_watch.active:
            return self._device_watch
        watch = DevicePositionWatch(self._location_provider, self._on_device_fix, on_error, config=self._config)
        self._device_watch = watch
        watch.start()
        return watch

    def stop_device_watch(self) -> None:
        watch = self._device_watch
        self._device_watch = None
        if watch is not None:
            watch.stop()
        self._device_fix = None

    def _on_device_fix(self, fix: DevicePosition) -> None:
        self._device_fix = LatLng(lat=fix.lat, lng=fix.lng)


def order_from_any(order: Order | Mapping[str, Any]) -> Order:
    """Normalize an order or raw record, raising :class:`InvalidRecordError` on garbage."""
    if isinstance(order, Order):
        return order
    if not isinstance(order, Mapping):
        raise InvalidRecordError(f"unsupported order value: {type(order).__name__}")
    return order_from_record(order)
