from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

import pytest

from grocetrack.engine import TrackingEngine
from grocetrack.exceptions import DeviceLocationError, InvalidRecordError, OrderNotTrackedError
from grocetrack.hub import InMemoryOrderHub
from grocetrack.models.order import OrderStatus
from grocetrack.models.position import LatLng, Position
from grocetrack.models.view import OrderView
from grocetrack.state.events import UpdateSource
from grocetrack.tracking.clock import ManualClock
from grocetrack.tracking.sources import RealPositionSource, SimulatedPositionSource


def _record(status: str = "on_the_way", *, order_id: str = "abc123", mode: str = "delivery") -> dict[str, Any]:
    return {
        "id": order_id,
        "mode": mode,
        "status": status,
        "stores": {"name": "Fresh Mart", "lat": 12.9716, "lng": 77.6410},
        "delivery_lat": 12.9780,
        "delivery_lng": 77.6450,
        "customer_name": "Asha",
    }


def _engine(account_id: str = "user-1", **kwargs: Any) -> tuple[TrackingEngine, ManualClock, InMemoryOrderHub]:
    clock = ManualClock()
    hub = InMemoryOrderHub()
    kwargs.setdefault("command_sink", hub)
    engine = TrackingEngine(hub=hub, clock=clock, account_id=account_id, **kwargs)
    return engine, clock, hub


class _FailingSink:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def issue_status_update(self, order_id: str, status: str) -> None:
        self.calls.append((order_id, status))
        raise ConnectionError("store unreachable")


class _AsyncFailingSink:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def issue_status_update(self, order_id: str, status: str) -> None:
        self.calls.append((order_id, status))
        raise ConnectionError("store unreachable")


class _HangingSink:
    def __init__(self) -> None:
        self.started = False

    async def issue_status_update(self, order_id: str, status: str) -> None:
        self.started = True
        await asyncio.Event().wait()


class _BrokenHub:
    def subscribe_order_changes(self, key: str, on_change: Callable[[Mapping[str, Any]], None]) -> Callable[[], None]:
        raise ConnectionError("channel down")


class _FakeProvider:
    def __init__(self) -> None:
        self.on_position: Callable[[Any], None] | None = None
        self.cleared: list[Any] = []

    async def get_current_position(self) -> Any:
        return None

    def watch_position(self, on_position: Callable[[Any], None], on_error: Callable[[DeviceLocationError], None]) -> Any:
        self.on_position = on_position
        return "watch-1"

    def clear_watch(self, watch_id: Any) -> None:
        self.cleared.append(watch_id)


def test_track_returns_one_session_per_order() -> None:
    engine, _clock, hub = _engine()

    session = engine.track(_record())
    again = engine.track(_record())

    assert session is not None
    assert again is session
    assert isinstance(session.source, RealPositionSource)
    assert hub.subscriber_count("abc123") == 1


def test_track_skips_orders_that_are_done() -> None:
    engine, _clock, hub = _engine()

    assert engine.track(_record("delivered")) is None
    assert engine.track(_record("ready", mode="pickup")) is None
    assert engine.sessions == {}
    assert hub.subscriber_count() == 0


def test_track_rejects_garbage_records() -> None:
    engine, _clock, _hub = _engine()
    with pytest.raises(InvalidRecordError):
        engine.track({"id": "x"})


def test_unknown_order_raises() -> None:
    engine, _clock, _hub = _engine()
    with pytest.raises(OrderNotTrackedError):
        engine.observe_order("missing", lambda _view: None)
    with pytest.raises(KeyError):
        engine.view("missing")


def test_observe_order_delivers_current_view_immediately() -> None:
    engine, _clock, hub = _engine()
    engine.track(_record())
    views: list[OrderView] = []

    unsubscribe = engine.observe_order("abc123", views.append)
    hub.publish("abc123", {"id": "abc123", "driver_lat": 12.975, "driver_lng": 77.643})
    unsubscribe()
    hub.publish("abc123", {"id": "abc123", "driver_lat": 12.976, "driver_lng": 77.644})

    assert len(views) == 2
    assert views[0].driver_position is None
    assert views[1].driver_position == Position(lat=12.975, lng=77.643)
    assert views[1].position_source == UpdateSource.PUSH


def test_pushed_terminal_status_ends_session_and_channel() -> None:
    engine, clock, hub = _engine()
    engine.track(_record())
    views: list[OrderView] = []
    engine.observe_order("abc123", views.append)

    hub.publish("abc123", {"id": "abc123", "status": "DELIVERED"})
    clock.advance(3)

    assert not views[-1].tracking_active
    assert views[-1].status == OrderStatus.DELIVERED
    assert engine.get_session("abc123") is None
    assert hub.subscriber_count() == 0
    assert clock.subscriber_count == 0


def test_channel_record_for_other_order_is_ignored() -> None:
    engine, _clock, hub = _engine()
    session = engine.track(_record())
    assert session is not None

    hub.publish("abc123", {"id": "zzz", "status": "cancelled"})

    assert session.order.status == OrderStatus.ON_THE_WAY


def test_handle_order_change_routes_by_id() -> None:
    engine, _clock, _hub = _engine()
    engine.track(_record("packing"))

    assert engine.handle_order_change({"id": "abc123", "status": "on_the_way"})
    assert not engine.handle_order_change({"id": "other", "status": "on_the_way"})
    assert not engine.handle_order_change({"status": "on_the_way"})
    assert engine.view("abc123").status == OrderStatus.ON_THE_WAY


def test_request_status_update_applies_optimistically() -> None:
    engine, _clock, hub = _engine()
    engine.track(_record("placed"))
    views: list[OrderView] = []
    engine.observe_order("abc123", views.append)

    assert engine.request_status_update("abc123", "packing")

    assert engine.view("abc123").status == OrderStatus.PACKING
    assert hub.commands == [("abc123", "packing")]
    # The echoed change matches the optimistic state, so only one update is published.
    assert [view.status for view in views] == [OrderStatus.PLACED, OrderStatus.PACKING]


def test_request_status_update_rejects_illegal_transition() -> None:
    engine, _clock, hub = _engine()
    engine.track(_record("placed"))

    assert not engine.request_status_update("abc123", OrderStatus.DELIVERED)
    assert not engine.request_status_update("abc123", "placed")

    assert engine.view("abc123").status == OrderStatus.PLACED
    assert hub.commands == []


def test_request_status_update_to_terminal_ends_tracking() -> None:
    engine, _clock, hub = _engine()
    engine.track(_record())

    assert engine.request_status_update("abc123", "delivered")

    assert engine.get_session("abc123") is None
    assert hub.commands == [("abc123", "delivered")]


def test_sink_failure_keeps_optimistic_state() -> None:
    sink = _FailingSink()
    engine, _clock, _hub = _engine(command_sink=sink)
    engine.track(_record("placed"))

    assert engine.request_status_update("abc123", "cancelled") is True
    assert sink.calls == [("abc123", "cancelled")]
    assert engine.get_session("abc123") is None


def test_async_sink_without_loop_is_dropped() -> None:
    sink = _AsyncFailingSink()
    engine, _clock, _hub = _engine(command_sink=sink)
    engine.track(_record("placed"))

    assert engine.request_status_update("abc123", "packing")

    assert engine.view("abc123").status == OrderStatus.PACKING
    assert sink.calls == []


@pytest.mark.asyncio
async def test_async_sink_failure_is_logged_not_raised() -> None:
    sink = _AsyncFailingSink()
    engine, _clock, _hub = _engine(command_sink=sink)
    engine.track(_record("placed"))

    assert engine.request_status_update("abc123", "packing")
    for _ in range(3):
        await asyncio.sleep(0)

    assert sink.calls == [("abc123", "packing")]
    assert engine.view("abc123").status == OrderStatus.PACKING
    assert not engine._pending_commands  # type: ignore[attr-defined]


def test_subscription_failure_still_tracks() -> None:
    clock = ManualClock()
    engine = TrackingEngine(hub=_BrokenHub(), clock=clock, account_id="user-1")

    session = engine.track(_record())

    assert session is not None
    assert not session.closed


def test_demo_account_uses_simulation_without_channel() -> None:
    engine, clock, hub = _engine("demo-user")
    session = engine.track(_record())
    assert session is not None
    views: list[OrderView] = []
    engine.observe_order("abc123", views.append)

    clock.advance(10)

    assert engine.is_demo
    assert isinstance(session.source, SimulatedPositionSource)
    assert hub.subscriber_count() == 0
    assert views[-1].driver_position is not None
    assert views[-1].position_source == UpdateSource.SIMULATED


def test_rank_stores_by_distance_delegates() -> None:
    engine, _clock, _hub = _engine()
    ranked = engine.rank_stores_by_distance(
        [{"id": 1, "lat": 13.0, "lng": 77.6}, {"id": 2, "lat": 12.98, "lng": 77.6}],
        LatLng(lat=12.97, lng=77.6),
    )
    assert [entry.store.id for entry in ranked] == ["2", "1"]


def test_device_watch_feeds_simulated_destination() -> None:
    provider = _FakeProvider()
    engine, _clock, _hub = _engine("demo-user", location_provider=provider)
    session = engine.track(_record())
    assert session is not None
    source = session.source
    assert isinstance(source, SimulatedPositionSource)

    engine.start_device_watch()
    assert provider.on_position is not None
    provider.on_position({"lat": 12.99, "lng": 77.66, "accuracy": 15.0})

    assert engine.device_location == LatLng(lat=12.99, lng=77.66)
    assert source.destination_for(session.order) == LatLng(lat=12.99, lng=77.66)

    engine.stop_device_watch()
    assert provider.cleared == ["watch-1"]
    assert engine.device_location is None
    assert source.destination_for(session.order) == LatLng(lat=12.9780, lng=77.6450)


def test_device_watch_requires_provider() -> None:
    engine, _clock, _hub = _engine()
    with pytest.raises(RuntimeError):
        engine.start_device_watch()


def test_close_is_idempotent() -> None:
    engine, clock, hub = _engine()
    session = engine.track(_record())
    assert session is not None

    engine.close()
    engine.close()

    assert session.closed
    assert engine.sessions == {}
    assert hub.subscriber_count() == 0
    assert clock.subscriber_count == 0
    with pytest.raises(RuntimeError):
        engine.track(_record())


@pytest.mark.asyncio
async def test_stream_ends_with_session() -> None:
    engine, _clock, hub = _engine()
    engine.track(_record())

    stream = engine.stream("abc123")
    first = await anext(stream)
    hub.publish("abc123", {"id": "abc123", "driverLocation": {"lat": 12.975, "lng": 77.643}})
    hub.publish("abc123", {"id": "abc123", "status": "delivered"})
    rest = [view async for view in stream]

    assert first.tracking_active
    assert [view.driver_position is not None for view in rest] == [True, False]
    assert rest[-1].tracking_active is False


@pytest.mark.asyncio
async def test_engine_owned_clock_runs_in_context() -> None:
    async with TrackingEngine(account_id="demo-user") as engine:
        engine.track(_record())
        await asyncio.sleep(0)
        assert engine.clock.subscriber_count >= 1
    assert engine.sessions == {}


@pytest.mark.asyncio
async def test_closed_streams_release_their_close_listeners() -> None:
    engine, _clock, _hub = _engine()
    session = engine.track(_record())
    assert session is not None

    for _ in range(50):
        stream = engine.stream("abc123")
        await anext(stream)
        await stream.aclose()

    # Only the engine's own bookkeeping listener remains.
    assert len(session._close_listeners) == 1  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_exiting_engine_cancels_pending_commands() -> None:
    sink = _HangingSink()
    engine = TrackingEngine(clock=ManualClock(), hub=InMemoryOrderHub(), account_id="user-1", command_sink=sink)
    async with engine:
        engine.track(_record("placed"))
        assert engine.request_status_update("abc123", "packing")
        await asyncio.sleep(0)
        assert sink.started
        pending = set(engine._pending_commands)  # type: ignore[attr-defined]
        assert len(pending) == 1

    task = pending.pop()
    assert task.cancelled()
    assert not engine._pending_commands  # type: ignore[attr-defined]
