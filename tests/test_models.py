from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from grocetrack.models import DevicePosition, LatLng, Order, OrderMode, OrderStatus, Position, Store
from grocetrack.models.view import OrderView
from grocetrack.state.events import OrderPatch, UpdateSource


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("placed", OrderStatus.PLACED),
        ("PACKING", OrderStatus.PACKING),
        ("On The Way", OrderStatus.ON_THE_WAY),
        ("on-the-way", OrderStatus.ON_THE_WAY),
        ("ON_WAY", OrderStatus.ON_THE_WAY),
        ("canceled", OrderStatus.CANCELLED),
        ("Picked Up", OrderStatus.PICKED_UP),
        ("accepted", OrderStatus.UNKNOWN),
        ("", OrderStatus.UNKNOWN),
        (None, OrderStatus.UNKNOWN),
        (42, OrderStatus.UNKNOWN),
    ],
)
def test_order_status_parse(raw: object, expected: OrderStatus) -> None:
    assert OrderStatus.parse(raw) == expected


def test_order_status_lookup_never_raises() -> None:
    assert OrderStatus("DELIVERED") is OrderStatus.DELIVERED
    assert OrderStatus("nope") is OrderStatus.UNKNOWN


def test_order_mode_falls_back_to_delivery() -> None:
    assert OrderMode.parse("PICKUP") == OrderMode.PICKUP
    assert OrderMode.parse("drone") == OrderMode.DELIVERY
    assert OrderMode.parse(None) == OrderMode.DELIVERY


def test_lat_lng_rejects_invalid_coordinates() -> None:
    with pytest.raises(ValidationError):
        LatLng(lat=91.0, lng=0.0)
    with pytest.raises(ValidationError):
        LatLng(lat=float("nan"), lng=0.0)
    with pytest.raises(ValidationError):
        LatLng(lat=True, lng=0.0)


def test_lat_lng_accepts_numeric_strings() -> None:
    point = LatLng(lat="12.9716", lng="77.5946")
    assert point.lat == pytest.approx(12.9716)
    assert point.lng == pytest.approx(77.5946)


def test_position_build_returns_none_for_invalid() -> None:
    assert Position.build(None, 77.0) is None
    assert Position.build(12.0, float("inf")) is None
    built = Position.build(12.0, 77.0, tick=3)
    assert built is not None
    assert built.tick == 3
    assert built.same_point(LatLng(lat=12.0, lng=77.0))


def test_device_position_accuracy_is_optional() -> None:
    fix = DevicePosition.model_validate({"lat": 12.0, "lng": 77.0, "accuracy": "--"})
    assert fix.accuracy is None


def test_order_from_app_shape() -> None:
    order = Order.model_validate(
        {
            "id": "abc123",
            "mode": "DELIVERY",
            "status": "ON_THE_WAY",
            "storeLocation": {"lat": 12.9716, "lng": 77.6410},
            "userLocation": {"lat": 12.9780, "lng": 77.6450},
            "driverLocation": {"lat": 12.975, "lng": 77.643},
            "date": "2026-01-01T10:00:00",
        }
    )

    assert order.id == "abc123"
    assert order.status == OrderStatus.ON_THE_WAY
    assert order.store_location == LatLng(lat=12.9716, lng=77.6410)
    assert order.customer_location == LatLng(lat=12.9780, lng=77.6450)
    assert order.driver_position is not None
    assert order.driver_position.lat == pytest.approx(12.975)
    assert order.created_at == datetime(2026, 1, 1, 10, 0, tzinfo=UTC)
    assert order.is_delivery


def test_order_from_database_row_shape() -> None:
    order = Order.model_validate(
        {
            "id": 17,
            "mode": "pickup",
            "status": "packing",
            "stores": {"name": "Fresh Mart", "lat": "12.9", "lng": "77.6"},
            "delivery_lat": "--",
            "delivery_lng": None,
            "driver_lat": 12.91,
            "driver_lng": 77.61,
            "customer_id": "user-9",
            "store_id": 4,
            "paymentStatus": "pending",
            "deliveryType": "SCHEDULED",
        }
    )

    assert order.id == "17"
    assert order.mode == OrderMode.PICKUP
    assert order.store_name == "Fresh Mart"
    assert order.store_location == LatLng(lat=12.9, lng=77.6)
    assert order.customer_location is None
    assert order.driver_position == Position(lat=12.91, lng=77.61)
    assert order.store_id == "4"
    assert order.payment_pending


def test_order_requires_store_location() -> None:
    with pytest.raises(ValidationError):
        Order.model_validate({"id": "x", "status": "placed"})
    with pytest.raises(ValidationError):
        Order.model_validate({"id": "x", "store_lat": "n/a", "store_lng": 77.0})


def test_order_requires_id() -> None:
    with pytest.raises(ValidationError):
        Order.model_validate({"id": "  ", "storeLocation": {"lat": 1.0, "lng": 1.0}})


def test_order_is_immutable() -> None:
    order = Order(id="o-1", store_location=LatLng(lat=1.0, lng=1.0))
    with pytest.raises(ValidationError):
        order.status = OrderStatus.PACKING  # type: ignore[misc]
    updated = order.model_copy(update={"status": OrderStatus.PACKING})
    assert updated.status == OrderStatus.PACKING
    assert order.status == OrderStatus.PLACED


def test_store_keeps_unparseable_coordinates_as_none() -> None:
    store = Store.model_validate({"id": 3, "name": "Mart", "lat": "", "lng": "77.1", "isOpen": False})
    assert store.id == "3"
    assert store.lat is None
    assert store.lng == pytest.approx(77.1)
    assert store.is_open is False


def test_order_patch_parses_status() -> None:
    patch = OrderPatch(order_id="o-1", status="Delivered")
    assert patch.status == OrderStatus.DELIVERED
    assert patch.source == UpdateSource.PUSH
    assert patch.observed_at.tzinfo is not None
    assert not patch.is_empty
    assert OrderPatch().is_empty


def test_order_view_rejects_out_of_range_progress() -> None:
    with pytest.raises(ValidationError):
        OrderView(
            order_id="o-1",
            status=OrderStatus.PLACED,
            mode=OrderMode.DELIVERY,
            progress_fraction=1.5,
            current_index=0,
            steps=(),
        )


def test_store_location_requires_valid_coordinates() -> None:
    assert Store(id="1", lat=12.9, lng=77.6).location == LatLng(lat=12.9, lng=77.6)
    assert Store(id="2", lat=12.9).location is None
    assert Store(id="3", lat=120.0, lng=77.6).location is None
