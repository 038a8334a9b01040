"""Order model and its closed enumerations."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from grocetrack.ingestion.normalize import lat_lng_from, lat_lng_from_flat, safe_str
from grocetrack.models._base import TrackBaseModel, TrackEnum, ensure_tz_aware
from grocetrack.models.position import LatLng, Position


class OrderMode(TrackEnum):
    """Fulfillment mode. Unrecognized values fall back to ``DELIVERY``."""

    DELIVERY = "delivery"
    PICKUP = "pickup"


class OrderStatus(TrackEnum):
    """Order status, normalized once at the boundary.

    Unrecognized values resolve to ``UNKNOWN`` instead of raising.
    """

    PLACED = "placed"
    PACKING = "packing"
    READY = "ready"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    PICKED_UP = "picked_up"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    UNKNOWN = "unknown"

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {
            "on_way": "on_the_way",
            "ontheway": "on_the_way",
            "pickedup": "picked_up",
            "canceled": "cancelled",
        }


class Order(TrackBaseModel):
    """In-memory view of an order while it is being tracked.

    ``store_location`` is fixed at order creation. ``driver_position`` is
    only meaningful while the order is in transit and is only written by the
    order's own tracking session.

    Accepts both the store's snake_case rows (``delivery_lat``,
    ``stores{lat,lng}``, ``driver_lat``...) and the app's camelCase shape
    (``storeLocation``, ``userLocation``, ``driverLocation``...).
    """

    id: str
    mode: OrderMode = OrderMode.DELIVERY
    status: OrderStatus = OrderStatus.PLACED
    store_location: LatLng
    customer_location: LatLng | None = None
    driver_position: Position | None = None
    created_at: datetime | None = None
    customer_id: str | None = None
    store_id: str | None = None
    store_name: str | None = None
    payment_pending: bool = Field(default=False, description="Scheduled order still awaiting payment")

    @model_validator(mode="before")
    @classmethod
    def _normalize_record(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = dict(values)

        store = merged.get("stores")
        if isinstance(store, dict):
            if "storeLocation" not in merged and "store_location" not in merged:
                merged["store_location"] = lat_lng_from(store)
            merged.setdefault("store_name", store.get("name"))
        if not merged.get("storeLocation") and not merged.get("store_location"):
            merged["store_location"] = lat_lng_from_flat(merged, "store_lat", "store_lng")

        customer = merged.pop("customerLocation", None) or merged.pop("userLocation", None)
        customer = customer or merged.pop("customer_location", None)
        if isinstance(customer, LatLng):
            merged["customer_location"] = customer
        elif customer is not None:
            merged["customer_location"] = lat_lng_from(customer)
        else:
            merged["customer_location"] = lat_lng_from_flat(merged, "delivery_lat", "delivery_lng")

        driver = merged.pop("driverLocation", None) or merged.pop("driverPosition", None)
        driver = driver or merged.pop("driver_position", None)
        if isinstance(driver, Position):
            merged["driver_position"] = driver
        elif isinstance(driver, LatLng):
            merged["driver_position"] = Position(lat=driver.lat, lng=driver.lng)
        elif driver is not None:
            merged["driver_position"] = lat_lng_from(driver)
        else:
            merged["driver_position"] = lat_lng_from_flat(merged, "driver_lat", "driver_lng")

        if "created_at" not in merged and "createdAt" not in merged and "date" in merged:
            merged["created_at"] = merged["date"]

        if "payment_pending" not in merged and "paymentPending" not in merged:
            payment_status = safe_str(merged.get("paymentStatus") or merged.get("payment_status"))
            delivery_type = safe_str(merged.get("deliveryType") or merged.get("delivery_type"))
            merged["payment_pending"] = (
                payment_status is not None
                and payment_status.upper() == "PENDING"
                and delivery_type is not None
                and delivery_type.upper() == "SCHEDULED"
            )
        return merged

    @field_validator("id", "customer_id", "store_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str | None) -> str:
        if not value:
            raise ValueError("order id must be non-empty")
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> OrderMode:
        return OrderMode.parse(value)  # type: ignore[return-value]

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> OrderStatus:
        return OrderStatus.parse(value)  # type: ignore[return-value]

    @field_validator("created_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        return ensure_tz_aware(value)

    @property
    def is_delivery(self) -> bool:
        return self.mode == OrderMode.DELIVERY
