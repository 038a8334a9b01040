"""Normalized order change events.

Every update path (pushed rows, simulated samples, demo status advances,
optimistic local transitions) converts its input into an
:class:`OrderPatch`. Only the order's tracking session merges them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from grocetrack.models.order import OrderStatus
from grocetrack.models.position import Position


class UpdateSource(StrEnum):
    PUSH = "push"
    SIMULATED = "simulated"
    DEMO = "demo"
    OPTIMISTIC = "optimistic"


class OrderPatch(BaseModel):
    """A partial update to apply to an order's in-memory view."""

    model_config = ConfigDict(frozen=True)

    order_id: str | None = Field(default=None, description="Order the patch targets, if known")
    source: UpdateSource = UpdateSource.PUSH
    status: OrderStatus | None = None
    driver_position: Position | None = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: object) -> OrderStatus | None:
        if value is None:
            return None
        return OrderStatus.parse(value)  # type: ignore[return-value]

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def is_empty(self) -> bool:
        return self.status is None and self.driver_position is None
