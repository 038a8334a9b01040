"""Presentation-facing models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from grocetrack.models.order import OrderMode, OrderStatus
from grocetrack.models.position import Position
from grocetrack.state.events import UpdateSource


class StepDefinition(BaseModel):
    """A named checkpoint of a fulfillment mode's step list."""

    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    label: str
    icon: str


class OrderView(BaseModel):
    """Snapshot published to presentation subscribers.

    Parameters
    ----------
    order_id : str
        Order identifier.
    status : OrderStatus
        Normalized current status.
    mode : OrderMode
        Fulfillment mode the step list belongs to.
    progress_fraction : float
        Progress along the mode's steps, in ``[0, 1]``.
    current_index : int
        Index of ``status`` in ``steps``, ``-1`` when not on the list.
    steps : tuple of StepDefinition
        Ordered checkpoints for ``mode``.
    driver_position : Position or None
        Last known rider position; ``None`` renders as "no live position yet".
    position_source : UpdateSource or None
        Where ``driver_position`` came from.
    tracking_active : bool
        ``False`` on the final view published before a session ends.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    status: OrderStatus
    mode: OrderMode
    progress_fraction: float = Field(ge=0.0, le=1.0)
    current_index: int
    steps: tuple[StepDefinition, ...]
    driver_position: Position | None = None
    position_source: UpdateSource | None = None
    tracking_active: bool = True

    @property
    def progress_percent(self) -> float:
        return self.progress_fraction * 100.0
