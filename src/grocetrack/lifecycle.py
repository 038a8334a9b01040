"""Order status lifecycle per fulfillment mode.

Statuses are normalized once (see :class:`~grocetrack.models.order.OrderStatus`);
everything here compares enum members. Unknown statuses never raise, they
degrade to the "not started" visual state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from grocetrack.models.order import OrderMode, OrderStatus
from grocetrack.models.view import StepDefinition

_STEPS: dict[OrderMode, tuple[OrderStatus, ...]] = {
    OrderMode.DELIVERY: (
        OrderStatus.PLACED,
        OrderStatus.PACKING,
        OrderStatus.ON_THE_WAY,
        OrderStatus.DELIVERED,
    ),
    OrderMode.PICKUP: (
        OrderStatus.PLACED,
        OrderStatus.PACKING,
        OrderStatus.READY,
        OrderStatus.PICKED_UP,
    ),
}

# Reachable from any non-terminal state in either mode.
OVERRIDE_STATES: frozenset[OrderStatus] = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED})

TERMINAL_STATES: frozenset[OrderStatus] = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.PICKED_UP,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED,
    }
)

_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PLACED: "Placed",
    OrderStatus.PACKING: "Packing",
    OrderStatus.ON_THE_WAY: "On Way",
    OrderStatus.READY: "Ready",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.PICKED_UP: "Picked Up",
}

_ICONS: dict[OrderStatus, str] = {
    OrderStatus.PLACED: "📝",
    OrderStatus.PACKING: "🥡",
    OrderStatus.ON_THE_WAY: "🛵",
    OrderStatus.READY: "🛍️",
    OrderStatus.DELIVERED: "🏠",
    OrderStatus.PICKED_UP: "🏠",
}


@dataclass(frozen=True, slots=True)
class StatusInfo:
    """Result of :func:`classify`."""

    steps: tuple[StepDefinition, ...]
    current_index: int
    progress_fraction: float

    @property
    def started(self) -> bool:
        return self.current_index >= 0


def _status(value: Any) -> OrderStatus:
    return OrderStatus.parse(value)  # type: ignore[return-value]


def _mode(value: Any) -> OrderMode:
    return OrderMode.parse(value)  # type: ignore[return-value]


def steps_for(mode: OrderMode | str) -> tuple[OrderStatus, ...]:
    return _STEPS[_mode(mode)]


def step_definitions(mode: OrderMode | str) -> tuple[StepDefinition, ...]:
    """Ordered, labelled checkpoints for *mode*."""
    return tuple(
        StepDefinition(status=status, label=_LABELS[status], icon=_ICONS.get(status, "•"))
        for status in steps_for(mode)
    )


def classify(status: OrderStatus | str | None, mode: OrderMode | str) -> StatusInfo:
    """Map *status* onto *mode*'s step list.

    Statuses off the list (cancelled, rejected, unrecognized input) yield
    ``current_index == -1`` and zero progress.
    """
    normalized = _status(status)
    steps = steps_for(mode)
    definitions = step_definitions(mode)
    try:
        index = steps.index(normalized)
    except ValueError:
        return StatusInfo(steps=definitions, current_index=-1, progress_fraction=0.0)
    fraction = index / (len(steps) - 1)
    return StatusInfo(
        steps=definitions,
        current_index=index,
        progress_fraction=min(1.0, max(0.0, fraction)),
    )


def is_terminal(status: OrderStatus | str | None) -> bool:
    return _status(status) in TERMINAL_STATES


def can_transition(
    from_status: OrderStatus | str | None,
    to_status: OrderStatus | str | None,
    mode: OrderMode | str,
) -> bool:
    """Whether moving from *from_status* to *to_status* is legal for *mode*.

    Terminal states are absorbing. Cancel/reject is allowed from any
    non-terminal state; otherwise only the immediate next step is.
    """
    current = _status(from_status)
    target = _status(to_status)
    if current in TERMINAL_STATES:
        return False
    if target in OVERRIDE_STATES:
        return True
    steps = steps_for(mode)
    if current not in steps or target not in steps:
        return False
    return steps.index(target) == steps.index(current) + 1


def next_status(status: OrderStatus | str | None, mode: OrderMode | str) -> OrderStatus | None:
    """The workflow successor of *status*, ``None`` at the end or off the list."""
    current = _status(status)
    steps = steps_for(mode)
    if current not in steps or current in TERMINAL_STATES:
        return None
    index = steps.index(current)
    if index + 1 >= len(steps):
        return None
    return steps[index + 1]


def is_in_transit(status: OrderStatus | str | None, mode: OrderMode | str) -> bool:
    return _mode(mode) == OrderMode.DELIVERY and _status(status) == OrderStatus.ON_THE_WAY


def is_trackable(status: OrderStatus | str | None, mode: OrderMode | str) -> bool:
    """Statuses for which a rider position exists (arriving at or leaving the store)."""
    return _status(status) == OrderStatus.PACKING or is_in_transit(status, mode)


def ends_tracking(status: OrderStatus | str | None, mode: OrderMode | str) -> bool:
    """Whether a live tracking session for the order must end.

    True for terminal states and, for pickup orders, once the order is
    ready (no rider is involved any more). Unknown statuses keep the
    session alive.
    """
    normalized = _status(status)
    if normalized in TERMINAL_STATES:
        return True
    return _mode(mode) == OrderMode.PICKUP and normalized == OrderStatus.READY
