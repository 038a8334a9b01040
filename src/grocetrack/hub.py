"""Boundary with the hosted store: change subscriptions and status commands.

The engine only depends on the two protocols below. :class:`InMemoryOrderHub`
implements both in-process; it backs demo accounts and scripts and echoes
status commands back as change events the way the hosted store's realtime
channel does.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from itertools import count
from typing import Any, Protocol

from grocetrack._redact import redact_for_log

_logger = logging.getLogger(__name__)

ChangeCallback = Callable[[Mapping[str, Any]], None]


class OrderSubscriptionHub(Protocol):
    """Push channel for order row changes."""

    def subscribe_order_changes(self, key: str, on_change: ChangeCallback) -> Callable[[], None]:
        """Subscribe to changes of an order (or of a store's orders); returns an unsubscribe handle."""
        ...


class StatusCommandSink(Protocol):
    """Fire-and-forget status command to the persistence layer.

    Implementations may return ``None`` or an awaitable; the engine never
    waits for the outcome.
    """

    def issue_status_update(self, order_id: str, status: str) -> Awaitable[Any] | None: ...


class InMemoryOrderHub:
    """In-process :class:`OrderSubscriptionHub` and :class:`StatusCommandSink`."""

    def __init__(self) -> None:
        self._subscribers: dict[str, dict[int, ChangeCallback]] = {}
        self._keys = count()
        self.commands: list[tuple[str, str]] = []

    def subscribe_order_changes(self, key: str, on_change: ChangeCallback) -> Callable[[], None]:
        token = next(self._keys)
        self._subscribers.setdefault(key, {})[token] = on_change

        def _unsubscribe() -> None:
            callbacks = self._subscribers.get(key)
            if callbacks is None:
                return
            callbacks.pop(token, None)
            if not callbacks:
                self._subscribers.pop(key, None)

        return _unsubscribe

    def subscriber_count(self, key: str | None = None) -> int:
        if key is not None:
            return len(self._subscribers.get(key, {}))
        return sum(len(callbacks) for callbacks in self._subscribers.values())

    def publish(self, key: str, record: Mapping[str, Any]) -> int:
        """Deliver *record* to every subscriber of *key*; returns the delivery count."""
        callbacks = list(self._subscribers.get(key, {}).values())
        _logger.debug("Publishing change key=%s subscribers=%d record=%s", key, len(callbacks), redact_for_log(record))
        for callback in callbacks:
            try:
                callback(record)
            except Exception:
                _logger.debug("Change subscriber failed key=%s", key, exc_info=True)
        return len(callbacks)

    def issue_status_update(self, order_id: str, status: str) -> None:
        self.commands.append((order_id, status))
        self.publish(order_id, {"id": order_id, "status": status})
