"""Status progression for demo/offline accounts.

Demo accounts have no merchant behind them, so their orders advance one
workflow step every ``demo_status_interval`` ticks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from grocetrack.config import TrackingConfig
from grocetrack.lifecycle import next_status
from grocetrack.state.events import OrderPatch, UpdateSource
from grocetrack.tracking.clock import TickClock
from grocetrack.tracking.session import TrackingSession

_logger = logging.getLogger(__name__)


class DemoStatusSimulator:
    """Advances every live session's order along its mode's step list.

    Scheduled orders still awaiting payment are left untouched.
    """

    def __init__(
        self,
        clock: TickClock,
        sessions: Callable[[], Iterable[TrackingSession]],
        *,
        config: TrackingConfig | None = None,
    ) -> None:
        self._config = config or TrackingConfig()
        self._sessions = sessions
        self._elapsed = 0
        self._subscription = clock.subscribe(self._on_tick)

    @property
    def active(self) -> bool:
        return self._subscription.active

    def stop(self) -> None:
        self._subscription.cancel()

    def _on_tick(self, tick: int) -> None:
        self._elapsed += 1
        if self._elapsed % self._config.demo_status_interval:
            return
        for session in list(self._sessions()):
            if session.closed:
                continue
            order = session.order
            if order.payment_pending:
                continue
            upcoming = next_status(order.status, order.mode)
            if upcoming is None:
                continue
            _logger.debug("Demo advance order=%s %s -> %s", order.id, order.status, upcoming)
            session.push(OrderPatch(order_id=order.id, source=UpdateSource.DEMO, status=upcoming))
