"""Shared tick clock.

A single clock drives every live tracking session cooperatively: each tick
dispatches synchronously to all subscribers, in subscription order. The
clock is injected into the engine so tests can advance virtual time with
:class:`ManualClock` while applications run :class:`AsyncioClock`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from itertools import count

from grocetrack._constants import DEFAULT_TICK_INTERVAL_S

_logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


class ClockSubscription:
    """Handle returned by :meth:`TickClock.subscribe`."""

    __slots__ = ("_clock", "_key")

    def __init__(self, clock: TickClock, key: int) -> None:
        self._clock: TickClock | None = clock
        self._key = key

    @property
    def active(self) -> bool:
        return self._clock is not None and self._key in self._clock._callbacks  # noqa: SLF001

    def cancel(self) -> None:
        """Detach from the clock. Repeated calls are no-ops."""
        clock = self._clock
        self._clock = None
        if clock is not None:
            clock._callbacks.pop(self._key, None)  # noqa: SLF001


class TickClock:
    """Base clock: owns the tick counter and the subscriber table."""

    def __init__(self) -> None:
        self._tick = 0
        self._callbacks: dict[int, TickCallback] = {}
        self._keys = count()

    @property
    def tick(self) -> int:
        """Number of ticks fired so far."""
        return self._tick

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: TickCallback) -> ClockSubscription:
        key = next(self._keys)
        self._callbacks[key] = callback
        return ClockSubscription(self, key)

    def _fire(self) -> None:
        self._tick += 1
        tick = self._tick
        # Snapshot keys: callbacks may subscribe or cancel while we dispatch.
        for key in list(self._callbacks):
            callback = self._callbacks.get(key)
            if callback is None:
                continue
            try:
                callback(tick)
            except Exception:
                _logger.debug("Tick subscriber failed tick=%d", tick, exc_info=True)


class ManualClock(TickClock):
    """Clock advanced explicitly, for tests, scripts and offline replays."""

    def advance(self, ticks: int = 1) -> int:
        if ticks < 0:
            raise ValueError(f"ticks must not be negative, got {ticks}")
        for _ in range(ticks):
            self._fire()
        return self._tick


class AsyncioClock(TickClock):
    """Clock firing once per *interval* seconds on the running event loop.

    Usage::

        async with AsyncioClock(1.0) as clock:
            engine = TrackingEngine(clock=clock, hub=hub)
            ...
    """

    def __init__(self, interval: float = DEFAULT_TICK_INTERVAL_S) -> None:
        super().__init__()
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        _logger.debug("Tick clock started interval=%.3fs", self._interval)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.debug("Tick clock stopped at tick=%d", self._tick)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self._interval
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            self._fire()
            next_at += self._interval
            now = loop.time()
            if next_at < now:
                # A stalled loop skips missed ticks instead of firing them in a burst.
                next_at = now + self._interval

    async def __aenter__(self) -> AsyncioClock:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()
