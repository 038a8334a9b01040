"""Viewing-device location: one-shot lookups and filtered continuous watches.

The platform location service itself is an external collaborator
(:class:`DeviceLocationProvider`). Providers report failures as
:class:`~grocetrack.exceptions.DeviceLocationError` subclasses so they
reach the presentation layer as permission/signal/timeout categories.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from pydantic import ValidationError

from grocetrack.config import TrackingConfig
from grocetrack.exceptions import DeviceLocationError, LocationSignalError, LocationTimeoutError
from grocetrack.geo import has_moved
from grocetrack.models.position import DevicePosition

_logger = logging.getLogger(__name__)

PositionCallback = Callable[[DevicePosition], None]
ErrorCallback = Callable[[DeviceLocationError], None]


class DeviceLocationProvider(Protocol):
    """Platform location service.

    ``get_current_position`` and the watch stream may deliver raw mappings
    (``{"lat", "lng", "accuracy"}``) or :class:`DevicePosition` values.
    """

    async def get_current_position(self) -> Any: ...

    def watch_position(self, on_position: Callable[[Any], None], on_error: ErrorCallback) -> Any: ...

    def clear_watch(self, watch_id: Any) -> None: ...


def _as_device_position(raw: Any) -> DevicePosition | None:
    if isinstance(raw, DevicePosition):
        return raw
    try:
        return DevicePosition.model_validate(raw)
    except ValidationError:
        return None


async def get_current_device_position(provider: DeviceLocationProvider) -> DevicePosition:
    """High-accuracy one-shot lookup.

    Timeouts surface as :class:`LocationTimeoutError`; a fix with invalid
    coordinates is reported as a signal failure.
    """
    try:
        raw = await provider.get_current_position()
    except TimeoutError as exc:
        raise LocationTimeoutError() from exc
    fix = _as_device_position(raw)
    if fix is None:
        raise LocationSignalError("Invalid coordinates received.")
    return fix


class DevicePositionWatch:
    """Filtered continuous device location stream.

    Fixes are discarded when their accuracy is worse than
    ``watch_accuracy_threshold``, when their coordinates are invalid, or when
    they moved less than ``min_move_degrees`` without improving accuracy.
    Timeouts are transient and suppressed; other errors are forwarded.
    """

    def __init__(
        self,
        provider: DeviceLocationProvider,
        on_position: PositionCallback,
        on_error: ErrorCallback | None = None,
        *,
        config: TrackingConfig | None = None,
    ) -> None:
        self._provider = provider
        self._on_position = on_position
        self._on_error = on_error
        self._config = config or TrackingConfig()
        self._watch_id: Any = None
        self._last: DevicePosition | None = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_position(self) -> DevicePosition | None:
        return self._last

    def start(self) -> None:
        if self._active:
            return
        self._active = True
        self._watch_id = self._provider.watch_position(self._handle_position, self._handle_error)
        _logger.debug("Device watch started id=%s", self._watch_id)

    def stop(self) -> None:
        """Stop the stream. Repeated calls are no-ops."""
        if not self._active:
            return
        self._active = False
        watch_id = self._watch_id
        self._watch_id = None
        try:
            self._provider.clear_watch(watch_id)
        except Exception:
            _logger.warning("Clearing device watch id=%s failed", watch_id, exc_info=True)

    def accepts(self, fix: DevicePosition) -> bool:
        threshold = self._config.watch_accuracy_threshold
        if fix.accuracy is None or fix.accuracy > threshold:
            return False
        previous = self._last
        if previous is None:
            return True
        improved = previous.accuracy is None or fix.accuracy < previous.accuracy
        return improved or has_moved(previous, fix, self._config.min_move_degrees)

    def _handle_position(self, raw: Any) -> None:
        if not self._active:
            return
        fix = _as_device_position(raw)
        if fix is None:
            _logger.debug("Dropped device fix with invalid coordinates")
            return
        if not self.accepts(fix):
            _logger.debug("Dropped device fix accuracy=%s", fix.accuracy)
            return
        self._last = fix
        self._on_position(fix)

    def _handle_error(self, error: DeviceLocationError) -> None:
        if not self._active:
            return
        if isinstance(error, LocationTimeoutError):
            _logger.debug("Device watch timeout ignored")
            return
        _logger.debug("Device watch error category=%s", getattr(error, "category", None))
        if self._on_error is not None:
            self._on_error(error)
