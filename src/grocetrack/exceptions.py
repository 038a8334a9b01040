"""Custom exception hierarchy for grocetrack."""

from __future__ import annotations

from enum import StrEnum


class LocationErrorCategory(StrEnum):
    """User-facing category of a device location failure."""

    PERMISSION = "permission"
    SIGNAL = "signal"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


_LOCATION_MESSAGES: dict[LocationErrorCategory, str] = {
    LocationErrorCategory.PERMISSION: "Please enable location permissions.",
    LocationErrorCategory.SIGNAL: "GPS signal weak. Move near a window.",
    LocationErrorCategory.TIMEOUT: "Location request timed out.",
    LocationErrorCategory.UNSUPPORTED: "Geolocation not supported by this device.",
}


def location_error_message(category: LocationErrorCategory) -> str:
    """Return the user-readable text shown for a location failure category."""
    return _LOCATION_MESSAGES.get(category, "Location error.")


class GroceTrackError(Exception):
    """Base exception for all grocetrack errors."""


class TrackingConfigError(GroceTrackError):
    """Invalid or missing configuration."""


class InvalidRecordError(GroceTrackError):
    """An external order record cannot be normalized into an ``Order``."""

    def __init__(self, message: str, *, order_id: str | None = None) -> None:
        self.order_id = order_id
        super().__init__(message)


class SessionClosedError(GroceTrackError):
    """Operation attempted on a tracking session that was already destroyed."""


class OrderNotTrackedError(GroceTrackError, KeyError):
    """No live tracking session exists for the requested order."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"order {order_id!r} is not being tracked")

    def __str__(self) -> str:
        return str(self.args[0])


class DeviceLocationError(GroceTrackError):
    """Device location lookup failed.

    The ``category`` drives which message the presentation layer shows;
    ``str(error)`` is already the user-readable text for that category.
    """

    category: LocationErrorCategory = LocationErrorCategory.SIGNAL

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or location_error_message(self.category))


class LocationPermissionError(DeviceLocationError):
    """The user denied (or revoked) location access."""

    category = LocationErrorCategory.PERMISSION


class LocationSignalError(DeviceLocationError):
    """No usable fix: weak signal, position unavailable or garbage coordinates."""

    category = LocationErrorCategory.SIGNAL


class LocationTimeoutError(DeviceLocationError):
    """The lookup did not produce a fix in time.

    Surfaced as a failure by one-shot lookups, suppressed on continuous watches.
    """

    category = LocationErrorCategory.TIMEOUT


class LocationUnsupportedError(DeviceLocationError):
    """The device has no location capability at all."""

    category = LocationErrorCategory.UNSUPPORTED
