"""Geographic position models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, field_validator

from grocetrack.geo import is_valid_latitude, is_valid_longitude
from grocetrack.ingestion.normalize import safe_float
from grocetrack.models._base import TrackBaseModel


class LatLng(TrackBaseModel):
    """A validated latitude/longitude pair.

    Both coordinates are finite and inside the valid latitude/longitude
    ranges; construction fails otherwise.
    """

    lat: float = Field(..., description="Latitude in degrees (-90..90)")
    lng: float = Field(..., description="Longitude in degrees (-180..180)")

    @field_validator("lat", mode="before")
    @classmethod
    def _validate_lat(cls, value: Any) -> float:
        parsed = safe_float(value)
        if not is_valid_latitude(parsed):
            raise ValueError(f"invalid latitude: {value!r}")
        return parsed  # type: ignore[return-value]

    @field_validator("lng", mode="before")
    @classmethod
    def _validate_lng(cls, value: Any) -> float:
        parsed = safe_float(value)
        if not is_valid_longitude(parsed):
            raise ValueError(f"invalid longitude: {value!r}")
        return parsed  # type: ignore[return-value]


class Position(LatLng):
    """A rider position sample.

    ``tick`` is the clock tick the sample belongs to; simulated samples
    carry their phase tick inside the animation loop instead.
    """

    tick: int | None = None

    @classmethod
    def build(cls, lat: Any, lng: Any, tick: int | None = None) -> Position | None:
        """Build a position, returning ``None`` for invalid coordinates."""
        try:
            return cls(lat=lat, lng=lng, tick=tick)
        except ValidationError:
            return None

    def same_point(self, other: LatLng | None) -> bool:
        return other is not None and self.lat == other.lat and self.lng == other.lng


class DevicePosition(LatLng):
    """A fix reported by the viewing device's location service."""

    accuracy: float | None = None

    @field_validator("accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, value: Any) -> float | None:
        return safe_float(value)
