"""Store (mart) model used by store-discovery ranking."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from grocetrack.geo import is_valid_lat_lng
from grocetrack.ingestion.normalize import safe_float, safe_str
from grocetrack.models._base import TrackBaseModel
from grocetrack.models.position import LatLng


class Store(TrackBaseModel):
    """A merchant mart.

    Coordinates are kept as received (``None`` when unparseable); ranking
    pushes stores without a valid location to the end of the list.
    """

    id: str
    name: str = ""
    address: str = ""
    lat: float | None = None
    lng: float | None = None
    is_open: bool = True
    rating: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("lat", "lng", "rating", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @property
    def location(self) -> LatLng | None:
        if not is_valid_lat_lng(self.lat, self.lng):
            return None
        return LatLng(lat=self.lat, lng=self.lng)


class RankedStore(BaseModel):
    """A store together with its distance from the viewer."""

    model_config = ConfigDict(frozen=True)

    store: Store
    distance_km: float | None = None
    distance_label: str | None = None

    @property
    def lat(self) -> float | None:
        return self.store.lat

    @property
    def lng(self) -> float | None:
        return self.store.lng
