"""Base model and enum for records crossing the store boundary.

Every boundary model inherits from :class:`TrackBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase keys from the hosted store
  and snake_case keys from the database rows both map to the same field.
* A ``model_validator(mode="before")`` that strips placeholder values
  (``""``, ``"--"``, NaN) so the field default is used.

Closed enumerations inherit from :class:`TrackEnum`, a ``StrEnum`` whose
lookup is case-insensitive and never raises: values without a mapped
member resolve to the enum's fallback member.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings the hosted store and demo fixtures use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null", "undefined"})


def normalize_token(value: Any) -> str | None:
    """Normalize a raw enum token: trimmed, lowercase, ``-``/spaces as ``_``."""
    if not isinstance(value, str):
        return None
    token = value.strip().lower().replace("-", "_").replace(" ", "_")
    return token or None


def ensure_tz_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class TrackEnum(StrEnum):
    """Base for closed string enumerations.

    Lookup normalizes case and separators once, at the boundary, so the
    rest of the engine compares members instead of raw strings.
    """

    @classmethod
    def _aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def _fallback(cls) -> TrackEnum:
        unknown = cls.__members__.get("UNKNOWN")
        if unknown is not None:
            return unknown
        return next(iter(cls))

    @classmethod
    def _missing_(cls, value: object) -> TrackEnum:
        token = normalize_token(value)
        if token is None:
            return cls._fallback()
        token = cls._aliases().get(token, token)
        for member in cls:
            if member.value == token:
                return member
        return cls._fallback()

    @classmethod
    def parse(cls, value: Any) -> TrackEnum:
        """Resolve *value* to a member, never raising."""
        if isinstance(value, cls):
            return value
        return cls(value) if isinstance(value, str) else cls._fallback()


class TrackBaseModel(BaseModel):
    """Base for boundary models.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * placeholder values (``""``, ``"--"``, NaN) → dropped so the field
      default is used instead
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholder_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return TrackBaseModel._clean_dict(values)
