"""Masking of customer contact and payment fields in raw order rows.

Rows are logged at DEBUG when they cannot be routed; keys are compared
case-insensitively with underscores ignored, so ``customerPhone`` and
``customer_phone`` are both caught.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MASK = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "customername",
        "customerphone",
        "phone",
        "email",
        "address",
        "deliveryaddress",
        "transactionref",
        "transactionid",
        "upiid",
        "bankdetails",
    }
)


def _is_sensitive(key: object) -> bool:
    return str(key).replace("_", "").lower() in _SENSITIVE_KEYS


def redact_for_log(value: Any) -> Any:
    """Copy *value* with sensitive mapping entries replaced by a mask."""
    if isinstance(value, Mapping):
        return {str(k): _MASK if _is_sensitive(k) else redact_for_log(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item) for item in value]
    return value
