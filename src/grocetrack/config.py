"""Engine configuration for grocetrack."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from grocetrack._constants import (
    DEFAULT_LOOP_DURATION,
    DEFAULT_TICK_INTERVAL_S,
    DEMO_ACCOUNT_MARKER,
    DEMO_STATUS_INTERVAL_TICKS,
    MIN_MOVE_DEG,
    PICKUP_START_OFFSET_DEG,
    SYNTHETIC_DESTINATION_OFFSET_DEG,
    WATCH_ACCURACY_THRESHOLD,
)
from grocetrack.exceptions import TrackingConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class TrackingConfig:
    """Tracking engine configuration.

    Parameters
    ----------
    tick_interval : float
        Seconds between clock ticks for the asyncio clock.
    loop_duration : int
        Length of the simulated rider animation loop, in ticks.
    pickup_start_offset : float
        North-east offset (degrees) of the point the simulated rider
        starts from while the order is being packed.
    synthetic_destination_offset : float
        Offset (degrees) of the fallback destination used when an order
        has no customer location and no device fix is known.
    watch_accuracy_threshold : float
        Continuous device fixes with a worse accuracy are discarded.
    min_move_degrees : float
        Continuous device fixes closer than this to the previous accepted
        fix are discarded unless their accuracy improved.
    demo_status_interval : int
        Ticks between automatic status advances for demo accounts.
    demo_account_marker : str
        Account ids containing this marker are treated as demo accounts.
    simulate_without_telemetry : bool
        Use the simulated rider for real accounts until the first pushed
        driver position arrives.
    """

    tick_interval: float = DEFAULT_TICK_INTERVAL_S
    loop_duration: int = DEFAULT_LOOP_DURATION
    pickup_start_offset: float = PICKUP_START_OFFSET_DEG
    synthetic_destination_offset: float = SYNTHETIC_DESTINATION_OFFSET_DEG
    watch_accuracy_threshold: float = WATCH_ACCURACY_THRESHOLD
    min_move_degrees: float = MIN_MOVE_DEG
    demo_status_interval: int = DEMO_STATUS_INTERVAL_TICKS
    demo_account_marker: str = DEMO_ACCOUNT_MARKER
    simulate_without_telemetry: bool = False

    def __post_init__(self) -> None:
        if self.tick_interval <= 0:
            raise TrackingConfigError(f"tick_interval must be positive, got {self.tick_interval}")
        if self.loop_duration <= 0:
            raise TrackingConfigError(f"loop_duration must be positive, got {self.loop_duration}")
        if self.demo_status_interval <= 0:
            raise TrackingConfigError(f"demo_status_interval must be positive, got {self.demo_status_interval}")
        for name in ("pickup_start_offset", "synthetic_destination_offset", "watch_accuracy_threshold", "min_move_degrees"):
            if getattr(self, name) < 0:
                raise TrackingConfigError(f"{name} must not be negative")
        if not self.demo_account_marker.strip():
            raise TrackingConfigError("demo_account_marker must be non-empty")

    def is_demo_account(self, account_id: str | None) -> bool:
        """Whether *account_id* belongs to a demo/offline account."""
        if not account_id:
            return False
        return self.demo_account_marker in account_id

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackingConfig:
        """Create configuration from ``GROCETRACK_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_FLOAT_MAP = {
            "GROCETRACK_TICK_INTERVAL": "tick_interval",
            "GROCETRACK_PICKUP_START_OFFSET": "pickup_start_offset",
            "GROCETRACK_SYNTHETIC_DESTINATION_OFFSET": "synthetic_destination_offset",
            "GROCETRACK_WATCH_ACCURACY_THRESHOLD": "watch_accuracy_threshold",
            "GROCETRACK_MIN_MOVE_DEGREES": "min_move_degrees",
        }
        _ENV_INT_MAP = {
            "GROCETRACK_LOOP_DURATION": "loop_duration",
            "GROCETRACK_DEMO_STATUS_INTERVAL": "demo_status_interval",
        }

        config_kwargs: dict[str, Any] = {}
        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise TrackingConfigError(f"Invalid numeric environment value: {exc}") from exc

        marker = env.get("GROCETRACK_DEMO_ACCOUNT_MARKER")
        if marker is not None and "demo_account_marker" not in overrides:
            config_kwargs["demo_account_marker"] = marker

        if "simulate_without_telemetry" not in overrides:
            config_kwargs["simulate_without_telemetry"] = _env_bool(
                env.get("GROCETRACK_SIMULATE_WITHOUT_TELEMETRY"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
