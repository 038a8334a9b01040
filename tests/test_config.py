from __future__ import annotations

import pytest

from grocetrack.config import TrackingConfig
from grocetrack.exceptions import TrackingConfigError


def test_defaults() -> None:
    config = TrackingConfig()
    assert config.tick_interval == 1.0
    assert config.loop_duration == 60
    assert config.pickup_start_offset == 0.005
    assert config.synthetic_destination_offset == 0.01
    assert config.watch_accuracy_threshold == 100.0
    assert config.demo_status_interval == 15
    assert config.simulate_without_telemetry is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"tick_interval": 0},
        {"loop_duration": -1},
        {"demo_status_interval": 0},
        {"min_move_degrees": -0.1},
        {"demo_account_marker": " "},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(TrackingConfigError):
        TrackingConfig(**kwargs)  # type: ignore[arg-type]


def test_demo_account_detection() -> None:
    config = TrackingConfig()
    assert config.is_demo_account("demo-42")
    assert config.is_demo_account("user_demo")
    assert not config.is_demo_account("user-42")
    assert not config.is_demo_account(None)


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GROCETRACK_TICK_INTERVAL", "0.5")
    monkeypatch.setenv("GROCETRACK_LOOP_DURATION", "30")
    monkeypatch.setenv("GROCETRACK_DEMO_ACCOUNT_MARKER", "sandbox")
    monkeypatch.setenv("GROCETRACK_SIMULATE_WITHOUT_TELEMETRY", "yes")

    config = TrackingConfig.from_env(loop_duration=90)

    assert config.tick_interval == 0.5
    assert config.loop_duration == 90
    assert config.demo_account_marker == "sandbox"
    assert config.simulate_without_telemetry is True


def test_from_env_rejects_bad_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GROCETRACK_LOOP_DURATION", "sixty")
    with pytest.raises(TrackingConfigError):
        TrackingConfig.from_env()
