"""Deterministic position merge policy.

This module contains no payload parsing; the ingestion boundary produces
normalized patches before they get here.
"""

from __future__ import annotations

from grocetrack.state.events import UpdateSource


def source_priority(source: UpdateSource | None) -> int:
    """Higher wins when two sources compete for the same field."""
    # Authoritative telemetry beats everything synthesized locally.
    priorities: dict[UpdateSource, int] = {
        UpdateSource.PUSH: 50,
        UpdateSource.OPTIMISTIC: 20,
        UpdateSource.DEMO: 10,
        UpdateSource.SIMULATED: 10,
    }
    if source is None:
        return 0
    return priorities.get(source, 0)


def should_accept_position(
    *,
    current_source: UpdateSource | None,
    incoming_source: UpdateSource,
    telemetry_locked: bool,
) -> bool:
    """Decide whether an incoming driver position may replace the current one.

    Policy:
    - Pushed telemetry is always accepted.
    - Once telemetry has been pushed for an order, synthesized positions are
      rejected for the rest of the session.
    - Otherwise the incoming source must not rank below the current one.
    """
    if incoming_source == UpdateSource.PUSH:
        return True
    if telemetry_locked:
        return False
    return source_priority(incoming_source) >= source_priority(current_source)
