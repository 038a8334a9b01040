"""Live tracking runtime: clock, position sources, sessions and device feed."""

from grocetrack.tracking.clock import AsyncioClock, ClockSubscription, ManualClock, TickClock
from grocetrack.tracking.demo import DemoStatusSimulator
from grocetrack.tracking.device import DeviceLocationProvider, DevicePositionWatch, get_current_device_position
from grocetrack.tracking.session import TrackingSession
from grocetrack.tracking.sources import (
    PositionSource,
    RealPositionSource,
    SimulatedPositionSource,
    select_position_source,
)

__all__ = [
    "AsyncioClock",
    "ClockSubscription",
    "DemoStatusSimulator",
    "DeviceLocationProvider",
    "DevicePositionWatch",
    "ManualClock",
    "PositionSource",
    "RealPositionSource",
    "SimulatedPositionSource",
    "TickClock",
    "TrackingSession",
    "get_current_device_position",
    "select_position_source",
]
