"""grocetrack - Order lifecycle and live courier tracking engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("grocetrack")
except PackageNotFoundError:
    __version__ = "0+local"
from grocetrack.config import TrackingConfig
from grocetrack.engine import TrackingEngine
from grocetrack.exceptions import (
    DeviceLocationError,
    GroceTrackError,
    InvalidRecordError,
    LocationErrorCategory,
    LocationPermissionError,
    LocationSignalError,
    LocationTimeoutError,
    LocationUnsupportedError,
    OrderNotTrackedError,
    SessionClosedError,
    TrackingConfigError,
)
from grocetrack.hub import InMemoryOrderHub, OrderSubscriptionHub, StatusCommandSink
from grocetrack.models import (
    DevicePosition,
    LatLng,
    Order,
    OrderMode,
    OrderStatus,
    Position,
    RankedStore,
    Store,
)
from grocetrack.models.view import OrderView, StepDefinition
from grocetrack.state.events import OrderPatch, UpdateSource
from grocetrack.tracking import ManualClock, TrackingSession

__all__ = [
    "__version__",
    "DeviceLocationError",
    "DevicePosition",
    "GroceTrackError",
    "InMemoryOrderHub",
    "InvalidRecordError",
    "LatLng",
    "LocationErrorCategory",
    "LocationPermissionError",
    "LocationSignalError",
    "LocationTimeoutError",
    "LocationUnsupportedError",
    "ManualClock",
    "Order",
    "OrderMode",
    "OrderNotTrackedError",
    "OrderPatch",
    "OrderStatus",
    "OrderSubscriptionHub",
    "OrderView",
    "Position",
    "RankedStore",
    "SessionClosedError",
    "StatusCommandSink",
    "StepDefinition",
    "Store",
    "TrackingConfig",
    "TrackingConfigError",
    "TrackingEngine",
    "TrackingSession",
    "UpdateSource",
]
