"""Data models for orders, positions and stores.

Presentation models (:class:`~grocetrack.models.view.OrderView`,
:class:`~grocetrack.models.view.StepDefinition`) live in
:mod:`grocetrack.models.view` because they depend on the state layer.
"""

from grocetrack.models._base import TrackBaseModel, TrackEnum
from grocetrack.models.order import Order, OrderMode, OrderStatus
from grocetrack.models.position import DevicePosition, LatLng, Position
from grocetrack.models.store import RankedStore, Store

__all__ = [
    "DevicePosition",
    "LatLng",
    "Order",
    "OrderMode",
    "OrderStatus",
    "Position",
    "RankedStore",
    "Store",
    "TrackBaseModel",
    "TrackEnum",
]
