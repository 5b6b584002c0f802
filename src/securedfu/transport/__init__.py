"""BLE transport layer: connection, control point and data point channels."""

from .adapter import DfuAdapter, NotificationCallback
from .connection import BLEConnection
from .control_point import ChannelState, ControlPointChannel
from .data_point import DataPointChannel

__all__ = [
    "BLEConnection",
    "ChannelState",
    "ControlPointChannel",
    "DataPointChannel",
    "DfuAdapter",
    "NotificationCallback",
]
