"""Secure DFU over BLE.

  Pure Python package for updating Nordic Secure DFU bootloaders over BLE.
  """

from .dfu import DfuOrchestrator
from .dfu_transport import DfuTransport
from .discovery import discover_dfu_targets
from .events import EventEmitter
from .exceptions import (
    BLEConnectionError,
    BusyError,
    ChecksumMismatchError,
    DeviceProtocolError,
    DfuTimeoutError,
    PackageError,
    PayloadTooLargeError,
    ProtocolDesyncError,
    ProtocolMismatchError,
    SecureDfuError,
    TransportSetupError,
)
from .models import (
    ChecksumResponse,
    DfuEvent,
    DfuPackage,
    FirmwareImage,
    ImageType,
    Resumption,
    SelectResponse,
    TransferConfig,
    TransferPlan,
)
from .package import load_dfu_package, read_manifest
from .protocol import (
    CONTROL_POINT_UUID,
    DATA_POINT_UUID,
    SERVICE_UUID,
    ObjectType,
    OpCode,
    ResultCode,
    plan_transfer,
)
from .transport import BLEConnection, ChannelState, ControlPointChannel, DataPointChannel

__version__ = "0.1.0"

__all__ = [
    # Main API
    "DfuOrchestrator",
    "DfuTransport",
    "BLEConnection",
    "discover_dfu_targets",
    "load_dfu_package",
    "read_manifest",
    "plan_transfer",
    # Channels
    "ControlPointChannel",
    "DataPointChannel",
    "ChannelState",
    "EventEmitter",
    # Exceptions
    "SecureDfuError",
    "BLEConnectionError",
    "TransportSetupError",
    "DeviceProtocolError",
    "ChecksumMismatchError",
    "PayloadTooLargeError",
    "DfuTimeoutError",
    "BusyError",
    "ProtocolMismatchError",
    "ProtocolDesyncError",
    "PackageError",
    # Models
    "FirmwareImage",
    "DfuPackage",
    "SelectResponse",
    "ChecksumResponse",
    "TransferPlan",
    "TransferConfig",
    # Enums
    "ImageType",
    "DfuEvent",
    "Resumption",
    "ObjectType",
    "OpCode",
    "ResultCode",
    # Constants
    "SERVICE_UUID",
    "CONTROL_POINT_UUID",
    "DATA_POINT_UUID",
]
