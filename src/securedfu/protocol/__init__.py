"""Secure DFU wire protocol implementation."""

from .chunking import chunk, crc32, plan_transfer
from .commands import (
    CONTROL_POINT_UUID,
    DATA_POINT_UUID,
    DEFAULT_PACKET_SIZE,
    MAX_PRN,
    SERVICE_UUID,
    ExtendedErrorCode,
    ObjectType,
    OpCode,
    ResultCode,
    build_calc_checksum_command,
    build_create_command,
    build_execute_command,
    build_select_command,
    build_set_prn_command,
)
from .responses import (
    ControlPointResponse,
    MalformedNotification,
    Notification,
    parse_checksum_response,
    parse_notification,
    parse_select_response,
)

__all__ = [
    "OpCode",
    "ObjectType",
    "ResultCode",
    "ExtendedErrorCode",
    "SERVICE_UUID",
    "CONTROL_POINT_UUID",
    "DATA_POINT_UUID",
    "DEFAULT_PACKET_SIZE",
    "MAX_PRN",
    "build_create_command",
    "build_set_prn_command",
    "build_calc_checksum_command",
    "build_execute_command",
    "build_select_command",
    "ControlPointResponse",
    "MalformedNotification",
    "Notification",
    "parse_notification",
    "parse_select_response",
    "parse_checksum_response",
    "chunk",
    "crc32",
    "plan_transfer",
]
