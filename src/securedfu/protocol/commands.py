"""Secure DFU control point commands."""

from __future__ import annotations

import struct
from enum import IntEnum


class OpCode(IntEnum):
    """Control point opcodes."""

    CREATE = 0x01          # Create object of given type and size
    SET_PRN = 0x02         # Set packet receipt notification interval
    CALC_CHECKSUM = 0x03   # Report offset and CRC32 of current object type
    EXECUTE = 0x04         # Execute (commit) the current object
    SELECT = 0x06          # Select object type, report max size/offset/CRC32
    RESPONSE = 0x60        # Leading byte of every control point notification


class ObjectType(IntEnum):
    """DFU object types."""

    COMMAND = 0x01  # Init packet
    DATA = 0x02     # Firmware image


class ResultCode(IntEnum):
    """Result codes carried in control point responses."""

    INVALID = 0x00
    SUCCESS = 0x01
    OP_CODE_NOT_SUPPORTED = 0x02
    INVALID_PARAMETER = 0x03
    INSUFFICIENT_RESOURCES = 0x04
    INVALID_OBJECT = 0x05
    UNSUPPORTED_TYPE = 0x07
    OPERATION_NOT_PERMITTED = 0x08
    OPERATION_FAILED = 0x0A
    EXTENDED_ERROR = 0x0B


class ExtendedErrorCode(IntEnum):
    """Extended error codes following an EXTENDED_ERROR result."""

    NO_ERROR = 0x00
    INVALID_ERROR_CODE = 0x01
    WRONG_COMMAND_FORMAT = 0x02
    UNKNOWN_COMMAND = 0x03
    INIT_COMMAND_INVALID = 0x04
    FW_VERSION_FAILURE = 0x05
    HW_VERSION_FAILURE = 0x06
    SD_VERSION_FAILURE = 0x07
    SIGNATURE_MISSING = 0x08
    WRONG_HASH_TYPE = 0x09
    HASH_FAILED = 0x0A
    WRONG_SIGNATURE_TYPE = 0x0B
    VERIFICATION_FAILED = 0x0C
    INSUFFICIENT_SPACE = 0x0D


# GATT identifiers
SERVICE_UUID = "0000FE59-0000-1000-8000-00805F9B34FB"
CONTROL_POINT_UUID = "8EC90001-F315-4F60-9FB8-838830DAEA50"
DATA_POINT_UUID = "8EC90002-F315-4F60-9FB8-838830DAEA50"

# Smallest ATT payload (default MTU 23 - 3 bytes header)
DEFAULT_PACKET_SIZE = 20
MAX_PRN = 0xFFFF


def build_create_command(object_type: ObjectType, size: int) -> bytes:
    """Build CREATE request.

    Format:
        [op:1][type:1][size:4 LE]
    """
    return struct.pack("<BBI", OpCode.CREATE, object_type, size)


def build_set_prn_command(value: int) -> bytes:
    """Build SET_PRN request.

    Args:
        value: Receipt interval in packets (0 disables receipts)

    Format:
        [op:1][prn:2 LE]
    """
    if not 0 <= value <= MAX_PRN:
        raise ValueError(f"PRN out of range: {value} (must be 0-{MAX_PRN})")
    return struct.pack("<BH", OpCode.SET_PRN, value)


def build_calc_checksum_command() -> bytes:
    """Build CALC_CHECKSUM request."""
    return bytes([OpCode.CALC_CHECKSUM])


def build_execute_command() -> bytes:
    """Build EXECUTE request."""
    return bytes([OpCode.EXECUTE])


def build_select_command(object_type: ObjectType) -> bytes:
    """Build SELECT request.

    Format:
        [op:1][type:1]
    """
    return bytes([OpCode.SELECT, object_type])
