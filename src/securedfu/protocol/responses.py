"""Control point notification decoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from ..exceptions import DeviceProtocolError
from ..models.transfer import ChecksumResponse, SelectResponse
from .commands import ExtendedErrorCode, OpCode, ResultCode

SELECT_PAYLOAD = struct.Struct("<III")    # max_size, offset, crc32
CHECKSUM_PAYLOAD = struct.Struct("<II")   # offset, crc32


@dataclass(frozen=True)
class ControlPointResponse:
    """Well-formed control point notification.

    Format: [0x60:1][request_opcode:1][result:1][payload...]
    """

    opcode: int
    result: int
    payload: bytes = b""

    @property
    def is_success(self) -> bool:
        return self.result == ResultCode.SUCCESS

    @property
    def extended_code(self) -> int | None:
        """Extended error code, if the result is EXTENDED_ERROR."""
        if self.result == ResultCode.EXTENDED_ERROR and self.payload:
            return self.payload[0]
        return None

    def to_error(self) -> DeviceProtocolError:
        """Build the exception describing a non-success response."""
        extended = self.extended_code
        message = (
            f"{_opcode_name(self.opcode)} failed: "
            f"{_enum_name(ResultCode, self.result)} (0x{self.result:02x})"
        )
        if extended is not None:
            message += f", {_enum_name(ExtendedErrorCode, extended)} (0x{extended:02x})"
        return DeviceProtocolError(self.result, extended, message)


@dataclass(frozen=True)
class MalformedNotification:
    """Notification bytes that could not be decoded."""

    data: bytes
    reason: str


Notification = ControlPointResponse | MalformedNotification


def _enum_name(enum_cls, value: int) -> str:
    try:
        return enum_cls(value).name
    except ValueError:
        return "UNKNOWN"


def _opcode_name(opcode: int) -> str:
    return _enum_name(OpCode, opcode)


def parse_notification(data: bytes) -> Notification:
    """Decode raw control point notification bytes.

    Args:
        data: Raw notification data

    Returns:
        ControlPointResponse, or MalformedNotification if the bytes are not a response
    """
    data = bytes(data)
    if len(data) < 3:
        return MalformedNotification(data, f"too short: {len(data)} bytes (need at least 3)")
    if data[0] != OpCode.RESPONSE:
        return MalformedNotification(
            data, f"not a response: leading byte 0x{data[0]:02x} (expected 0x60)"
        )
    return ControlPointResponse(opcode=data[1], result=data[2], payload=data[3:])


def parse_select_response(payload: bytes) -> SelectResponse:
    """Parse SELECT success payload.

    Format: [max_size:4 LE][offset:4 LE][crc32:4 LE]

    Raises:
        DeviceProtocolError: If payload is too short
    """
    if len(payload) < SELECT_PAYLOAD.size:
        raise DeviceProtocolError(
            ResultCode.INVALID,
            message=f"SELECT payload too short: {len(payload)} bytes (need {SELECT_PAYLOAD.size})",
        )
    max_size, offset, crc32 = SELECT_PAYLOAD.unpack_from(payload)
    return SelectResponse(offset=offset, crc32=crc32, maximum_size=max_size)


def parse_checksum_response(payload: bytes) -> ChecksumResponse:
    """Parse CALC_CHECKSUM success payload (also used by receipt notifications).

    Format: [offset:4 LE][crc32:4 LE]

    Raises:
        DeviceProtocolError: If payload is too short
    """
    if len(payload) < CHECKSUM_PAYLOAD.size:
        raise DeviceProtocolError(
            ResultCode.INVALID,
            message=f"CALC_CHECKSUM payload too short: {len(payload)} bytes "
                    f"(need {CHECKSUM_PAYLOAD.size})",
        )
    offset, crc32 = CHECKSUM_PAYLOAD.unpack_from(payload)
    return ChecksumResponse(offset=offset, crc32=crc32)
