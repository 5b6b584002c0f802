"""Exceptions raised by the Secure DFU client."""

from __future__ import annotations


class SecureDfuError(Exception):
    """Base exception for all Secure DFU errors."""


class BLEConnectionError(SecureDfuError):
    """BLE link could not be established or was lost."""


class TransportSetupError(SecureDfuError):
    """Control point notifications could not be enabled."""


class DfuTimeoutError(SecureDfuError):
    """Device did not answer within the configured deadline."""


class BusyError(SecureDfuError):
    """A control point request was issued while another one is outstanding."""


class PayloadTooLargeError(SecureDfuError):
    """Payload does not fit the object size negotiated with the device."""


class ProtocolMismatchError(SecureDfuError):
    """Device reports more progress than the local payload can account for."""


class PackageError(SecureDfuError):
    """DFU package (zip/manifest) is missing or malformed."""


class DeviceProtocolError(SecureDfuError):
    """Device answered a control point request with a non-success result.

    Attributes:
        code: Raw result code from the response
        extended_code: Extended error code when code is EXTENDED_ERROR
    """

    def __init__(self, code: int, extended_code: int | None = None, message: str | None = None):
        self.code = code
        self.extended_code = extended_code
        if message is None:
            message = f"Device returned result code 0x{code:02x}"
            if extended_code is not None:
                message += f" (extended error 0x{extended_code:02x})"
        super().__init__(message)


class ChecksumMismatchError(SecureDfuError):
    """Device-reported offset/CRC32 disagrees with the locally tracked values.

    Attributes:
        expected: (offset, crc32) tracked locally
        actual: (offset, crc32) reported by the device
    """

    def __init__(self, expected: tuple[int, int], actual: tuple[int, int]):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch: expected offset={expected[0]} crc32=0x{expected[1]:08x}, "
            f"device reported offset={actual[0]} crc32=0x{actual[1]:08x}"
        )


class ProtocolDesyncError(SecureDfuError):
    """Notification did not match the outstanding request or could not be decoded."""
