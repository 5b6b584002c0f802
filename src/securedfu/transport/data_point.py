"""Data point channel: streams object bytes with optional receipt flow control."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import ChecksumMismatchError
from ..protocol import DATA_POINT_UUID, chunk, crc32

if TYPE_CHECKING:
    from .adapter import DfuAdapter
    from .control_point import ControlPointChannel

_LOGGER = logging.getLogger(__name__)


class DataPointChannel:
    """Writes payload bytes to the DFU data point characteristic.

    With a receipt interval (PRN) of N > 0, the channel waits for the device's
    receipt after every N writes before sending more. The channel never resends
    bytes; recovery is a fresh SELECT one level up.
    """

    def __init__(
            self,
            adapter: DfuAdapter,
            control: ControlPointChannel,
            packet_size: int,
            prn: int = 0,
            receipt_timeout: float = 20.0,
    ):
        """Initialize data point channel.

        Args:
            adapter: Connected peripheral
            control: Control point channel delivering receipt notifications
            packet_size: Bytes per write
            prn: Receipt interval in writes, 0 disables receipts (default: 0)
            receipt_timeout: Seconds to wait for each receipt (default: 20)
        """
        if packet_size <= 0:
            raise ValueError(f"packet_size must be positive, got {packet_size}")

        self._adapter = adapter
        self._control = control
        self.packet_size = packet_size
        self.prn = prn
        self.receipt_timeout = receipt_timeout

    async def stream(self, data: bytes, offset: int, crc: int) -> tuple[int, int]:
        """Write data and track the running offset and CRC32.

        Args:
            data: Bytes to write
            offset: Payload offset of the first byte of data
            crc: CRC32 of payload bytes [0, offset)

        Returns:
            (offset, crc32) after the last byte of data

        Raises:
            ChecksumMismatchError: If a receipt disagrees with the running values
            DfuTimeoutError: If a receipt does not arrive in time
        """
        _LOGGER.debug(
            "Streaming %d bytes at offset %d (crc32=0x%08x, packet_size=%d, prn=%d)",
            len(data),
            offset,
            crc,
            self.packet_size,
            self.prn,
        )

        self._control.expect_receipts(self.prn > 0)
        try:
            packets_since_receipt = 0
            for packet in chunk(data, self.packet_size):
                await self._adapter.write_characteristic(DATA_POINT_UUID, packet, response=False)
                offset += len(packet)
                crc = crc32(packet, crc)
                packets_since_receipt += 1

                if self.prn and packets_since_receipt == self.prn:
                    packets_since_receipt = 0
                    receipt = await self._control.wait_for_receipt(self.receipt_timeout)
                    if (receipt.offset, receipt.crc32) != (offset, crc):
                        raise ChecksumMismatchError(
                            expected=(offset, crc),
                            actual=(receipt.offset, receipt.crc32),
                        )
                    _LOGGER.debug("Receipt at offset %d", receipt.offset)
        finally:
            self._control.expect_receipts(False)

        return offset, crc
