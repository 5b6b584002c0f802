"""Transfer planning: split a payload into DFU objects and resume from device state."""

from __future__ import annotations

import binascii
import logging

from ..exceptions import ProtocolMismatchError
from ..models.transfer import Resumption, SelectResponse, TransferPlan

_LOGGER = logging.getLogger(__name__)


def crc32(data: bytes, value: int = 0) -> int:
    """CRC-32 (ISO-HDLC) as used by the DFU bootloader, optionally continuing from value."""
    return binascii.crc32(data, value) & 0xFFFFFFFF


def chunk(data: bytes, size: int) -> tuple[bytes, ...]:
    """Split data into consecutive pieces of at most size bytes."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return tuple(data[i:i + size] for i in range(0, len(data), size))


def plan_transfer(payload: bytes, select: SelectResponse) -> TransferPlan:
    """Build a transfer plan for payload given the device's SELECT report.

    Only whole objects are trusted when the device CRC disagrees with the local
    payload: the offset is snapped back to the last object boundary and
    everything after it is resent as fresh objects.

    Args:
        payload: Complete init packet or firmware image
        select: Device-reported offset, crc32 and maximum object size

    Returns:
        TransferPlan whose partial object and objects cover payload[offset:]

    Raises:
        ProtocolMismatchError: If the device offset is beyond the payload end
        ValueError: If maximum_size is not positive
    """
    payload = bytes(payload)
    max_size = select.maximum_size
    offset = select.offset

    if max_size <= 0:
        raise ValueError(f"Maximum object size must be positive, got {max_size}")

    if offset > len(payload):
        raise ProtocolMismatchError(
            f"Device offset {offset} exceeds payload length {len(payload)}"
        )

    if offset == 0:
        return TransferPlan(offset=0, crc32=0, objects=chunk(payload, max_size))

    expected = crc32(payload[:offset])
    if expected != select.crc32:
        snapped = (offset // max_size) * max_size
        _LOGGER.debug(
            "CRC mismatch at offset %d (device 0x%08x, local 0x%08x), resuming from %d",
            offset,
            select.crc32,
            expected,
            snapped,
        )
        return TransferPlan(
            offset=snapped,
            crc32=crc32(payload[:snapped]),
            objects=chunk(payload[snapped:], max_size),
            resumption=Resumption.DISCARDED,
        )

    if offset % max_size == 0:
        return TransferPlan(
            offset=offset,
            crc32=select.crc32,
            objects=chunk(payload[offset:], max_size),
            resumption=Resumption.ALIGNED,
        )

    boundary_end = -(-offset // max_size) * max_size
    return TransferPlan(
        offset=offset,
        crc32=select.crc32,
        objects=chunk(payload[boundary_end:], max_size),
        partial_object=payload[offset:boundary_end],
        resumption=Resumption.PARTIAL,
    )
