"""Transfer state reported by the device and derived transfer plans."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Resumption(Enum):
    """How a transfer plan relates to data already on the device."""

    FRESH = "fresh"          # Nothing usable on the device
    DISCARDED = "discarded"  # CRC mismatch, resumed from last object boundary
    ALIGNED = "aligned"      # Verified data ends on an object boundary
    PARTIAL = "partial"      # Verified data ends inside an object


@dataclass(frozen=True)
class SelectResponse:
    """Device report for the selected object type.

    Attributes:
        offset: Bytes of the current object type durably received
        crc32: CRC32 of bytes [0, offset)
        maximum_size: Largest object the device accepts
    """

    offset: int
    crc32: int
    maximum_size: int


@dataclass(frozen=True)
class ChecksumResponse:
    """Offset and CRC32 reported by CALC_CHECKSUM or a receipt notification."""

    offset: int
    crc32: int


@dataclass(frozen=True)
class TransferPlan:
    """Chunking plan for one object-type transfer.

    `crc32` always covers payload bytes [0, offset). `partial_object` completes
    an object already in progress on the device and is sent before `objects`.
    """

    offset: int
    crc32: int
    objects: tuple[bytes, ...]
    partial_object: bytes = b""
    resumption: Resumption = Resumption.FRESH

    @property
    def remaining(self) -> int:
        """Bytes still to be sent."""
        return len(self.partial_object) + sum(len(obj) for obj in self.objects)
