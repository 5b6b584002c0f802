"""Enumerations for DFU packages and events."""

from __future__ import annotations

from enum import Enum
from typing import Final


class ImageType(str, Enum):
    """Firmware image roles found in a DFU package manifest."""

    SOFTDEVICE = "softdevice"
    BOOTLOADER = "bootloader"
    SOFTDEVICE_BOOTLOADER = "softdevice_bootloader"
    APPLICATION = "application"

    @classmethod
    def from_value(cls, value: str) -> ImageType:
        """Convert manifest key to ImageType.

        Raises:
            ValueError: If the key is not a known image role
        """
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown image type: {value!r}") from None


# Images are always sent in this order
IMAGE_ORDER: Final[tuple[ImageType, ...]] = (
    ImageType.SOFTDEVICE,
    ImageType.BOOTLOADER,
    ImageType.SOFTDEVICE_BOOTLOADER,
    ImageType.APPLICATION,
)


class DfuEvent(str, Enum):
    """Events emitted by DfuTransport and DfuOrchestrator."""

    INITIALIZED = "initialized"
    TRANSFER_START = "transfer_start"
    TRANSFER_PROGRESS = "transfer_progress"
    TRANSFER_COMPLETE = "transfer_complete"
    CONTROL_POINT_RESPONSE = "control_point_response"
    ERROR = "error"
    COMPLETED = "completed"
