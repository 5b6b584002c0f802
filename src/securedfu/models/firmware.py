"""Firmware image and DFU package models."""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import IMAGE_ORDER, ImageType


@dataclass(frozen=True)
class FirmwareImage:
    """One image of a DFU package: init packet plus firmware binary."""

    init_packet: bytes
    firmware: bytes
    image_type: ImageType

    def __post_init__(self) -> None:
        if not isinstance(self.image_type, ImageType):
            raise TypeError(
                f"image_type must be ImageType, got {type(self.image_type).__name__}"
            )


@dataclass(frozen=True)
class DfuPackage:
    """Images of a DFU package in transfer order.

    Images are sorted by the fixed priority softdevice, bootloader,
    softdevice_bootloader, application regardless of the order given.
    """

    images: tuple[FirmwareImage, ...] = field(default_factory=tuple)
    manifest: dict = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        seen: set[ImageType] = set()
        for image in self.images:
            if image.image_type in seen:
                raise ValueError(f"Duplicate image type in package: {image.image_type.value}")
            seen.add(image.image_type)

        ordered = tuple(sorted(self.images, key=lambda image: IMAGE_ORDER.index(image.image_type)))
        object.__setattr__(self, "images", ordered)

    @property
    def image_types(self) -> list[ImageType]:
        return [image.image_type for image in self.images]

    @property
    def total_size(self) -> int:
        """Total bytes to transfer (init packets and firmware)."""
        return sum(len(image.init_packet) + len(image.firmware) for image in self.images)
