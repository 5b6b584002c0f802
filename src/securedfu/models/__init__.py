"""Data models for Secure DFU."""

from .config import TransferConfig
from .enums import IMAGE_ORDER, DfuEvent, ImageType
from .firmware import DfuPackage, FirmwareImage
from .transfer import ChecksumResponse, Resumption, SelectResponse, TransferPlan

__all__ = [
    "ChecksumResponse",
    "DfuEvent",
    "DfuPackage",
    "FirmwareImage",
    "IMAGE_ORDER",
    "ImageType",
    "Resumption",
    "SelectResponse",
    "TransferConfig",
    "TransferPlan",
]
