"""Main Secure DFU entry point: sends every image of a DFU package."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .dfu_transport import DfuTransport
from .events import EventEmitter
from .models.config import TransferConfig
from .models.enums import DfuEvent, ImageType
from .package import load_dfu_package
from .protocol import ControlPointResponse, ObjectType

if TYPE_CHECKING:
    from .models.firmware import DfuPackage, FirmwareImage
    from .transport.connection import BLEConnection

_LOGGER = logging.getLogger(__name__)


class DfuOrchestrator(EventEmitter):
    """Runs a complete Secure DFU over one connected target.

    Images are sent strictly in package order; for each image the init packet
    must be executed by the device before its firmware is sent. The first
    failure aborts the whole update. Rollback is left to the bootloader.

    Usage:
        async with DfuOrchestrator(BLEConnection("AA:BB:CC:DD:EE:FF")) as dfu:
            dfu.on("transfer_progress", print)
            await dfu.perform_dfu_from_file("app_dfu_package.zip")

    Events:
        initialized()
        transfer_start(image_type)
        transfer_progress(image_type, bytes_sent, total_bytes)
        transfer_complete(image_type)
        control_point_response(response)
        error(exc)
        completed()
    """

    def __init__(
            self,
            connection: BLEConnection,
            config: TransferConfig | None = None,
    ):
        """Initialize orchestrator.

        Args:
            connection: Adapter for the target; opened and closed by the async context manager
            config: Transfer tunables (default: TransferConfig())
        """
        super().__init__()
        self._connection = connection
        self.config = config or TransferConfig()
        self._transport = DfuTransport(connection, self.config)
        self._current_image: ImageType | None = None

        self._transport.on(DfuEvent.TRANSFER_PROGRESS, self._on_transfer_progress)
        self._transport.on(DfuEvent.CONTROL_POINT_RESPONSE, self._on_control_point_response)
        self._transport.on(DfuEvent.ERROR, self._on_transport_error)

    async def __aenter__(self) -> DfuOrchestrator:
        """Connect to the target."""
        await self._connection.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from the target."""
        await self._connection.disconnect()

    @property
    def transport(self) -> DfuTransport:
        return self._transport

    async def perform_dfu_from_file(self, path: str) -> None:
        """Load a DFU zip package and send all of its images."""
        await self.perform_dfu(load_dfu_package(path))

    async def perform_dfu(self, package: DfuPackage) -> None:
        """Send every image of package.

        Raises:
            SecureDfuError: First failure of any transfer step (also emitted as error)
        """
        _LOGGER.info(
            "Starting DFU: %s (%d bytes)",
            ", ".join(image_type.value for image_type in package.image_types),
            package.total_size,
        )
        self.emit(DfuEvent.INITIALIZED)

        try:
            for image in package.images:
                await self._send_image(image)
        except Exception as e:
            _LOGGER.error("DFU failed during %s: %s", self._image_label(), e)
            self.emit(DfuEvent.ERROR, e)
            raise
        finally:
            self._current_image = None

        _LOGGER.info("DFU completed")
        self.emit(DfuEvent.COMPLETED)

    async def _send_image(self, image: FirmwareImage) -> None:
        self._current_image = image.image_type
        _LOGGER.info(
            "Sending %s: init packet %d bytes, firmware %d bytes",
            image.image_type.value,
            len(image.init_packet),
            len(image.firmware),
        )
        self.emit(DfuEvent.TRANSFER_START, image.image_type)

        await self._transport.send_init_packet(image.init_packet)
        await self._transport.send_firmware(image.firmware)

        self.emit(DfuEvent.TRANSFER_COMPLETE, image.image_type)

    def _image_label(self) -> str:
        return self._current_image.value if self._current_image else "setup"

    def _on_transfer_progress(self, object_type: ObjectType, sent: int, total: int) -> None:
        # Init packet progress is not reported per image
        if object_type is ObjectType.DATA and self._current_image is not None:
            self.emit(DfuEvent.TRANSFER_PROGRESS, self._current_image, sent, total)

    def _on_control_point_response(self, response: ControlPointResponse) -> None:
        self.emit(DfuEvent.CONTROL_POINT_RESPONSE, response)

    def _on_transport_error(self, error: Exception) -> None:
        self.emit(DfuEvent.ERROR, error)
