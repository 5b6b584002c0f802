"""Secure DFU object transfer over the control point / data point pair."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .events import EventEmitter
from .exceptions import ChecksumMismatchError, PayloadTooLargeError, SecureDfuError
from .models.config import TransferConfig
from .models.enums import DfuEvent
from .models.transfer import Resumption, TransferPlan
from .protocol import ControlPointResponse, ObjectType, plan_transfer
from .transport.control_point import ControlPointChannel
from .transport.data_point import DataPointChannel

if TYPE_CHECKING:
    from .transport.adapter import DfuAdapter

_LOGGER = logging.getLogger(__name__)


class DfuTransport(EventEmitter):
    """Transfers one init packet or firmware image to a Secure DFU bootloader.

    Every attempt starts from a fresh SELECT, so an interrupted transfer resumes
    from whatever the device reports instead of local state. There are no
    internal retries: a failed attempt raises and the caller decides whether to
    call again.

    Events:
        transfer_progress(object_type, bytes_sent, total_bytes)
        transfer_complete(object_type)
        control_point_response(response)
        error(exc) for notifications that desynchronize the control point
    """

    def __init__(self, adapter: DfuAdapter, config: TransferConfig | None = None):
        """Initialize DFU transport.

        Args:
            adapter: Connected peripheral exposing the DFU characteristics
            config: Transfer tunables (default: TransferConfig())
        """
        super().__init__()
        self._adapter = adapter
        self.config = config or TransferConfig()
        self._control = ControlPointChannel(
            adapter,
            response_timeout=self.config.response_timeout,
            on_response=self._on_control_point_response,
            on_error=self._on_control_point_error,
        )

    @property
    def control_point(self) -> ControlPointChannel:
        return self._control

    @property
    def packet_size(self) -> int:
        if self.config.packet_size is not None:
            return self.config.packet_size
        return self._adapter.max_write_size

    async def send_init_packet(self, init_packet: bytes) -> None:
        """Send the init packet as a single COMMAND object and execute it.

        Raises:
            TransportSetupError: If notifications cannot be enabled
            PayloadTooLargeError: If the init packet exceeds the device's max object size
            ChecksumMismatchError: If the device disagrees with the written data
            DeviceProtocolError: If the device rejects a request
            DfuTimeoutError: If the device does not respond
            ProtocolDesyncError: If an unexpected notification arrives mid-request
        """
        await self._send_object(ObjectType.COMMAND, bytes(init_packet))

    async def send_firmware(self, firmware: bytes) -> None:
        """Send the firmware image as DATA objects, resuming where possible.

        Raises:
            TransportSetupError: If notifications cannot be enabled
            ProtocolMismatchError: If the device reports more data than the image holds
            ChecksumMismatchError: If the device disagrees with the written data
            DeviceProtocolError: If the device rejects a request
            DfuTimeoutError: If the device does not respond
            ProtocolDesyncError: If an unexpected notification arrives mid-request
        """
        await self._send_object(ObjectType.DATA, bytes(firmware))

    async def _send_object(self, object_type: ObjectType, payload: bytes) -> None:
        _LOGGER.info("Sending %s object (%d bytes)", object_type.name, len(payload))

        await self._control.start()
        try:
            await self._control.set_prn(self.config.prn)
            select = await self._control.select(object_type)

            if object_type is ObjectType.COMMAND and len(payload) > select.maximum_size:
                raise PayloadTooLargeError(
                    f"Init packet ({len(payload)} bytes) is larger than max size "
                    f"({select.maximum_size} bytes)"
                )

            plan = plan_transfer(payload, select)
            _LOGGER.debug(
                "Transfer plan for %s: %s at offset %d, %d partial bytes, %d objects",
                object_type.name,
                plan.resumption.value,
                plan.offset,
                len(plan.partial_object),
                len(plan.objects),
            )

            data_point = DataPointChannel(
                self._adapter,
                self._control,
                packet_size=self.packet_size,
                prn=self.config.prn,
                receipt_timeout=self.config.receipt_timeout,
            )
            await self._transfer(object_type, payload, plan, data_point)
        finally:
            await self._release()

        _LOGGER.info("%s object transfer complete", object_type.name)
        self.emit(DfuEvent.TRANSFER_COMPLETE, object_type)

    async def _transfer(
            self,
            object_type: ObjectType,
            payload: bytes,
            plan: TransferPlan,
            data_point: DataPointChannel,
    ) -> None:
        total = len(payload)
        offset, crc = plan.offset, plan.crc32

        if plan.resumption is Resumption.PARTIAL:
            # Finish the object the device already started, then commit it
            offset, crc = await data_point.stream(plan.partial_object, offset, crc)
            await self._verify_checksum(offset, crc)
            await self._control.execute()
        elif plan.resumption is Resumption.ALIGNED or (
                plan.resumption is Resumption.DISCARDED and not plan.objects):
            # The object ending at the offset may never have been executed;
            # a discarded tail with nothing left to resend fails verification here
            await self._verify_checksum(offset, crc)
            await self._control.execute()

        if plan.resumption is not Resumption.FRESH:
            _LOGGER.info("Resuming %s transfer at offset %d/%d", object_type.name, offset, total)
            self.emit(DfuEvent.TRANSFER_PROGRESS, object_type, offset, total)

        for obj in plan.objects:
            await self._control.create(object_type, len(obj))
            offset, crc = await data_point.stream(obj, offset, crc)
            await self._verify_checksum(offset, crc)
            await self._control.execute()

            _LOGGER.debug(
                "Sent %d/%d bytes (%.1f%%)",
                offset,
                total,
                offset / total * 100,
            )
            self.emit(DfuEvent.TRANSFER_PROGRESS, object_type, offset, total)

    async def _verify_checksum(self, offset: int, crc: int) -> None:
        response = await self._control.calc_checksum()
        if (response.offset, response.crc32) != (offset, crc):
            raise ChecksumMismatchError(
                expected=(offset, crc),
                actual=(response.offset, response.crc32),
            )

    async def _release(self) -> None:
        try:
            await self._control.stop()
        except Exception as e:
            _LOGGER.warning("Error disabling control point notifications: %s", e)

    def _on_control_point_response(self, response: ControlPointResponse) -> None:
        self.emit(DfuEvent.CONTROL_POINT_RESPONSE, response)

    def _on_control_point_error(self, error: SecureDfuError) -> None:
        self.emit(DfuEvent.ERROR, error)
