"""Control point channel: one outstanding request at a time."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..exceptions import (
    BusyError,
    DfuTimeoutError,
    ProtocolDesyncError,
    SecureDfuError,
    TransportSetupError,
)
from ..models.transfer import ChecksumResponse, SelectResponse
from ..protocol import (
    CONTROL_POINT_UUID,
    ControlPointResponse,
    MalformedNotification,
    ObjectType,
    OpCode,
    build_calc_checksum_command,
    build_create_command,
    build_execute_command,
    build_select_command,
    build_set_prn_command,
    parse_checksum_response,
    parse_notification,
    parse_select_response,
)

if TYPE_CHECKING:
    from .adapter import DfuAdapter

_LOGGER = logging.getLogger(__name__)


class ChannelState(Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"


@dataclass
class _PendingRequest:
    opcode: OpCode
    future: asyncio.Future[ControlPointResponse]
    desync: ProtocolDesyncError | None = None


class ControlPointChannel:
    """Request/response channel over the DFU control point characteristic.

    Features:
    - Single outstanding request, a second request fails with BusyError
    - Response timeout returns the channel to IDLE
    - Mismatched or malformed notifications are reported and poison the
      outstanding request: it fails with ProtocolDesyncError once its response
      arrives or its timeout expires
    - Packet receipt notifications are buffered for the data channel while it
      expects them, and reported as unsolicited otherwise
    """

    def __init__(
            self,
            adapter: DfuAdapter,
            response_timeout: float = 20.0,
            on_response: Callable[[ControlPointResponse], None] | None = None,
            on_error: Callable[[SecureDfuError], None] | None = None,
    ):
        """Initialize control point channel.

        Args:
            adapter: Connected peripheral
            response_timeout: Seconds to wait for each response (default: 20)
            on_response: Called with every decoded response
            on_error: Called with desync errors that cannot be raised to a caller
        """
        self._adapter = adapter
        self.response_timeout = response_timeout
        self._on_response = on_response
        self._on_error = on_error

        self._pending: _PendingRequest | None = None
        self._receipts: deque[ChecksumResponse] = deque()
        self._expecting_receipts = False
        self._subscribed = False

    @property
    def state(self) -> ChannelState:
        if self._pending is None:
            return ChannelState.IDLE
        return ChannelState.AWAITING_RESPONSE

    @property
    def is_subscribed(self) -> bool:
        return self._subscribed

    @property
    def expecting_receipts(self) -> bool:
        return self._expecting_receipts

    def expect_receipts(self, enabled: bool) -> None:
        """Start or stop accepting packet receipts that arrive while IDLE.

        Buffered receipts are dropped either way, so a receipt never outlives
        the data stream it belongs to.
        """
        self._expecting_receipts = enabled
        self._receipts.clear()

    async def start(self) -> None:
        """Enable control point notifications.

        Raises:
            TransportSetupError: If notifications cannot be enabled
        """
        if self._subscribed:
            return

        try:
            await self._adapter.enable_notifications(
                CONTROL_POINT_UUID,
                self._handle_notification,
            )
        except TransportSetupError:
            raise
        except Exception as e:
            raise TransportSetupError(str(e)) from e

        self._receipts.clear()
        self._subscribed = True
        _LOGGER.debug("Control point notifications enabled")

    async def stop(self) -> None:
        """Disable control point notifications."""
        if not self._subscribed:
            return

        self._subscribed = False
        self._expecting_receipts = False
        self._receipts.clear()
        await self._adapter.disable_notifications(CONTROL_POINT_UUID)
        _LOGGER.debug("Control point notifications disabled")

    async def select(self, object_type: ObjectType) -> SelectResponse:
        """Select object type and read its transfer state."""
        response = await self._request(OpCode.SELECT, build_select_command(object_type))
        select = parse_select_response(response.payload)

        _LOGGER.debug(
            "Selected %s: max_size=%d offset=%d crc32=0x%08x",
            object_type.name,
            select.maximum_size,
            select.offset,
            select.crc32,
        )
        return select

    async def create(self, object_type: ObjectType, size: int) -> None:
        """Create a new object of the given type and size."""
        await self._request(OpCode.CREATE, build_create_command(object_type, size))

    async def set_prn(self, value: int) -> None:
        """Set packet receipt notification interval (0 disables)."""
        await self._request(OpCode.SET_PRN, build_set_prn_command(value))

    async def calc_checksum(self) -> ChecksumResponse:
        """Read offset and CRC32 of the data received so far."""
        response = await self._request(OpCode.CALC_CHECKSUM, build_calc_checksum_command())
        return parse_checksum_response(response.payload)

    async def execute(self) -> None:
        """Execute the current object."""
        await self._request(OpCode.EXECUTE, build_execute_command())

    async def wait_for_receipt(self, timeout: float | None = None) -> ChecksumResponse:
        """Wait for a packet receipt notification.

        Receipts are CALC_CHECKSUM responses the device sends on its own after
        every PRN packets. Nothing is written to the device.

        Args:
            timeout: Seconds to wait (default: response_timeout)

        Raises:
            BusyError: If a request is outstanding
            DfuTimeoutError: If no receipt arrives in time
        """
        if self._receipts:
            return self._receipts.popleft()

        pending = self._arm(OpCode.CALC_CHECKSUM)
        response = await self._wait(
            pending,
            self.response_timeout if timeout is None else timeout,
        )
        return parse_checksum_response(response.payload)

    def _arm(self, opcode: OpCode) -> _PendingRequest:
        if self._pending is not None:
            raise BusyError(
                f"Cannot issue {opcode.name}: {self._pending.opcode.name} is awaiting a response"
            )

        future: asyncio.Future[ControlPointResponse] = asyncio.get_running_loop().create_future()
        self._pending = _PendingRequest(opcode, future)
        return self._pending

    def _clear(self, pending: _PendingRequest) -> None:
        if self._pending is pending:
            self._pending = None

    async def _request(self, opcode: OpCode, command: bytes) -> ControlPointResponse:
        pending = self._arm(opcode)
        _LOGGER.debug("Control point request %s: %s", opcode.name, command.hex())

        try:
            await self._adapter.write_characteristic(CONTROL_POINT_UUID, command, response=True)
        except BaseException:
            self._clear(pending)
            pending.future.cancel()
            raise

        return await self._wait(pending, self.response_timeout)

    async def _wait(self, pending: _PendingRequest, timeout: float) -> ControlPointResponse:
        try:
            return await asyncio.wait_for(pending.future, timeout=timeout)
        except asyncio.TimeoutError as e:
            if pending.desync is not None:
                raise pending.desync from e
            raise DfuTimeoutError(
                f"No response to {pending.opcode.name} within {timeout}s"
            ) from e
        finally:
            self._clear(pending)

    def _handle_notification(self, data: bytes) -> None:
        """Dispatch one control point notification."""
        message = parse_notification(data)

        if isinstance(message, MalformedNotification):
            self._desync(ProtocolDesyncError(
                f"Malformed notification ({message.reason}): {message.data.hex()}"
            ))
            return

        _LOGGER.debug(
            "Control point response opcode=0x%02x result=0x%02x payload=%s",
            message.opcode,
            message.result,
            message.payload.hex(),
        )
        if self._on_response is not None:
            self._on_response(message)

        pending = self._pending
        if pending is None or pending.future.done():
            self._handle_unsolicited(message)
            return

        if message.opcode != pending.opcode:
            self._desync(ProtocolDesyncError(
                f"Unexpected response to opcode 0x{message.opcode:02x} "
                f"while awaiting {pending.opcode.name}"
            ))
            return

        if pending.desync is not None:
            pending.future.set_exception(pending.desync)
        elif message.is_success:
            pending.future.set_result(message)
        else:
            pending.future.set_exception(message.to_error())

    def _handle_unsolicited(self, message: ControlPointResponse) -> None:
        is_receipt = message.opcode == OpCode.CALC_CHECKSUM and message.is_success
        if is_receipt and self._expecting_receipts:
            try:
                receipt = parse_checksum_response(message.payload)
            except SecureDfuError as e:
                self._report(ProtocolDesyncError(f"Invalid receipt notification: {e}"))
                return
            self._receipts.append(receipt)
            return

        self._report(ProtocolDesyncError(
            f"Unsolicited response to opcode 0x{message.opcode:02x} (no request outstanding)"
        ))

    def _desync(self, error: ProtocolDesyncError) -> None:
        # The outstanding request can no longer be trusted, whatever arrives next
        pending = self._pending
        if pending is not None and not pending.future.done() and pending.desync is None:
            pending.desync = error
        self._report(error)

    def _report(self, error: ProtocolDesyncError) -> None:
        _LOGGER.warning("%s", error)
        if self._on_error is not None:
            self._on_error(error)
