"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, DfuTimeoutError, TransportSetupError
from ..protocol import DATA_POINT_UUID, DEFAULT_PACKET_SIZE, SERVICE_UUID
from .adapter import NotificationCallback

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)

# ATT header bytes subtracted from the MTU for a write payload
ATT_HEADER_SIZE = 3


class BLEConnection:
    """Manages the BLE connection to a device in Secure DFU bootloader mode.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Context manager for automatic cleanup
    - DfuAdapter interface (notifications, writes, max write size)
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from Home Assistant bluetooth integration
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None

    async def __aenter__(self) -> BLEConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection and check for the Secure DFU service.

        Raises:
            BLEConnectionError: If connection fails or the DFU service is missing
            DfuTimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.mac_address,
                self.max_attempts
            )

            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.mac_address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.mac_address,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.debug("Connected to %s (mtu=%d)", self.mac_address, self._client.mtu_size)

        except asyncio.TimeoutError as e:
            raise DfuTimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BLEConnectionError:
            raise
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

        if self._client.services.get_service(SERVICE_UUID) is None:
            await self.disconnect()
            raise BLEConnectionError(
                f"Secure DFU service {SERVICE_UUID} not found on {self.mac_address}"
            )

    async def disconnect(self) -> None:
        """Disconnect from device."""
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None

    def _require_client(self) -> BleakClient:
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")
        return self._client

    def _characteristic(self, characteristic_uuid: str) -> BleakGATTCharacteristic:
        characteristic = self._require_client().services.get_characteristic(characteristic_uuid)
        if characteristic is None:
            raise BLEConnectionError(f"Characteristic {characteristic_uuid} not found")
        return characteristic

    @property
    def max_write_size(self) -> int:
        """Largest data point write without response for the negotiated MTU."""
        if not self.is_connected:
            return DEFAULT_PACKET_SIZE

        try:
            return self._characteristic(DATA_POINT_UUID).max_write_without_response_size
        except BLEConnectionError:
            return max(self._require_client().mtu_size - ATT_HEADER_SIZE, DEFAULT_PACKET_SIZE)

    async def enable_notifications(
            self,
            characteristic_uuid: str,
            callback: NotificationCallback,
    ) -> None:
        """Start notifications and forward raw payloads to callback.

        Raises:
            TransportSetupError: If notifications cannot be started
        """
        try:
            characteristic = self._characteristic(characteristic_uuid)
            await self._require_client().start_notify(
                characteristic,
                lambda sender, data: callback(bytes(data)),
            )
        except Exception as e:
            raise TransportSetupError(
                f"Failed to enable notifications on {characteristic_uuid}: {e}"
            ) from e

        _LOGGER.debug("Notifications started on %s", characteristic_uuid)

    async def disable_notifications(self, characteristic_uuid: str) -> None:
        """Stop notifications (ignored when already disconnected)."""
        if not self.is_connected:
            return

        try:
            await self._require_client().stop_notify(characteristic_uuid)
        except Exception as e:
            _LOGGER.warning("Error stopping notifications on %s: %s", characteristic_uuid, e)

    async def write_characteristic(
            self,
            characteristic_uuid: str,
            data: bytes,
            response: bool,
    ) -> None:
        """Write to a characteristic.

        Args:
            characteristic_uuid: Target characteristic
            data: Bytes to write
            response: Use write-with-response (control point) or without (data point)

        Raises:
            BLEConnectionError: If not connected or write fails
        """
        client = self._require_client()

        try:
            await client.write_gatt_char(characteristic_uuid, data, response=response)
        except Exception as e:
            raise BLEConnectionError(f"Write failed: {e}") from e

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
