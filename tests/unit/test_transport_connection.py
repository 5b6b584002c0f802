"""Test BLEConnection as a DFU adapter, with the Bleak client faked out."""

from __future__ import annotations

import asyncio

import pytest

from securedfu.exceptions import BLEConnectionError, DfuTimeoutError, TransportSetupError
from securedfu.protocol import CONTROL_POINT_UUID, DATA_POINT_UUID, SERVICE_UUID
from securedfu.transport import connection as connection_module
from securedfu.transport.connection import BLEConnection


class _FakeCharacteristic:
    def __init__(self, uuid: str, max_write_without_response_size: int = 244):
        self.uuid = uuid
        self.max_write_without_response_size = max_write_without_response_size


class _FakeServices:
    def __init__(self, characteristics: dict, has_dfu_service: bool = True):
        self._characteristics = characteristics
        self._has_dfu_service = has_dfu_service

    def get_service(self, uuid):
        return object() if self._has_dfu_service and uuid == SERVICE_UUID else None

    def get_characteristic(self, uuid):
        return self._characteristics.get(uuid)


class _FakeClient:
    def __init__(self, characteristics: dict | None = None, mtu_size: int = 247,
                 has_dfu_service: bool = True):
        if characteristics is None:
            characteristics = {
                CONTROL_POINT_UUID: _FakeCharacteristic(CONTROL_POINT_UUID),
                DATA_POINT_UUID: _FakeCharacteristic(DATA_POINT_UUID),
            }
        self.services = _FakeServices(characteristics, has_dfu_service)
        self.mtu_size = mtu_size
        self.is_connected = True
        self.written: list[tuple[str, bytes, bool]] = []
        self.notify_handlers: dict = {}
        self.stopped: list[str] = []
        self.write_error: Exception | None = None
        self.disconnect_error: Exception | None = None

    async def write_gatt_char(self, uuid, data, response=False):
        if self.write_error is not None:
            raise self.write_error
        self.written.append((uuid, bytes(data), response))

    async def start_notify(self, characteristic, callback):
        self.notify_handlers[characteristic.uuid] = callback

    async def stop_notify(self, uuid):
        self.stopped.append(uuid)

    async def disconnect(self):
        self.is_connected = False
        if self.disconnect_error is not None:
            raise self.disconnect_error


class _FakeDevice:
    name = "DfuTarg"
    address = "AA:BB:CC:DD:EE:FF"


def _connected(client: _FakeClient | None = None) -> tuple[BLEConnection, _FakeClient]:
    conn = BLEConnection("AA:BB:CC:DD:EE:FF")
    fake = client or _FakeClient()
    conn._client = fake  # Inject fake client
    return conn, fake


class TestAdapterInterface:
    """Test notifications, writes and write size on a connected client."""

    @pytest.mark.asyncio
    async def test_write_characteristic(self) -> None:
        conn, fake = _connected()

        await conn.write_characteristic(CONTROL_POINT_UUID, b'\x06\x01', response=True)
        await conn.write_characteristic(DATA_POINT_UUID, b'\xaa' * 20, response=False)

        assert fake.written == [
            (CONTROL_POINT_UUID, b'\x06\x01', True),
            (DATA_POINT_UUID, b'\xaa' * 20, False),
        ]

    @pytest.mark.asyncio
    async def test_write_failure_wrapped(self) -> None:
        conn, fake = _connected()
        fake.write_error = RuntimeError("GATT error 0x85")

        with pytest.raises(BLEConnectionError, match="Write failed: GATT error 0x85"):
            await conn.write_characteristic(DATA_POINT_UUID, b'\x00', response=False)

    @pytest.mark.asyncio
    async def test_write_requires_connection(self) -> None:
        conn = BLEConnection("AA:BB:CC:DD:EE:FF")

        with pytest.raises(BLEConnectionError, match="Not connected"):
            await conn.write_characteristic(DATA_POINT_UUID, b'\x00', response=False)

    @pytest.mark.asyncio
    async def test_notifications_forward_bytes(self) -> None:
        conn, fake = _connected()
        received = []

        await conn.enable_notifications(CONTROL_POINT_UUID, received.append)
        fake.notify_handlers[CONTROL_POINT_UUID](None, bytearray(b'\x60\x06\x01'))

        assert received == [b'\x60\x06\x01']
        assert isinstance(received[0], bytes)

    @pytest.mark.asyncio
    async def test_enable_notifications_missing_characteristic(self) -> None:
        conn, _ = _connected(_FakeClient(characteristics={}))

        with pytest.raises(TransportSetupError, match="not found"):
            await conn.enable_notifications(CONTROL_POINT_UUID, print)

    @pytest.mark.asyncio
    async def test_disable_notifications(self) -> None:
        conn, fake = _connected()

        await conn.disable_notifications(CONTROL_POINT_UUID)

        assert fake.stopped == [CONTROL_POINT_UUID]

    @pytest.mark.asyncio
    async def test_disable_notifications_when_disconnected(self) -> None:
        conn = BLEConnection("AA:BB:CC:DD:EE:FF")

        await conn.disable_notifications(CONTROL_POINT_UUID)

    def test_max_write_size_from_characteristic(self) -> None:
        conn, _ = _connected()

        assert conn.max_write_size == 244

    def test_max_write_size_falls_back_to_mtu(self) -> None:
        conn, _ = _connected(_FakeClient(characteristics={}, mtu_size=185))

        assert conn.max_write_size == 182

    def test_max_write_size_when_disconnected(self) -> None:
        assert BLEConnection("AA:BB:CC:DD:EE:FF").max_write_size == 20


class TestConnect:
    """Test connection setup and teardown."""

    @pytest.mark.asyncio
    async def test_connect_with_ble_device(self, monkeypatch) -> None:
        fake = _FakeClient()
        calls = []

        async def fake_establish_connection(**kwargs):
            calls.append(kwargs)
            return fake

        monkeypatch.setattr(connection_module, "establish_connection", fake_establish_connection)
        conn = BLEConnection("AA:BB:CC:DD:EE:FF", ble_device=_FakeDevice(), max_attempts=2)

        await conn.connect()

        assert conn.is_connected
        assert calls[0]["name"] == "DfuTarg"
        assert calls[0]["max_attempts"] == 2

    @pytest.mark.asyncio
    async def test_connect_device_not_found(self, monkeypatch) -> None:
        async def find_device_by_address(address, timeout=10.0):
            return None

        monkeypatch.setattr(
            connection_module.BleakScanner, "find_device_by_address", find_device_by_address
        )
        conn = BLEConnection("AA:BB:CC:DD:EE:FF")

        with pytest.raises(BLEConnectionError, match="not found during scan"):
            await conn.connect()

    @pytest.mark.asyncio
    async def test_connect_timeout(self, monkeypatch) -> None:
        async def fake_establish_connection(**kwargs):
            raise asyncio.TimeoutError

        monkeypatch.setattr(connection_module, "establish_connection", fake_establish_connection)
        conn = BLEConnection("AA:BB:CC:DD:EE:FF", ble_device=_FakeDevice(), timeout=5.0)

        with pytest.raises(DfuTimeoutError, match="Connection timeout after 5.0s"):
            await conn.connect()

    @pytest.mark.asyncio
    async def test_connect_failure_wrapped(self, monkeypatch) -> None:
        async def fake_establish_connection(**kwargs):
            raise RuntimeError("out of slots")

        monkeypatch.setattr(connection_module, "establish_connection", fake_establish_connection)
        conn = BLEConnection("AA:BB:CC:DD:EE:FF", ble_device=_FakeDevice())

        with pytest.raises(BLEConnectionError, match="Failed to connect: out of slots"):
            await conn.connect()

    @pytest.mark.asyncio
    async def test_connect_requires_dfu_service(self, monkeypatch) -> None:
        fake = _FakeClient(has_dfu_service=False)

        async def fake_establish_connection(**kwargs):
            return fake

        monkeypatch.setattr(connection_module, "establish_connection", fake_establish_connection)
        conn = BLEConnection("AA:BB:CC:DD:EE:FF", ble_device=_FakeDevice())

        with pytest.raises(BLEConnectionError, match="Secure DFU service"):
            await conn.connect()

        assert not fake.is_connected
        assert not conn.is_connected

    @pytest.mark.asyncio
    async def test_disconnect_error_is_logged(self, caplog) -> None:
        conn, fake = _connected()
        fake.disconnect_error = RuntimeError("already gone")

        await conn.disconnect()

        assert not conn.is_connected
        assert "Error during disconnect" in caplog.text
