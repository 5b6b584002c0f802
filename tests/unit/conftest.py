"""Shared fixtures: an in-memory Secure DFU bootloader implementing the adapter interface."""

from __future__ import annotations

import json
import struct
import zipfile
import zlib

import pytest

from securedfu.protocol import CONTROL_POINT_UUID, DATA_POINT_UUID, ObjectType, OpCode


def crc(data: bytes) -> int:
    return zlib.crc32(bytes(data)) & 0xFFFFFFFF


class FakeBootloader:
    """Answers control point requests like a Secure DFU bootloader.

    Every response is delivered synchronously from inside write_characteristic,
    i.e. before the write returns, which is the tightest ordering a real link
    can produce.
    """

    def __init__(self, command_max_size: int = 256, data_max_size: int = 64, packet_size: int = 20):
        self.max_write_size = packet_size
        self.max_sizes = {ObjectType.COMMAND: command_max_size, ObjectType.DATA: data_max_size}

        self.received = {ObjectType.COMMAND: bytearray(), ObjectType.DATA: bytearray()}
        self.executed = {ObjectType.COMMAND: 0, ObjectType.DATA: 0}
        self.current_type = ObjectType.COMMAND
        self.prn = 0
        self.packets_since_receipt = 0

        self.callback = None
        self.enable_error: Exception | None = None
        self.enable_calls = 0
        self.disable_calls = 0

        self.writes: list[tuple[str, bytes, bool]] = []
        self.requests: list[OpCode] = []
        self.silent: set[OpCode] = set()
        self.result_overrides: dict[OpCode, int] = {}
        self.checksum_offset_error = 0

    # Adapter interface

    async def enable_notifications(self, characteristic_uuid, callback) -> None:
        self.enable_calls += 1
        if self.enable_error is not None:
            raise self.enable_error
        assert characteristic_uuid == CONTROL_POINT_UUID
        self.callback = callback

    async def disable_notifications(self, characteristic_uuid) -> None:
        self.disable_calls += 1
        self.callback = None

    async def write_characteristic(self, characteristic_uuid, data, response) -> None:
        data = bytes(data)
        self.writes.append((characteristic_uuid, data, response))
        if characteristic_uuid == DATA_POINT_UUID:
            self._on_data(data)
        else:
            self._on_request(data)

    # Helpers for tests

    def preload(self, object_type: ObjectType, data: bytes) -> None:
        """Simulate an interrupted earlier session."""
        self.received[object_type] = bytearray(data)

    def notify(self, data: bytes) -> None:
        self.callback(bytes(data))

    @property
    def data_writes(self) -> list[bytes]:
        return [data for uuid, data, _ in self.writes if uuid == DATA_POINT_UUID]

    # Device behaviour

    def _respond(self, opcode: OpCode, payload: bytes = b"") -> None:
        result = self.result_overrides.get(opcode, 0x01)
        self.notify(bytes([OpCode.RESPONSE, opcode, result]) + (payload if result == 0x01 else b""))

    def _checksum_payload(self) -> bytes:
        data = self.received[self.current_type]
        return struct.pack("<II", len(data) + self.checksum_offset_error, crc(data))

    def _on_request(self, data: bytes) -> None:
        opcode = OpCode(data[0])
        self.requests.append(opcode)
        if opcode in self.silent:
            return

        if opcode == OpCode.SELECT:
            self.current_type = ObjectType(data[1])
            received = self.received[self.current_type]
            self._respond(opcode, struct.pack(
                "<III", self.max_sizes[self.current_type], len(received), crc(received)
            ))
        elif opcode == OpCode.CREATE:
            object_type = ObjectType(data[1])
            (size,) = struct.unpack("<I", data[2:6])
            if size > self.max_sizes[object_type]:
                self.notify(bytes([OpCode.RESPONSE, opcode, 0x03]))
                return
            self.current_type = object_type
            # Creating an object drops an incomplete object at the end
            received = self.received[object_type]
            del received[len(received) - len(received) % self.max_sizes[object_type]:]
            self.packets_since_receipt = 0
            self._respond(opcode)
        elif opcode == OpCode.SET_PRN:
            (self.prn,) = struct.unpack("<H", data[1:3])
            self.packets_since_receipt = 0
            self._respond(opcode)
        elif opcode == OpCode.CALC_CHECKSUM:
            self._respond(opcode, self._checksum_payload())
        elif opcode == OpCode.EXECUTE:
            if self.result_overrides.get(opcode, 0x01) == 0x01:
                self.executed[self.current_type] = len(self.received[self.current_type])
                if self.current_type == ObjectType.COMMAND:
                    # A newly executed init packet starts a new firmware image
                    self.received[ObjectType.DATA] = bytearray()
                    self.executed[ObjectType.DATA] = 0
            self._respond(opcode)

    def _on_data(self, data: bytes) -> None:
        self.received[self.current_type].extend(data)
        self.packets_since_receipt += 1
        if self.prn and self.packets_since_receipt == self.prn:
            self.packets_since_receipt = 0
            self.notify(
                bytes([OpCode.RESPONSE, OpCode.CALC_CHECKSUM, 0x01]) + self._checksum_payload()
            )


class SilentAdapter:
    """Adapter that records writes and never answers; tests inject notifications."""

    max_write_size = 20

    def __init__(self):
        self.callback = None
        self.writes: list[tuple[str, bytes, bool]] = []

    async def enable_notifications(self, characteristic_uuid, callback) -> None:
        self.callback = callback

    async def disable_notifications(self, characteristic_uuid) -> None:
        self.callback = None

    async def write_characteristic(self, characteristic_uuid, data, response) -> None:
        self.writes.append((characteristic_uuid, bytes(data), response))

    def notify(self, data: bytes) -> None:
        self.callback(bytes(data))


@pytest.fixture
def bootloader() -> FakeBootloader:
    return FakeBootloader()


@pytest.fixture
def make_bootloader():
    return FakeBootloader


@pytest.fixture
def silent_adapter() -> SilentAdapter:
    return SilentAdapter()


@pytest.fixture
def firmware() -> bytes:
    """Deterministic 150-byte firmware image (spans 3 objects of 64 bytes)."""
    return bytes((i * 7 + 3) % 256 for i in range(150))


@pytest.fixture
def init_packet() -> bytes:
    return bytes(range(40))


@pytest.fixture
def make_package_zip(tmp_path):
    """Write a DFU zip from a manifest dict and a {name: bytes} file map."""

    def _make(manifest, files, name="dfu_package.zip", manifest_text=None):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            if manifest_text is not None:
                archive.writestr("manifest.json", manifest_text)
            elif manifest is not None:
                archive.writestr("manifest.json", json.dumps({"manifest": manifest}))
            for file_name, data in files.items():
                archive.writestr(file_name, data)
        return str(path)

    return _make


class FakeConnection(FakeBootloader):
    """Bootloader that also tracks connect/disconnect like BLEConnection."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.connected = False
        self.connect_calls = 0

    async def connect(self) -> None:
        self.connect_calls += 1
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def make_connection():
    return FakeConnection
