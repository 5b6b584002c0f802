"""Interface the DFU engine expects from the BLE peripheral layer."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

NotificationCallback = Callable[[bytes], None]


class DfuAdapter(Protocol):
    """Connected peripheral exposing the DFU characteristics.

    BLEConnection implements this on top of bleak; tests use in-memory fakes.
    """

    @property
    def max_write_size(self) -> int:
        """Largest payload accepted by a single write without response."""
        ...

    async def enable_notifications(
            self,
            characteristic_uuid: str,
            callback: NotificationCallback,
    ) -> None:
        ...

    async def disable_notifications(self, characteristic_uuid: str) -> None:
        ...

    async def write_characteristic(
            self,
            characteristic_uuid: str,
            data: bytes,
            response: bool,
    ) -> None:
        ...
