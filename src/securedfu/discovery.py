"""Discovery of devices advertising the Secure DFU service."""

from __future__ import annotations

import logging

from bleak import BleakScanner

from .protocol import SERVICE_UUID

_LOGGER = logging.getLogger(__name__)


async def discover_dfu_targets(timeout: float = 10.0) -> dict[str, str]:
    """Scan for devices advertising the Secure DFU service.

    Args:
        timeout: Scan duration in seconds (default: 10)

    Returns:
        Mapping of device address to advertised name (address if unnamed)
    """
    _LOGGER.debug("Scanning for Secure DFU targets (%.1fs)", timeout)
    found = await BleakScanner.discover(timeout=timeout, return_adv=True)

    targets: dict[str, str] = {}
    service_uuid = SERVICE_UUID.lower()
    for address, (device, adv) in found.items():
        uuids = [uuid.lower() for uuid in (adv.service_uuids or [])]
        if service_uuid not in uuids:
            continue
        targets[address] = adv.local_name or device.name or address

    _LOGGER.info("Found %d Secure DFU target(s)", len(targets))
    return targets
