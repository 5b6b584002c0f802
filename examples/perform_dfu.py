"""Update a Nordic Secure DFU bootloader over BLE from an nrfutil package.

Usage:
    uv run python examples/perform_dfu.py --scan
    uv run python examples/perform_dfu.py AA:BB:CC:DD:EE:FF app_dfu_package.zip --prn 12
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from securedfu import (
    BLEConnection,
    DfuOrchestrator,
    ImageType,
    SecureDfuError,
    TransferConfig,
    discover_dfu_targets,
    read_manifest,
)


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_progress(image_type: ImageType, sent: int, total: int) -> None:
    percent = sent / total * 100 if total else 100.0
    print(f"[{_timestamp()}] {image_type.value}: {sent}/{total} bytes ({percent:.1f}%)")


async def scan(duration: float) -> None:
    """Print devices advertising the Secure DFU service."""
    print(f"Scanning for Secure DFU targets ({duration:.1f}s)...")
    targets = await discover_dfu_targets(timeout=duration)
    if not targets:
        print("No targets found")
        return
    for address, name in sorted(targets.items()):
        print(f"  {address}: {name}")


async def update(address: str, package_path: str, config: TransferConfig) -> None:
    """Send every image in package_path to the device at address."""
    manifest = read_manifest(package_path)
    print(f"Package: {package_path} ({', '.join(manifest)})")

    async with DfuOrchestrator(BLEConnection(address), config) as dfu:
        dfu.on("transfer_start", lambda image_type: print(
            f"[{_timestamp()}] Sending {image_type.value}"
        ))
        dfu.on("transfer_progress", _print_progress)
        dfu.on("transfer_complete", lambda image_type: print(
            f"[{_timestamp()}] {image_type.value} done"
        ))
        dfu.on("completed", lambda: print(f"[{_timestamp()}] DFU complete"))

        await dfu.perform_dfu_from_file(package_path)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Perform a Nordic Secure DFU over BLE using an nrfutil .zip package."
    )
    parser.add_argument("address", nargs="?", help="Target MAC address (bootloader mode)")
    parser.add_argument("package", nargs="?", help="Path to the DFU .zip package")
    parser.add_argument(
        "--scan",
        action="store_true",
        help="List devices advertising the Secure DFU service and exit.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Scan duration in seconds. Default: 10",
    )
    parser.add_argument(
        "--prn",
        type=int,
        default=0,
        help="Packet receipt notification interval (0 = disabled). Default: 0",
    )
    parser.add_argument(
        "--packet-size",
        type=int,
        default=None,
        help="Bytes per data packet. Default: negotiated maximum",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    if not args.scan and (args.address is None or args.package is None):
        parser.error("address and package are required unless --scan is given")
    return args


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.scan:
            asyncio.run(scan(args.duration))
        else:
            config = TransferConfig(prn=args.prn, packet_size=args.packet_size)
            asyncio.run(update(args.address, args.package, config))
    except (SecureDfuError, OSError) as err:
        raise SystemExit(f"DFU failed: {err}") from err
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
