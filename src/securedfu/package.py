"""Nordic DFU package (.zip) reader."""

from __future__ import annotations

import json
import logging
import zipfile

from .exceptions import PackageError
from .models.enums import ImageType
from .models.firmware import DfuPackage, FirmwareImage

_LOGGER = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


def _read_manifest(archive: zipfile.ZipFile) -> dict:
    if MANIFEST_NAME not in archive.namelist():
        raise PackageError(f"Not a DFU package: {MANIFEST_NAME} not found")

    try:
        manifest = json.loads(archive.read(MANIFEST_NAME))["manifest"]
    except (ValueError, KeyError, TypeError) as e:
        raise PackageError(f"Invalid {MANIFEST_NAME}: {e}") from e

    if not isinstance(manifest, dict):
        raise PackageError(f"Invalid {MANIFEST_NAME}: manifest is not an object")
    return manifest


def read_manifest(path: str) -> dict:
    """Read the manifest of a DFU package.

    Args:
        path: Filesystem path to the .zip produced by nrfutil

    Returns:
        The "manifest" object, e.g.
        {"application": {"bin_file": "app.bin", "dat_file": "app.dat"}}

    Raises:
        PackageError: If the zip or manifest is malformed
        FileNotFoundError: If path does not exist
    """
    try:
        with zipfile.ZipFile(path, "r") as archive:
            return _read_manifest(archive)
    except zipfile.BadZipFile as e:
        raise PackageError(f"Invalid zip file: {e}") from e


def load_dfu_package(path: str) -> DfuPackage:
    """Load every image referenced by a DFU package manifest.

    Unknown manifest keys (e.g. extra metadata) are ignored.

    Raises:
        PackageError: If the zip, manifest or a referenced file is invalid
        FileNotFoundError: If path does not exist
    """
    try:
        with zipfile.ZipFile(path, "r") as archive:
            manifest = _read_manifest(archive)
            images = []

            for key, entry in manifest.items():
                try:
                    image_type = ImageType.from_value(key)
                except ValueError:
                    _LOGGER.debug("Ignoring manifest entry %r", key)
                    continue

                try:
                    bin_file = entry["bin_file"]
                    dat_file = entry["dat_file"]
                except (KeyError, TypeError) as e:
                    raise PackageError(f"Manifest entry {key!r} is missing {e}") from e

                try:
                    firmware = archive.read(bin_file)
                    init_packet = archive.read(dat_file)
                except KeyError as e:
                    raise PackageError(f"Manifest references a file not in the archive: {e}") from e

                if not init_packet:
                    raise PackageError(f"Init packet {dat_file!r} is empty")

                images.append(FirmwareImage(
                    init_packet=init_packet,
                    firmware=firmware,
                    image_type=image_type,
                ))
    except zipfile.BadZipFile as e:
        raise PackageError(f"Invalid zip file: {e}") from e

    if not images:
        raise PackageError("DFU package contains no firmware images")

    try:
        package = DfuPackage(images=tuple(images), manifest=manifest)
    except ValueError as e:
        raise PackageError(str(e)) from e

    _LOGGER.debug(
        "Loaded DFU package %s: %s",
        path,
        ", ".join(image_type.value for image_type in package.image_types),
    )
    return package
