"""Mounted volume enumeration."""

import json
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import psutil

from ..util.logging import get_logger

logger = get_logger(__name__)

LSBLK_COLUMNS = "NAME,PATH,TYPE,MOUNTPOINT,LABEL,FSTYPE,PTTYPE,SERIAL,MODEL,VENDOR"

# Attributes that only the whole-disk node carries
DISK_ATTRIBUTES = ("serial", "model", "vendor", "pttype")


@dataclass(frozen=True)
class VolumeDescriptor:
    """A mounted volume joined with the disk it lives on."""

    mount_path: str
    disk_index: int
    label: str = ""
    manufacturer: str = ""
    model: str = ""
    serial_number: str = ""
    caption: str = ""
    filesystem: str = ""
    partition_style: str = ""

    @property
    def display_name(self) -> str:
        """Get a human-readable volume name."""
        name = self.label or self.caption or self.mount_path
        return f"{name} ({self.mount_path})"


class VolumeEnumerationError(Exception):
    """The operating system could not be queried for volumes."""
    pass


def _lsblk_json() -> Dict[str, Any]:
    try:
        result = subprocess.run(
            ["lsblk", "-J", "-b", "-o", LSBLK_COLUMNS],
            capture_output=True,
            text=True,
            timeout=30,
            check=True
        )
    except subprocess.CalledProcessError as e:
        raise VolumeEnumerationError(f"lsblk failed: {e.stderr}") from e
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        raise VolumeEnumerationError(f"lsblk is not available: {e}") from e

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise VolumeEnumerationError(f"lsblk output is not valid JSON: {e}") from e


def _text(value: Optional[Any]) -> str:
    return str(value).strip() if value is not None else ""


def parse_lsblk(data: Dict[str, Any]) -> List[VolumeDescriptor]:
    """Flatten ``lsblk -J`` output into mounted volume descriptors."""
    blockdevices = data.get("blockdevices", []) or []
    disks = sorted(d.get("name", "") for d in blockdevices if d.get("type") == "disk")
    disk_index = {name: i for i, name in enumerate(disks)}
    volumes: List[VolumeDescriptor] = []

    def walk(node: Dict[str, Any], disk: Dict[str, Any], index: int) -> None:
        mount = node.get("mountpoint")
        if mount:
            inherited = {attr: node.get(attr) or disk.get(attr) for attr in DISK_ATTRIBUTES}
            vendor = _text(inherited["vendor"])
            model = _text(inherited["model"])
            volumes.append(
                VolumeDescriptor(
                    mount_path=mount,
                    disk_index=index,
                    label=_text(node.get("label")),
                    manufacturer=vendor,
                    model=model,
                    serial_number=_text(inherited["serial"]),
                    caption=" ".join(part for part in (vendor, model) if part),
                    filesystem=_text(node.get("fstype")),
                    partition_style=_text(inherited["pttype"]),
                )
            )
        for child in node.get("children") or []:
            walk(child, disk, index)

    for device in blockdevices:
        walk(device, device, disk_index.get(device.get("name", ""), 0))

    return volumes


def _from_partitions() -> List[VolumeDescriptor]:
    partitions = psutil.disk_partitions(all=False)
    devices = sorted({p.device for p in partitions})
    index = {device: i for i, device in enumerate(devices)}
    return [
        VolumeDescriptor(
            mount_path=p.mountpoint,
            disk_index=index[p.device],
            caption=p.device,
            filesystem=p.fstype,
        )
        for p in partitions
    ]


def list_volumes() -> List[VolumeDescriptor]:
    """Snapshot the currently mounted volumes.

    Raises:
        VolumeEnumerationError: If the operating system query fails
    """
    if sys.platform.startswith("linux"):
        volumes = parse_lsblk(_lsblk_json())
    else:
        volumes = _from_partitions()

    logger.debug(f"Enumerated {len(volumes)} mounted volumes")
    return volumes
