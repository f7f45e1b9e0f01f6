"""USB target drive detection and filtering using lsblk.

Device Detection:
    Uses lsblk with JSON output (``-J -b -d``) to enumerate whole block devices:
    - Device name and node path (e.g., sdb, /dev/sdb)
    - Size in bytes
    - Type (disk, loop, rom)
    - Vendor and model strings
    - Transport (usb, sata, nvme) and removable flag

Filtering Logic:
    Loop devices and optical drives are never offered as targets and are
    rejected when passed explicitly with --drive. Everything else that lsblk
    reports as a whole disk is listed, including internal disks, so the
    erase confirmation remains the final safety gate.

Mount Management:
    force_unmount() lazily unmounts every mounted partition of the target and
    ignores failures. If something is still busy, parted reports it.

Example:
    >>> from win2go.storage.devices import list_drives
    >>> for drive in list_drives():
    ...     print(drive.format_label())
    /dev/sdb 14.9GB SanDisk Cruzer (usb, removable)
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from win2go.exceptions import CommandError, DeviceNotFoundError, DeviceValidationError
from win2go.logging import LoggerFactory
from win2go.storage.commands import run_command, run_quietly

LSBLK_COLUMNS = "NAME,PATH,TYPE,SIZE,MODEL,VENDOR,TRAN,RM"
EXCLUDED_TYPES = {"loop", "rom"}
EXCLUDED_PREFIXES = ("loop", "sr")
GIB = 1024**3

log = LoggerFactory.for_storage()


@dataclass(frozen=True)
class Drive:
    """A whole block device reported by lsblk."""

    name: str  # e.g., "sdb"
    path: str  # e.g., "/dev/sdb"
    size_bytes: int
    device_type: str = "disk"
    model: Optional[str] = None
    vendor: Optional[str] = None
    transport: Optional[str] = None
    removable: bool = False

    @property
    def size_gib(self) -> int:
        """Whole GiB, rounded down."""
        return self.size_bytes // GIB

    @property
    def is_loop(self) -> bool:
        return self.device_type == "loop" or self.name.startswith("loop")

    @property
    def is_optical(self) -> bool:
        return self.device_type == "rom" or self.name.startswith("sr")

    def format_label(self) -> str:
        """Human-readable label, e.g. "/dev/sdb 14.9GB SanDisk Cruzer (usb, removable)".

        Transport and removable flag tell a USB stick apart from an internal disk.
        """
        parts = [self.path, human_size(self.size_bytes)]
        vendor_model = " ".join(p.strip() for p in (self.vendor, self.model) if p and p.strip())
        if vendor_model:
            parts.append(vendor_model)
        hints = [hint for hint in (self.transport, "removable" if self.removable else None) if hint]
        if hints:
            parts.append(f"({', '.join(hints)})")
        return " ".join(parts)

    @classmethod
    def from_lsblk_dict(cls, device: dict[str, Any]) -> Drive:
        """Convert an lsblk JSON entry to a Drive.

        Raises:
            KeyError: If the name is missing
            ValueError: If size cannot be converted to int
        """
        name = device["name"]
        return cls(
            name=name,
            path=device.get("path") or f"/dev/{name}",
            size_bytes=int(device.get("size") or 0),
            device_type=device.get("type") or "disk",
            model=(device.get("model") or "").strip() or None,
            vendor=(device.get("vendor") or "").strip() or None,
            transport=device.get("tran"),
            removable=device.get("rm") in (1, True, "1"),
        )


def human_size(size_bytes):
    if size_bytes is None:
        return "0B"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


def partition_path(disk: str, number: int) -> str:
    # nvme/mmcblk/loop devices use a p separator
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{number}"
    return f"{disk}{number}"


def get_block_devices() -> list[dict]:
    """Return whole-disk entries from lsblk.

    Raises:
        CommandError: If lsblk fails or returns invalid JSON
    """
    command = ["lsblk", "-J", "-b", "-d", "-o", LSBLK_COLUMNS]
    try:
        result = run_command(command, log_output=False)
        data = json.loads(result.stdout)
    except subprocess.CalledProcessError as error:
        raise CommandError(command, error.returncode, (error.stderr or "").strip()) from error
    except OSError as error:
        raise CommandError(command, 127, str(error)) from error
    except json.JSONDecodeError as error:
        raise CommandError(command, 0, f"Invalid lsblk output: {error}") from error
    devices = data.get("blockdevices", []) or []
    names = [device.get("name") for device in devices if device.get("name")]
    log.debug(f"lsblk found {len(names)} devices: {', '.join(names)}")
    return devices


def is_excluded(device: dict) -> bool:
    name = device.get("name") or ""
    return device.get("type") in EXCLUDED_TYPES or name.startswith(EXCLUDED_PREFIXES)


def list_drives() -> list[Drive]:
    """List candidate target drives, excluding loop devices and optical drives."""
    drives = []
    for device in get_block_devices():
        if not device.get("name") or is_excluded(device):
            continue
        drives.append(Drive.from_lsblk_dict(device))
    return drives


def get_drive(path: str) -> Drive:
    """Look up and validate a target drive by node path or name.

    Raises:
        DeviceValidationError: If the device is a loop device, optical drive or partition
        DeviceNotFoundError: If lsblk does not report the device
    """
    name = Path(path).name
    if name.startswith(EXCLUDED_PREFIXES):
        raise DeviceValidationError(path, "loop devices and optical drives cannot be used")

    for device in get_block_devices():
        if device.get("path") != path and device.get("name") != name:
            continue
        drive = Drive.from_lsblk_dict(device)
        if drive.is_loop or drive.is_optical:
            raise DeviceValidationError(path, "loop devices and optical drives cannot be used")
        if drive.device_type != "disk":
            raise DeviceValidationError(path, f"not a whole disk (type {drive.device_type})")
        return drive

    raise DeviceNotFoundError(path)


def is_oversized(drive: Drive, threshold_gb: int) -> bool:
    return drive.size_gib > threshold_gb


def list_mountpoints(path: str) -> list[str]:
    """Mountpoints of a device and all of its partitions."""
    result = run_command(["lsblk", "-ln", "-o", "MOUNTPOINT", path], check=False, log_output=False)
    if result.returncode != 0:
        log.debug(f"lsblk could not list mountpoints for {path}: {result.stderr.strip()}")
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def settle() -> None:
    if not run_quietly(["udevadm", "settle"]):
        log.debug("udevadm settle failed or is unavailable, continuing")


def force_unmount(path: str) -> list[str]:
    """Lazily unmount every mounted partition of a device, ignoring failures.

    Returns:
        The mountpoints that were found mounted
    """
    mountpoints = list_mountpoints(path)
    if mountpoints:
        log.warning(f"{path} is mounted, forcing unmount...")
    for mountpoint in mountpoints:
        if run_quietly(["umount", "-l", mountpoint]):
            log.debug(f"Lazy unmounted {mountpoint}")
        else:
            log.debug(f"Failed to lazy unmount {mountpoint}")
    return mountpoints
