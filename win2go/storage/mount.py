"""Mounting the target partitions and the source ISO.

Mount points are plain directories (defaults /mnt/win, /mnt/boot and
/mnt/iso) created on demand. Whether a path is currently mounted is read from
/proc/mounts so that unmount() can be called repeatedly during cleanup.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from win2go.exceptions import CommandError, MountOperationError, UnmountFailedError
from win2go.logging import LoggerFactory
from win2go.storage.commands import run_checked_command

PROC_MOUNTS = "/proc/mounts"

log = LoggerFactory.for_storage()

PathLike = Union[str, Path]


def _unescape_mount_field(value: str) -> str:
    # /proc/mounts encodes whitespace in paths as octal escapes
    return (
        value.replace("\\040", " ")
        .replace("\\011", "\t")
        .replace("\\012", "\n")
        .replace("\\134", "\\")
    )


def is_mounted(mountpoint: PathLike, mounts_file: str = PROC_MOUNTS) -> bool:
    target = os.path.normpath(str(mountpoint))
    try:
        with open(mounts_file, "r", encoding="utf-8") as mounts:
            for line in mounts:
                parts = line.split()
                if len(parts) > 1 and _unescape_mount_field(parts[1]) == target:
                    return True
    except FileNotFoundError:
        return os.path.ismount(target)
    return False


def ensure_mountpoint(mountpoint: PathLike) -> Path:
    path = Path(mountpoint)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _mount(command: list[str], source: str, mountpoint: PathLike) -> Path:
    path = ensure_mountpoint(mountpoint)
    try:
        run_checked_command(command + [source, str(path)])
    except CommandError as error:
        raise MountOperationError(source, str(path), error.output) from error
    log.info(f"Mounted {source} at {path}")
    return path


def mount_partition(partition: str, mountpoint: PathLike) -> Path:
    """Mount a partition, creating the mount point first.

    Raises:
        MountOperationError: If mount fails
    """
    return _mount(["mount"], partition, mountpoint)


def mount_iso(iso_path: PathLike, mountpoint: PathLike) -> Path:
    """Loop-mount an ISO read-only.

    Raises:
        MountOperationError: If mount fails
    """
    return _mount(["mount", "-o", "loop,ro"], str(iso_path), mountpoint)


def unmount(mountpoint: PathLike, lazy: bool = False, check: bool = True) -> bool:
    """Unmount a path if it is mounted.

    Args:
        mountpoint: Directory to unmount
        lazy: Detach now and clean up references later (umount -l)
        check: Raise on failure instead of logging it

    Returns:
        True if the path was mounted and umount succeeded, False otherwise

    Raises:
        UnmountFailedError: If umount fails and check is True
    """
    if not is_mounted(mountpoint):
        log.debug(f"{mountpoint} is not mounted, skipping")
        return False
    command = ["umount", "-l", str(mountpoint)] if lazy else ["umount", str(mountpoint)]
    try:
        run_checked_command(command)
    except CommandError as error:
        if check:
            raise UnmountFailedError(str(mountpoint), error.output) from error
        log.debug(f"Ignoring unmount failure for {mountpoint}: {error.output}")
        return False
    log.debug(f"Unmounted {mountpoint}")
    return True
