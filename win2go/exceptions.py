"""Custom exceptions for win2go.

Every failure the command line reports as an error derives from Win2GoError,
so the entry point can turn any of them into exit status 1 after cleanup.

Exception Hierarchy:
    Win2GoError (base)
        ├── DependencyError
        ├── UserAbortError
        ├── CommandError
        ├── StorageError
        │   ├── DeviceError
        │   │   ├── DeviceNotFoundError
        │   │   └── DeviceValidationError
        │   ├── PartitionError
        │   ├── FormatError
        │   │   └── FormatOperationError
        │   └── MountError
        │       ├── MountOperationError
        │       └── UnmountFailedError
        └── ImageError
            ├── ImageNotFoundError
            └── ExtractionError

Usage:
    from win2go.exceptions import DeviceValidationError

    if drive.is_loop:
        raise DeviceValidationError(drive.path, "loop devices cannot be used")
"""

from __future__ import annotations

from typing import Sequence


class Win2GoError(Exception):
    """Base exception for all win2go failures."""


class DependencyError(Win2GoError):
    """One or more required external tools are not installed."""

    def __init__(self, missing: Sequence[str], hint: str = ""):
        self.missing = list(missing)
        self.hint = hint
        msg = f"Missing required tools: {' '.join(self.missing)}"
        if hint:
            msg += f"\n{hint}"
        super().__init__(msg)


class UserAbortError(Win2GoError):
    """The user declined a confirmation prompt."""

    def __init__(self, reason: str = "Aborted by user"):
        self.reason = reason
        super().__init__(reason)


class CommandError(Win2GoError):
    """An external tool exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, output: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        msg = f"Command failed ({returncode}): {' '.join(self.command)}"
        if output:
            msg += f"\n{output}"
        super().__init__(msg)


class StorageError(Win2GoError):
    """Base exception for device, partition, format and mount errors."""


class DeviceError(StorageError):
    """Base exception for device-related errors."""


class DeviceNotFoundError(DeviceError):
    """Device was not found or does not exist."""

    def __init__(self, device_name: str):
        self.device_name = device_name
        super().__init__(f"Device not found: {device_name}")


class DeviceValidationError(DeviceError):
    """Device failed validation checks."""

    def __init__(self, device_name: str, reason: str):
        self.device_name = device_name
        self.reason = reason
        super().__init__(f"Device validation failed for {device_name}: {reason}")


class PartitionError(StorageError):
    """Partition table or partition creation failed."""

    def __init__(self, message: str, device: str | None = None):
        self.device = device
        super().__init__(message)


class FormatError(StorageError):
    """Base exception for format operations."""


class FormatOperationError(FormatError):
    """Generic format operation failure."""

    def __init__(self, message: str, device: str | None = None):
        self.device = device
        super().__init__(message)


class MountError(StorageError):
    """Base exception for mount-related errors."""


class MountOperationError(MountError):
    """Mounting a device or image failed."""

    def __init__(self, source: str, mountpoint: str, reason: str = ""):
        self.source = source
        self.mountpoint = mountpoint
        self.reason = reason
        msg = f"Failed to mount {source} at {mountpoint}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnmountFailedError(MountError):
    """Failed to unmount a mount point."""

    def __init__(self, mountpoint: str, reason: str = ""):
        self.mountpoint = mountpoint
        self.reason = reason
        msg = f"Failed to unmount {mountpoint}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ImageError(Win2GoError):
    """Base exception for ISO and Windows image errors."""


class ImageNotFoundError(ImageError):
    """The ISO or the install image inside it does not exist."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        msg = f"Image not found: {path}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class ExtractionError(ImageError):
    """Applying the Windows image or copying boot files failed."""

    def __init__(self, message: str, image: str | None = None):
        self.image = image
        super().__init__(message)
