"""Staging third-party drivers on the Windows partition.

The driver folder is copied verbatim to ``Drivers`` at the root of the
Windows partition. A SetupComplete.cmd script installs every staged .inf
with pnputil once Windows setup finishes.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from win2go.exceptions import ExtractionError
from win2go.logging import LoggerFactory

DRIVERS_DIR_NAME = "Drivers"
SETUP_SCRIPT_RELATIVE_PATH = Path("Windows") / "Setup" / "Scripts" / "SetupComplete.cmd"
SETUP_COMPLETE_SCRIPT = (
    "@echo off\r\n"
    "pnputil /add-driver C:\\Drivers\\*.inf /subdirs /install\r\n"
)

log = LoggerFactory.for_storage()


def copy_drivers(source: str | Path, windows_root: str | Path) -> Path:
    """Copy the contents of a driver folder into <windows_root>/Drivers.

    Raises:
        ExtractionError: If the copy fails
    """
    source = Path(source)
    destination = Path(windows_root) / DRIVERS_DIR_NAME
    destination.mkdir(parents=True, exist_ok=True)
    count = 0
    try:
        for entry in sorted(source.iterdir()):
            target = destination / entry.name
            if entry.is_dir():
                shutil.copytree(entry, target, dirs_exist_ok=True)
            else:
                shutil.copy2(entry, target)
            count += 1
    except (OSError, shutil.Error) as error:
        raise ExtractionError(f"Failed to copy drivers from {source}: {error}") from error
    log.info(f"Copied {count} driver entries from {source} to {destination}")
    return destination


def write_setup_complete(windows_root: str | Path) -> Path:
    script = Path(windows_root) / SETUP_SCRIPT_RELATIVE_PATH
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_bytes(SETUP_COMPLETE_SCRIPT.encode("ascii"))
    log.debug(f"Wrote {script}")
    return script


def install_drivers(source: str | Path | None, windows_root: str | Path) -> bool:
    """Stage drivers and the first-boot install script.

    Returns:
        False when no driver folder was given or it does not exist
    """
    if not source:
        return False
    source = Path(source).expanduser()
    if not source.is_dir():
        log.warning(f"Driver folder {source} not found, skipping driver injection")
        return False
    copy_drivers(source, windows_root)
    write_setup_complete(windows_root)
    return True
