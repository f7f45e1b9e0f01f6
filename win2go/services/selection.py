"""Interactive choice of the source ISO and the target drive."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from win2go.cleanup import CleanupHandler
from win2go.config import settings
from win2go.exceptions import DeviceError, UserAbortError
from win2go.logging import LoggerFactory
from win2go.storage import devices, iso
from win2go.storage.devices import Drive
from win2go.ui import prompts

DOWNLOAD_OPTION = "Download ISO"
DOWNLOAD_SOURCES = ("Official ISO (enter URL)", "Tiny10 ISO")

log = LoggerFactory.for_system()


def prompt_for_iso(input_func=input, output: Callable[[str], None] = print) -> str:
    """Offer the ISOs found on disk plus a download entry; return a path or URL."""
    candidates = iso.find_iso_candidates()
    if not candidates:
        output("No Windows ISO found in the search folders.")
    options = [str(candidate) for candidate in candidates] + [DOWNLOAD_OPTION]
    choice = prompts.choose("Select a Windows ISO:", options, input_func, output)
    if choice < len(candidates):
        return str(candidates[choice])

    source = prompts.choose("Download source:", DOWNLOAD_SOURCES, input_func, output)
    if source == 1:
        return settings.get_setting("tiny10_url", settings.TINY10_URL)
    while True:
        url = prompts.ask("Enter ISO URL: ", input_func)
        if iso.is_url(url):
            return url
        output("Please enter an http:// or https:// URL.")


def select_iso(
    iso_arg: Optional[str],
    cleanup: CleanupHandler,
    input_func=input,
    output: Callable[[str], None] = print,
) -> Path:
    """Resolve the source ISO, downloading it first when given a URL.

    Raises:
        ImageNotFoundError: If the resulting path is not an existing file
        CommandError: If the download fails
    """
    value = iso_arg or prompt_for_iso(input_func, output)
    if iso.is_url(value):
        # Registered before the download so an interrupted one is offered for deletion too
        cleanup.set_downloaded_iso(iso.download_destination(value))
        value = str(iso.download_iso(value))
    iso_path = iso.validate_iso(value)
    log.info(f"Using ISO {iso_path}")
    return iso_path


def select_drive(
    drive_arg: Optional[str],
    input_func=input,
    output: Callable[[str], None] = print,
) -> Drive:
    """Resolve the target drive from --drive or a menu of candidates.

    Raises:
        DeviceError: If no candidate exists or the choice fails validation
    """
    if not drive_arg:
        drives = devices.list_drives()
        if not drives:
            raise DeviceError("No usable drives found")
        choice = prompts.choose(
            "Select the target USB drive:",
            [drive.format_label() for drive in drives],
            input_func,
            output,
        )
        drive_arg = drives[choice].path
    drive = devices.get_drive(drive_arg)
    log.info(f"Target drive: {drive.format_label()}")
    return drive


def prepare_drive(
    drive: Drive,
    assume_yes: bool = False,
    threshold_gb: Optional[int] = None,
    input_func=input,
) -> None:
    """Confirm a destructive run on the drive and release its mounts.

    Drives above the size threshold always need a typed YES. ``assume_yes``
    only answers the erase prompt.

    Raises:
        UserAbortError: If the size warning or the erase prompt is declined
    """
    if threshold_gb is None:
        threshold_gb = settings.get_int("large_drive_threshold_gb", settings.DEFAULT_LARGE_DRIVE_THRESHOLD_GB)

    # --yes never answers the size warning
    if devices.is_oversized(drive, threshold_gb):
        if not prompts.confirm_exact(
            f"WARNING: {drive.path} is larger than {threshold_gb}GB. Type YES to continue",
            input_func=input_func,
        ):
            raise UserAbortError(f"Large drive {drive.path} not confirmed")

    devices.force_unmount(drive.path)
    devices.settle()

    if assume_yes:
        log.warning(f"Erasing all data on {drive.path} (--yes)")
    elif not prompts.confirm(
        f"This will ERASE all data on {drive.path}. Continue? (y/N)",
        input_func=input_func,
    ):
        raise UserAbortError(f"Erase of {drive.path} declined")
