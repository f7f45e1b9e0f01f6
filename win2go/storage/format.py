"""Filesystem creation for the two Windows To Go partitions."""

from __future__ import annotations

from win2go.exceptions import CommandError, FormatOperationError
from win2go.logging import LoggerFactory
from win2go.storage.partition import PartitionLayout
from win2go.ui.progress import run_with_spinner

ESP_LABEL = "EFI"
WINDOWS_LABEL = "WIN"

log = LoggerFactory.for_storage()


def _format(command: list[str], partition: str, fs_label: str) -> None:
    try:
        run_with_spinner(command, f"Formatting {partition} as {fs_label}")
    except CommandError as error:
        raise FormatOperationError(
            f"Failed to format {partition} as {fs_label}: {error.output or error}",
            device=partition,
        ) from error


def format_esp(partition: str, label: str = ESP_LABEL) -> None:
    _format(["mkfs.vfat", "-F32", "-n", label, partition], partition, "FAT32")


def format_windows(partition: str, label: str = WINDOWS_LABEL) -> None:
    # -f skips zeroing, which otherwise takes hours on a USB stick
    _format(["mkfs.ntfs", "-f", "-L", label, partition], partition, "NTFS")


def format_layout(layout: PartitionLayout) -> None:
    """Format the ESP as FAT32 and the Windows partition as NTFS."""
    format_esp(layout.esp)
    format_windows(layout.windows)
    log.info(f"Formatted {layout.esp} (FAT32) and {layout.windows} (NTFS)")
