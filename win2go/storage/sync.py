"""rsync-based tree copies onto the mounted target partitions."""

from __future__ import annotations

from pathlib import Path

from win2go.logging import LoggerFactory
from win2go.ui.progress import run_with_spinner

RSYNC_OPTIONS = ("-ah", "--info=progress2")

log = LoggerFactory.for_storage()


def rsync_command(source: str | Path, destination: str | Path) -> list[str]:
    # Trailing slashes copy the contents rather than the directory itself
    return ["rsync", *RSYNC_OPTIONS, f"{str(source).rstrip('/')}/", f"{str(destination).rstrip('/')}/"]


def rsync_tree(source: str | Path, destination: str | Path, title: str | None = None) -> None:
    """Mirror the contents of source into destination.

    Raises:
        CommandError: If rsync fails
    """
    log.info(f"Copying {source} to {destination}")
    run_with_spinner(rsync_command(source, destination), title or f"Copying files to {destination}")
