"""Exit-time cleanup: mounts, scratch directories and downloaded ISOs.

CleanupHandler is used as a context manager around the whole run. Whatever
way the block is left (success, error, Ctrl+C or SIGTERM), it unmounts
everything it was told about in reverse order, removes the scratch
directories and offers to delete an ISO that this run downloaded.

Example:
    with CleanupHandler(assume_yes=args.yes) as cleanup:
        win_dir = cleanup.make_temp_dir("win")
        mount_partition(layout.windows, "/mnt/win")
        cleanup.register_mount("/mnt/win")
"""

from __future__ import annotations

import shutil
import signal
import tempfile
import threading
from pathlib import Path
from typing import Callable, Optional

from win2go.exceptions import UnmountFailedError
from win2go.logging import LoggerFactory
from win2go.storage.mount import unmount
from win2go.ui import prompts

SIGTERM_EXIT_CODE = 128 + signal.SIGTERM

log = LoggerFactory.for_system()


def _raise_system_exit(signum, frame):
    raise SystemExit(SIGTERM_EXIT_CODE)


class CleanupHandler:
    def __init__(
        self,
        *,
        assume_yes: bool = False,
        confirm: Callable[[str], bool] = prompts.confirm,
    ):
        self.assume_yes = assume_yes
        self._confirm = confirm
        self.mountpoints: list[Path] = []
        self.temp_dirs: list[Path] = []
        self.downloaded_iso: Optional[Path] = None
        self._previous_sigterm = None
        self._sigterm_installed = False

    def register_mount(self, mountpoint: str | Path) -> None:
        path = Path(mountpoint)
        if path not in self.mountpoints:
            self.mountpoints.append(path)

    def register_temp_dir(self, path: str | Path) -> None:
        self.temp_dirs.append(Path(path))

    def make_temp_dir(self, suffix: str) -> Path:
        path = Path(tempfile.mkdtemp(prefix="win2go-", suffix=f"-{suffix}"))
        self.register_temp_dir(path)
        log.debug(f"Created scratch directory {path}")
        return path

    def set_downloaded_iso(self, path: str | Path) -> None:
        self.downloaded_iso = Path(path)

    def __enter__(self) -> CleanupHandler:
        if threading.current_thread() is threading.main_thread():
            self._previous_sigterm = signal.signal(signal.SIGTERM, _raise_system_exit)
            self._sigterm_installed = True
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self.run()
        finally:
            if self._sigterm_installed:
                signal.signal(signal.SIGTERM, self._previous_sigterm or signal.SIG_DFL)
                self._sigterm_installed = False
        return False

    def run(self) -> None:
        """Release everything registered so far. Safe to call repeatedly."""
        while self.mountpoints:
            mountpoint = self.mountpoints.pop()
            self._unmount(mountpoint)

        while self.temp_dirs:
            path = self.temp_dirs.pop()
            shutil.rmtree(path, ignore_errors=True)
            log.debug(f"Removed scratch directory {path}")

        iso, self.downloaded_iso = self.downloaded_iso, None
        if iso is not None and iso.exists():
            self._handle_downloaded_iso(iso)

    def _unmount(self, mountpoint: Path) -> None:
        try:
            unmount(mountpoint, check=True)
        except UnmountFailedError as error:
            log.debug(f"{error}, retrying lazily")
            unmount(mountpoint, lazy=True, check=False)

    def _handle_downloaded_iso(self, iso: Path) -> None:
        if self.assume_yes:
            log.info(f"Keeping downloaded ISO {iso}")
            return
        if self._confirm("Delete downloaded ISO? (y/N)"):
            iso.unlink(missing_ok=True)
            log.info(f"Deleted downloaded ISO {iso}")
        else:
            log.info(f"Keeping downloaded ISO {iso}")
