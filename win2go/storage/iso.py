"""Locating, downloading and inspecting Windows installation ISOs.

Discovery scans a few directories (current directory and ~/Downloads by
default) one level deep for files that look like Windows ISOs. Under sudo,
``~`` means the invoking user's home rather than root's. A URL given
instead of a path is fetched with wget into the current directory.
"""

from __future__ import annotations

import contextlib
import fnmatch
import os
import pwd
from pathlib import Path
from typing import Iterable, Mapping, Optional
from urllib.parse import unquote, urlparse

from win2go.config import settings
from win2go.exceptions import CommandError, ImageNotFoundError
from win2go.logging import LoggerFactory
from win2go.ui.progress import run_with_spinner

INSTALL_IMAGE_NAMES = ("install.wim", "install.esd")
DEFAULT_DOWNLOAD_NAME = "windows.iso"

log = LoggerFactory.for_image()


def _matches(name: str, patterns: Iterable[str]) -> bool:
    lowered = name.lower()
    return any(fnmatch.fnmatchcase(lowered, pattern.lower()) for pattern in patterns)


def invoking_user_home(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Home directory of the user behind sudo, or None when not run through sudo."""
    environ = os.environ if environ is None else environ
    sudo_user = environ.get("SUDO_USER")
    if not sudo_user:
        return None
    try:
        return Path(pwd.getpwnam(sudo_user).pw_dir)
    except KeyError:
        log.debug(f"No passwd entry for {sudo_user}, using $HOME")
        return None


def expand_search_dir(directory: str, environ: Optional[Mapping[str, str]] = None) -> Path:
    if directory == "~" or directory.startswith("~/"):
        home = invoking_user_home(environ)
        if home is not None:
            return home / directory[2:]
    return Path(directory).expanduser()


def find_iso_candidates(
    search_dirs: Optional[Iterable[str]] = None,
    patterns: Optional[Iterable[str]] = None,
) -> list[Path]:
    """Find ISO files directly inside the search directories.

    Matching is case-insensitive and duplicates (the same file reached through
    two search directories) are reported once, in discovery order.
    """
    if search_dirs is None:
        search_dirs = settings.get_setting("iso_search_dirs", settings.DEFAULT_SETTINGS["iso_search_dirs"])
    patterns = list(patterns or settings.get_setting("iso_patterns", settings.DEFAULT_SETTINGS["iso_patterns"]))

    candidates: list[Path] = []
    seen: set[Path] = set()
    for directory in search_dirs:
        root = expand_search_dir(directory)
        if not root.is_dir():
            continue
        try:
            entries = sorted(root.iterdir())
        except OSError as error:
            log.debug(f"Cannot list {root}: {error}")
            continue
        for entry in entries:
            if not entry.is_file() or not _matches(entry.name, patterns):
                continue
            resolved = entry.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            candidates.append(entry)
    log.debug(f"Found {len(candidates)} ISO candidate(s)")
    return candidates


def is_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def download_destination(url: str, directory: str | Path = ".") -> Path:
    """Local path for a download: the URL's last path segment, percent-decoded."""
    name = unquote(Path(urlparse(url).path).name)
    return Path(directory) / (name or DEFAULT_DOWNLOAD_NAME)


def download_iso(url: str, directory: str | Path = ".") -> Path:
    """Download an ISO with wget under the spinner.

    Raises:
        CommandError: If wget fails (the partial file is removed)
    """
    destination = download_destination(url, directory)
    log.info(f"Downloading {url} to {destination}")
    try:
        run_with_spinner(["wget", "-O", str(destination), url], f"Downloading {destination.name}")
    except CommandError:
        with contextlib.suppress(FileNotFoundError):
            destination.unlink()
        raise
    return destination


def validate_iso(path: str | Path) -> Path:
    """Raise ImageNotFoundError unless path is an existing regular file."""
    iso_path = Path(path).expanduser()
    if not iso_path.exists():
        raise ImageNotFoundError(str(iso_path))
    if not iso_path.is_file():
        raise ImageNotFoundError(str(iso_path), "not a regular file")
    return iso_path


def find_install_image(iso_root: str | Path) -> Path:
    """Return sources/install.wim, or sources/install.esd when there is no WIM.

    Raises:
        ImageNotFoundError: If the mounted ISO holds neither
    """
    sources = Path(iso_root) / "sources"
    for name in INSTALL_IMAGE_NAMES:
        candidate = sources / name
        if candidate.is_file():
            log.info(f"Using Windows image {candidate}")
            return candidate
    raise ImageNotFoundError(str(sources / "install.wim"), "no install.wim or install.esd in sources")
