"""Startup checks for privileges and required external tools."""

from __future__ import annotations

import os
import shutil
from typing import Callable, Optional, Sequence

from win2go.exceptions import DependencyError
from win2go.logging import LoggerFactory

log = LoggerFactory.for_system()

REQUIRED_TOOLS = (
    "parted",
    "mkfs.vfat",
    "mkfs.ntfs",
    "wimlib-imagex",
    "lsblk",
    "wget",
    "rsync",
)

INSTALL_HINTS = (
    "Debian/Ubuntu: wimtools, parted, dosfstools, ntfs-3g, rsync",
    "Fedora: wimlib-utils, parted, dosfstools, ntfs-3g, rsync",
    "Arch Linux/Manjaro: wimlib, parted, dosfstools, ntfs-3g, rsync",
    "macOS (using Homebrew / Atomic): wimlib, parted, dosfstools, ntfs-3g, wget",
    "For Atomic systems (Linux containerized), ensure /dev access is allowed for USB",
)


def find_missing_tools(
    tools: Sequence[str] = REQUIRED_TOOLS,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> list[str]:
    return [tool for tool in tools if not which(tool)]


def check_dependencies(
    tools: Sequence[str] = REQUIRED_TOOLS,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> None:
    """Verify every required tool is on PATH.

    Raises:
        DependencyError: Listing the missing tools, with install hints per OS family
    """
    missing = find_missing_tools(tools, which)
    if missing:
        raise DependencyError(missing, "\n".join(INSTALL_HINTS))
    log.debug(f"All required tools found: {', '.join(tools)}")


def check_root() -> None:
    if os.geteuid() != 0:
        raise RuntimeError("Run as root")
