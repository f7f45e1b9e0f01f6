"""Applying the Windows image and collecting the boot files."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from win2go.config import settings
from win2go.exceptions import CommandError, ExtractionError
from win2go.logging import LoggerFactory
from win2go.ui.progress import run_with_spinner

BOOT_DIRS = ("EFI", "boot")

log = LoggerFactory.for_image()


def wimlib_apply_command(image: Path, index: int, target: Path) -> list[str]:
    return [
        "wimlib-imagex",
        "apply",
        str(image),
        str(index),
        str(target),
        "--no-acls",
        "--no-attributes",
        "--include-invalid-names",
    ]


def apply_image(image: str | Path, target: str | Path, index: Optional[int] = None) -> None:
    """Extract one edition of a WIM/ESD into a directory.

    Raises:
        ExtractionError: If the index is invalid or wimlib-imagex fails
    """
    if index is None:
        index = settings.get_int("image_index", settings.DEFAULT_IMAGE_INDEX)
    if index < 1:
        raise ExtractionError(f"Invalid image index: {index}", image=str(image))

    image = Path(image)
    log.info(f"Applying {image.name} (index {index}) to {target}")
    try:
        run_with_spinner(
            wimlib_apply_command(image, index, Path(target)),
            f"Extracting {image.name}",
        )
    except CommandError as error:
        raise ExtractionError(
            f"wimlib-imagex could not apply {image}: {error.output or error.returncode}",
            image=str(image),
        ) from error


def extract_boot_files(windows_root: str | Path, boot_root: str | Path) -> list[Path]:
    """Copy the EFI and boot folders of an applied image into the boot staging dir.

    Returns:
        The folders that were copied
    """
    source_root = Path(windows_root)
    destination_root = Path(boot_root)
    destination_root.mkdir(parents=True, exist_ok=True)
    copied = []
    for name in BOOT_DIRS:
        source = source_root / name
        if not source.is_dir():
            log.debug(f"No {name} folder in {source_root}, skipping")
            continue
        try:
            shutil.copytree(source, destination_root / name, dirs_exist_ok=True)
        except (OSError, shutil.Error) as error:
            raise ExtractionError(f"Failed to copy {source}: {error}") from error
        copied.append(destination_root / name)
    if not copied:
        log.warning(f"No boot files found in {source_root}")
    return copied
