"""GPT partitioning of the target drive.

Layout:
    1: EFI  fat32  1MiB -> (1 + esp_size_mib)MiB   esp flag on
    2: WIN  ntfs   end of ESP -> 100%

Each parted call runs under the progress spinner. After the last partition is
created the kernel is given time to settle and any partitions that a desktop
automounter picked up are lazily unmounted again before formatting.

Example:
    >>> from win2go.storage.partition import partition_drive
    >>> layout = partition_drive("/dev/sdb")
    >>> layout.esp, layout.windows
    ('/dev/sdb1', '/dev/sdb2')
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

from win2go.config import settings
from win2go.exceptions import PartitionError
from win2go.logging import LoggerFactory
from win2go.storage.devices import force_unmount, partition_path, settle
from win2go.ui.progress import run_with_spinner

ESP_START_MIB = 1
PARTITION_WAIT_SECONDS = 5.0
PARTITION_POLL_INTERVAL = 0.5

log = LoggerFactory.for_storage()


@dataclass(frozen=True)
class PartitionLayout:
    device: str
    esp: str
    windows: str


def parted_commands(device: str, esp_size_mib: int) -> list[list[str]]:
    """Build the parted invocations for the two-partition GPT layout."""
    if esp_size_mib <= 0:
        raise PartitionError(f"Invalid ESP size: {esp_size_mib}MiB", device=device)
    esp_end = f"{ESP_START_MIB + esp_size_mib}MiB"
    script = ["parted", device, "--script"]
    return [
        script + ["mklabel", "gpt"],
        script + ["mkpart", "EFI", "fat32", f"{ESP_START_MIB}MiB", esp_end],
        script + ["set", "1", "esp", "on"],
        script + ["mkpart", "WIN", "ntfs", esp_end, "100%"],
    ]


def wait_for_partitions(
    paths: list[str],
    timeout: float = PARTITION_WAIT_SECONDS,
    *,
    exists: Callable[[str], bool] = os.path.exists,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Wait for partition device nodes to appear.

    Raises:
        PartitionError: If any node is still missing after the timeout
    """
    attempts = max(1, int(timeout / PARTITION_POLL_INTERVAL))
    missing = list(paths)
    for attempt in range(attempts):
        missing = [path for path in paths if not exists(path)]
        if not missing:
            log.debug(f"Partition nodes present: {', '.join(paths)}")
            return
        if attempt < attempts - 1:
            sleep(PARTITION_POLL_INTERVAL)
    raise PartitionError(
        f"Partition nodes did not appear after {timeout:g}s: {', '.join(missing)}"
    )


def partition_drive(
    device: str,
    esp_size_mib: Optional[int] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> PartitionLayout:
    """Write a fresh GPT label with an ESP and a Windows partition.

    Raises:
        CommandError: If any parted call fails
        PartitionError: If the ESP size is invalid or the nodes never appear
    """
    if esp_size_mib is None:
        esp_size_mib = settings.get_int("esp_size_mib", settings.DEFAULT_ESP_SIZE_MIB)

    log.info(f"Partitioning {device} (GPT, {esp_size_mib}MiB ESP)")
    for command in parted_commands(device, esp_size_mib):
        run_with_spinner(command)

    settle()
    sleep(settings.get_float("settle_delay_seconds", settings.DEFAULT_SETTLE_DELAY_SECONDS))
    force_unmount(device)

    layout = PartitionLayout(
        device=device,
        esp=partition_path(device, 1),
        windows=partition_path(device, 2),
    )
    wait_for_partitions([layout.esp, layout.windows], sleep=sleep)
    return layout
