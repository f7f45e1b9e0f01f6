"""The Windows To Go creation pipeline.

Stages run strictly in order, each wrapped in operation_context so the
operations log records its start, outcome and duration:

    1. dependency check          6. image extraction
    2. ISO selection/download    7. file copy
    3. drive selection           8. driver injection
    4. partition and format      9. first-boot user setup
    5. mount                    10. unmount

Everything mounted or created along the way is registered with a
CleanupHandler, so an error at any stage still leaves the system unmounted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from win2go.cleanup import CleanupHandler
from win2go.config import settings
from win2go.logging import LoggerFactory, operation_context
from win2go.services import selection
from win2go.storage import dependencies, drivers, image, iso, mount, partition, sync, unattend
from win2go.storage.commands import run_quietly
from win2go.storage.format import format_layout
from win2go.ui.console import clear_step, print_success

SUCCESS_MESSAGE = "Windows To Go USB successfully created!"

log = LoggerFactory.for_system()


@dataclass
class CreateOptions:
    iso: Optional[str] = None
    drive: Optional[str] = None
    drivers: Optional[str] = None
    user: Optional[str] = None
    assume_yes: bool = False
    index: Optional[int] = None


def resolve_username(user: Optional[str]) -> str:
    """Validate --user, falling back to the invoking account."""
    username = user or unattend.default_username()
    if not username:
        raise ValueError("Could not determine a username, pass --user")
    return unattend.validate_username(username)


def create_windows_to_go(
    options: CreateOptions,
    input_func=input,
    output: Callable[[str], None] = print,
) -> None:
    """Build a Windows To Go drive.

    Raises:
        Win2GoError: On any failed stage or declined confirmation
        ValueError: If the username is invalid
    """
    username = resolve_username(options.user)
    if options.index is not None and options.index < 1:
        raise ValueError(f"Image index must be 1 or greater: {options.index}")
    win_mount = settings.get_path("win_mount")
    boot_mount = settings.get_path("boot_mount")
    iso_mount = settings.get_path("iso_mount")

    with CleanupHandler(assume_yes=options.assume_yes) as cleanup:
        clear_step("Step 1: Checking dependencies")
        with operation_context("dependencies"):
            dependencies.check_dependencies()

        clear_step("Step 2: Selecting Windows ISO")
        with operation_context("iso"):
            iso_path = selection.select_iso(options.iso, cleanup, input_func, output)

        clear_step("Step 3: Selecting target drive")
        with operation_context("drive"):
            drive = selection.select_drive(options.drive, input_func, output)
            selection.prepare_drive(drive, options.assume_yes, input_func=input_func)

        clear_step("Step 4: Partitioning and formatting")
        with operation_context("partition", device=drive.path):
            layout = partition.partition_drive(drive.path)
            format_layout(layout)

        clear_step("Step 5: Mounting")
        with operation_context("mount"):
            mount.mount_partition(layout.windows, win_mount)
            cleanup.register_mount(win_mount)
            mount.mount_partition(layout.esp, boot_mount)
            cleanup.register_mount(boot_mount)
            mount.mount_iso(iso_path, iso_mount)
            cleanup.register_mount(iso_mount)

        clear_step("Step 6: Extracting Windows image")
        with operation_context("extract"):
            temp_win = cleanup.make_temp_dir("win")
            temp_boot = cleanup.make_temp_dir("boot")
            install_image = iso.find_install_image(iso_mount)
            image.apply_image(install_image, temp_win, options.index)
            image.extract_boot_files(temp_win, temp_boot)

        clear_step("Step 7: Copying files to USB")
        with operation_context("copy"):
            sync.rsync_tree(temp_win, win_mount, "Copying Windows files")
            sync.rsync_tree(temp_boot, boot_mount, "Copying boot files")

        clear_step("Step 8: Injecting drivers")
        with operation_context("drivers"):
            if not drivers.install_drivers(options.drivers, win_mount):
                log.info("No drivers injected")

        clear_step("Step 9: Configuring first boot")
        with operation_context("unattend", user=username):
            unattend.write_unattend(win_mount, username)

        clear_step("Step 10: Finalizing")
        with operation_context("unmount"):
            run_quietly(["sync"])
            for mountpoint in (win_mount, boot_mount, iso_mount):
                mount.unmount(mountpoint)

    print_success(SUCCESS_MESSAGE)
