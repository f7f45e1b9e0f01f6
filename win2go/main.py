"""Command line entry point."""

import argparse
from pathlib import Path

from win2go.exceptions import Win2GoError
from win2go.logging import LoggerFactory, setup_logging
from win2go.services.creator import CreateOptions, create_windows_to_go
from win2go.storage.dependencies import check_root

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser():
    parser = argparse.ArgumentParser(
        prog="win2go",
        description="Create a bootable Windows To Go USB drive from a Windows ISO",
    )
    parser.add_argument("-i", "--iso", help="Windows ISO path or http(s) URL")
    parser.add_argument("-d", "--drive", help="Target block device, e.g. /dev/sdb")
    parser.add_argument("-r", "--drivers", help="Folder of drivers to stage on the Windows partition")
    parser.add_argument("-u", "--user", help="Local account created on first boot (default: invoking user)")
    parser.add_argument("-y", "--yes", action="store_true", help="Answer yes to the erase confirmation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging and tool output")
    parser.add_argument("--index", type=int, help="Image index inside install.wim/esd")
    parser.add_argument("--log-dir", type=Path, help="Directory for log files")
    return parser


def parse_arguments(argv=None):
    """Parse known flags and return (args, unknown)."""
    return build_parser().parse_known_args(argv)


def main(argv=None):
    args, unknown = parse_arguments(argv)
    setup_logging(verbose=args.verbose, log_dir=args.log_dir)
    log = LoggerFactory.for_system()

    for parameter in unknown:
        log.warning(f"Unknown parameter: {parameter}")

    options = CreateOptions(
        iso=args.iso,
        drive=args.drive,
        drivers=args.drivers,
        user=args.user,
        assume_yes=args.yes,
        index=args.index,
    )

    try:
        check_root()
        create_windows_to_go(options)
    except KeyboardInterrupt:
        log.warning("Interrupted by user")
        return EXIT_INTERRUPTED
    except (Win2GoError, RuntimeError, ValueError, OSError) as error:
        log.error(str(error))
        return EXIT_FAILURE
    return EXIT_SUCCESS
