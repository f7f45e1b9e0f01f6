"""Thin wrappers around subprocess for quick, non-interactive tools."""

from __future__ import annotations

import subprocess
from typing import Optional, Sequence

from win2go.exceptions import CommandError
from win2go.logging import LoggerFactory

log = LoggerFactory.for_command()


def run_command(command, check=True, log_output=True, log_command=True):
    if log_command:
        log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(command, check=check, text=True, capture_output=True)
    except subprocess.CalledProcessError as error:
        log.debug(f"Command failed: {' '.join(command)}")
        if error.stdout:
            log.debug(f"stdout: {error.stdout.strip()}")
        if error.stderr:
            log.debug(f"stderr: {error.stderr.strip()}")
        raise
    if result.stdout and (log_output or result.returncode != 0):
        log.debug(f"stdout: {result.stdout.strip()}")
    if result.stderr and (log_output or result.returncode != 0):
        log.debug(f"stderr: {result.stderr.strip()}")
    if log_command:
        log.debug(f"Command completed with return code {result.returncode}")
    return result


def run_checked_command(
    command: Sequence[str], input_text: Optional[str] = None
) -> str:
    """Run a command and raise CommandError if it fails or cannot start."""
    argv = list(command)
    log.debug(f"Running command: {' '.join(argv)}")
    try:
        result = subprocess.run(
            argv,
            input=input_text,
            text=True,
            capture_output=True,
        )
    except OSError as error:
        raise CommandError(argv, 127, str(error)) from error
    if result.returncode != 0:
        stderr = result.stderr.strip()
        stdout = result.stdout.strip()
        message = stderr or stdout or "Command failed"
        raise CommandError(argv, result.returncode, message)
    return result.stdout


def run_quietly(command: Sequence[str]) -> bool:
    """Run a best-effort command, returning False instead of raising."""
    try:
        result = run_command(list(command), check=False, log_output=False)
    except OSError as error:
        log.debug(f"Could not run {command[0]}: {error}")
        return False
    return result.returncode == 0
