"""Terminal colours and step headings."""

from __future__ import annotations

import sys
from typing import TextIO


class Colors:
    """ANSI color codes for terminal output"""
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    CYAN = "\033[1;36m"
    RESET = "\033[0m"


CLEAR_SCREEN = "\033[H\033[2J"


def supports_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def colorize(message: str, color: str, enabled: bool = True) -> str:
    """
    Add color to a message if color output is enabled.

    Args:
        message: The message to colorize
        color: The color to use (from Colors)
        enabled: Whether colorization is enabled

    Returns:
        Colorized message or original message if colors disabled
    """
    if not enabled:
        return message
    return f"{color}{message}{Colors.RESET}"


def clear_step(title: str, stream: TextIO | None = None) -> None:
    """Start a new pipeline step: clear the terminal and print its heading.

    The screen is only cleared on a TTY so redirected output keeps every step.
    """
    stream = stream or sys.stdout
    tty = supports_color(stream)
    if tty:
        stream.write(CLEAR_SCREEN)
    stream.write(colorize(f"=== {title} ===", Colors.CYAN, tty) + "\n")
    stream.flush()


def print_success(message: str, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    stream.write(colorize(message, Colors.GREEN, supports_color(stream)) + "\n")
    stream.flush()
