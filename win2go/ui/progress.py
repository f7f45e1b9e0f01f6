"""Progress spinner for long-running external tools.

Every slow step (partitioning, mkfs, wimlib, rsync, wget) runs as a child
process while the terminal shows a rotating glyph and the elapsed time:

    parted /dev/sdb --script mklabel gpt... ◓ [Elapsed: 00:00:03]
    parted /dev/sdb --script mklabel gpt completed ✅ [Total: 00:00:04]

The child's stdout and stderr go to a temporary file instead of the terminal
so the spinner line stays intact. The captured text is logged at DEBUG level
and the tail of it is attached to CommandError when the tool fails.
"""

from __future__ import annotations

import subprocess
import sys
import tempfile
import time
from typing import Callable, Optional, Sequence, TextIO

from win2go.config import settings
from win2go.exceptions import CommandError
from win2go.logging import LoggerFactory
from win2go.ui.console import Colors, colorize, supports_color

SPINNER_FRAMES = ("◐", "◓", "◑", "◒")
ERROR_TAIL_LINES = 20
INTERRUPT_WAIT_SECONDS = 5

log = LoggerFactory.for_command()
tool_log = LoggerFactory.for_tool_output()


def format_elapsed(seconds: Optional[float]) -> str:
    """Format a duration as HH:MM:SS."""
    if seconds is None or seconds < 0:
        seconds = 0
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_spinner_line(title: str, glyph: str, elapsed: float) -> str:
    return f"{title}... {glyph} [Elapsed: {format_elapsed(elapsed)}]"


def format_complete_line(title: str, total: float) -> str:
    return f"{title} completed ✅ [Total: {format_elapsed(total)}]"


def format_failed_line(title: str, total: float) -> str:
    return f"{title} failed ❌ [Total: {format_elapsed(total)}]"


def _tail(text: str, lines: int = ERROR_TAIL_LINES) -> str:
    kept = [line for line in text.splitlines() if line.strip()]
    return "\n".join(kept[-lines:])


def run_with_spinner(
    command: Sequence[str],
    title: Optional[str] = None,
    *,
    interval: Optional[float] = None,
    stream: Optional[TextIO] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> subprocess.CompletedProcess:
    """Run a command in the background and animate a spinner until it exits.

    Args:
        command: Command argv (no shell is involved)
        title: Text shown next to the spinner (defaults to the command line)
        interval: Seconds between redraws (defaults to the spinner_interval setting)
        stream: Where to draw the spinner (defaults to stderr)
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests

    Returns:
        CompletedProcess with the combined stdout/stderr text in ``stdout``

    Raises:
        CommandError: If the tool cannot be started or exits non-zero
    """
    argv = list(command)
    display = title or " ".join(argv)
    if interval is None:
        interval = settings.get_float("spinner_interval", settings.DEFAULT_SPINNER_INTERVAL)
    stream = stream or sys.stderr
    color = supports_color(stream)
    erase = "\033[K" if color else ""

    log.debug(f"Running command: {' '.join(argv)}")
    start = clock()

    with tempfile.TemporaryFile() as output:
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=output,
                stderr=subprocess.STDOUT,
            )
        except OSError as error:
            raise CommandError(argv, 127, str(error)) from error

        frame = 0
        try:
            while process.poll() is None:
                line = format_spinner_line(display, SPINNER_FRAMES[frame], clock() - start)
                stream.write("\r" + colorize(line, Colors.CYAN, color) + erase)
                stream.flush()
                frame = (frame + 1) % len(SPINNER_FRAMES)
                sleep(interval)
        except KeyboardInterrupt:
            stream.write("\n")
            # The child shares our process group and received the same SIGINT.
            try:
                process.wait(timeout=INTERRUPT_WAIT_SECONDS)
            except subprocess.TimeoutExpired:
                log.warning(f"{argv[0]} still running after interrupt, killing it")
                process.kill()
                process.wait()
            raise

        returncode = process.wait()
        output.seek(0)
        captured = output.read().decode("utf-8", errors="replace")

    total = clock() - start
    for captured_line in captured.splitlines():
        if captured_line.strip():
            tool_log.debug(captured_line.rstrip())

    if returncode != 0:
        stream.write("\r" + colorize(format_failed_line(display, total), Colors.RED, color) + erase + "\n")
        stream.flush()
        log.debug(f"Command failed with code {returncode}: {' '.join(argv)}")
        raise CommandError(argv, returncode, _tail(captured))

    stream.write("\r" + colorize(format_complete_line(display, total), Colors.GREEN, color) + erase + "\n")
    stream.flush()
    return subprocess.CompletedProcess(argv, returncode, stdout=captured, stderr="")
