from __future__ import annotations

import os
import sys
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger

DEFAULT_LOG_DIR = Path(
    os.environ.get(
        "WIN2GO_LOG_DIR",
        Path.home() / ".local" / "state" / "win2go" / "logs",
    )
)

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[source]: <10}</cyan> | "
    "{message}"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{extra[source]: <10} | "
    "{extra[job_id]: <20} | "
    "{message}"
)


def _should_log_tool_output(record) -> bool:
    """Keep raw tool output off the console unless it is a warning or worse."""
    tags = record["extra"].get("tags", [])
    if "tool-output" in tags:
        return record["level"].no >= logger.level("WARNING").no
    return True


def setup_logging(
    *,
    verbose: bool = False,
    log_dir: Path | None = None,
) -> Logger:
    """
    Setup console and file logging.

    Log Files:
    - operations.log: INFO+ events (7 day retention)
    - debug.log: DEBUG+ events when --verbose is enabled (3 day retention)

    The console sink is not enqueued so that log lines and the progress
    spinner, which share stderr, are written in order.

    Args:
        verbose: Enable DEBUG level logging and echo captured tool output
        log_dir: Custom log directory (defaults to ~/.local/state/win2go/logs)
    """
    logger.remove()
    logger.configure(extra={"job_id": "-", "tags": [], "source": "win2go"})

    console_level = "DEBUG" if verbose else "INFO"

    # SINK 1: Console (stderr)
    logger.add(
        sys.stderr,
        level=console_level,
        enqueue=False,
        backtrace=False,
        diagnose=False,
        filter=None if verbose else _should_log_tool_output,
        colorize=True,
        format=CONSOLE_FORMAT,
    )

    log_dir = log_dir or DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    # SINK 2: Operations Log - Important events only (INFO+)
    logger.add(
        log_dir / "operations.log",
        level="INFO",
        rotation="5 MB",
        retention="7 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        format=FILE_FORMAT,
    )

    # SINK 3: Debug Log - Detailed diagnostics and tool output
    if verbose:
        logger.add(
            log_dir / "debug.log",
            level="DEBUG",
            rotation="10 MB",
            retention="3 days",
            compression="zip",
            enqueue=True,
            backtrace=True,
            diagnose=True,
            format=FILE_FORMAT + " | {extra[tags]}",
        )

    return logger


def get_logger(
    *,
    job_id: str | None = None,
    tags: Iterable[str] | None = None,
    source: str | None = None,
) -> Logger:
    """
    Get a logger with bound context.

    Args:
        job_id: Job identifier for tracking operations
        tags: Tags for filtering (e.g., ["storage", "tool-output"])
        source: Source component (e.g., "storage", "image", "cli")

    Returns:
        Logger with bound context
    """
    extras: dict[str, object] = {}
    if job_id is not None:
        extras["job_id"] = job_id
    if tags is not None:
        extras["tags"] = list(tags)
    if source is not None:
        extras["source"] = source
    return logger.bind(**extras)


@contextmanager
def operation_context(operation: str, **details):
    """
    Context manager for tracking a pipeline stage with automatic timing.

    Logs the stage start, completion and failure with its duration.

    Args:
        operation: Stage name (e.g., "partition", "extract", "copy")
        **details: Stage-specific details to log

    Yields:
        Logger bound with job_id and operation context

    Example:
        with operation_context("partition", device="/dev/sdb") as log:
            log.debug("Writing GPT label")
    """
    job_id = f"{operation}-{uuid.uuid4().hex[:8]}"

    with logger.contextualize(job_id=job_id, operation=operation, **details):
        start_time = time.time()
        log = get_logger(job_id=job_id, tags=[operation], source=operation)

        log.info(f"{operation.capitalize()} started")

        try:
            yield log
            duration = time.time() - start_time
            log.success(
                f"{operation.capitalize()} completed",
                duration_seconds=round(duration, 2),
            )
        except BaseException as e:
            duration = time.time() - start_time
            log.error(
                f"{operation.capitalize()} failed",
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                duration_seconds=round(duration, 2),
            )
            raise


class LoggerFactory:
    """
    Factory for creating domain-specific loggers with automatic context.
    """

    @staticmethod
    def for_storage() -> Logger:
        """Logger for partitioning, formatting and mount operations."""
        return get_logger(source="storage", tags=["storage"])

    @staticmethod
    def for_image() -> Logger:
        """Logger for ISO and WIM handling."""
        return get_logger(source="image", tags=["image"])

    @staticmethod
    def for_command() -> Logger:
        """Logger for external tool invocations."""
        return get_logger(source="command", tags=["command"])

    @staticmethod
    def for_tool_output() -> Logger:
        """Logger for raw output captured from external tools."""
        return get_logger(source="command", tags=["command", "tool-output"])

    @staticmethod
    def for_system() -> Logger:
        """Logger for startup, dependency checks and cleanup."""
        return get_logger(source="system", tags=["system"])
