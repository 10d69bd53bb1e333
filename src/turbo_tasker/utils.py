"""Utility functions for turbo-tasker."""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Configure loguru sinks.

    Removes the default handler, logs to stderr at ``level`` and, when
    ``log_file`` is given, keeps a rotating copy on disk as well.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, colorize=True)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(path, level=level, rotation="10 MB", retention="10 days", backtrace=True)


def format_elapsed(elapsed_ms: int) -> str:
    """Render milliseconds as HH:MM:SS.mmm."""
    hours, remainder = divmod(max(int(elapsed_ms), 0), 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"
