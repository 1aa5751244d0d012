"""Logging configuration for mkv2dv8.

Provides configure_logging() to set up logging based on LoggingConfig, and
job_log_file() to capture a per-job transcript while a conversion runs.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from mkv2dv8.logging.context import JobContextFilter
from mkv2dv8.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from mkv2dv8.config.models import LoggingConfig

# CRITICAL is intentionally excluded - not exposed via CLI configuration.
_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_TEXT_FORMAT = "%(asctime)s - %(job_tag)s%(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _build_formatter(format_name: str) -> logging.Formatter:
    if format_name.casefold() == "json":
        return JSONFormatter()
    return logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)


def configure_logging(config: LoggingConfig) -> None:
    """Configure logging based on LoggingConfig.

    Sets up handlers for file and/or stderr output with appropriate formatters.

    Args:
        config: Logging configuration.
    """
    level = _LEVEL_MAP.get(config.level.casefold(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = _build_formatter(config.format)
    context_filter = JobContextFilter()

    file_handler_added = False
    if config.file:
        try:
            file_path = Path(config.file).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(context_filter)
            root_logger.addHandler(file_handler)
            file_handler_added = True
        except OSError as e:
            # Log file unavailable - fall back to stderr
            sys.stderr.write(f"Warning: Could not open log file {config.file}: {e}\n")

    if config.include_stderr or not file_handler_added:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        stderr_handler.addFilter(context_filter)
        root_logger.addHandler(stderr_handler)


@contextmanager
def job_log_file(path: Path, format_name: str = "text") -> Iterator[Path]:
    """Append a DEBUG-level transcript of everything logged to ``path``.

    The root logger level is lowered to DEBUG for the duration so the
    transcript receives external command lines and tool diagnostics; the
    other handlers keep their own levels. Both are restored on exit.

    Args:
        path: Transcript file (parent directory must exist).
        format_name: "text" or "json".

    Yields:
        The transcript path.
    """
    root_logger = logging.getLogger()
    previous_level = root_logger.level

    # Pin existing handlers to the effective level before lowering the root
    pinned: list[logging.Handler] = []
    for handler in root_logger.handlers:
        if handler.level == logging.NOTSET:
            handler.setLevel(previous_level)
            pinned.append(handler)

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_build_formatter(format_name))
    handler.addFilter(JobContextFilter())
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)
    try:
        yield path
    finally:
        root_logger.removeHandler(handler)
        handler.close()
        root_logger.setLevel(previous_level)
        for pinned_handler in pinned:
            pinned_handler.setLevel(logging.NOTSET)
