"""Job context for structured logging.

Provides context propagation using contextvars, enabling automatic injection
of the job's base name and id into every log record emitted while a
conversion runs.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_name: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_name", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)


def set_job_context(job_name: str, job_id: str | None = None) -> None:
    """Set the current job context.

    Args:
        job_name: Output base name of the job (e.g. "Movie.2019").
        job_id: Unique job identifier (the workspace directory name).
    """
    _job_name.set(job_name)
    _job_id.set(job_id)


def clear_job_context() -> None:
    """Clear the current job context."""
    _job_name.set(None)
    _job_id.set(None)


def get_job_context() -> tuple[str | None, str | None]:
    """Get current job context.

    Returns:
        Tuple of (job_name, job_id), either may be None.
    """
    return _job_name.get(), _job_id.get()


@contextmanager
def job_context(
    job_name: str, job_id: str | None = None
) -> Generator[None, None, None]:
    """Context manager for a conversion job.

    Sets job context on entry and restores the previous context on exit.

    Example:
        with job_context("Movie.2019", "Movie.2019.k3j9x2"):
            logger.info("Muxing")  # Record carries job_name/job_id
    """
    old_name = _job_name.get()
    old_id = _job_id.get()
    try:
        set_job_context(job_name, job_id)
        yield
    finally:
        _job_name.set(old_name)
        _job_id.set(old_id)


class JobContextFilter(logging.Filter):
    """Logging filter that injects job context into log records.

    Adds job_name and job_id attributes, plus a compact job_tag such as
    "[dv:Movie.2019] " for the text format (empty outside a job).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        job_name, job_id = get_job_context()

        record.job_name = job_name
        record.job_id = job_id
        record.job_tag = f"[dv:{job_name}] " if job_name else ""

        return True  # Never filter out records
