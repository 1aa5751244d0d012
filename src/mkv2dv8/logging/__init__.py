"""Structured logging module for mkv2dv8.

Provides configurable logging with JSON format support, file rotation,
per-job transcripts and job context tagging.
"""

from mkv2dv8.logging.config import configure_logging, job_log_file
from mkv2dv8.logging.context import (
    JobContextFilter,
    clear_job_context,
    get_job_context,
    job_context,
    set_job_context,
)
from mkv2dv8.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "JobContextFilter",
    "clear_job_context",
    "configure_logging",
    "get_job_context",
    "job_context",
    "job_log_file",
    "set_job_context",
]
