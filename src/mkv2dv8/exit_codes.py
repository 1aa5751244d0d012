"""Centralized exit codes for the mkv2dv8 CLI.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config)
    20-29: Input/storage errors
    30-39: Tool/dependency errors
    40-49: Pipeline stage errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for mkv2dv8 commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C / SIGINT / SIGTERM

    # Validation errors (10-19)
    CONFIG_ERROR = 11

    # Input/storage errors (20-29)
    INPUT_NOT_READABLE = 20
    STORAGE_NOT_WRITABLE = 21

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30

    # Pipeline stage errors (40-49)
    EXTRACTION_FAILED = 40
    METADATA_FAILED = 41
    AUDIO_FAILED = 42
    MUX_FAILED = 43
    RETAG_FAILED = 44
