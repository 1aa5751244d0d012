"""Subprocess utilities for external tool invocation.

This module provides the standard subprocess wrapper used across the codebase
for consistent encoding, logging and error handling when invoking ffmpeg,
ffprobe, dovi_tool, MP4Box and mediainfo.
"""

from __future__ import annotations

import logging
import shlex
import subprocess  # nosec B404 - subprocess is required for tool invocation
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def format_command(args: Sequence[str | Path]) -> str:
    """Render a command line for logs, shell-quoted."""
    return " ".join(shlex.quote(str(arg)) for arg in args)


def run_command(
    args: Sequence[str | Path],
    timeout: float | None = None,
    capture_output: bool = True,
    text: bool = True,
    errors: str = "replace",
    **kwargs: Any,
) -> tuple[str, str, int]:
    """Run external command with standard error handling.

    This function wraps subprocess.run with the project's standard patterns:
    - Explicit UTF-8 decoding with error replacement
    - No timeout unless one is given (media tools run as long as they need)
    - stdin closed unless overridden, so tools never wait on the terminal
    - Consistent return format

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Timeout in seconds (default None, wait indefinitely).
        capture_output: Capture stdout/stderr (default True).
        text: Return text instead of bytes (default True).
        errors: Error handling mode for text decoding (default "replace").
        **kwargs: Additional subprocess.run arguments.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        subprocess.TimeoutExpired: If a timeout was given and expired.
            subprocess.run() kills the child before raising.
        OSError: If the executable cannot be started.

    Example:
        >>> stdout, stderr, rc = run_command(["ffprobe", "-version"])
        >>> if rc == 0:
        ...     print(stdout.splitlines()[0])
    """
    str_args = [str(arg) for arg in args]
    command_name = Path(str_args[0]).name if str_args else "unknown"
    kwargs.setdefault("stdin", subprocess.DEVNULL)
    if text:
        kwargs.setdefault("encoding", "utf-8")

    logger.debug(
        "Executing command: %s",
        format_command(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )

    start_time = time.monotonic()

    try:
        result = subprocess.run(  # nosec B603 - caller builds argv from tool paths
            str_args,
            capture_output=capture_output,
            text=text,
            errors=errors if text else None,
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        elapsed = time.monotonic() - start_time
        logger.warning(
            "Command timed out after %ss: %s",
            timeout,
            " ".join(str_args[:3]) + ("..." if len(str_args) > 3 else ""),
            extra={
                "command": command_name,
                "timeout_seconds": timeout,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
        raise

    elapsed = time.monotonic() - start_time
    logger.debug(
        "Command completed",
        extra={
            "command": command_name,
            "elapsed_seconds": round(elapsed, 3),
            "returncode": result.returncode,
        },
    )

    return result.stdout or "", result.stderr or "", result.returncode
