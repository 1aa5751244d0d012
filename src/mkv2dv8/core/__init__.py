"""Core utilities shared across mkv2dv8 modules."""

from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.core.subprocess_utils import format_command, run_command

__all__ = ["ToolRunner", "format_command", "run_command"]
