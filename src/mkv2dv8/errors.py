"""Exception hierarchy for mkv2dv8.

Every exception carries the CLI exit code it maps to, so the command layer
can translate failures without a lookup table.
"""

from __future__ import annotations

from mkv2dv8.exit_codes import ExitCode


class Mkv2Dv8Error(Exception):
    """Base class for all mkv2dv8 errors."""

    exit_code: ExitCode = ExitCode.GENERAL_ERROR


class ConfigError(Mkv2Dv8Error):
    """Raised when configuration values are invalid."""

    exit_code = ExitCode.CONFIG_ERROR


class DependencyMissing(Mkv2Dv8Error):
    """Raised when one or more required external tools are absent.

    Attributes:
        tools: Names of the missing tools.
        hints: Install hint per missing tool.
    """

    exit_code = ExitCode.TOOL_NOT_AVAILABLE

    def __init__(self, tools: list[str], hints: dict[str, str] | None = None) -> None:
        self.tools = list(tools)
        self.hints = dict(hints or {})
        lines = [f"Missing dependency: {', '.join(self.tools)}"]
        for tool in self.tools:
            hint = self.hints.get(tool)
            if hint:
                lines.append(f"  {tool}: {hint}")
        super().__init__("\n".join(lines))


class InputError(Mkv2Dv8Error):
    """Raised when the input file is missing or unreadable."""

    exit_code = ExitCode.INPUT_NOT_READABLE


class StorageError(Mkv2Dv8Error):
    """Raised when the workspace or output directory is not writable."""

    exit_code = ExitCode.STORAGE_NOT_WRITABLE


class StageError(Mkv2Dv8Error):
    """Raised when an external tool exits non-zero during a pipeline stage.

    Attributes:
        stage: Human-readable stage name (e.g. "extract base layer").
        tool: Name of the external tool that failed.
        returncode: Exit status of the tool (-1 if it could not be started).
        stderr: Diagnostic output captured from the tool.
    """

    def __init__(
        self,
        stage: str,
        tool: str,
        returncode: int,
        stderr: str = "",
    ) -> None:
        self.stage = stage
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        message = f"{stage} failed: {tool} exited with status {returncode}"
        detail = stderr.strip()
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class ExtractionError(StageError):
    """Base-layer extraction failed."""

    exit_code = ExitCode.EXTRACTION_FAILED


class MetadataError(StageError):
    """RPU extraction or injection failed."""

    exit_code = ExitCode.METADATA_FAILED


class AudioError(StageError):
    """Audio enumeration or track preparation failed."""

    exit_code = ExitCode.AUDIO_FAILED


class MuxError(StageError):
    """MP4 multiplexing failed."""

    exit_code = ExitCode.MUX_FAILED


class RetagError(StageError):
    """Rewriting the video sample entry to hvc1 failed.

    The pre-retag output is left in place when this is raised.
    """

    exit_code = ExitCode.RETAG_FAILED
