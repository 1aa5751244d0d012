"""Shared invocation layer for the conversion stages.

Every external tool call made by the pipeline goes through a ToolRunner so
the throttle prefix, resolved tool paths and failure reporting stay uniform.
"""

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from mkv2dv8.core.subprocess_utils import run_command
from mkv2dv8.errors import StageError
from mkv2dv8.throttle import ThrottleProfile
from mkv2dv8.tools.models import ToolRegistry

logger = logging.getLogger(__name__)

# Keep error messages readable when a tool dumps a lot of diagnostics
MAX_STDERR_CHARS = 4000


def _tail(text: str, limit: int = MAX_STDERR_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


class ToolRunner:
    """Runs external tools under one throttle profile.

    Attributes:
        throttle: Profile whose prefix is applied to every invocation.
    """

    def __init__(
        self,
        executables: Mapping[str, str | Path],
        throttle: ThrottleProfile,
    ) -> None:
        """Initialize the runner.

        Args:
            executables: Tool name (casefolded) to executable path.
            throttle: Resolved throttle profile for this run.
        """
        self._executables = {
            name.casefold(): str(path) for name, path in executables.items()
        }
        self.throttle = throttle

    @classmethod
    def from_registry(
        cls, registry: ToolRegistry, throttle: ThrottleProfile
    ) -> "ToolRunner":
        """Build a runner from detected tools, skipping absent ones."""
        executables: dict[str, Path] = {}
        for tool in (
            registry.ffmpeg,
            registry.ffprobe,
            registry.dovi_tool,
            registry.mp4box,
            registry.mediainfo,
        ):
            if tool.is_present() and tool.path is not None:
                executables[tool.name] = tool.path
        return cls(executables, throttle)

    def has_tool(self, name: str) -> bool:
        return name.casefold() in self._executables

    def executable(self, name: str) -> str:
        """Return the executable for ``name``, falling back to the bare name."""
        return self._executables.get(name.casefold(), name)

    def command(self, name: str, args: Sequence[str | Path]) -> list[str]:
        """Build the full argv for a tool, throttle prefix included."""
        return self.throttle.wrap([self.executable(name), *(str(a) for a in args)])

    def run(
        self,
        name: str,
        args: Sequence[str | Path],
        *,
        stage: str,
        error_cls: type[StageError],
    ) -> tuple[str, str]:
        """Run a tool to completion and raise on failure.

        Args:
            name: Tool name (e.g. "ffmpeg").
            args: Arguments after the executable.
            stage: Stage description used in logs and the raised error.
            error_cls: StageError subclass raised on failure.

        Returns:
            Tuple of (stdout, stderr).

        Raises:
            StageError: The given subclass if the tool cannot be started or
                exits non-zero.
        """
        cmd = self.command(name, args)
        try:
            stdout, stderr, rc = run_command(cmd)
        except OSError as e:
            err = error_cls(stage, name, -1, str(e))
            logger.error(
                "%s: could not start %s: %s", stage, name, e, extra={"error": err}
            )
            raise err from e

        if rc != 0:
            detail = _tail(stderr)
            err = error_cls(stage, name, rc, detail)
            if detail:
                logger.error(
                    "%s: %s stderr:\n%s", stage, name, detail, extra={"error": err}
                )
            else:
                logger.error(
                    "%s: %s exited with status %d",
                    stage,
                    name,
                    rc,
                    extra={"error": err},
                )
            raise err

        if stderr.strip():
            logger.debug("%s: %s stderr:\n%s", stage, name, _tail(stderr))
        return stdout, stderr
