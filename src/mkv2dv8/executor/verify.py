"""Post-conversion Dolby Vision sanity check using mediainfo.

The check is informational: a missing tool, a failing tool or zero matches
never fail the conversion.
"""

import logging
import re
from pathlib import Path

from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.core.subprocess_utils import run_command

logger = logging.getLogger(__name__)

# Lines of interest in mediainfo's report
DV_PATTERN = re.compile(r"dolby vision|dvhe|BL\+RPU|hvc1", re.IGNORECASE)


def filter_dv_lines(report: str) -> list[str]:
    """Return report lines mentioning Dolby Vision signalling or hvc1."""
    return [line.rstrip() for line in report.splitlines() if DV_PATTERN.search(line)]


def verify_output(runner: ToolRunner, output: Path) -> list[str] | None:
    """Run mediainfo on ``output`` and collect the Dolby Vision lines.

    Returns:
        Matching lines (possibly empty), or None when the check could not run.
    """
    if not runner.has_tool("mediainfo"):
        logger.info("mediainfo not found; skipping Dolby Vision check")
        return None

    cmd = runner.command("mediainfo", [output])
    try:
        stdout, stderr, rc = run_command(cmd)
    except OSError as e:
        logger.warning("Could not run mediainfo: %s", e)
        return None

    if rc != 0:
        logger.warning(
            "mediainfo exited with status %d; skipping Dolby Vision check: %s",
            rc,
            stderr.strip(),
        )
        return None

    lines = filter_dv_lines(stdout)
    if not lines:
        logger.warning("mediainfo reported no Dolby Vision signalling for %s", output)
    return lines
