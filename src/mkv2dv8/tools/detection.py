"""External tool detection and version parsing.

This module provides functions to detect external tools, parse their versions,
and enumerate the ffmpeg capabilities the conversion depends on.
"""

import logging
import re
import shutil
import subprocess  # nosec B404 - subprocess is required for tool detection
from datetime import datetime, timezone
from pathlib import Path

from mkv2dv8.config.models import ToolPathsConfig
from mkv2dv8.tools.models import (
    DoviToolInfo,
    FFmpegCapabilities,
    FFmpegInfo,
    FFprobeInfo,
    MediaInfoInfo,
    MP4BoxInfo,
    ToolDetectionConfig,
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)

logger = logging.getLogger(__name__)

# Timeout for version/capability detection commands (seconds)
DETECTION_TIMEOUT = 10


def parse_version_string(version_str: str) -> tuple[int, ...] | None:
    """Parse a version string into a comparable tuple.

    Handles various version formats:
    - "6.1.1" -> (6, 1, 1)
    - "n6.1.1" -> (6, 1, 1)  (ffmpeg nightlies)
    - "v23.04" -> (23, 4)  (mediainfo)
    - "2.2.1-rev0-gabc" -> (2, 2, 1)  (GPAC)

    Args:
        version_str: Version string to parse.

    Returns:
        Tuple of version components, or None if parsing fails.
    """
    if not version_str:
        return None

    version_str = version_str.lstrip("nv")

    match = re.match(r"(\d+(?:\.\d+)*)", version_str)
    if not match:
        return None

    return tuple(int(p) for p in match.group(1).split("."))


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional configured path override.

    Returns:
        Path to tool executable, or None if not found.
    """
    if configured_path:
        if configured_path.is_file():
            return configured_path
        logger.warning(
            "Configured path for %s is not a file: %s", name, configured_path
        )

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def _run_command(
    args: list[str], timeout: int = DETECTION_TIMEOUT
) -> tuple[str, str, int]:
    """Run a detection command and capture output.

    Never raises: failures are reported through the returncode.
    """
    try:
        result = subprocess.run(  # nosec B603 - args are tool paths and fixed flags
            args,
            capture_output=True,
            text=True,
            errors="replace",
            stdin=subprocess.DEVNULL,
            timeout=timeout,
        )
        return result.stdout, result.stderr, result.returncode
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out: %s", " ".join(args))
        return "", "timeout", -1
    except OSError as e:
        logger.warning("Command failed: %s - %s", " ".join(args), e)
        return "", str(e), -1


# =============================================================================
# Generic Tool Detection
# =============================================================================


def _detect_tool_generic(
    config: ToolDetectionConfig,
    configured_path: Path | None = None,
) -> ToolInfo:
    """Generic tool detection with common boilerplate.

    Args:
        config: Tool-specific detection configuration.
        configured_path: Optional configured path to the tool.

    Returns:
        ToolInfo subclass instance with detection results.
    """
    info = config.info_factory()
    info.detected_at = datetime.now(timezone.utc)

    path = find_tool(config.name, configured_path)
    if not path:
        info.status = ToolStatus.MISSING
        info.status_message = f"{config.name} not found in PATH"
        return info

    info.path = path

    stdout, stderr, rc = _run_command([str(path), config.version_flag])
    banner = f"{stdout}\n{stderr}"
    version_match = re.search(config.version_pattern, banner)

    if rc != 0 and not (config.accept_nonzero_exit and version_match):
        info.status = ToolStatus.ERROR
        info.status_message = f"Failed to get {config.name} version: {stderr.strip()}"
        return info

    if version_match:
        info.version = version_match.group(1)
        info.version_tuple = parse_version_string(info.version)
        if info.version_tuple is None:
            logger.warning(
                "Could not parse %s version '%s' into comparable tuple",
                config.name,
                info.version,
            )

    if config.post_detect:
        config.post_detect(info, path, stdout)

    info.status = ToolStatus.AVAILABLE
    info.status_message = None
    return info


# =============================================================================
# FFmpeg Capabilities
# =============================================================================


def _parse_encoder_list(output: str) -> set[str]:
    """Parse ffmpeg -encoders output.

    Format: " A....D eac3     ATSC A/52B (AC-3, E-AC-3)"
    """
    names: set[str] = set()
    for line in output.splitlines():
        match = re.match(r"\s*[VAS][F.][S.][X.][B.][D.]\s+(\S+)", line)
        if match:
            names.add(match.group(1).casefold())
    return names


def _parse_bsf_list(output: str) -> set[str]:
    """Parse ffmpeg -bsfs output (a header line, then one name per line)."""
    names: set[str] = set()
    for line in output.splitlines():
        line = line.strip()
        if line and not line.endswith(":") and re.fullmatch(r"[a-z0-9_]+", line):
            names.add(line)
    return names


def _detect_ffmpeg_capabilities(path: Path) -> FFmpegCapabilities:
    caps = FFmpegCapabilities()

    stdout, _, rc = _run_command([str(path), "-hide_banner", "-encoders"])
    if rc == 0:
        caps.encoders = _parse_encoder_list(stdout)

    stdout, _, rc = _run_command([str(path), "-hide_banner", "-bsfs"])
    if rc == 0:
        caps.bitstream_filters = _parse_bsf_list(stdout)

    logger.debug(
        "FFmpeg capabilities: %d encoders, %d bitstream filters",
        len(caps.encoders),
        len(caps.bitstream_filters),
    )
    return caps


def _ffmpeg_post_detect(info: ToolInfo, path: Path, _stdout: str) -> None:
    """Post-detection hook for FFmpeg capabilities."""
    assert isinstance(info, FFmpegInfo)
    info.capabilities = _detect_ffmpeg_capabilities(path)


# =============================================================================
# Tool Detection Configurations
# =============================================================================


FFMPEG_CONFIG = ToolDetectionConfig(
    name="ffmpeg",
    version_flag="-version",
    version_pattern=r"ffmpeg version (\S+)",
    info_factory=FFmpegInfo,
    post_detect=_ffmpeg_post_detect,
)

FFPROBE_CONFIG = ToolDetectionConfig(
    name="ffprobe",
    version_flag="-version",
    version_pattern=r"ffprobe version (\S+)",
    info_factory=FFprobeInfo,
)

DOVI_TOOL_CONFIG = ToolDetectionConfig(
    name="dovi_tool",
    version_flag="--version",
    version_pattern=r"dovi_tool (\S+)",
    info_factory=DoviToolInfo,
)

MP4BOX_CONFIG = ToolDetectionConfig(
    name="MP4Box",
    version_flag="-version",
    version_pattern=r"GPAC version (\S+)",
    info_factory=MP4BoxInfo,
    accept_nonzero_exit=True,
)

MEDIAINFO_CONFIG = ToolDetectionConfig(
    name="mediainfo",
    version_flag="--version",
    version_pattern=r"MediaInfoLib - (v?\S+)",
    info_factory=MediaInfoInfo,
)


# =============================================================================
# Public Detection Functions
# =============================================================================


def detect_ffmpeg(configured_path: Path | None = None) -> FFmpegInfo:
    """Detect ffmpeg and enumerate its encoders and bitstream filters."""
    result = _detect_tool_generic(FFMPEG_CONFIG, configured_path)
    assert isinstance(result, FFmpegInfo)
    return result


def detect_ffprobe(configured_path: Path | None = None) -> FFprobeInfo:
    """Detect ffprobe and get version."""
    result = _detect_tool_generic(FFPROBE_CONFIG, configured_path)
    assert isinstance(result, FFprobeInfo)
    return result


def detect_dovi_tool(configured_path: Path | None = None) -> DoviToolInfo:
    """Detect dovi_tool and get version."""
    result = _detect_tool_generic(DOVI_TOOL_CONFIG, configured_path)
    assert isinstance(result, DoviToolInfo)
    return result


def detect_mp4box(configured_path: Path | None = None) -> MP4BoxInfo:
    """Detect MP4Box and get the GPAC version."""
    result = _detect_tool_generic(MP4BOX_CONFIG, configured_path)
    assert isinstance(result, MP4BoxInfo)
    return result


def detect_mediainfo(configured_path: Path | None = None) -> MediaInfoInfo:
    """Detect the mediainfo CLI and get version."""
    result = _detect_tool_generic(MEDIAINFO_CONFIG, configured_path)
    assert isinstance(result, MediaInfoInfo)
    return result


def detect_all_tools(paths: ToolPathsConfig | None = None) -> ToolRegistry:
    """Detect all external tools and build a registry.

    Args:
        paths: Configured tool path overrides.

    Returns:
        ToolRegistry with all detected tools.
    """
    paths = paths or ToolPathsConfig()
    registry = ToolRegistry(
        ffmpeg=detect_ffmpeg(paths.ffmpeg),
        ffprobe=detect_ffprobe(paths.ffprobe),
        dovi_tool=detect_dovi_tool(paths.dovi_tool),
        mp4box=detect_mp4box(paths.mp4box),
        mediainfo=detect_mediainfo(paths.mediainfo),
        detected_at=datetime.now(timezone.utc),
    )
    for name in registry.get_missing_tools():
        tool = registry.get_tool(name)
        logger.debug(
            "Tool not found: %s (%s)", name, tool.status_message if tool else ""
        )
    return registry
