"""External tool detection and requirement checks.

This module provides infrastructure for detecting and querying the external
tools the conversion drives (ffmpeg, ffprobe, dovi_tool, MP4Box, mediainfo).
"""

from mkv2dv8.tools.detection import (
    detect_all_tools,
    detect_dovi_tool,
    detect_ffmpeg,
    detect_ffprobe,
    detect_mediainfo,
    detect_mp4box,
    find_tool,
    parse_version_string,
)
from mkv2dv8.tools.models import (
    TOOL_NAMES,
    DoviToolInfo,
    FFmpegCapabilities,
    FFmpegInfo,
    FFprobeInfo,
    MediaInfoInfo,
    MP4BoxInfo,
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)
from mkv2dv8.tools.requirements import (
    RequirementLevel,
    RequirementsReport,
    ToolRequirement,
    check_requirements,
    get_missing_tool_hints,
    require_tools,
)

__all__ = [
    # Detection
    "detect_all_tools",
    "detect_dovi_tool",
    "detect_ffmpeg",
    "detect_ffprobe",
    "detect_mediainfo",
    "detect_mp4box",
    "find_tool",
    "parse_version_string",
    # Models
    "TOOL_NAMES",
    "DoviToolInfo",
    "FFmpegCapabilities",
    "FFmpegInfo",
    "FFprobeInfo",
    "MediaInfoInfo",
    "MP4BoxInfo",
    "ToolInfo",
    "ToolRegistry",
    "ToolStatus",
    # Requirements
    "RequirementLevel",
    "RequirementsReport",
    "ToolRequirement",
    "check_requirements",
    "get_missing_tool_hints",
    "require_tools",
]
