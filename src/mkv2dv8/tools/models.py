"""Data models for external tool detection.

This module defines dataclasses for representing detected tool information,
ffmpeg capabilities relevant to the conversion, and the aggregated registry.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

# Tool names in the order they are reported
TOOL_NAMES: tuple[str, ...] = ("ffmpeg", "ffprobe", "dovi_tool", "MP4Box", "mediainfo")


class ToolStatus(Enum):
    """Status of an external tool."""

    AVAILABLE = "available"  # Tool found and version detected
    MISSING = "missing"  # Tool not found in PATH or configured location
    ERROR = "error"  # Tool found but detection failed


@dataclass
class ToolInfo:
    """Base information for any external tool."""

    name: str
    path: Path | None = None
    version: str | None = None
    version_tuple: tuple[int, ...] | None = None
    status: ToolStatus = ToolStatus.MISSING
    status_message: str | None = None
    detected_at: datetime | None = None

    def is_available(self) -> bool:
        """Return True if the tool is available and usable."""
        return self.status == ToolStatus.AVAILABLE

    def is_present(self) -> bool:
        """Return True if an executable was found, even if its version was not."""
        return self.path is not None and self.status != ToolStatus.MISSING


@dataclass
class FFmpegCapabilities:
    """The parts of an ffmpeg build the conversion depends on."""

    encoders: set[str] = field(default_factory=set)
    bitstream_filters: set[str] = field(default_factory=set)

    def has_encoder(self, name: str) -> bool:
        """Check if encoder is available."""
        return name.casefold() in self.encoders

    def has_bsf(self, name: str) -> bool:
        """Check if bitstream filter is available."""
        return name.casefold() in self.bitstream_filters

    def can_convert_to_annexb(self) -> bool:
        """Check for the HEVC length-prefixed to Annex B filter."""
        return self.has_bsf("hevc_mp4toannexb")

    def can_extract_truehd_core(self) -> bool:
        """Check for the TrueHD core extraction filter."""
        return self.has_bsf("truehd_core")

    def can_encode_eac3(self) -> bool:
        """Check for the E-AC-3 encoder used for DTS/FLAC/TrueHD fallback."""
        return self.has_encoder("eac3")


@dataclass
class FFmpegInfo(ToolInfo):
    """FFmpeg tool information with conversion-relevant capabilities."""

    name: str = field(init=False, default="ffmpeg")
    capabilities: FFmpegCapabilities = field(default_factory=FFmpegCapabilities)


@dataclass
class FFprobeInfo(ToolInfo):
    """FFprobe tool information."""

    name: str = field(init=False, default="ffprobe")


@dataclass
class DoviToolInfo(ToolInfo):
    """dovi_tool information."""

    name: str = field(init=False, default="dovi_tool")


@dataclass
class MP4BoxInfo(ToolInfo):
    """MP4Box (GPAC) information."""

    name: str = field(init=False, default="MP4Box")


@dataclass
class MediaInfoInfo(ToolInfo):
    """mediainfo CLI information."""

    name: str = field(init=False, default="mediainfo")


@dataclass(frozen=True)
class ToolDetectionConfig:
    """Configuration for detecting a specific tool.

    Holds tool-specific metadata needed by the generic detection function,
    including version parsing patterns and optional post-detection hooks.
    """

    name: str  # Executable name (e.g., "ffmpeg")
    version_flag: str  # "-version" or "--version"
    version_pattern: str  # Regex with one group capturing the version
    info_factory: Callable[[], ToolInfo]
    post_detect: "Callable[[ToolInfo, Path, str], None] | None" = None
    # Some tools (MP4Box) print their banner and exit non-zero
    accept_nonzero_exit: bool = False


@dataclass
class ToolRegistry:
    """Aggregated registry of all external tools used by the conversion."""

    ffmpeg: FFmpegInfo = field(default_factory=FFmpegInfo)
    ffprobe: FFprobeInfo = field(default_factory=FFprobeInfo)
    dovi_tool: DoviToolInfo = field(default_factory=DoviToolInfo)
    mp4box: MP4BoxInfo = field(default_factory=MP4BoxInfo)
    mediainfo: MediaInfoInfo = field(default_factory=MediaInfoInfo)

    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def get_tool(self, name: str) -> ToolInfo | None:
        """Get tool info by name (case-insensitive), or None if unknown."""
        tools = {
            "ffmpeg": self.ffmpeg,
            "ffprobe": self.ffprobe,
            "dovi_tool": self.dovi_tool,
            "mp4box": self.mp4box,
            "mediainfo": self.mediainfo,
        }
        return tools.get(name.casefold())

    def is_available(self, name: str) -> bool:
        """Check if a tool is available."""
        tool = self.get_tool(name)
        return tool is not None and tool.is_available()

    def is_present(self, name: str) -> bool:
        """Check if a tool was found on disk."""
        tool = self.get_tool(name)
        return tool is not None and tool.is_present()

    def get_missing_tools(self) -> list[str]:
        """Get list of tool names with no executable found."""
        return [name for name in TOOL_NAMES if not self.is_present(name)]

    def summary(self) -> dict[str, dict[str, str | bool]]:
        """Get summary of all tools for display."""

        def tool_summary(tool: ToolInfo) -> dict[str, str | bool]:
            return {
                "available": tool.is_available(),
                "version": tool.version or "not found",
                "path": str(tool.path) if tool.path else "not found",
            }

        summary: dict[str, dict[str, str | bool]] = {}
        for name in TOOL_NAMES:
            tool = self.get_tool(name)
            assert tool is not None
            summary[name] = tool_summary(tool)
        return summary
