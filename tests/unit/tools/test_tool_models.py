"""Tests for tool data models."""

from pathlib import Path

from mkv2dv8.tools.models import (
    FFmpegCapabilities,
    MP4BoxInfo,
    ToolInfo,
    ToolRegistry,
    ToolStatus,
)


class TestToolInfo:
    """Tests for ToolInfo."""

    def test_missing_by_default(self) -> None:
        assert not ToolInfo(name="dovi_tool").is_available()

    def test_found_without_version_is_present(self) -> None:
        """An unreadable version does not make the executable absent."""
        info = ToolInfo(
            name="dovi_tool", path=Path("/opt/bin/dovi_tool"), status=ToolStatus.ERROR
        )
        assert info.is_present()
        assert not info.is_available()

    def test_missing_is_not_present(self) -> None:
        assert not ToolInfo(name="dovi_tool").is_present()


class TestFFmpegCapabilities:
    """Tests for FFmpegCapabilities."""

    def test_empty_build_has_nothing(self) -> None:
        caps = FFmpegCapabilities()
        assert not caps.can_convert_to_annexb()
        assert not caps.can_extract_truehd_core()
        assert not caps.can_encode_eac3()

    def test_lookups_are_case_insensitive(self) -> None:
        caps = FFmpegCapabilities(encoders={"eac3"}, bitstream_filters={"truehd_core"})
        assert caps.has_encoder("EAC3")
        assert caps.has_bsf("TrueHD_Core")


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_get_tool_by_any_case(self) -> None:
        registry = ToolRegistry()
        assert registry.get_tool("MP4Box") is registry.mp4box
        assert registry.get_tool("mp4box") is registry.mp4box
        assert registry.get_tool("ffplay") is None

    def test_mp4box_display_name(self) -> None:
        assert MP4BoxInfo().name == "MP4Box"

    def test_summary(self, registry: ToolRegistry) -> None:
        registry.mediainfo.status = ToolStatus.MISSING
        registry.mediainfo.path = None
        registry.mediainfo.version = None

        summary = registry.summary()

        assert list(summary) == [
            "ffmpeg",
            "ffprobe",
            "dovi_tool",
            "MP4Box",
            "mediainfo",
        ]
        assert summary["MP4Box"] == {
            "available": True,
            "version": "2.2.1",
            "path": str(Path("/opt/bin/MP4Box")),
        }
        assert summary["mediainfo"]["available"] is False
        assert summary["mediainfo"]["path"] == "not found"
        assert registry.get_missing_tools() == ["mediainfo"]
