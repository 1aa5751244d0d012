"""Tests for tool requirement checks."""

import logging
import shutil
from pathlib import Path

import pytest

from mkv2dv8.errors import DependencyMissing
from mkv2dv8.exit_codes import ExitCode
from mkv2dv8.tools.detection import detect_dovi_tool
from mkv2dv8.tools.models import FFmpegCapabilities, ToolRegistry, ToolStatus
from mkv2dv8.tools.requirements import (
    DOVI_TOOL_HINT,
    MP4BOX_HINT,
    RequirementLevel,
    ToolRequirement,
    check_requirement,
    check_requirements,
    get_missing_tool_hints,
    require_tools,
)


def _make_missing(registry: ToolRegistry, *names: str) -> None:
    for name in names:
        tool = registry.get_tool(name)
        tool.status = ToolStatus.MISSING
        tool.path = None
        tool.version = None
        tool.version_tuple = None


class TestCheckRequirement:
    """Tests for check_requirement()."""

    def test_missing_tool(self) -> None:
        requirement = ToolRequirement(
            "dovi_tool", "RPU Conversion", "needed", install_hint=DOVI_TOOL_HINT
        )
        result = check_requirement(ToolRegistry(), requirement)
        assert not result.satisfied
        assert "dovi_tool not found" in result.message
        assert DOVI_TOOL_HINT in result.message

    def test_tool_without_version_is_satisfied(self, registry: ToolRegistry) -> None:
        registry.dovi_tool.status = ToolStatus.ERROR
        registry.dovi_tool.version = None
        requirement = ToolRequirement("dovi_tool", "RPU Conversion", "needed")
        assert check_requirement(registry, requirement).satisfied

    def test_capability_missing(self, registry: ToolRegistry) -> None:
        registry.ffmpeg.capabilities = FFmpegCapabilities()
        requirement = ToolRequirement(
            "ffmpeg",
            "TrueHD Core Extraction",
            "no truehd_core",
            capability_check="can_extract_truehd_core",
        )
        result = check_requirement(registry, requirement)
        assert not result.satisfied
        assert result.current_version == "6.1.1"


class TestCheckRequirements:
    """Tests for check_requirements()."""

    def test_everything_available(self, registry: ToolRegistry) -> None:
        report = check_requirements(registry)
        assert report.all_satisfied
        assert report.required_satisfied

    def test_missing_optional_tool_keeps_required_satisfied(
        self, registry: ToolRegistry
    ) -> None:
        _make_missing(registry, "mediainfo")
        registry.ffmpeg.capabilities.bitstream_filters.discard("truehd_core")

        report = check_requirements(registry)

        assert report.required_satisfied
        assert not report.all_satisfied
        optional = report.get_unsatisfied(RequirementLevel.OPTIONAL)
        assert {r.requirement.feature_name for r in optional} == {
            "Output Verification",
            "TrueHD Core Extraction",
        }

    def test_missing_core_tool(self, registry: ToolRegistry) -> None:
        _make_missing(registry, "MP4Box")
        report = check_requirements(registry)
        assert not report.required_satisfied
        messages = [r.message for r in report.get_unsatisfied()]
        assert any("MP4Box not found" in m for m in messages)


class TestRequireTools:
    """Tests for require_tools()."""

    def test_passes_when_core_tools_present(self, registry: ToolRegistry) -> None:
        _make_missing(registry, "mediainfo")
        require_tools(registry)

    def test_names_every_missing_core_tool(self, registry: ToolRegistry) -> None:
        _make_missing(registry, "dovi_tool", "MP4Box", "mediainfo")

        with pytest.raises(DependencyMissing) as excinfo:
            require_tools(registry)

        err = excinfo.value
        assert err.tools == ["dovi_tool", "MP4Box"]
        assert err.hints == {"dovi_tool": DOVI_TOOL_HINT, "MP4Box": MP4BOX_HINT}
        assert err.exit_code == ExitCode.TOOL_NOT_AVAILABLE
        assert "Missing dependency: dovi_tool, MP4Box" in str(err)

    def test_capability_gaps_do_not_block(self, registry: ToolRegistry) -> None:
        registry.ffmpeg.capabilities = FFmpegCapabilities()
        require_tools(registry)

    @pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")
    def test_unreadable_version_only_warns(
        self,
        registry: ToolRegistry,
        tmp_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """An installed tool that cannot report its version is still usable."""
        script = tmp_path / "dovi_tool"
        script.write_text("#!/bin/sh\necho 'unknown flag' >&2\nexit 2\n")
        script.chmod(0o755)
        registry.dovi_tool = detect_dovi_tool(script)
        assert registry.dovi_tool.status is ToolStatus.ERROR

        with caplog.at_level(logging.WARNING, logger="mkv2dv8.tools.requirements"):
            require_tools(registry)

        assert "dovi_tool found at" in caplog.text
        assert "unknown flag" in caplog.text


def test_missing_tool_hints(registry: ToolRegistry) -> None:
    _make_missing(registry, "ffprobe")
    hints = get_missing_tool_hints(registry)
    assert list(hints) == ["ffprobe"]
    assert "ffmpeg" in hints["ffprobe"]
