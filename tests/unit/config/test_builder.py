"""Tests for ConfigBuilder module."""

from __future__ import annotations

from pathlib import Path

import pytest

from mkv2dv8.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from mkv2dv8.config.env import EnvReader
from mkv2dv8.config.models import SpeedMode, VideoMode
from mkv2dv8.errors import ConfigError


class TestConfigSource:
    """Tests for ConfigSource dataclass."""

    def test_all_fields_default_to_none(self) -> None:
        """All fields should default to None."""
        source = ConfigSource()
        assert source.ffmpeg_path is None
        assert source.speed_mode is None
        assert source.keep_temp is None
        assert source.logging_level is None


class TestConfigBuilder:
    """Tests for ConfigBuilder class."""

    def test_build_with_no_sources_uses_defaults(self) -> None:
        """Should use default values when no sources applied."""
        config = ConfigBuilder().build()

        assert config.tools.ffmpeg is None
        assert config.storage.root is None
        assert config.storage.output_dir_name == "dv_out"
        assert config.audio.eac3_bitrate == "640k"
        assert config.conversion.speed_mode is SpeedMode.BALANCED
        assert config.conversion.video_mode is VideoMode.DISK
        assert config.logging.level == "info"

    def test_later_source_overrides_earlier(self) -> None:
        """Non-None values from later sources win."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(speed_mode="gentle", keep_temp=True))
        builder.apply(ConfigSource(speed_mode="fast"))
        config = builder.build()

        assert config.conversion.speed_mode is SpeedMode.FAST
        assert config.conversion.keep_temp is True

    def test_false_overrides_true(self) -> None:
        """An explicit False is a value, not 'unset'."""
        builder = ConfigBuilder()
        builder.apply(ConfigSource(remove_source=True))
        builder.apply(ConfigSource(remove_source=False))
        assert builder.build().conversion.remove_source is False

    def test_invalid_value_raises_on_build(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(speed_mode="warp"))
        with pytest.raises(ConfigError):
            builder.build()


class TestSourceFromFile:
    """Tests for source_from_file()."""

    def test_empty_config(self) -> None:
        source = source_from_file({})
        assert source == ConfigSource()

    def test_reads_every_section(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", "/home/tester")
        source = source_from_file(
            {
                "tools": {"dovi_tool": "~/bin/dovi_tool", "mp4box": "/opt/MP4Box"},
                "storage": {"root": "/Volumes/LaCie", "output_dir_name": "out"},
                "audio": {"eac3_bitrate": "448k"},
                "conversion": {"speed_mode": "fast", "video_mode": "pipe"},
                "logging": {"level": "debug", "format": "json"},
            }
        )
        assert source.dovi_tool_path == Path("/home/tester/bin/dovi_tool")
        assert source.mp4box_path == Path("/opt/MP4Box")
        assert source.storage_root == Path("/Volumes/LaCie")
        assert source.output_dir_name == "out"
        assert source.eac3_bitrate == "448k"
        assert source.speed_mode == "fast"
        assert source.video_mode == "pipe"
        assert source.logging_level == "debug"
        assert source.logging_format == "json"

    def test_quoted_remove_source_is_rejected(self) -> None:
        """A string like "no" must not be read as a request to delete."""
        builder = ConfigBuilder()
        builder.apply(source_from_file({"conversion": {"remove_source": "no"}}))
        with pytest.raises(ConfigError, match="remove_source must be true or false"):
            builder.build()

    def test_native_booleans_are_accepted(self) -> None:
        builder = ConfigBuilder()
        builder.apply(
            source_from_file(
                {"conversion": {"remove_source": False, "keep_temp": True}}
            )
        )
        config = builder.build()
        assert config.conversion.remove_source is False
        assert config.conversion.keep_temp is True


class TestSourceFromEnv:
    """Tests for source_from_env()."""

    def test_unprefixed_conversion_variables(self) -> None:
        """SPEED_MODE, KEEP_TEMP and REMOVE_SOURCE are read as-is."""
        reader = EnvReader(
            {"SPEED_MODE": "gentle", "KEEP_TEMP": "yes", "REMOVE_SOURCE": "no"}
        )
        source = source_from_env(reader)
        assert source.speed_mode == "gentle"
        assert source.keep_temp is True
        assert source.remove_source is False

    def test_prefixed_variables(self) -> None:
        reader = EnvReader(
            {
                "MKV2DV8_ROOT": "/Volumes/LaCie",
                "MKV2DV8_VIDEO_MODE": "pipe",
                "MKV2DV8_MP4BOX_PATH": "/opt/gpac/MP4Box",
                "MKV2DV8_LOG_LEVEL": "debug",
            }
        )
        source = source_from_env(reader)
        assert source.storage_root == Path("/Volumes/LaCie")
        assert source.video_mode == "pipe"
        assert source.mp4box_path == Path("/opt/gpac/MP4Box")
        assert source.logging_level == "debug"

    def test_unset_variables_stay_none(self) -> None:
        assert source_from_env(EnvReader({})) == ConfigSource()
