"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building Mkv2Dv8Config by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from mkv2dv8.config.env import EnvReader
from mkv2dv8.config.models import (
    AudioConfig,
    ConversionConfig,
    LoggingConfig,
    Mkv2Dv8Config,
    SpeedMode,
    StorageConfig,
    ToolPathsConfig,
    VideoMode,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Tool paths
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None
    dovi_tool_path: Path | None = None
    mp4box_path: Path | None = None
    mediainfo_path: Path | None = None

    # Storage
    storage_root: Path | None = None
    output_dir_name: str | None = None
    temp_dir_name: str | None = None
    log_dir_name: str | None = None

    # Audio
    eac3_bitrate: str | None = None
    truehd_fallback_bitrate: str | None = None

    # Conversion
    speed_mode: str | None = None
    keep_temp: bool | None = None
    remove_source: bool | None = None
    video_mode: str | None = None
    verify_output: bool | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds Mkv2Dv8Config by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> Mkv2Dv8Config:
        """Build the final Mkv2Dv8Config with defaults for unset values.

        Raises:
            ConfigError: If any layered value fails validation.
        """
        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
            dovi_tool=self._get("dovi_tool_path", None),
            mp4box=self._get("mp4box_path", None),
            mediainfo=self._get("mediainfo_path", None),
        )

        storage_defaults = StorageConfig()
        storage = StorageConfig(
            root=self._get("storage_root", storage_defaults.root),
            output_dir_name=self._get(
                "output_dir_name", storage_defaults.output_dir_name
            ),
            temp_dir_name=self._get("temp_dir_name", storage_defaults.temp_dir_name),
            log_dir_name=self._get("log_dir_name", storage_defaults.log_dir_name),
        )

        audio_defaults = AudioConfig()
        audio = AudioConfig(
            eac3_bitrate=self._get("eac3_bitrate", audio_defaults.eac3_bitrate),
            truehd_fallback_bitrate=self._get(
                "truehd_fallback_bitrate", audio_defaults.truehd_fallback_bitrate
            ),
        )

        conversion_defaults = ConversionConfig()
        conversion = ConversionConfig(
            speed_mode=SpeedMode.parse(
                self._get("speed_mode", conversion_defaults.speed_mode)
            ),
            keep_temp=self._get("keep_temp", conversion_defaults.keep_temp),
            remove_source=self._get("remove_source", conversion_defaults.remove_source),
            video_mode=VideoMode.parse(
                self._get("video_mode", conversion_defaults.video_mode)
            ),
            verify_output=self._get("verify_output", conversion_defaults.verify_output),
        )

        logging_defaults = LoggingConfig()
        logging_config = LoggingConfig(
            level=self._get("logging_level", logging_defaults.level),
            file=self._get("logging_file", logging_defaults.file),
            format=self._get("logging_format", logging_defaults.format),
            include_stderr=self._get(
                "logging_include_stderr", logging_defaults.include_stderr
            ),
            max_bytes=self._get("logging_max_bytes", logging_defaults.max_bytes),
            backup_count=self._get(
                "logging_backup_count", logging_defaults.backup_count
            ),
        )

        return Mkv2Dv8Config(
            tools=tools,
            storage=storage,
            audio=audio,
            conversion=conversion,
            logging=logging_config,
        )


def _optional_path(value: Any) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from parsed TOML config file.

    Expected layout::

        [tools]
        ffmpeg = "/opt/ffmpeg/bin/ffmpeg"
        dovi_tool = "~/bin/dovi_tool"

        [storage]
        root = "/Volumes/LaCie"

        [audio]
        eac3_bitrate = "640k"

        [conversion]
        speed_mode = "gentle"

        [logging]
        level = "debug"

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    tools = file_config.get("tools", {})
    storage = file_config.get("storage", {})
    audio = file_config.get("audio", {})
    conversion = file_config.get("conversion", {})
    logging_conf = file_config.get("logging", {})

    return ConfigSource(
        # Tool paths
        ffmpeg_path=_optional_path(tools.get("ffmpeg")),
        ffprobe_path=_optional_path(tools.get("ffprobe")),
        dovi_tool_path=_optional_path(tools.get("dovi_tool")),
        mp4box_path=_optional_path(tools.get("mp4box")),
        mediainfo_path=_optional_path(tools.get("mediainfo")),
        # Storage
        storage_root=_optional_path(storage.get("root")),
        output_dir_name=storage.get("output_dir_name"),
        temp_dir_name=storage.get("temp_dir_name"),
        log_dir_name=storage.get("log_dir_name"),
        # Audio
        eac3_bitrate=audio.get("eac3_bitrate"),
        truehd_fallback_bitrate=audio.get("truehd_fallback_bitrate"),
        # Conversion
        speed_mode=conversion.get("speed_mode"),
        keep_temp=conversion.get("keep_temp"),
        remove_source=conversion.get("remove_source"),
        video_mode=conversion.get("video_mode"),
        verify_output=conversion.get("verify_output"),
        # Logging
        logging_level=logging_conf.get("level"),
        logging_file=_optional_path(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from environment variables.

    SPEED_MODE, KEEP_TEMP and REMOVE_SOURCE are read without a prefix so
    existing shell invocations keep working.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    return ConfigSource(
        # Tool paths
        ffmpeg_path=reader.get_path("MKV2DV8_FFMPEG_PATH"),
        ffprobe_path=reader.get_path("MKV2DV8_FFPROBE_PATH"),
        dovi_tool_path=reader.get_path("MKV2DV8_DOVI_TOOL_PATH"),
        mp4box_path=reader.get_path("MKV2DV8_MP4BOX_PATH"),
        mediainfo_path=reader.get_path("MKV2DV8_MEDIAINFO_PATH"),
        # Storage
        storage_root=reader.get_path("MKV2DV8_ROOT"),
        # Conversion
        speed_mode=reader.get_str("SPEED_MODE"),
        keep_temp=reader.get_bool("KEEP_TEMP"),
        remove_source=reader.get_bool("REMOVE_SOURCE"),
        video_mode=reader.get_str("MKV2DV8_VIDEO_MODE"),
        # Logging
        logging_level=reader.get_str("MKV2DV8_LOG_LEVEL"),
        logging_file=reader.get_path("MKV2DV8_LOG_FILE"),
    )
