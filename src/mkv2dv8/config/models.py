"""Configuration data models.

This module defines dataclasses for mkv2dv8 configuration options.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from mkv2dv8.errors import ConfigError


def _require_bool(name: str, value: object) -> None:
    if not isinstance(value, bool):
        raise ConfigError(f"{name} must be true or false, got {value!r}")


class SpeedMode(Enum):
    """Throttling profile applied to every external tool invocation."""

    FAST = "fast"  # Full priority, no prefix
    BALANCED = "balanced"  # Moderate background priority
    GENTLE = "gentle"  # Strongest throttling

    @classmethod
    def parse(cls, value: "str | SpeedMode") -> "SpeedMode":
        """Parse a mode name (case-insensitive).

        Raises:
            ConfigError: If the name is not a known mode.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().casefold())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigError(
                f"Invalid speed mode '{value}'. Must be one of: {valid}"
            ) from None


class VideoMode(Enum):
    """How the base layer is handed to the RPU extractor."""

    DISK = "disk"  # Materialize the base layer, then extract the RPU from disk
    PIPE = "pipe"  # Tee the transcoder output to disk and the RPU extractor

    @classmethod
    def parse(cls, value: "str | VideoMode") -> "VideoMode":
        """Parse a video mode name (case-insensitive).

        Raises:
            ConfigError: If the name is not a known mode.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().casefold())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ConfigError(
                f"Invalid video mode '{value}'. Must be one of: {valid}"
            ) from None


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None
    dovi_tool: Path | None = None
    mp4box: Path | None = None
    mediainfo: Path | None = None


@dataclass
class StorageConfig:
    """Where outputs, job workspaces and transcripts live."""

    # Storage root; None means the current working directory at run time
    root: Path | None = None

    output_dir_name: str = "dv_out"
    temp_dir_name: str = "dv_tmp"
    log_dir_name: str = "dv_logs"

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in ("output_dir_name", "temp_dir_name", "log_dir_name"):
            value = getattr(self, name)
            if not value or "/" in value or value in (".", ".."):
                raise ConfigError(
                    f"{name} must be a plain directory name, got {value!r}"
                )

    def resolve_root(self) -> Path:
        """Return the storage root, defaulting to the working directory."""
        if self.root is not None:
            return Path(self.root).expanduser()
        return Path.cwd()


@dataclass
class AudioConfig:
    """Target bitrates for audio tracks that must be re-encoded."""

    # DTS / FLAC -> E-AC-3
    eac3_bitrate: str = "640k"

    # TrueHD without an embedded AC-3 core -> E-AC-3
    truehd_fallback_bitrate: str = "768k"

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in ("eac3_bitrate", "truehd_fallback_bitrate"):
            value = getattr(self, name)
            if not value or not value.rstrip("kKmM").isdigit():
                raise ConfigError(f"{name} must look like '640k', got {value!r}")


@dataclass
class ConversionConfig:
    """Per-run conversion behavior."""

    speed_mode: SpeedMode = SpeedMode.BALANCED

    # Retain the job workspace after the run
    keep_temp: bool = False

    # Delete the input after a successful run
    remove_source: bool = False

    video_mode: VideoMode = VideoMode.DISK

    # Run the inspection tool against the output when it is installed
    verify_output: bool = True

    def __post_init__(self) -> None:
        """Normalize enum fields given as strings and check the flags."""
        self.speed_mode = SpeedMode.parse(self.speed_mode)
        self.video_mode = VideoMode.parse(self.video_mode)
        for name in ("keep_temp", "remove_source", "verify_output"):
            _require_bool(name, getattr(self, name))


@dataclass
class LoggingConfig:
    """Configuration for logging output."""

    level: str = "info"
    file: Path | None = None
    format: str = "text"
    include_stderr: bool = True
    max_bytes: int = 10_485_760  # 10 MB
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.casefold() not in valid_levels:
            raise ConfigError(
                f"Invalid log level '{self.level}'. "
                f"Must be one of: {', '.join(sorted(valid_levels))}"
            )
        valid_formats = {"text", "json"}
        if self.format.casefold() not in valid_formats:
            raise ConfigError(
                f"Invalid log format '{self.format}'. Must be one of: text, json"
            )
        if self.max_bytes <= 0:
            raise ConfigError("max_bytes must be positive")
        _require_bool("include_stderr", self.include_stderr)
        if self.backup_count < 0:
            raise ConfigError("backup_count must be non-negative")


@dataclass
class Mkv2Dv8Config:
    """Main configuration container for mkv2dv8."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
