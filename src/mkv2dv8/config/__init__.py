"""Configuration management for mkv2dv8.

This module provides configuration loading with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (SPEED_MODE, KEEP_TEMP, REMOVE_SOURCE, MKV2DV8_*)
3. Config file (~/.mkv2dv8/config.toml)
4. Default values (lowest priority)
"""

from mkv2dv8.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from mkv2dv8.config.env import EnvReader
from mkv2dv8.config.loader import get_config, get_default_config_path
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
from mkv2dv8.config.toml_parser import load_toml_file

__all__ = [
    # Models
    "AudioConfig",
    "ConversionConfig",
    "LoggingConfig",
    "Mkv2Dv8Config",
    "SpeedMode",
    "StorageConfig",
    "ToolPathsConfig",
    "VideoMode",
    # Loading
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "get_config",
    "get_default_config_path",
    "load_toml_file",
    "source_from_env",
    "source_from_file",
]
