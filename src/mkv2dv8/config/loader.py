"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed as a ConfigSource)
2. Environment variables (SPEED_MODE, KEEP_TEMP, REMOVE_SOURCE, MKV2DV8_*)
3. Config file (~/.mkv2dv8/config.toml)
4. Default values

Environment variables:
- SPEED_MODE: fast | balanced | gentle
- KEEP_TEMP: "yes" retains the job workspace
- REMOVE_SOURCE: "yes" deletes the input after a successful run
- MKV2DV8_ROOT: Storage root for dv_out, dv_tmp and dv_logs
- MKV2DV8_VIDEO_MODE: disk | pipe
- MKV2DV8_FFMPEG_PATH, MKV2DV8_FFPROBE_PATH, MKV2DV8_DOVI_TOOL_PATH,
  MKV2DV8_MP4BOX_PATH, MKV2DV8_MEDIAINFO_PATH: Tool path overrides
- MKV2DV8_CONFIG_PATH: Path to config file (overrides default location)
- MKV2DV8_LOG_LEVEL, MKV2DV8_LOG_FILE: Logging overrides
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from mkv2dv8.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from mkv2dv8.config.env import EnvReader
from mkv2dv8.config.models import Mkv2Dv8Config
from mkv2dv8.config.toml_parser import load_toml_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".mkv2dv8"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"


def get_default_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Get the default config file path.

    Can be overridden by MKV2DV8_CONFIG_PATH environment variable.
    """
    env_path = EnvReader(env).get_path("MKV2DV8_CONFIG_PATH")
    if env_path is not None:
        return env_path
    return DEFAULT_CONFIG_FILE


def get_config(
    config_path: Path | None = None,
    cli_source: ConfigSource | None = None,
    env: Mapping[str, str] | None = None,
) -> Mkv2Dv8Config:
    """Load configuration from all sources.

    Args:
        config_path: Explicit config file path (None uses the default).
        cli_source: Values given on the command line.
        env: Environment mapping (None reads os.environ).

    Returns:
        Fully resolved configuration.

    Raises:
        ConfigError: If the config file is invalid or a value fails validation.
    """
    path = config_path if config_path is not None else get_default_config_path(env)
    file_config = load_toml_file(path)
    if file_config:
        logger.debug("Loaded config file: %s", path)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(EnvReader(env)))
    if cli_source is not None:
        builder.apply(cli_source)
    return builder.build()
