"""Conversion orchestration.

This module provides run_conversion(), which drives a single Dolby Vision
profile 7 MKV through extraction, RPU conversion, audio preparation, muxing
and retagging to produce a profile 8.1 MP4.
"""

import logging
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from mkv2dv8.config.models import Mkv2Dv8Config, VideoMode
from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.executor.audio import PreparedAudio, prepare_audio_tracks
from mkv2dv8.executor.mux import mux_mp4
from mkv2dv8.executor.retag import retag_hvc1
from mkv2dv8.executor.verify import verify_output
from mkv2dv8.executor.video import (
    extract_base_layer,
    extract_base_layer_piped,
    extract_rpu,
    inject_rpu,
)
from mkv2dv8.logging import job_context, job_log_file
from mkv2dv8.throttle import ThrottleProfile, select_throttle_profile
from mkv2dv8.tools.detection import detect_all_tools
from mkv2dv8.tools.models import ToolRegistry
from mkv2dv8.tools.requirements import require_tools
from mkv2dv8.workspace import JobPaths, Workspace, resolve_input

logger = logging.getLogger(__name__)

# Stage names reported through the progress callback, in execution order
STAGES: tuple[str, ...] = (
    "extract base layer",
    "extract RPU",
    "inject RPU",
    "prepare audio",
    "mux",
    "retag",
)


@dataclass(frozen=True)
class ConversionRequest:
    """A single conversion job.

    Attributes:
        input_path: Source profile 7 MKV.
        base_name: Output base name; defaults to the input's stem.
    """

    input_path: Path
    base_name: str | None = None


@dataclass
class StageProgress:
    """Progress information for a running conversion."""

    stage: str
    stage_index: int
    total_stages: int = len(STAGES)

    @property
    def percent(self) -> float:
        """Share of stages completed before this one, as a percentage."""
        if self.total_stages == 0:
            return 0.0
        return self.stage_index / self.total_stages * 100


# Type alias for progress callback
ProgressCallback = Callable[[StageProgress], None]


@dataclass
class ConversionResult:
    """Outcome of a successful conversion."""

    input_path: Path
    output_path: Path
    log_file: Path
    job_dir: Path
    throttle: ThrottleProfile
    audio_tracks: list[PreparedAudio] = field(default_factory=list)
    source_removed: bool = False
    # None when the mediainfo check did not run
    dv_check: list[str] | None = None
    elapsed_seconds: float = 0.0


def _report(callback: ProgressCallback | None, stage: str) -> None:
    if callback is None:
        return
    try:
        callback(StageProgress(stage=stage, stage_index=STAGES.index(stage)))
    except Exception as e:
        logger.warning("Progress callback error: %s", e)


def _remove_source(paths: JobPaths) -> bool:
    if not paths.output.is_file():
        logger.error(
            "Not removing source: final output %s does not exist", paths.output
        )
        return False
    logger.info("Removing source as requested: %s", paths.input)
    try:
        paths.input.unlink()
    except OSError as e:
        logger.error("Could not remove source %s: %s", paths.input, e)
        return False
    return True


def _convert(
    runner: ToolRunner,
    paths: JobPaths,
    config: Mkv2Dv8Config,
    progress_callback: ProgressCallback | None,
) -> list[PreparedAudio]:
    if config.conversion.video_mode == VideoMode.PIPE:
        _report(progress_callback, "extract base layer")
        extract_base_layer_piped(runner, paths.input, paths.base_layer, paths.rpu)
    else:
        _report(progress_callback, "extract base layer")
        extract_base_layer(runner, paths.input, paths.base_layer)
        _report(progress_callback, "extract RPU")
        extract_rpu(runner, paths.base_layer, paths.rpu)

    _report(progress_callback, "inject RPU")
    inject_rpu(runner, paths.base_layer, paths.rpu, paths.injected)

    _report(progress_callback, "prepare audio")
    audio_tracks = prepare_audio_tracks(runner, paths, config.audio)

    _report(progress_callback, "mux")
    mux_mp4(
        runner,
        paths.injected,
        [track.path for track in audio_tracks],
        paths.output,
        paths.job_dir,
    )

    _report(progress_callback, "retag")
    retag_hvc1(runner, paths.output)
    return audio_tracks


def run_conversion(
    request: ConversionRequest,
    config: Mkv2Dv8Config,
    registry: ToolRegistry | None = None,
    progress_callback: ProgressCallback | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> ConversionResult:
    """Convert a Dolby Vision profile 7 MKV to a profile 8.1 MP4.

    Required tools are checked first, then the input, and only then is any
    directory created. The job workspace is removed on every exit path
    unless ``config.conversion.keep_temp`` is set.

    Args:
        request: Input and optional base name.
        config: Resolved configuration.
        registry: Pre-detected tools (None detects them now).
        progress_callback: Called before each stage.
        which: Executable lookup used to pick the throttle utility.

    Returns:
        ConversionResult describing the output.

    Raises:
        DependencyMissing: If a required tool is absent.
        InputError: If the input cannot be read.
        StorageError: If the workspace or output directory is not writable.
        StageError: If any stage fails (subclass names the stage).
    """
    start_time = time.monotonic()

    if registry is None:
        registry = detect_all_tools(config.tools)
    require_tools(registry)
    if not registry.mediainfo.is_present():
        logger.warning("mediainfo not found (DV check at end will be skipped)")

    input_path, base_name = resolve_input(request.input_path, request.base_name)

    throttle = select_throttle_profile(config.conversion.speed_mode, which)
    runner = ToolRunner.from_registry(registry, throttle)

    workspace = Workspace(
        input_path,
        base_name,
        config.storage,
        keep_temp=config.conversion.keep_temp,
    )
    with workspace as paths, job_context(base_name, paths.job_dir.name):
        with job_log_file(paths.log_file, config.logging.format):
            logger.info("Converting: %s", paths.input)
            logger.info("  Temp dir  : %s", paths.job_dir)
            logger.info("  Output dir: %s", paths.output_dir)
            logger.info("  Log file  : %s", paths.log_file)
            logger.info("  Speed     : %s", throttle.describe())

            audio_tracks = _convert(runner, paths, config, progress_callback)

            source_removed = False
            if config.conversion.remove_source:
                source_removed = _remove_source(paths)

            dv_check = None
            if config.conversion.verify_output:
                dv_check = verify_output(runner, paths.output)

            elapsed = time.monotonic() - start_time
            logger.info("Done: %s (%.1fs)", paths.output, elapsed)

    return ConversionResult(
        input_path=paths.input,
        output_path=paths.output,
        log_file=paths.log_file,
        job_dir=paths.job_dir,
        throttle=throttle,
        audio_tracks=audio_tracks,
        source_removed=source_removed,
        dv_check=dv_check,
        elapsed_seconds=elapsed,
    )
