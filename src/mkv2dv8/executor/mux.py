"""MP4 multiplexing with MP4Box."""

import logging
from collections.abc import Sequence
from pathlib import Path

from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.errors import MuxError
from mkv2dv8.workspace import remove_file

logger = logging.getLogger(__name__)

STAGE = "mux MP4"

# Signal DV profile 8 with an HEVC payload on the video track
VIDEO_TRACK_OPTIONS = "dv-profile=8:fmt=hevc:name=Video"
MAJOR_BRAND = "mp42isom"
COMPATIBLE_BRAND = "dby1"


def build_mux_args(
    video: Path, audio: Sequence[Path], output: Path, temp_dir: Path
) -> list[str]:
    """Build MP4Box arguments for the final container."""
    args = ["-quiet", "-tmp", str(temp_dir), "-add", f"{video}:{VIDEO_TRACK_OPTIONS}"]
    for track in audio:
        args.extend(["-add", str(track)])
    args.extend(["-brand", MAJOR_BRAND, "-ab", COMPATIBLE_BRAND, "-new", str(output)])
    return args


def mux_mp4(
    runner: ToolRunner,
    video: Path,
    audio: Sequence[Path],
    output: Path,
    temp_dir: Path,
) -> None:
    """Mux the injected video and prepared audio into ``output``.

    Args:
        runner: Tool runner for this job.
        video: Base layer with injected RPU.
        audio: Prepared audio files, in track order.
        output: Destination MP4 (overwritten).
        temp_dir: Scratch directory for MP4Box.

    Raises:
        MuxError: If MP4Box fails. Any partial output is removed.
    """
    logger.info(
        "Muxing to MP4 (dv-profile=8, %d audio track%s)...",
        len(audio),
        "" if len(audio) == 1 else "s",
    )
    try:
        runner.run(
            "MP4Box",
            build_mux_args(video, audio, output, temp_dir),
            stage=STAGE,
            error_cls=MuxError,
        )
    except MuxError:
        remove_file(output)
        raise
