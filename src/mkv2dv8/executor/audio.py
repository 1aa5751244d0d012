"""Audio track preparation.

Each source audio stream is copied, core-extracted or transcoded into an
MP4-compatible elementary file, or skipped when MP4 cannot carry it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from mkv2dv8.config.models import AudioConfig
from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.errors import AudioError
from mkv2dv8.introspector.ffprobe import AudioStream, probe_audio_streams
from mkv2dv8.workspace import JobPaths, remove_file

logger = logging.getLogger(__name__)

STAGE = "prepare audio"

# Codec -> extension of the copied file
COPY_CODECS: dict[str, str] = {
    "eac3": "eac3",
    "ac3": "ac3",
    "aac": "m4a",
    "aac_latm": "m4a",
    "mp4a": "m4a",
    "alac": "m4a",
}

# Lossless or DTS family, re-encoded to E-AC-3
TRANSCODE_CODECS = frozenset({"dts", "dca", "dts_hd", "dts_ma", "flac"})

TRUEHD_CODEC = "truehd"


class AudioAction(Enum):
    """How a prepared track was produced."""

    COPY = "copy"
    TRUEHD_CORE = "truehd_core"  # AC-3 core pulled out of TrueHD
    TRUEHD_FALLBACK = "truehd_fallback"  # TrueHD without core, re-encoded
    TRANSCODE = "transcode"


@dataclass(frozen=True)
class PreparedAudio:
    """An audio file ready to be muxed.

    Attributes:
        source_index: Stream index in the source container.
        codec: Source codec name.
        action: How the file was produced.
        path: The prepared file in the job workspace.
    """

    source_index: int
    codec: str
    action: AudioAction
    path: Path


def _ffmpeg_args(input_path: Path, index: int, *codec_args: str) -> list[str | Path]:
    return [
        "-nostdin",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        input_path,
        "-map",
        f"0:{index}",
        *codec_args,
    ]


def _copy(runner: ToolRunner, paths: JobPaths, stream: AudioStream, out: Path) -> None:
    runner.run(
        "ffmpeg",
        [*_ffmpeg_args(paths.input, stream.index, "-c", "copy"), out],
        stage=f"{STAGE} (stream {stream.index})",
        error_cls=AudioError,
    )


def _transcode(
    runner: ToolRunner, paths: JobPaths, stream: AudioStream, out: Path, bitrate: str
) -> None:
    runner.run(
        "ffmpeg",
        [
            *_ffmpeg_args(paths.input, stream.index, "-c:a", "eac3", "-b:a", bitrate),
            out,
        ],
        stage=f"{STAGE} (stream {stream.index})",
        error_cls=AudioError,
    )


def _prepare_truehd(
    runner: ToolRunner,
    paths: JobPaths,
    stream: AudioStream,
    number: int,
    config: AudioConfig,
) -> PreparedAudio:
    core_path = paths.audio_file(number, "ac3")
    logger.info(
        "  stream %d (truehd) -> %s (extract AC-3 core)", stream.index, core_path.name
    )
    try:
        runner.run(
            "ffmpeg",
            [
                *_ffmpeg_args(
                    paths.input, stream.index, "-c", "copy", "-bsf:a", "truehd_core"
                ),
                core_path,
            ],
            stage=f"{STAGE} (stream {stream.index} core)",
            error_cls=AudioError,
        )
        return PreparedAudio(
            stream.index, stream.codec, AudioAction.TRUEHD_CORE, core_path
        )
    except AudioError:
        remove_file(core_path)

    fallback_path = paths.audio_file(number, "eac3")
    logger.warning(
        "  stream %d: no AC-3 core; transcoding to E-AC-3 %s -> %s",
        stream.index,
        config.truehd_fallback_bitrate,
        fallback_path.name,
    )
    _transcode(runner, paths, stream, fallback_path, config.truehd_fallback_bitrate)
    return PreparedAudio(
        stream.index, stream.codec, AudioAction.TRUEHD_FALLBACK, fallback_path
    )


def prepare_audio_stream(
    runner: ToolRunner,
    paths: JobPaths,
    stream: AudioStream,
    number: int,
    config: AudioConfig,
) -> PreparedAudio | None:
    """Prepare one audio stream as the ``number``-th output track.

    Returns:
        The prepared file, or None when the codec is skipped.

    Raises:
        AudioError: If ffmpeg fails (other than the TrueHD core attempt).
    """
    codec = stream.codec

    extension = COPY_CODECS.get(codec)
    if extension is not None:
        out = paths.audio_file(number, extension)
        logger.info("  stream %d (%s) -> %s (copy)", stream.index, codec, out.name)
        _copy(runner, paths, stream, out)
        return PreparedAudio(stream.index, codec, AudioAction.COPY, out)

    if codec == TRUEHD_CODEC:
        return _prepare_truehd(runner, paths, stream, number, config)

    if codec in TRANSCODE_CODECS:
        out = paths.audio_file(number, "eac3")
        logger.info(
            "  stream %d (%s) -> %s (transcode to E-AC-3 %s)",
            stream.index,
            codec,
            out.name,
            config.eac3_bitrate,
        )
        _transcode(runner, paths, stream, out, config.eac3_bitrate)
        return PreparedAudio(stream.index, codec, AudioAction.TRANSCODE, out)

    logger.warning(
        "  Skipping stream %d (%s): not suitable for MP4",
        stream.index,
        codec or "unknown",
    )
    return None


def prepare_audio_tracks(
    runner: ToolRunner, paths: JobPaths, config: AudioConfig | None = None
) -> list[PreparedAudio]:
    """Enumerate and prepare every audio stream of the job input.

    Files are numbered from zero in source order; the number only advances
    when a file is produced.

    Args:
        runner: Tool runner for this job.
        paths: Job paths (input and workspace).
        config: Audio bitrates; defaults apply when omitted.

    Returns:
        Prepared tracks in mux order (possibly empty).

    Raises:
        AudioError: If probing fails or any track cannot be prepared.
    """
    config = config or AudioConfig()
    logger.info("Preparing audio tracks...")

    prepared: list[PreparedAudio] = []
    for stream in probe_audio_streams(runner, paths.input):
        track = prepare_audio_stream(runner, paths, stream, len(prepared), config)
        if track is not None:
            prepared.append(track)

    if not prepared:
        logger.info("  No MP4-friendly audio found; a video-only MP4 will be created")
    return prepared
