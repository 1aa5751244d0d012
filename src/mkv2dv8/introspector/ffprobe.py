"""FFprobe-based audio stream enumeration."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.errors import AudioError

logger = logging.getLogger(__name__)

STAGE = "enumerate audio streams"


@dataclass(frozen=True)
class AudioStream:
    """An audio stream in the source container.

    Attributes:
        index: Absolute stream index in the container (as used by ``-map 0:N``).
        codec: ffprobe codec name, lowercased ("" when unreported).
    """

    index: int
    codec: str


def parse_audio_streams(data: dict, path: Path) -> list[AudioStream]:
    """Parse ffprobe JSON into AudioStreams sorted by index.

    Raises:
        AudioError: If the output is missing the streams list.
    """
    streams = data.get("streams")
    if not isinstance(streams, list):
        raise AudioError(
            STAGE, "ffprobe", 0, f"Missing 'streams' in ffprobe output for {path}"
        )

    result: list[AudioStream] = []
    for stream in streams:
        try:
            index = int(stream["index"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring audio stream without an index: %r", stream)
            continue
        codec = str(stream.get("codec_name") or "").strip().casefold()
        result.append(AudioStream(index=index, codec=codec))
    return sorted(result, key=lambda s: s.index)


def probe_audio_streams(runner: ToolRunner, path: Path) -> list[AudioStream]:
    """List the audio streams of ``path``.

    Args:
        runner: Tool runner for this job.
        path: Source container.

    Returns:
        Audio streams in ascending index order (possibly empty).

    Raises:
        AudioError: If ffprobe fails or returns unparseable output.
    """
    stdout, _ = runner.run(
        "ffprobe",
        [
            "-v",
            "error",
            "-select_streams",
            "a",
            "-show_entries",
            "stream=index,codec_name",
            "-of",
            "json",
            path,
        ],
        stage=STAGE,
        error_cls=AudioError,
    )
    try:
        data = json.loads(stdout or "{}")
    except json.JSONDecodeError as e:
        raise AudioError(
            STAGE, "ffprobe", 0, f"Invalid ffprobe output for {path}: {e}"
        ) from e

    streams = parse_audio_streams(data, path)
    logger.debug(
        "Found %d audio stream(s): %s",
        len(streams),
        ", ".join(f"{s.index}:{s.codec or '?'}" for s in streams),
    )
    return streams
