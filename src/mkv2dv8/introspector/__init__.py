"""Media introspection for the source container."""

from mkv2dv8.introspector.ffprobe import (
    AudioStream,
    parse_audio_streams,
    probe_audio_streams,
)

__all__ = [
    "AudioStream",
    "parse_audio_streams",
    "probe_audio_streams",
]
