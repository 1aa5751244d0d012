"""Conversion stages.

Each stage drives one external tool through a ToolRunner and raises the
matching StageError subclass on failure.
"""

from mkv2dv8.executor.audio import (
    AudioAction,
    PreparedAudio,
    prepare_audio_stream,
    prepare_audio_tracks,
)
from mkv2dv8.executor.mux import build_mux_args, mux_mp4
from mkv2dv8.executor.retag import retag_hvc1, retag_temp_path
from mkv2dv8.executor.verify import filter_dv_lines, verify_output
from mkv2dv8.executor.video import (
    extract_base_layer,
    extract_base_layer_piped,
    extract_rpu,
    inject_rpu,
)

__all__ = [
    "AudioAction",
    "PreparedAudio",
    "build_mux_args",
    "extract_base_layer",
    "extract_base_layer_piped",
    "extract_rpu",
    "filter_dv_lines",
    "inject_rpu",
    "mux_mp4",
    "prepare_audio_stream",
    "prepare_audio_tracks",
    "retag_hvc1",
    "retag_temp_path",
    "verify_output",
]
