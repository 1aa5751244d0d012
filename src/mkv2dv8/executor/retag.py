"""Video sample entry normalization (hev1 -> hvc1)."""

import logging
from pathlib import Path

from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.errors import RetagError
from mkv2dv8.workspace import remove_file

logger = logging.getLogger(__name__)

STAGE = "retag video as hvc1"

TEMP_SUFFIX = ".tmp.mp4"


def retag_temp_path(output: Path) -> Path:
    """Sibling the retagged file is written to before replacing ``output``."""
    return output.with_name(output.name + TEMP_SUFFIX)


def retag_hvc1(runner: ToolRunner, output: Path) -> None:
    """Rewrite the video sample entry of ``output`` to ``hvc1`` in place.

    The stream is copied into a temporary sibling which atomically
    replaces ``output`` only on success.

    Raises:
        RetagError: If ffmpeg fails or the replace fails. ``output`` is left
            untouched and the temporary sibling is removed.
    """
    logger.info("Ensuring video tag is hvc1...")
    temp_path = retag_temp_path(output)
    try:
        runner.run(
            "ffmpeg",
            [
                "-nostdin",
                "-hide_banner",
                "-loglevel",
                "error",
                "-y",
                "-i",
                output,
                "-map",
                "0",
                "-c",
                "copy",
                "-tag:v",
                "hvc1",
                temp_path,
            ],
            stage=STAGE,
            error_cls=RetagError,
        )
    except RetagError:
        remove_file(temp_path)
        raise

    try:
        temp_path.replace(output)
    except OSError as e:
        remove_file(temp_path)
        raise RetagError(STAGE, "replace", -1, f"{temp_path} -> {output}: {e}") from e
