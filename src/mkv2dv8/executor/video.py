"""Video stages: base-layer extraction and RPU conversion.

The base layer is demuxed to an Annex B elementary stream, its RPU is
extracted with mapping mode 2 (profile 7 to 8.1) and injected back, giving
a single-layer stream MP4Box can carry as DV profile 8.
"""

import logging
import subprocess  # nosec B404 - subprocess is required for the piped video mode
import threading
from pathlib import Path
from typing import IO

from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.core.subprocess_utils import format_command
from mkv2dv8.errors import ExtractionError, MetadataError

logger = logging.getLogger(__name__)

# Bytes copied per read in piped mode
PIPE_CHUNK_SIZE = 1024 * 1024

# dovi_tool conversion mode: profile 7 (MEL/FEL) to profile 8.1
DOVI_MODE = "2"

EXTRACT_STAGE = "extract base layer"
EXTRACT_RPU_STAGE = "extract RPU"
INJECT_RPU_STAGE = "inject RPU"


def _base_layer_args(input_path: Path) -> list[str | Path]:
    return [
        "-nostdin",
        "-hide_banner",
        "-analyzeduration",
        "200M",
        "-probesize",
        "1G",
        "-i",
        input_path,
        "-map",
        "0:v:0",
        "-c",
        "copy",
        "-bsf:v",
        "hevc_mp4toannexb",
        "-f",
        "hevc",
    ]


def extract_base_layer(runner: ToolRunner, input_path: Path, base_layer: Path) -> None:
    """Demux the first video stream of ``input_path`` to Annex B.

    Raises:
        ExtractionError: If ffmpeg exits non-zero.
    """
    logger.info("Extracting base layer (Annex B)...")
    runner.run(
        "ffmpeg",
        [*_base_layer_args(input_path), base_layer],
        stage=EXTRACT_STAGE,
        error_cls=ExtractionError,
    )


def extract_rpu(runner: ToolRunner, base_layer: Path, rpu: Path) -> None:
    """Extract and convert the RPU from the base layer (mapping mode 2).

    Raises:
        MetadataError: If dovi_tool exits non-zero.
    """
    logger.info("Extracting RPU (mapping mode %s)...", DOVI_MODE)
    runner.run(
        "dovi_tool",
        ["-m", DOVI_MODE, "extract-rpu", "-i", base_layer, "-o", rpu],
        stage=EXTRACT_RPU_STAGE,
        error_cls=MetadataError,
    )


def inject_rpu(runner: ToolRunner, base_layer: Path, rpu: Path, output: Path) -> None:
    """Inject the converted RPU into the base layer.

    Raises:
        MetadataError: If dovi_tool exits non-zero.
    """
    logger.info("Injecting RPU into base layer (profile 8.1)...")
    runner.run(
        "dovi_tool",
        [
            "-m",
            DOVI_MODE,
            "inject-rpu",
            "-i",
            base_layer,
            "--rpu-in",
            rpu,
            "-o",
            output,
        ],
        stage=INJECT_RPU_STAGE,
        error_cls=MetadataError,
    )


# =============================================================================
# Piped mode
# =============================================================================


class _StderrCollector:
    """Drains a child's stderr on a thread so it can never fill the pipe."""

    def __init__(self, stream: IO[bytes] | None) -> None:
        self._stream = stream
        self._chunks: list[bytes] = []
        self._thread = threading.Thread(target=self._read, daemon=True)
        self._thread.start()

    def _read(self) -> None:
        if self._stream is None:
            return
        try:
            for chunk in iter(lambda: self._stream.read(8192), b""):
                self._chunks.append(chunk)
        except (ValueError, OSError) as e:
            # Pipe closed or process terminated
            logger.debug("Stderr reader stopped: %s", e)

    def text(self, timeout: float = 5.0) -> str:
        self._thread.join(timeout=timeout)
        return b"".join(self._chunks).decode("utf-8", errors="replace")


class _Tee:
    """Copies the producer's stdout to the base-layer file and the consumer."""

    def __init__(self, source: IO[bytes], sink: IO[bytes], consumer: IO[bytes]) -> None:
        self._source = source
        self._sink = sink
        self._consumer: IO[bytes] | None = consumer
        self.error: OSError | ValueError | None = None
        self.bytes_copied = 0
        self._thread = threading.Thread(target=self._pump, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def join(self) -> None:
        self._thread.join()

    def _close_consumer(self) -> None:
        if self._consumer is None:
            return
        try:
            self._consumer.close()
        except OSError:
            # Consumer already gone; its exit status reports the failure
            pass
        self._consumer = None

    def _pump(self) -> None:
        try:
            for chunk in iter(lambda: self._source.read(PIPE_CHUNK_SIZE), b""):
                self._sink.write(chunk)
                self.bytes_copied += len(chunk)
                if self._consumer is not None:
                    try:
                        self._consumer.write(chunk)
                    except (BrokenPipeError, ValueError):
                        # Keep draining the producer so it is never blocked
                        logger.debug("RPU extractor closed its input early")
                        self._consumer = None
        except (OSError, ValueError) as e:
            self.error = e
            # Unblock the producer; it exits on the broken pipe
            self._source.close()
        finally:
            self._close_consumer()


def _kill(process: subprocess.Popen) -> None:
    if process.poll() is None:
        process.kill()
    process.wait()


def extract_base_layer_piped(
    runner: ToolRunner, input_path: Path, base_layer: Path, rpu: Path
) -> None:
    """Extract the base layer and its RPU in one pass.

    ffmpeg writes Annex B to stdout; a pump thread copies it to
    ``base_layer`` and to dovi_tool's stdin. All three are joined before
    returning, and a transcoder failure takes precedence over an extractor
    failure.

    Raises:
        ExtractionError: If ffmpeg fails or the base layer cannot be written.
        MetadataError: If dovi_tool fails.
    """
    logger.info("Extracting base layer and RPU (piped)...")
    producer_cmd = runner.command("ffmpeg", [*_base_layer_args(input_path), "-"])
    consumer_cmd = runner.command(
        "dovi_tool", ["-m", DOVI_MODE, "extract-rpu", "-", "-o", rpu]
    )
    logger.debug("Executing command: %s", format_command(producer_cmd))
    logger.debug("Executing command: %s", format_command(consumer_cmd))

    try:
        producer = subprocess.Popen(  # nosec B603 - argv built from tool paths
            producer_cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise ExtractionError(EXTRACT_STAGE, "ffmpeg", -1, str(e)) from e

    try:
        consumer = subprocess.Popen(  # nosec B603 - argv built from tool paths
            consumer_cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        _kill(producer)
        raise MetadataError(EXTRACT_RPU_STAGE, "dovi_tool", -1, str(e)) from e

    try:
        producer_stderr = _StderrCollector(producer.stderr)
        consumer_stderr = _StderrCollector(consumer.stderr)
        assert producer.stdout is not None
        assert consumer.stdin is not None
        try:
            sink = open(base_layer, "wb")
        except OSError as e:
            raise ExtractionError(EXTRACT_STAGE, "ffmpeg", -1, str(e)) from e
        with sink:
            tee = _Tee(producer.stdout, sink, consumer.stdin)
            tee.start()
            tee.join()
        producer_rc = producer.wait()
        consumer_rc = consumer.wait()
    except BaseException:
        _kill(producer)
        _kill(consumer)
        raise

    logger.debug(
        "Piped extraction finished: ffmpeg=%d dovi_tool=%d (%d bytes)",
        producer_rc,
        consumer_rc,
        tee.bytes_copied,
    )

    if producer_rc != 0:
        detail = producer_stderr.text().strip()
        if detail:
            logger.error("%s: ffmpeg stderr:\n%s", EXTRACT_STAGE, detail)
        raise ExtractionError(EXTRACT_STAGE, "ffmpeg", producer_rc, detail)
    if tee.error is not None:
        raise ExtractionError(
            EXTRACT_STAGE, "ffmpeg", 0, f"writing {base_layer}: {tee.error}"
        )
    if consumer_rc != 0:
        detail = consumer_stderr.text().strip()
        if detail:
            logger.error("%s: dovi_tool stderr:\n%s", EXTRACT_RPU_STAGE, detail)
        raise MetadataError(EXTRACT_RPU_STAGE, "dovi_tool", consumer_rc, detail)
