"""Input resolution and per-job workspace management.

A conversion owns exactly one workspace: a uniquely named directory under
the temp root holding every intermediate stream. The workspace is a context
manager and is removed on every exit path unless it is explicitly retained.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from mkv2dv8.config.models import StorageConfig
from mkv2dv8.errors import InputError, StorageError

logger = logging.getLogger(__name__)

# Final output suffix
OUTPUT_SUFFIX = ".DV8.1.mp4"

# Probe file created and removed to prove a directory is writable
WRITE_TEST_NAME = ".write_test"


@dataclass(frozen=True)
class JobPaths:
    """Every path a single conversion reads or writes."""

    input: Path
    base_name: str
    job_dir: Path
    output_dir: Path
    log_file: Path

    @property
    def base_layer(self) -> Path:
        """Annex B base layer extracted from the source."""
        return self.job_dir / f"{self.base_name}.BL.hevc"

    @property
    def rpu(self) -> Path:
        """Converted RPU metadata."""
        return self.job_dir / f"{self.base_name}.RPU.bin"

    @property
    def injected(self) -> Path:
        """Base layer with the converted RPU injected."""
        return self.job_dir / f"{self.base_name}.BL_RPU.hevc"

    @property
    def output(self) -> Path:
        return self.output_dir / f"{self.base_name}{OUTPUT_SUFFIX}"

    def audio_file(self, number: int, extension: str) -> Path:
        """Path for the ``number``-th prepared audio track."""
        return self.job_dir / f"{self.base_name}.a{number}.{extension}"


def resolve_input(input_path: Path, base_name: str | None = None) -> tuple[Path, str]:
    """Validate the input file and derive the job base name.

    Runs before any directory is created so an unusable input leaves no
    trace on disk.

    Args:
        input_path: Source container.
        base_name: Explicit base name; defaults to the input's stem.

    Returns:
        Tuple of (absolute input path, base name).

    Raises:
        InputError: If the input is missing, not a file or unreadable.
    """
    path = Path(input_path).expanduser()
    if not path.exists():
        raise InputError(f"Cannot read input: {path} (no such file)")
    if not path.is_file():
        raise InputError(f"Cannot read input: {path} (not a regular file)")
    if not os.access(path, os.R_OK):
        raise InputError(f"Cannot read input: {path} (permission denied)")

    if base_name is not None:
        base_name = base_name.strip()
        if not base_name or "/" in base_name or base_name in (".", ".."):
            raise InputError(f"Invalid output basename: {base_name!r}")
    else:
        base_name = path.stem

    return path.resolve(), base_name


def _probe_writable(directory: Path) -> None:
    probe = directory / WRITE_TEST_NAME
    probe.touch()
    probe.unlink()


class Workspace:
    """Scoped job workspace.

    On enter, creates the output, temp and log directories under the storage
    root, allocates a uniquely named job directory and proves both the job
    and output directories are writable. On exit the job directory is
    removed unless ``keep_temp`` is set.

    Example:
        >>> with Workspace(Path("movie.mkv"), "movie", storage) as paths:
        ...     extract_base_layer(runner, paths.input, paths.base_layer)
    """

    def __init__(
        self,
        input_path: Path,
        base_name: str,
        storage: StorageConfig,
        keep_temp: bool = False,
        now: datetime | None = None,
    ) -> None:
        self.input_path = input_path
        self.base_name = base_name
        self.storage = storage
        self.keep_temp = keep_temp
        self._now = now
        self.paths: JobPaths | None = None

    def __enter__(self) -> JobPaths:
        root = self.storage.resolve_root()
        output_dir = root / self.storage.output_dir_name
        temp_root = root / self.storage.temp_dir_name
        log_dir = root / self.storage.log_dir_name

        try:
            for directory in (output_dir, temp_root, log_dir):
                directory.mkdir(parents=True, exist_ok=True)
            job_dir = Path(tempfile.mkdtemp(prefix=f"{self.base_name}.", dir=temp_root))
        except OSError as e:
            raise StorageError(
                f"Cannot create working directories under {root}: {e}. "
                "Is the volume mounted read-only?"
            ) from e

        try:
            _probe_writable(job_dir)
            _probe_writable(output_dir)
        except OSError as e:
            shutil.rmtree(job_dir, ignore_errors=True)
            raise StorageError(
                f"Cannot write to {job_dir} or {output_dir}: {e}. "
                "Is the volume writable (not mounted read-only)?"
            ) from e

        stamp = (self._now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        self.paths = JobPaths(
            input=self.input_path,
            base_name=self.base_name,
            job_dir=job_dir,
            output_dir=output_dir,
            log_file=log_dir / f"{self.base_name}_{stamp}.log",
        )
        logger.debug("Created job workspace: %s", job_dir)
        return self.paths

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.paths is None:
            return
        job_dir = self.paths.job_dir
        if self.keep_temp:
            logger.info("Keeping temp workspace: %s", job_dir)
            return
        try:
            shutil.rmtree(job_dir)
            logger.debug("Removed job workspace: %s", job_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove temp workspace %s: %s", job_dir, e)


def remove_file(path: Path) -> None:
    """Remove a partial or intermediate file, logging any errors."""
    if path.exists():
        try:
            path.unlink()
            logger.debug("Removed file: %s", path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
