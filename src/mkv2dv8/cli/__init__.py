"""CLI module for mkv2dv8."""

import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import NoReturn

import click

from mkv2dv8.config import ConfigSource, get_config
from mkv2dv8.errors import Mkv2Dv8Error
from mkv2dv8.exit_codes import ExitCode
from mkv2dv8.logging import configure_logging
from mkv2dv8.pipeline import ConversionRequest, ConversionResult, run_conversion

logger = logging.getLogger(__name__)


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


@contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    """Treat SIGTERM like Ctrl-C so running tools and the workspace unwind."""
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _fail(message: str, exit_code: int) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    raise SystemExit(int(exit_code))


def _display_result(result: ConversionResult) -> None:
    """Print the completion summary and the Dolby Vision check."""
    click.echo()
    click.echo("==> Done:")
    click.echo(f"    {result.output_path}")
    if result.audio_tracks:
        click.echo(f"    Audio tracks: {len(result.audio_tracks)}")
        for track in result.audio_tracks:
            click.echo(
                f"      - stream {track.source_index} ({track.codec}) "
                f"-> {track.path.suffix.lstrip('.')} [{track.action.value}]"
            )
    else:
        click.echo("    Audio tracks: none (video-only MP4)")
    if result.source_removed:
        click.echo(f"    Removed source: {result.input_path}")
    click.echo(f"    Log file: {result.log_file}")

    if result.dv_check is not None:
        click.echo()
        click.echo("==> Quick DV check:")
        for line in result.dv_check:
            click.echo(f"    {line}")
        if not result.dv_check:
            click.echo("    (no Dolby Vision lines reported)")

    if result.throttle.prefix:
        click.echo()
        click.echo("Tip: For fastest run, use --speed fast (or SPEED_MODE=fast).")


@click.command("mkv2dv8")
@click.version_option(package_name="mkv2dv8")
@click.argument("input_path", metavar="INPUT", type=click.Path(path_type=Path))
@click.argument("output_basename", required=False, default=None)
@click.option(
    "--speed",
    type=click.Choice(["fast", "balanced", "gentle"], case_sensitive=False),
    default=None,
    help="Throttling profile for external tools (default: balanced).",
)
@click.option(
    "--keep-temp/--no-keep-temp",
    default=None,
    help="Keep the job workspace after the run.",
)
@click.option(
    "--remove-source/--keep-source",
    default=None,
    help="Delete the input MKV after a successful conversion.",
)
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Storage root for dv_out, dv_tmp and dv_logs (default: cwd).",
)
@click.option(
    "--video-mode",
    type=click.Choice(["disk", "pipe"], case_sensitive=False),
    default=None,
    help="Hand the base layer to dovi_tool via disk (default) or a pipe.",
)
@click.option(
    "--verify/--no-verify",
    default=None,
    help="Run the mediainfo Dolby Vision check on the output.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.mkv2dv8/config.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
def main(
    input_path: Path,
    output_basename: str | None,
    speed: str | None,
    keep_temp: bool | None,
    remove_source: bool | None,
    root: Path | None,
    video_mode: str | None,
    verify: bool | None,
    config_path: Path | None,
    log_level: str | None,
    log_json: bool,
) -> None:
    """Remux a Dolby Vision profile 7 MKV into a profile 8.1 MP4.

    INPUT is the source MKV. OUTPUT_BASENAME names the result
    (default: the input's file name without extension); the MP4 is written
    to <root>/dv_out/<OUTPUT_BASENAME>.DV8.1.mp4.

    \b
    Environment:
      SPEED_MODE      fast | balanced | gentle
      KEEP_TEMP       yes to keep the job workspace
      REMOVE_SOURCE   yes to delete the input after success
      MKV2DV8_ROOT    storage root
    """
    cli_source = ConfigSource(
        storage_root=root,
        speed_mode=speed,
        keep_temp=keep_temp,
        remove_source=remove_source,
        video_mode=video_mode,
        verify_output=verify,
        logging_level=log_level,
        logging_format="json" if log_json else None,
    )

    try:
        config = get_config(config_path=config_path, cli_source=cli_source)
    except Mkv2Dv8Error as e:
        _fail(str(e), e.exit_code)

    configure_logging(config.logging)
    request = ConversionRequest(input_path=input_path, base_name=output_basename)

    try:
        with _sigterm_as_interrupt():
            result = run_conversion(request, config)
    except KeyboardInterrupt:
        logger.warning("Interrupted; cleaning up")
        _fail("Interrupted.", ExitCode.INTERRUPTED)
    except Mkv2Dv8Error as e:
        _fail(str(e), e.exit_code)

    _display_result(result)
