"""mkv2dv8-doctor command for checking external tool health.

This module provides the 'mkv2dv8-doctor' command to check external tool
availability, versions and the ffmpeg features the conversion relies on.
"""

import json
import shutil
import sys

import click

from mkv2dv8.config import SpeedMode, get_config
from mkv2dv8.errors import ConfigError
from mkv2dv8.exit_codes import ExitCode
from mkv2dv8.throttle import select_throttle_profile
from mkv2dv8.tools import (
    RequirementLevel,
    ToolInfo,
    ToolRegistry,
    check_requirements,
    detect_all_tools,
    get_missing_tool_hints,
)

# Priority utilities reported alongside the media tools
THROTTLE_UTILITIES = ("taskpolicy", "nice")


def _format_status(available: bool) -> str:
    """Format status for display."""
    return "✓" if available else "✗"


def _format_version(version: str | None) -> str:
    """Format version for display."""
    return version if version else "not found"


def _echo_tool(tool: ToolInfo, verbose: bool, hints: dict[str, str]) -> None:
    status = _format_status(tool.is_available())
    version = _format_version(tool.version)
    if tool.is_present() and not tool.version:
        version = "found, version unknown"
    path_info = f" ({tool.path})" if tool.path and verbose else ""
    click.echo(f"  {status} {tool.name + ':':<11} {version}{path_info}")
    if not tool.is_available():
        hint = hints.get(tool.name)
        if hint:
            click.echo(f"    └─ {hint}")
        if verbose and tool.status_message:
            click.echo(f"    └─ {tool.status_message}")


def _throttle_summary() -> dict[str, str]:
    return {
        mode.value: " ".join(select_throttle_profile(mode, shutil.which).prefix)
        or "(none)"
        for mode in SpeedMode
    }


def _output_json(registry: ToolRegistry) -> None:
    """Output tool registry and requirement report as JSON."""
    report = check_requirements(registry)
    data = {
        "tools": registry.summary(),
        "throttle_utilities": {
            name: shutil.which(name) for name in THROTTLE_UTILITIES
        },
        "speed_modes": _throttle_summary(),
        "ffmpeg_features": {
            "hevc_mp4toannexb": registry.ffmpeg.capabilities.can_convert_to_annexb(),
            "truehd_core": registry.ffmpeg.capabilities.can_extract_truehd_core(),
            "eac3_encoder": registry.ffmpeg.capabilities.can_encode_eac3(),
        },
        "issues": [
            {"level": r.requirement.level.value, "message": r.message}
            for r in report.get_unsatisfied()
        ],
        "ready": report.required_satisfied,
    }
    click.echo(json.dumps(data, indent=2))


@click.command("mkv2dv8-doctor")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show tool paths and detailed capability information",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output results as JSON",
)
def doctor_command(verbose: bool, json_output: bool) -> None:
    """Check external tool availability and capabilities.

    Verifies that the required tools (ffmpeg, ffprobe, dovi_tool, MP4Box)
    are installed, reports optional ones (mediainfo, taskpolicy, nice) and
    shows the throttle prefix each speed mode resolves to.

    Exit codes:
      0  - All required tools available
      30 - Required tools missing
    """
    try:
        config = get_config()
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)

    registry = detect_all_tools(config.tools)
    report = check_requirements(registry)
    ready = report.required_satisfied

    if json_output:
        _output_json(registry)
        sys.exit(ExitCode.SUCCESS if ready else ExitCode.TOOL_NOT_AVAILABLE)

    hints = get_missing_tool_hints(registry)

    click.echo("mkv2dv8 External Tool Health Check")
    click.echo("=" * 40)
    click.echo()

    click.echo("Required Tools:")
    click.echo("-" * 20)
    for name in ("ffmpeg", "ffprobe", "dovi_tool", "MP4Box"):
        tool = registry.get_tool(name)
        assert tool is not None
        _echo_tool(tool, verbose, hints)

    if verbose and registry.ffmpeg.is_available():
        caps = registry.ffmpeg.capabilities
        click.echo("    ffmpeg features:")
        annexb = _yes_no(caps.can_convert_to_annexb())
        click.echo(f"    ├─ hevc_mp4toannexb: {annexb}")
        click.echo(f"    ├─ truehd_core: {_yes_no(caps.can_extract_truehd_core())}")
        click.echo(f"    └─ eac3 encoder: {_yes_no(caps.can_encode_eac3())}")
    click.echo()

    click.echo("Optional Tools:")
    click.echo("-" * 20)
    _echo_tool(registry.mediainfo, verbose, hints)
    for name in THROTTLE_UTILITIES:
        found = shutil.which(name)
        path_info = f" ({found})" if found and verbose else ""
        label = "found" if found else "not found"
        status = _format_status(bool(found))
        click.echo(f"  {status} {name + ':':<11} {label}{path_info}")
    click.echo()

    click.echo("Speed Modes:")
    click.echo("-" * 20)
    for mode, prefix in _throttle_summary().items():
        click.echo(f"  {mode:<9} {prefix}")
    click.echo()

    critical = report.get_unsatisfied(RequirementLevel.REQUIRED)
    if critical:
        click.echo("Critical Issues:")
        click.echo("-" * 20)
        for result in critical:
            click.echo(f"  ✗ {result.message}")
        click.echo()

    notes = report.get_unsatisfied(
        RequirementLevel.RECOMMENDED
    ) + report.get_unsatisfied(RequirementLevel.OPTIONAL)
    if notes:
        click.echo("Notes:")
        click.echo("-" * 20)
        for result in notes:
            click.echo(f"  → {result.message}")
        click.echo()

    if not ready:
        click.echo("⚠ Required tools are missing. Conversions will not run.")
        sys.exit(ExitCode.TOOL_NOT_AVAILABLE)

    click.echo("✓ All required tools available and ready.")
    sys.exit(ExitCode.SUCCESS)


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"
