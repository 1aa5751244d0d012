"""Tool version requirements and capability checks.

This module defines which external tools the conversion needs and provides
utilities to check whether the detected tools satisfy them.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from mkv2dv8.errors import DependencyMissing
from mkv2dv8.tools.models import TOOL_NAMES, FFmpegInfo, ToolRegistry

logger = logging.getLogger(__name__)


class RequirementLevel(Enum):
    """Severity level of a requirement."""

    REQUIRED = "required"  # Conversion cannot run without this
    RECOMMENDED = "recommended"  # Conversion runs but some tracks may fail
    OPTIONAL = "optional"  # Nice to have


@dataclass
class ToolRequirement:
    """A single tool requirement specification."""

    tool_name: str
    feature_name: str
    description: str
    level: RequirementLevel = RequirementLevel.REQUIRED
    capability_check: str | None = None  # Method name to call on capabilities
    install_hint: str | None = None  # How to install/upgrade


@dataclass
class RequirementCheckResult:
    """Result of checking a single requirement."""

    requirement: ToolRequirement
    satisfied: bool
    current_version: str | None = None
    message: str = ""


@dataclass
class RequirementsReport:
    """Full report of all requirement checks."""

    results: list[RequirementCheckResult] = field(default_factory=list)

    @property
    def all_satisfied(self) -> bool:
        """Check if all requirements are satisfied."""
        return all(r.satisfied for r in self.results)

    @property
    def required_satisfied(self) -> bool:
        """Check if all REQUIRED requirements are satisfied."""
        return all(
            r.satisfied
            for r in self.results
            if r.requirement.level == RequirementLevel.REQUIRED
        )

    def get_unsatisfied(
        self, level: RequirementLevel | None = None
    ) -> list[RequirementCheckResult]:
        """Get unsatisfied requirements, optionally filtered by level."""
        results = [r for r in self.results if not r.satisfied]
        if level:
            results = [r for r in results if r.requirement.level == level]
        return results


FFMPEG_HINT = "Install ffmpeg: https://ffmpeg.org/download.html"
DOVI_TOOL_HINT = "Install dovi_tool: https://github.com/quietvoid/dovi_tool/releases"
MP4BOX_HINT = "Install GPAC (MP4Box): https://gpac.io/downloads/"
MEDIAINFO_HINT = "Install MediaInfo CLI: https://mediaarea.net/en/MediaInfo/Download"

# Tools the pipeline invokes unconditionally
CORE_REQUIREMENTS = [
    ToolRequirement(
        tool_name="ffmpeg",
        feature_name="Base Layer Extraction",
        description="ffmpeg is required to demux video and prepare audio",
        install_hint=FFMPEG_HINT,
    ),
    ToolRequirement(
        tool_name="ffprobe",
        feature_name="Audio Enumeration",
        description="ffprobe is required to list audio streams",
        install_hint=FFMPEG_HINT,
    ),
    ToolRequirement(
        tool_name="dovi_tool",
        feature_name="RPU Conversion",
        description="dovi_tool is required to extract and inject RPU metadata",
        install_hint=DOVI_TOOL_HINT,
    ),
    ToolRequirement(
        tool_name="MP4Box",
        feature_name="Dolby Vision Muxing",
        description="MP4Box is required to write the DV profile 8 MP4",
        install_hint=MP4BOX_HINT,
    ),
]

# Features of the ffmpeg build the pipeline relies on
CAPABILITY_REQUIREMENTS = [
    ToolRequirement(
        tool_name="ffmpeg",
        feature_name="Annex B Conversion",
        description="ffmpeg must provide the hevc_mp4toannexb bitstream filter",
        level=RequirementLevel.RECOMMENDED,
        capability_check="can_convert_to_annexb",
        install_hint=FFMPEG_HINT,
    ),
    ToolRequirement(
        tool_name="ffmpeg",
        feature_name="E-AC-3 Encoding",
        description="ffmpeg must provide the eac3 encoder to convert DTS/FLAC",
        level=RequirementLevel.RECOMMENDED,
        capability_check="can_encode_eac3",
        install_hint=FFMPEG_HINT,
    ),
    ToolRequirement(
        tool_name="ffmpeg",
        feature_name="TrueHD Core Extraction",
        description="ffmpeg lacks truehd_core; TrueHD tracks will be re-encoded",
        level=RequirementLevel.OPTIONAL,
        capability_check="can_extract_truehd_core",
        install_hint=FFMPEG_HINT,
    ),
]

OPTIONAL_REQUIREMENTS = [
    ToolRequirement(
        tool_name="mediainfo",
        feature_name="Output Verification",
        description="mediainfo enables the post-conversion Dolby Vision check",
        level=RequirementLevel.OPTIONAL,
        install_hint=MEDIAINFO_HINT,
    ),
]

# All requirements combined
ALL_REQUIREMENTS = CORE_REQUIREMENTS + CAPABILITY_REQUIREMENTS + OPTIONAL_REQUIREMENTS


def check_requirement(
    registry: ToolRegistry, requirement: ToolRequirement
) -> RequirementCheckResult:
    """Check if a single requirement is satisfied.

    A tool that exists but could not report its version still satisfies its
    presence requirement. Its capabilities are unknown, so capability checks
    against it fail.

    Args:
        registry: Tool registry with detected tools.
        requirement: Requirement to check.

    Returns:
        RequirementCheckResult with status and message.
    """
    tool = registry.get_tool(requirement.tool_name)

    # Tool not found
    if tool is None or not tool.is_present():
        return RequirementCheckResult(
            requirement=requirement,
            satisfied=False,
            current_version=None,
            message=(
                f"{requirement.feature_name}: {requirement.tool_name} not found. "
                f"{requirement.install_hint or ''}"
            ).strip(),
        )

    if requirement.capability_check and isinstance(tool, FFmpegInfo):
        check_method = getattr(tool.capabilities, requirement.capability_check, None)
        if callable(check_method) and not check_method():
            return RequirementCheckResult(
                requirement=requirement,
                satisfied=False,
                current_version=tool.version,
                message=f"{requirement.feature_name}: {requirement.description}.",
            )

    return RequirementCheckResult(
        requirement=requirement,
        satisfied=True,
        current_version=tool.version,
        message="",
    )


def check_requirements(
    registry: ToolRegistry,
    requirements: list[ToolRequirement] | None = None,
) -> RequirementsReport:
    """Check all requirements against the tool registry.

    Args:
        registry: Tool registry with detected tools.
        requirements: List of requirements to check. Defaults to ALL_REQUIREMENTS.

    Returns:
        RequirementsReport with all check results.
    """
    if requirements is None:
        requirements = ALL_REQUIREMENTS

    results = [check_requirement(registry, req) for req in requirements]
    return RequirementsReport(results=results)


def get_missing_tool_hints(registry: ToolRegistry) -> dict[str, str]:
    """Get installation hints for missing tools.

    Args:
        registry: Tool registry with detected tools.

    Returns:
        Dict mapping tool name to installation hint.
    """
    hints = {}
    for tool_name in TOOL_NAMES:
        if not registry.is_present(tool_name):
            for req in ALL_REQUIREMENTS:
                if req.tool_name == tool_name and req.install_hint:
                    hints[tool_name] = req.install_hint
                    break
    return hints


def require_tools(registry: ToolRegistry) -> None:
    """Raise DependencyMissing listing every missing required tool.

    Only presence is checked here. A tool that cannot report its version is
    still used, with a warning. Capability shortfalls are reported by the
    doctor command and surface as stage failures at run time.

    Args:
        registry: Tool registry with detected tools.

    Raises:
        DependencyMissing: If any core tool is absent.
    """
    missing = []
    for req in CORE_REQUIREMENTS:
        tool = registry.get_tool(req.tool_name)
        if tool is None or not tool.is_present():
            missing.append(req.tool_name)
        elif not tool.is_available():
            logger.warning(
                "%s found at %s but its version could not be read: %s",
                req.tool_name,
                tool.path,
                tool.status_message,
            )
    if missing:
        hints = get_missing_tool_hints(registry)
        raise DependencyMissing(missing, {name: hints[name] for name in missing})
