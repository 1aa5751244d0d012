"""Shared test fixtures for mkv2dv8."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mkv2dv8.config.models import SpeedMode, StorageConfig
from mkv2dv8.core.runner import ToolRunner
from mkv2dv8.logging.context import JobContextFilter
from mkv2dv8.throttle import ThrottleProfile
from mkv2dv8.tools.models import (
    DoviToolInfo,
    FFmpegCapabilities,
    FFmpegInfo,
    FFprobeInfo,
    MediaInfoInfo,
    MP4BoxInfo,
    ToolRegistry,
    ToolStatus,
)
from mkv2dv8.workspace import JobPaths

# Tools whose last argument is the file they write
_WRITING_TOOLS = {"ffmpeg", "dovi_tool", "MP4Box"}
_KNOWN_TOOLS = _WRITING_TOOLS | {"ffprobe", "mediainfo"}

_ENV_VARS = (
    "SPEED_MODE",
    "KEEP_TEMP",
    "REMOVE_SOURCE",
    "MKV2DV8_ROOT",
    "MKV2DV8_VIDEO_MODE",
    "MKV2DV8_FFMPEG_PATH",
    "MKV2DV8_FFPROBE_PATH",
    "MKV2DV8_DOVI_TOOL_PATH",
    "MKV2DV8_MP4BOX_PATH",
    "MKV2DV8_MEDIAINFO_PATH",
    "MKV2DV8_LOG_LEVEL",
    "MKV2DV8_LOG_FILE",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's environment and config file out of every test."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("MKV2DV8_CONFIG_PATH", str(tmp_path / "no-config.toml"))


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo configure_logging() side effects between tests."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if any(isinstance(f, JobContextFilter) for f in handler.filters):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def tool_of(args: list[str]) -> str | None:
    """Return the known tool name in an argv, skipping any throttle prefix."""
    for arg in args:
        name = Path(arg).name
        if name in _KNOWN_TOOLS:
            return name
    return None


@dataclass
class _Rule:
    predicate: Callable[[list[str]], bool]
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0


@dataclass
class CommandRecorder:
    """Stands in for run_command: records argv and fakes tool behavior.

    Successful writing tools create their output file (the last argument)
    so later stages and filesystem checks see it. Rules added later win.
    """

    calls: list[list[str]] = field(default_factory=list)
    rules: list[_Rule] = field(default_factory=list)

    def on(
        self,
        predicate: Callable[[list[str]], bool],
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> "CommandRecorder":
        self.rules.append(_Rule(predicate, stdout, stderr, returncode))
        return self

    def on_tool(self, tool: str, **kwargs) -> "CommandRecorder":
        return self.on(lambda args: tool_of(args) == tool, **kwargs)

    def audio_streams(self, *streams: tuple[int, str]) -> "CommandRecorder":
        payload = json.dumps(
            {"streams": [{"index": i, "codec_name": c} for i, c in streams]}
        )
        return self.on_tool("ffprobe", stdout=payload)

    def calls_for(self, tool: str) -> list[list[str]]:
        return [args for args in self.calls if tool_of(args) == tool]

    def tools(self) -> list[str | None]:
        """Tool names of the recorded calls, in order."""
        return [tool_of(args) for args in self.calls]

    def __call__(self, args, **kwargs) -> tuple[str, str, int]:
        argv = [str(a) for a in args]
        self.calls.append(argv)
        rule = next((r for r in reversed(self.rules) if r.predicate(argv)), None)
        if rule is None:
            rule = _Rule(lambda _: True)
            if tool_of(argv) == "ffprobe":
                rule.stdout = json.dumps({"streams": []})
        if rule.returncode == 0 and tool_of(argv) in _WRITING_TOOLS:
            target = Path(argv[-1])
            if target.parent.is_dir():
                target.write_bytes(b"data")
        return rule.stdout, rule.stderr, rule.returncode


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> CommandRecorder:
    """Patch every run_command call site with a CommandRecorder."""
    rec = CommandRecorder()
    monkeypatch.setattr("mkv2dv8.core.runner.run_command", rec)
    monkeypatch.setattr("mkv2dv8.executor.verify.run_command", rec)
    return rec


def _available(info, path: str, version: str):
    info.path = Path(path)
    info.version = version
    info.version_tuple = tuple(int(p) for p in version.split("."))
    info.status = ToolStatus.AVAILABLE
    return info


@pytest.fixture
def registry() -> ToolRegistry:
    """Registry with every tool available at fake /opt paths."""
    ffmpeg = _available(FFmpegInfo(), "/opt/bin/ffmpeg", "6.1.1")
    ffmpeg.capabilities = FFmpegCapabilities(
        encoders={"eac3", "ac3", "aac"},
        bitstream_filters={"hevc_mp4toannexb", "truehd_core"},
    )
    return ToolRegistry(
        ffmpeg=ffmpeg,
        ffprobe=_available(FFprobeInfo(), "/opt/bin/ffprobe", "6.1.1"),
        dovi_tool=_available(DoviToolInfo(), "/opt/bin/dovi_tool", "2.1.2"),
        mp4box=_available(MP4BoxInfo(), "/opt/bin/MP4Box", "2.2.1"),
        mediainfo=_available(MediaInfoInfo(), "/opt/bin/mediainfo", "23.4"),
    )


@pytest.fixture
def runner(registry: ToolRegistry) -> ToolRunner:
    """Unthrottled runner over the fake registry."""
    return ToolRunner.from_registry(registry, ThrottleProfile(mode=SpeedMode.FAST))


@pytest.fixture
def input_mkv(tmp_path: Path) -> Path:
    """A readable stand-in for a profile 7 MKV."""
    path = tmp_path / "media" / "Movie.2019.mkv"
    path.parent.mkdir()
    path.write_bytes(b"\x1a\x45\xdf\xa3")
    return path


@pytest.fixture
def storage(tmp_path: Path) -> StorageConfig:
    """Storage rooted in a per-test volume directory."""
    return StorageConfig(root=tmp_path / "volume")


@pytest.fixture
def job_paths(tmp_path: Path, input_mkv: Path) -> JobPaths:
    """JobPaths with existing job and output directories."""
    job_dir = tmp_path / "volume" / "dv_tmp" / "Movie.2019.abcd"
    output_dir = tmp_path / "volume" / "dv_out"
    log_dir = tmp_path / "volume" / "dv_logs"
    for directory in (job_dir, output_dir, log_dir):
        directory.mkdir(parents=True)
    return JobPaths(
        input=input_mkv,
        base_name="Movie.2019",
        job_dir=job_dir,
        output_dir=output_dir,
        log_file=log_dir / "Movie.2019_20240101_120000.log",
    )
