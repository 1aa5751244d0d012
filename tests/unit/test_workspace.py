"""Tests for input resolution and job workspaces."""

import logging
from datetime import datetime
from pathlib import Path

import pytest

from mkv2dv8.config.models import StorageConfig
from mkv2dv8.errors import InputError, StorageError
from mkv2dv8.workspace import (
    WRITE_TEST_NAME,
    JobPaths,
    Workspace,
    remove_file,
    resolve_input,
)


class TestResolveInput:
    """Tests for resolve_input()."""

    def test_defaults_base_name_to_stem(self, input_mkv: Path) -> None:
        path, base = resolve_input(input_mkv)
        assert path == input_mkv.resolve()
        assert base == "Movie.2019"

    def test_explicit_base_name(self, input_mkv: Path) -> None:
        assert resolve_input(input_mkv, " Custom ")[1] == "Custom"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="no such file"):
            resolve_input(tmp_path / "absent.mkv")

    def test_directory_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="not a regular file"):
            resolve_input(tmp_path)

    def test_unreadable_file(
        self, input_mkv: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("mkv2dv8.workspace.os.access", lambda *a: False)
        with pytest.raises(InputError, match="permission denied"):
            resolve_input(input_mkv)

    @pytest.mark.parametrize("base_name", ["", "  ", ".", "..", "a/b"])
    def test_invalid_base_name(self, input_mkv: Path, base_name: str) -> None:
        with pytest.raises(InputError, match="Invalid output basename"):
            resolve_input(input_mkv, base_name)


class TestJobPaths:
    """Tests for JobPaths naming."""

    def test_intermediate_and_output_names(self, job_paths: JobPaths) -> None:
        assert job_paths.base_layer.name == "Movie.2019.BL.hevc"
        assert job_paths.rpu.name == "Movie.2019.RPU.bin"
        assert job_paths.injected.name == "Movie.2019.BL_RPU.hevc"
        assert job_paths.audio_file(1, "eac3").name == "Movie.2019.a1.eac3"
        assert job_paths.output == job_paths.output_dir / "Movie.2019.DV8.1.mp4"

    def test_intermediates_live_in_job_dir(self, job_paths: JobPaths) -> None:
        for path in (job_paths.base_layer, job_paths.rpu, job_paths.injected):
            assert path.parent == job_paths.job_dir


class TestWorkspace:
    """Tests for the Workspace context manager."""

    def test_creates_layout(self, input_mkv: Path, storage: StorageConfig) -> None:
        now = datetime(2024, 1, 2, 3, 4, 5)
        with Workspace(input_mkv, "Movie.2019", storage, now=now) as paths:
            root = storage.root
            assert paths.output_dir == root / "dv_out"
            assert paths.job_dir.parent == root / "dv_tmp"
            assert paths.job_dir.name.startswith("Movie.2019.")
            assert paths.job_dir.is_dir()
            assert paths.log_file == root / "dv_logs" / "Movie.2019_20240102_030405.log"
            assert not (paths.job_dir / WRITE_TEST_NAME).exists()
            assert not (paths.output_dir / WRITE_TEST_NAME).exists()

    def test_job_dirs_are_unique(self, input_mkv: Path, storage: StorageConfig) -> None:
        with Workspace(input_mkv, "Movie.2019", storage, keep_temp=True) as first:
            with Workspace(input_mkv, "Movie.2019", storage) as second:
                assert first.job_dir != second.job_dir

    def test_removed_on_success(self, input_mkv: Path, storage: StorageConfig) -> None:
        with Workspace(input_mkv, "Movie.2019", storage) as paths:
            paths.base_layer.write_bytes(b"bl")
        assert not paths.job_dir.exists()
        assert list((storage.root / "dv_tmp").iterdir()) == []

    def test_removed_on_error(self, input_mkv: Path, storage: StorageConfig) -> None:
        with pytest.raises(RuntimeError):
            with Workspace(input_mkv, "Movie.2019", storage) as paths:
                paths.rpu.write_bytes(b"rpu")
                raise RuntimeError("stage failed")
        assert not paths.job_dir.exists()

    def test_keep_temp_retains_job_dir(
        self,
        input_mkv: Path,
        storage: StorageConfig,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            with Workspace(input_mkv, "Movie.2019", storage, keep_temp=True) as paths:
                paths.rpu.write_bytes(b"rpu")
        assert paths.rpu.exists()
        assert "Keeping temp workspace" in caplog.text

    def test_uncreatable_root_raises_storage_error(
        self, input_mkv: Path, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(StorageError, match="Cannot create working directories"):
            with Workspace(input_mkv, "Movie.2019", StorageConfig(root=blocker)):
                pass

    def test_unwritable_output_dir_cleans_up(
        self,
        input_mkv: Path,
        storage: StorageConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failed write probe raises and leaves no job directory behind."""

        def _probe(directory: Path) -> None:
            if directory.name == "dv_out":
                raise PermissionError(13, "Read-only file system")

        monkeypatch.setattr("mkv2dv8.workspace._probe_writable", _probe)
        with pytest.raises(StorageError, match="Cannot write"):
            with Workspace(input_mkv, "Movie.2019", storage):
                pass
        assert list((storage.root / "dv_tmp").iterdir()) == []

    def test_default_root_is_cwd(
        self, input_mkv: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        with Workspace(input_mkv, "Movie.2019", StorageConfig()) as paths:
            assert paths.output_dir == tmp_path / "dv_out"


class TestRemoveFile:
    """Tests for remove_file()."""

    def test_removes_existing(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.mp4"
        path.write_bytes(b"x")
        remove_file(path)
        assert not path.exists()

    def test_missing_is_ignored(self, tmp_path: Path) -> None:
        remove_file(tmp_path / "absent.mp4")
