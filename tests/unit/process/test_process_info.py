"""Tests for multicov.process.info."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from multicov.core.errors import PersistenceError
from multicov.process.info import PROCESS_ID_ENV, ROOT_ID_ENV, ProcessInfo


class TestProcessInfo:
    """Tests for ProcessInfo."""

    def test_root_process_is_its_own_root(self) -> None:
        info = ProcessInfo.from_environment(environ={})
        assert info.parent is None
        assert info.root == info.uuid
        assert info.pid == os.getpid()

    def test_child_reads_parent_and_root(self) -> None:
        info = ProcessInfo.from_environment(environ={PROCESS_ID_ENV: "parent", ROOT_ID_ENV: "root"})
        assert info.parent == "parent"
        assert info.root == "root"

    def test_uuids_are_unique(self) -> None:
        assert ProcessInfo().uuid != ProcessInfo().uuid

    def test_child_environment(self) -> None:
        info = ProcessInfo(root="root")
        assert info.child_environment() == {PROCESS_ID_ENV: info.uuid, ROOT_ID_ENV: "root"}

    def test_from_os_environ(self) -> None:
        with patch.dict(os.environ, {PROCESS_ID_ENV: "p"}):
            assert ProcessInfo.from_environment().parent == "p"

    def test_save_writes_record(self, tmp_path: Path) -> None:
        info = ProcessInfo(directory=str(tmp_path / "processinfo"))
        info.coverage_filename = "/tmp/x.json"
        info.files = ["/src/a.py"]
        path = info.save()

        assert path == tmp_path / "processinfo" / f"{info.uuid}.json"
        data = json.loads(path.read_text())
        assert data["uuid"] == info.uuid
        assert data["files"] == ["/src/a.py"]
        assert "directory" not in data

    def test_save_without_directory_raises(self) -> None:
        with pytest.raises(PersistenceError):
            ProcessInfo().save()

    def test_save_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        info = ProcessInfo(directory=str(blocker / "processinfo"))
        with pytest.raises(PersistenceError):
            info.save()
