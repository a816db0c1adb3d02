"""Tests for multicov.process.writer."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Callable, Dict
from unittest.mock import patch

import pytest

from multicov.core.errors import PersistenceError
from multicov.coverage.accumulator import CoverageAccumulator
from multicov.process.info import ProcessInfo
from multicov.process.writer import CoverageWriter
from multicov.sourcemaps.registry import SourceMapRegistry


def _writer(
    tmp_path: Path,
    accumulator: CoverageAccumulator,
    cache: bool = True,
    hashes: Dict[str, str] = None,  # type: ignore[assignment]
    registry: SourceMapRegistry = None,  # type: ignore[assignment]
) -> CoverageWriter:
    return CoverageWriter(
        accumulator,
        ProcessInfo(directory=str(tmp_path / "out" / "processinfo")),
        tmp_path / "out",
        should_instrument=lambda path: not path.endswith("test_a.py"),
        source_maps=registry or SourceMapRegistry(),
        hashes=hashes or {},
        cache=cache,
    )


class TestCoverageWriter:
    """Tests for CoverageWriter.write_coverage_file."""

    def test_writes_snapshot_named_by_uuid(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        accumulator = CoverageAccumulator()
        accumulator.register("/src/a.py", coverage_factory("/src/a.py", statements=[(1, 2)]))
        writer = _writer(tmp_path, accumulator)

        path = writer.write_coverage_file()

        assert path == tmp_path / "out" / f"{writer.process_info.uuid}.json"
        assert json.loads(path.read_text())["/src/a.py"]["s"] == {"0": 2}

    def test_excluded_files_are_never_written(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        accumulator = CoverageAccumulator()
        accumulator.register("/src/a.py", coverage_factory("/src/a.py"))
        accumulator.register("/tests/test_a.py", coverage_factory("/tests/test_a.py"))

        path = _writer(tmp_path, accumulator).write_coverage_file()

        assert list(json.loads(path.read_text())) == ["/src/a.py"]
        assert "/tests/test_a.py" in accumulator

    def test_stamps_content_hash_when_caching(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        accumulator = CoverageAccumulator()
        accumulator.register("/src/a.py", coverage_factory("/src/a.py"))
        accumulator.register("/src/b.py", coverage_factory("/src/b.py"))

        path = _writer(tmp_path, accumulator, hashes={"/src/a.py": "abc"}).write_coverage_file()

        data = json.loads(path.read_text())
        assert data["/src/a.py"]["contentHash"] == "abc"
        assert "contentHash" not in data["/src/b.py"]

    def test_remaps_immediately_without_cache(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        generated = str(tmp_path / "gen.py")
        map_data = {"version": 3, "sources": ["orig.py"], "mappings": "AAEA"}
        payload = base64.b64encode(json.dumps(map_data).encode()).decode()
        registry = SourceMapRegistry()
        registry.extract_and_register(
            f"# sourceMappingURL=data:application/json;base64,{payload}\n", generated
        )
        accumulator = CoverageAccumulator()
        accumulator.register(generated, coverage_factory(generated, statements=[(1, 1)]))

        path = _writer(tmp_path, accumulator, cache=False, registry=registry).write_coverage_file()

        data = json.loads(path.read_text())
        assert list(data) == [str(tmp_path / "orig.py")]
        assert data[str(tmp_path / "orig.py")]["statementMap"]["0"]["start"]["line"] == 3
        assert data[str(tmp_path / "orig.py")]["remapped"] is True

    def test_cached_snapshot_is_not_marked_remapped(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        accumulator = CoverageAccumulator()
        accumulator.register("/src/a.py", coverage_factory("/src/a.py"))

        path = _writer(tmp_path, accumulator).write_coverage_file()

        assert "remapped" not in json.loads(path.read_text())["/src/a.py"]

    def test_saves_process_info(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        accumulator = CoverageAccumulator()
        accumulator.register("/src/a.py", coverage_factory("/src/a.py"))
        writer = _writer(tmp_path, accumulator)

        path = writer.write_coverage_file()

        record = json.loads(writer.process_info.path.read_text())
        assert record["coverage_filename"] == str(path)
        assert record["files"] == ["/src/a.py"]

    def test_write_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        writer = _writer(tmp_path, CoverageAccumulator())
        with patch("multicov.process.writer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                writer.write_coverage_file()

    def test_failed_write_leaves_no_files(self, tmp_path: Path) -> None:
        writer = _writer(tmp_path, CoverageAccumulator())
        with patch("multicov.process.writer.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError):
                writer.write_coverage_file()

        assert [p for p in (tmp_path / "out").iterdir() if p.is_file()] == []

    def test_rewrite_replaces_previous_snapshot(
        self, tmp_path: Path, coverage_factory: Callable[..., Dict[str, Any]]
    ) -> None:
        accumulator = CoverageAccumulator()
        accumulator.register("/src/a.py", coverage_factory("/src/a.py", statements=[(1, 1)]))
        writer = _writer(tmp_path, accumulator)
        writer.write_coverage_file()
        accumulator.register("/src/b.py", coverage_factory("/src/b.py"))

        path = writer.write_coverage_file()

        assert sorted(json.loads(path.read_text())) == ["/src/a.py", "/src/b.py"]
        assert sorted(p.name for p in (tmp_path / "out").glob("*.json")) == [path.name]
