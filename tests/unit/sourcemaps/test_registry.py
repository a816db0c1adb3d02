"""Tests for multicov.sourcemaps.registry."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Dict

from multicov.coverage.models import CoverageMap
from multicov.sourcemaps.registry import SourceMapRegistry

# Generated line 1 -> orig.py line 3
MAP_DATA = {"version": 3, "sources": ["orig.py"], "mappings": "AAEA"}


def _generated_code() -> str:
    payload = base64.b64encode(json.dumps(MAP_DATA).encode("utf-8")).decode("ascii")
    return f"x = 1\n# sourceMappingURL=data:application/json;base64,{payload}\n"


def _report(path: str, content_hash: str = "") -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "path": path,
        "statementMap": {"0": {"start": {"line": 1, "column": 0}, "end": {"line": 1, "column": 5}}},
        "fnMap": {},
        "branchMap": {},
        "s": {"0": 2},
        "f": {},
        "b": {},
    }
    if content_hash:
        record["contentHash"] = content_hash
    return {path: record}


class TestExtractAndRegister:
    """Tests for SourceMapRegistry.extract_and_register."""

    def test_registers_in_memory_without_cache(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        filename = str(tmp_path / "out.py")
        assert registry.extract_and_register(_generated_code(), filename, "abc") is not None
        assert filename in registry
        assert registry.get(filename) is not None

    def test_no_map_registers_nothing(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        assert registry.extract_and_register("x = 1\n", str(tmp_path / "out.py")) is None
        assert len(registry) == 0

    def test_writes_cache_file_with_hash(self, tmp_path: Path) -> None:
        cache_dir = tmp_path / "cache"
        registry = SourceMapRegistry(cache=True, cache_directory=cache_dir)
        filename = str(tmp_path / "out.py")
        registry.extract_and_register(_generated_code(), filename, "abc")

        assert (cache_dir / "out-abc.map").exists()
        assert filename not in registry

    def test_cache_without_hash_registers_in_memory(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry(cache=True, cache_directory=tmp_path / "cache")
        filename = str(tmp_path / "out.py")
        registry.extract_and_register(_generated_code(), filename)
        assert filename in registry


class TestReloadCachedSourceMaps:
    """Tests for SourceMapRegistry.reload_cached_source_maps."""

    def test_reloads_by_content_hash(self, tmp_path: Path) -> None:
        cache_dir = tmp_path / "cache"
        filename = str(tmp_path / "out.py")
        SourceMapRegistry(cache=True, cache_directory=cache_dir).extract_and_register(
            _generated_code(), filename, "abc"
        )

        reporter = SourceMapRegistry(cache=True, cache_directory=cache_dir)
        reporter.reload_cached_source_maps(_report(filename, "abc"))
        assert filename in reporter

    def test_missing_map_is_remembered(self, tmp_path: Path) -> None:
        cache_dir = tmp_path / "cache"
        filename = str(tmp_path / "out.py")
        registry = SourceMapRegistry(cache=True, cache_directory=cache_dir)
        registry.reload_cached_source_maps(_report(filename, "abc"))
        assert filename not in registry

        # Appears later, but the failed lookup for this hash is not retried.
        SourceMapRegistry(cache=True, cache_directory=cache_dir).extract_and_register(
            _generated_code(), filename, "abc"
        )
        registry.reload_cached_source_maps(_report(filename, "abc"))
        assert filename not in registry

    def test_entries_without_hash_are_skipped(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry(cache=True, cache_directory=tmp_path)
        registry.reload_cached_source_maps(_report(str(tmp_path / "out.py")))
        assert len(registry) == 0


class TestRemapCoverage:
    """Tests for SourceMapRegistry.remap_coverage."""

    def test_remaps_registered_files(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        filename = str(tmp_path / "out.py")
        registry.extract_and_register(_generated_code(), filename)

        remapped = registry.remap_coverage(_report(filename))
        original = str(tmp_path / "orig.py")
        assert remapped.remapped is True
        assert remapped.files() == [original]
        statement = remapped.file_coverage_for(original).data["statementMap"]["0"]
        assert statement["start"]["line"] == 3

    def test_files_without_map_pass_through(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        remapped = registry.remap_coverage(_report("/src/plain.py"))
        assert remapped.files() == ["/src/plain.py"]

    def test_remapping_twice_is_a_no_op(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        filename = str(tmp_path / "out.py")
        registry.extract_and_register(_generated_code(), filename)

        once = registry.remap_coverage(CoverageMap(_report(filename)))
        twice = registry.remap_coverage(once)
        assert twice is once
        assert twice.to_json() == once.to_json()

    def test_purge_cache_forgets_maps(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        filename = str(tmp_path / "out.py")
        registry.extract_and_register(_generated_code(), filename)
        registry.purge_cache()

        remapped = registry.remap_coverage(_report(filename))
        assert remapped.files() == [filename]

    def test_entries_marked_remapped_pass_through(self, tmp_path: Path) -> None:
        registry = SourceMapRegistry()
        filename = str(tmp_path / "out.py")
        registry.extract_and_register(_generated_code(), filename)
        report = _report(filename)
        report[filename]["remapped"] = True

        remapped = registry.remap_coverage(json.loads(json.dumps(report)))

        assert remapped.files() == [filename]
        statement = remapped.file_coverage_for(filename).data["statementMap"]["0"]
        assert statement["start"]["line"] == 1
