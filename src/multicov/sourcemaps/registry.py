"""Source-map registry.

Holds the source map of every instrumented file that has one and remaps
coverage through them. With a persistent cache, maps are written next to
the cached instrumented output (``<stem>-<hash>.map``) instead of being
held in memory, and a later reporting process reloads them from the
``contentHash`` stamped into each coverage entry.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from multicov.core.logging import get_logger
from multicov.coverage.models import CoverageMap
from multicov.sourcemaps.mapping import SourceMap, SourceMapError, extract_source_map
from multicov.sourcemaps.transformer import remap_file_coverage

LOGGER = get_logger(__name__)


class SourceMapRegistry:
    """Registry of source maps keyed by generated filename."""

    def __init__(self, cache: bool = False, cache_directory: Optional[Union[str, Path]] = None):
        """Initialize SourceMapRegistry.

        Args:
            cache: Persist maps to ``cache_directory`` keyed by content hash.
            cache_directory: Directory shared with the transform cache.
        """
        self.cache = cache and cache_directory is not None
        self.cache_directory = Path(cache_directory) if cache_directory else None
        self._maps: Dict[str, SourceMap] = {}
        # hash -> parsed map, or False once loading failed
        self._loaded: Dict[str, Union[SourceMap, bool]] = {}

    def cached_path(self, source: Union[str, Path], content_hash: str) -> Path:
        """Location of the persisted map for ``source`` at ``content_hash``."""
        if self.cache_directory is None:
            raise ValueError("No cache directory configured")
        return self.cache_directory / f"{Path(source).stem}-{content_hash}.map"

    def register(self, filename: str, source_map: SourceMap) -> None:
        self._maps[filename] = source_map

    def get(self, filename: str) -> Optional[SourceMap]:
        return self._maps.get(filename)

    def __contains__(self, filename: object) -> bool:
        return filename in self._maps

    def __len__(self) -> int:
        return len(self._maps)

    def purge_cache(self) -> None:
        """Forget every registered and loaded map."""
        self._maps = {}
        self._loaded = {}

    def extract_and_register(
        self, code: str, filename: str, content_hash: Optional[str] = None
    ) -> Optional[SourceMap]:
        """Find the source map referenced by ``code`` and keep it.

        Never raises for malformed maps; they are treated as absent.

        Args:
            code: Generated source.
            filename: Absolute path of the generated file.
            content_hash: Cache key of this version of the file.

        Returns:
            The parsed map, or None.
        """
        source_map = extract_source_map(code, filename)
        if source_map is None:
            return None

        if self.cache and content_hash:
            self._write_cached(filename, content_hash, source_map)
        else:
            self.register(filename, source_map)
        return source_map

    def _write_cached(self, filename: str, content_hash: str, source_map: SourceMap) -> None:
        path = self.cached_path(filename, content_hash)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".map-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(source_map.to_json())
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        LOGGER.debug(f"Cached source map for {filename} at {path}")

    def reload_cached_source_maps(self, report: Mapping[str, Any]) -> None:
        """Register the persisted maps referenced by a coverage report.

        Each distinct content hash is loaded at most once; a missing or
        invalid map is remembered so it is not retried.

        Args:
            report: Raw coverage report (path -> coverage record).
        """
        if self.cache_directory is None:
            return
        for abs_file, file_report in report.items():
            if not isinstance(file_report, Mapping):
                continue
            content_hash = file_report.get("contentHash")
            if not content_hash:
                continue
            if content_hash not in self._loaded:
                path = self.cached_path(abs_file, content_hash)
                try:
                    self._loaded[content_hash] = SourceMap.from_json(path.read_text(encoding="utf-8"))
                except (OSError, SourceMapError, UnicodeDecodeError):
                    self._loaded[content_hash] = False
            loaded = self._loaded[content_hash]
            if isinstance(loaded, SourceMap):
                self.register(abs_file, loaded)

    def remap_coverage(self, coverage: Union[CoverageMap, Mapping[str, Any]]) -> CoverageMap:
        """Translate coverage to original source coordinates.

        Files without a registered map pass through unchanged, and so do
        entries marked ``remapped`` (a snapshot written without the cache
        was translated by the process that wrote it). The result is marked
        as remapped; a map that is already remapped is returned as is, so
        coordinates are never translated twice.

        Args:
            coverage: Coverage map or raw report.

        Returns:
            A new, remapped CoverageMap (or the input if already remapped).
        """
        source = coverage if isinstance(coverage, CoverageMap) else CoverageMap(coverage)
        if source.remapped:
            LOGGER.debug("Coverage already remapped, skipping")
            return source

        result = CoverageMap(remapped=True)
        for path in source.files():
            fc = source.data[path]
            source_map = None if fc.remapped else self._maps.get(path)
            if source_map is None:
                result.add_file_coverage(fc)
                continue
            for mapped in remap_file_coverage(fc, source_map).values():
                result.add_file_coverage(mapped)
        return result
