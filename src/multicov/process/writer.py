"""Per-process coverage persistence.

At exit each process writes exactly one snapshot, ``<temp>/<uuid>.json``,
followed by its process record. Nothing is locked: the file name is unique
to the process, and the snapshot appears through an atomic rename so a
reader never sees a partial file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from multicov.core.errors import PersistenceError
from multicov.core.logging import get_logger
from multicov.coverage.accumulator import CoverageAccumulator
from multicov.process.info import ProcessInfo
from multicov.sourcemaps.registry import SourceMapRegistry

LOGGER = get_logger(__name__)


class CoverageWriter:
    """Writes the accumulator snapshot and the process record."""

    def __init__(
        self,
        accumulator: CoverageAccumulator,
        process_info: ProcessInfo,
        temp_directory: Path,
        should_instrument: Callable[[str], bool],
        source_maps: SourceMapRegistry,
        hashes: Optional[Mapping[str, str]] = None,
        cache: bool = True,
    ):
        """Initialize CoverageWriter.

        Args:
            accumulator: Process coverage store.
            process_info: Record of this process; saved after the snapshot.
            temp_directory: Directory receiving snapshots.
            should_instrument: Include/exclude predicate.
            source_maps: Registry used to remap when not caching.
            hashes: filename -> content hash from the caching transform.
            cache: Whether the transform cache is persistent.
        """
        self.accumulator = accumulator
        self.process_info = process_info
        self.temp_directory = Path(temp_directory)
        self.should_instrument = should_instrument
        self.source_maps = source_maps
        self.hashes = hashes if hashes is not None else {}
        self.cache = cache

    @property
    def coverage_path(self) -> Path:
        return self.temp_directory / f"{self.process_info.uuid}.json"

    def collect(self) -> Dict[str, Any]:
        """Snapshot the accumulator, filtered and ready to serialize."""
        coverage = self.accumulator.snapshot()

        for path in list(coverage):
            if not self.should_instrument(path):
                del coverage[path]

        if self.cache:
            # Reporting processes reload cached source maps by content hash.
            for path, record in coverage.items():
                hash_value = self.hashes.get(path)
                if hash_value:
                    record["contentHash"] = hash_value
        else:
            remapped = self.source_maps.remap_coverage(coverage)
            # Readers must not translate these coordinates again.
            for fc in remapped.data.values():
                fc.remapped = True
            coverage = remapped.to_json()
        return coverage

    def write_coverage_file(self) -> Path:
        """Persist this process's coverage and its process record.

        Returns:
            Path of the coverage snapshot.

        Raises:
            PersistenceError: If the snapshot or the record cannot be written.
        """
        coverage = self.collect()
        path = self.coverage_path
        try:
            self._write_atomic(path, json.dumps(coverage))
        except OSError as e:
            raise PersistenceError(path, e) from e
        LOGGER.debug(f"Wrote coverage for {len(coverage)} files to {path}")

        self.process_info.coverage_filename = str(path)
        self.process_info.files = sorted(coverage)
        self.process_info.save()
        return path

    @staticmethod
    def _write_atomic(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=".snapshot-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
