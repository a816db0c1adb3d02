"""Merging of per-process coverage snapshots.

Snapshots are read independently; a corrupt or truncated one is logged and
counted as empty so a single crashed process cannot break the report.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from multicov.core.exclude import FileFilter
from multicov.core.logging import get_logger
from multicov.coverage.models import CoverageMap
from multicov.process.info import PROCESS_INFO_DIRNAME
from multicov.sourcemaps.registry import SourceMapRegistry

LOGGER = get_logger(__name__)

Report = Dict[str, Any]
ReportIterator = Callable[[Report], None]


class ReportCollector:
    """Reads, merges, remaps and filters coverage snapshots."""

    def __init__(
        self,
        temp_directory: Path,
        source_maps: SourceMapRegistry,
        file_filter: FileFilter,
        exclude_after_remap: bool = True,
    ):
        """Initialize ReportCollector.

        Args:
            temp_directory: Default directory holding snapshots.
            source_maps: Registry used to reload maps and remap.
            file_filter: Include/exclude predicate applied to the result.
            exclude_after_remap: Filter original paths (True) or generated
                paths (False).
        """
        self.temp_directory = Path(temp_directory)
        self.source_maps = source_maps
        self.file_filter = file_filter
        self.exclude_after_remap = exclude_after_remap

    def report_files(self, base_directory: Optional[Path] = None) -> List[Path]:
        """Snapshot files in ``base_directory``, sorted by name."""
        directory = Path(base_directory) if base_directory is not None else self.temp_directory
        if not directory.is_dir():
            return []
        return sorted(
            path for path in directory.iterdir()
            if path.is_file() and path.suffix == ".json" and path.name != PROCESS_INFO_DIRNAME
        )

    def read_report(self, path: Union[str, Path]) -> Report:
        """Parse one snapshot, treating unreadable content as empty."""
        try:
            report = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            LOGGER.warning(f"Skipping coverage report {path}: {e}")
            return {}
        if not isinstance(report, dict):
            LOGGER.warning(f"Skipping coverage report {path}: not a JSON object")
            return {}
        return report

    def each_report(
        self,
        iterator: ReportIterator,
        filenames: Optional[Sequence[Union[str, Path]]] = None,
        base_directory: Optional[Path] = None,
    ) -> None:
        """Call ``iterator`` with every parsed snapshot.

        Source maps referenced by content hashes are reloaded before the
        iterator sees the report.

        Args:
            iterator: Receives each report dict.
            filenames: Explicit snapshot paths; names are resolved against
                ``base_directory``.
            base_directory: Directory to read (default: temp directory).
        """
        directory = Path(base_directory) if base_directory is not None else self.temp_directory
        if filenames is None:
            paths = self.report_files(directory)
        else:
            paths = [directory / filename for filename in filenames]

        for path in paths:
            report = self.read_report(path)
            self.source_maps.reload_cached_source_maps(report)
            iterator(report)

    def load_reports(self, filenames: Optional[Sequence[Union[str, Path]]] = None) -> List[Report]:
        reports: List[Report] = []
        self.each_report(reports.append, filenames)
        return reports

    def merged_coverage(self, base_directory: Optional[Path] = None) -> CoverageMap:
        """Merge every snapshot without remapping or filtering."""
        coverage_map = CoverageMap()

        def merge(report: Report) -> None:
            try:
                coverage_map.merge(report)
            except ValueError as e:
                LOGGER.warning(f"Ignoring invalid coverage report: {e}")

        self.each_report(merge, base_directory=base_directory)
        return coverage_map

    def coverage_map_from_all_files(self, base_directory: Optional[Path] = None) -> CoverageMap:
        """Merge, remap once and filter every snapshot.

        Args:
            base_directory: Directory to read (default: temp directory).

        Returns:
            Remapped coverage restricted to included files.
        """
        coverage_map = self.merged_coverage(base_directory)

        if not self.exclude_after_remap:
            coverage_map.filter(self.file_filter.should_instrument)

        coverage_map = self.source_maps.remap_coverage(coverage_map)

        if self.exclude_after_remap:
            coverage_map.filter(self.file_filter.should_instrument)
        return coverage_map
