"""Process-owned coverage accumulator.

Instrumented modules receive the accumulator in their namespace (see
:mod:`multicov.transform.hook`) and increment counters in the raw
istanbul-shaped records it holds. The writer reads a snapshot at exit.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterator, List, Mapping, Optional

from multicov.coverage.models import empty_file_coverage

# Name under which instrumented code finds the accumulator
COVERAGE_GLOBAL = "__coverage__"


class CoverageAccumulator:
    """Mutable store of raw hit counts for one process."""

    def __init__(self) -> None:
        self._files: Dict[str, Dict[str, Any]] = {}

    def register(self, path: str, initial: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Return the record for ``path``, creating it if needed.

        Instrumented code calls this once at module start with the location
        tables and zeroed counters it generated. An existing record for the
        same file is kept so that re-imports keep counting.

        Args:
            path: Absolute path of the instrumented file.
            initial: Coverage record to start from.

        Returns:
            The live record that counters should be incremented in.
        """
        record = self._files.get(path)
        if record is None:
            record = copy.deepcopy(dict(initial)) if initial else empty_file_coverage(path)
            record["path"] = path
            self._files[path] = record
        return record

    def set(self, path: str, record: Mapping[str, Any]) -> None:
        """Replace the record for ``path`` (used for zero baselines)."""
        self._files[path] = dict(record)

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        return self._files.get(path)

    def discard(self, path: str) -> None:
        self._files.pop(path, None)

    def files(self) -> List[str]:
        return list(self._files)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Deep copy of the current state, safe to mutate and serialize."""
        return copy.deepcopy(self._files)

    def clear(self) -> None:
        self._files.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._files))
