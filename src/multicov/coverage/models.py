"""Coverage data model.

File coverage uses the istanbul JSON shape so that snapshots written by
any process (and by any compatible instrumenter) can be merged:

    {
        "path": "/abs/file.py",
        "statementMap": {"0": {"start": {"line": 1, "column": 0}, "end": {...}}},
        "fnMap": {"0": {"name": "f", "decl": <range>, "loc": <range>, "line": 1}},
        "branchMap": {"0": {"type": "if", "loc": <range>, "locations": [<range>, ...]}},
        "s": {"0": 3},
        "f": {"0": 1},
        "b": {"0": [2, 1]},
        "contentHash": "...",   # optional
        "all": true,             # optional, zero baseline for never-executed files
        "remapped": true         # optional, coordinates already in original sources
    }

Lines are 1-based and columns 0-based.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

REQUIRED_KEYS = ("path", "statementMap", "fnMap", "branchMap", "s", "f", "b")

Range = Dict[str, Dict[str, Optional[int]]]
LocationKey = Tuple[Any, ...]


def empty_file_coverage(path: str) -> Dict[str, Any]:
    """Return a coverage record with no items."""
    return {
        "path": path,
        "statementMap": {},
        "fnMap": {},
        "branchMap": {},
        "s": {},
        "f": {},
        "b": {},
    }


def percent(covered: int, total: int) -> float:
    """Coverage percentage truncated to two decimals; 100 when nothing is tracked."""
    if total > 0:
        return math.floor(100000 * covered / total / 10) / 100
    return 100.0


def location_key(loc: Mapping[str, Any]) -> LocationKey:
    """Identity of a source range, used to match items across reports."""
    start = loc.get("start") or {}
    end = loc.get("end") or {}
    return (
        _coord(start.get("line")),
        _coord(start.get("column")),
        _coord(end.get("line")),
        _coord(end.get("column")),
    )


def _coord(value: Any) -> Tuple[int, int]:
    # None sorts before every real coordinate.
    if value is None:
        return (0, 0)
    return (1, int(value))


def _function_key(item: Mapping[str, Any]) -> LocationKey:
    return location_key(item.get("loc") or item.get("decl") or {})


def _branch_key(item: Mapping[str, Any]) -> LocationKey:
    locations = item.get("locations") or []
    if not locations:
        return (location_key(item.get("loc") or {}),)
    return tuple(location_key(loc) for loc in locations)


def _statement_key(item: Mapping[str, Any]) -> LocationKey:
    return location_key(item)


def _merge_prop(
    a_hits: Dict[str, Any],
    a_map: Dict[str, Any],
    b_hits: Dict[str, Any],
    b_map: Dict[str, Any],
    item_key: Callable[[Mapping[str, Any]], LocationKey],
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Merge hit tables keyed by location identity rather than id.

    Ids are renumbered in location order so the result does not depend on
    which side came first.
    """
    merged: Dict[LocationKey, List[Any]] = {}

    for hits, item_map in ((a_hits, a_map), (b_hits, b_map)):
        for key, item_hits in hits.items():
            item = item_map.get(key)
            if item is None:
                continue
            ident = item_key(item)
            existing = merged.get(ident)
            if existing is None:
                merged[ident] = [copy.deepcopy(item_hits), item]
            elif isinstance(existing[0], list):
                theirs = item_hits if isinstance(item_hits, list) else []
                width = max(len(existing[0]), len(theirs))
                existing[0] = [
                    (existing[0][i] if i < len(existing[0]) else 0)
                    + (theirs[i] if i < len(theirs) else 0)
                    for i in range(width)
                ]
            else:
                existing[0] = existing[0] + item_hits

    new_hits: Dict[str, Any] = {}
    new_map: Dict[str, Any] = {}
    for index, ident in enumerate(sorted(merged)):
        item_hits, item = merged[ident]
        new_hits[str(index)] = item_hits
        new_map[str(index)] = copy.deepcopy(item)
    return new_hits, new_map


@dataclass
class Totals:
    """Coverage totals for one metric."""

    total: int = 0
    covered: int = 0
    skipped: int = 0

    @property
    def pct(self) -> float:
        return percent(self.covered, self.total)

    def __add__(self, other: "Totals") -> "Totals":
        return Totals(
            total=self.total + other.total,
            covered=self.covered + other.covered,
            skipped=self.skipped + other.skipped,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "covered": self.covered,
            "skipped": self.skipped,
            "pct": self.pct,
        }


@dataclass
class CoverageSummary:
    """Per-metric totals for a file or a whole coverage map."""

    lines: Totals = field(default_factory=Totals)
    statements: Totals = field(default_factory=Totals)
    functions: Totals = field(default_factory=Totals)
    branches: Totals = field(default_factory=Totals)

    def __getitem__(self, metric: str) -> Totals:
        if metric not in ("lines", "statements", "functions", "branches"):
            raise KeyError(metric)
        return getattr(self, metric)

    def merge(self, other: "CoverageSummary") -> "CoverageSummary":
        """Add ``other``'s totals into this summary and return self."""
        self.lines = self.lines + other.lines
        self.statements = self.statements + other.statements
        self.functions = self.functions + other.functions
        self.branches = self.branches + other.branches
        return self

    def is_empty(self) -> bool:
        return self.lines.total == 0

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            "lines": self.lines.to_dict(),
            "statements": self.statements.to_dict(),
            "functions": self.functions.to_dict(),
            "branches": self.branches.to_dict(),
        }


class FileCoverage:
    """Coverage for a single file."""

    def __init__(self, data: Union[str, Mapping[str, Any], "FileCoverage"]):
        """Initialize FileCoverage.

        Args:
            data: A path (empty coverage), an istanbul-shaped mapping, or
                another FileCoverage. Mappings are deep-copied.

        Raises:
            ValueError: If a mapping lacks any of the required keys.
        """
        if isinstance(data, FileCoverage):
            self.data: Dict[str, Any] = copy.deepcopy(data.data)
        elif isinstance(data, str):
            self.data = empty_file_coverage(data)
        elif isinstance(data, Mapping):
            missing = [key for key in REQUIRED_KEYS if key not in data]
            if missing:
                raise ValueError(
                    f"Invalid file coverage object, missing keys: {', '.join(missing)}"
                )
            self.data = copy.deepcopy(dict(data))
        else:
            raise ValueError(f"Invalid file coverage object: {type(data).__name__}")

    @property
    def path(self) -> str:
        return self.data["path"]

    @property
    def content_hash(self) -> Optional[str]:
        return self.data.get("contentHash")

    @content_hash.setter
    def content_hash(self, value: Optional[str]) -> None:
        if value is None:
            self.data.pop("contentHash", None)
        else:
            self.data["contentHash"] = value

    @property
    def all(self) -> bool:
        return self.data.get("all") is True

    @property
    def remapped(self) -> bool:
        return self.data.get("remapped") is True

    @remapped.setter
    def remapped(self, value: bool) -> None:
        if value:
            self.data["remapped"] = True
        else:
            self.data.pop("remapped", None)

    def line_coverage(self) -> Dict[int, int]:
        """Hit count per line, taking the highest count of statements starting there."""
        statement_map = self.data["statementMap"]
        lines: Dict[int, int] = {}
        for key, count in self.data["s"].items():
            item = statement_map.get(key)
            if not item:
                continue
            line = item["start"]["line"]
            previous = lines.get(line)
            if previous is None or previous < count:
                lines[line] = count
        return lines

    def uncovered_lines(self) -> List[int]:
        return sorted(line for line, count in self.line_coverage().items() if count == 0)

    def reset_hits(self) -> None:
        """Zero every hit count while keeping the location tables."""
        self.data["s"] = {key: 0 for key in self.data["s"]}
        self.data["f"] = {key: 0 for key in self.data["f"]}
        self.data["b"] = {key: [0] * len(value) for key, value in self.data["b"].items()}

    def merge(self, other: "FileCoverage") -> None:
        """Merge ``other`` into this file coverage.

        Hits are summed for items sharing the same location. A zero baseline
        (``all``) never adds counts: merging real data into a baseline
        replaces it, and merging a baseline into real data changes nothing.

        Items are keyed by location as istanbul does, so two items of one
        record that share a location collapse into one item holding their
        summed hits. That only happens when a merge takes place, so merging
        even an all-zero record of the same shape can lower ``total`` in
        :meth:`to_summary`.
        """
        if other.all:
            return
        if self.all:
            self.data = copy.deepcopy(other.data)
            return

        data = self.data
        data["s"], data["statementMap"] = _merge_prop(
            data["s"], data["statementMap"], other.data["s"], other.data["statementMap"],
            _statement_key,
        )
        data["f"], data["fnMap"] = _merge_prop(
            data["f"], data["fnMap"], other.data["f"], other.data["fnMap"],
            _function_key,
        )
        data["b"], data["branchMap"] = _merge_prop(
            data["b"], data["branchMap"], other.data["b"], other.data["branchMap"],
            _branch_key,
        )
        if not self.content_hash and other.content_hash:
            self.content_hash = other.content_hash

    def to_summary(self) -> CoverageSummary:
        """Compute line, statement, function and branch totals."""
        lines = self.line_coverage()
        line_totals = Totals(
            total=len(lines),
            covered=sum(1 for count in lines.values() if count > 0),
        )
        return CoverageSummary(
            lines=line_totals,
            statements=self._simple_totals("s", "statementMap"),
            functions=self._simple_totals("f", "fnMap"),
            branches=self._branch_totals(),
        )

    def _simple_totals(self, prop: str, map_prop: str) -> Totals:
        totals = Totals()
        item_map = self.data[map_prop]
        for key, count in self.data[prop].items():
            totals.total += 1
            if count:
                totals.covered += 1
            if (item_map.get(key) or {}).get("skip"):
                totals.skipped += 1
        return totals

    def _branch_totals(self) -> Totals:
        totals = Totals()
        branch_map = self.data["branchMap"]
        for key, counts in self.data["b"].items():
            totals.total += len(counts)
            totals.covered += sum(1 for count in counts if count > 0)
            locations = (branch_map.get(key) or {}).get("locations") or []
            totals.skipped += sum(1 for loc in locations if loc.get("skip"))
        return totals

    def to_json(self) -> Dict[str, Any]:
        return self.data

    def __repr__(self) -> str:
        return f"FileCoverage({self.path!r})"


class CoverageMap:
    """Mapping of absolute file path to :class:`FileCoverage`.

    ``remapped`` is set by the source-map registry once coordinates have
    been translated to original sources.
    """

    def __init__(
        self,
        data: Optional[Union["CoverageMap", Mapping[str, Any]]] = None,
        remapped: bool = False,
    ):
        self.data: Dict[str, FileCoverage] = {}
        self.remapped = remapped
        if isinstance(data, CoverageMap):
            self.remapped = data.remapped or remapped
            for path, fc in data.data.items():
                self.data[path] = FileCoverage(fc)
        elif data:
            for path, entry in data.items():
                self.data[path] = FileCoverage(entry)

    def merge(self, other: Union["CoverageMap", Mapping[str, Any]]) -> None:
        """Merge another map (or raw report dict) into this one.

        Raises:
            ValueError: If any entry is not a valid file coverage object.
        """
        incoming = other if isinstance(other, CoverageMap) else CoverageMap(other)
        for path, fc in incoming.data.items():
            existing = self.data.get(path)
            if existing is None:
                self.data[path] = FileCoverage(fc)
            else:
                existing.merge(fc)

    def add_file_coverage(self, fc: Union[FileCoverage, Mapping[str, Any]]) -> None:
        coverage = fc if isinstance(fc, FileCoverage) else FileCoverage(fc)
        existing = self.data.get(coverage.path)
        if existing is None:
            self.data[coverage.path] = FileCoverage(coverage)
        else:
            existing.merge(coverage)

    def file_coverage_for(self, path: str) -> FileCoverage:
        try:
            return self.data[path]
        except KeyError:
            raise KeyError(f"No file coverage available for: {path}") from None

    def files(self) -> List[str]:
        return sorted(self.data)

    def filter(self, predicate: Callable[[str], bool]) -> None:
        """Drop every file for which ``predicate`` returns False."""
        for path in list(self.data):
            if not predicate(path):
                del self.data[path]

    def get_coverage_summary(self) -> CoverageSummary:
        summary = CoverageSummary()
        for fc in self.data.values():
            summary.merge(fc.to_summary())
        return summary

    def to_json(self) -> Dict[str, Dict[str, Any]]:
        return {path: self.data[path].to_json() for path in self.files()}

    def __len__(self) -> int:
        return len(self.data)

    def __contains__(self, path: object) -> bool:
        return path in self.data

    def __iter__(self) -> Iterator[str]:
        return iter(self.files())
