"""Translate file coverage from generated to original coordinates.

Every statement, function and branch range is looked up in the file's
source map. Ranges whose start and end do not map into the same original
source are dropped. A generated file may spread over several original
sources, so one input file can produce several output files; items that
land on the same original range are combined by summing their hits.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional, Tuple

from multicov.coverage.models import FileCoverage, LocationKey, empty_file_coverage, location_key
from multicov.sourcemaps.mapping import (
    GREATEST_LOWER_BOUND,
    LEAST_UPPER_BOUND,
    OriginalPosition,
    SourceMap,
)

# Stand-in for an open-ended range end (column recorded as null)
_END_OF_LINE = 1 << 30


def _lookup(source_map: SourceMap, line: int, column: int) -> Optional[OriginalPosition]:
    position = source_map.original_position_for(line, column, GREATEST_LOWER_BOUND)
    if position is None:
        position = source_map.original_position_for(line, column, LEAST_UPPER_BOUND)
    return position


def get_mapping(
    source_map: SourceMap, loc: Optional[Mapping[str, Any]], generated_path: str
) -> Optional[Tuple[str, Dict[str, Dict[str, int]]]]:
    """Map one generated range to ``(original source, original range)``.

    The end of a range is exclusive, so the last covered character
    (``end.column - 1``) is looked up and one is added back.

    Returns:
        None when either end is unmapped or the ends land in different sources.
    """
    if not loc:
        return None
    start = loc.get("start") or {}
    end = loc.get("end") or {}
    if start.get("line") is None or end.get("line") is None:
        return None

    start_pos = _lookup(source_map, int(start["line"]), int(start.get("column") or 0))
    end_column = end.get("column")
    end_column = _END_OF_LINE if end_column is None else max(int(end_column) - 1, 0)
    end_pos = _lookup(source_map, int(end["line"]), end_column)

    if start_pos is None or end_pos is None:
        return None
    if not start_pos.source or start_pos.source != end_pos.source:
        return None
    if (end_pos.line, end_pos.column) < (start_pos.line, start_pos.column):
        return None

    source = start_pos.source
    if not os.path.isabs(source) and "://" not in source:
        source = os.path.normpath(os.path.join(os.path.dirname(generated_path), source))

    return source, {
        "start": {"line": start_pos.line, "column": start_pos.column},
        "end": {"line": end_pos.line, "column": end_pos.column + 1},
    }


class _MappedFile:
    """Coverage being assembled for one original source."""

    def __init__(self, path: str):
        self.coverage = FileCoverage(empty_file_coverage(path))
        self._statements: Dict[LocationKey, str] = {}
        self._functions: Dict[Tuple[LocationKey, LocationKey], str] = {}
        self._branches: Dict[Tuple[LocationKey, ...], str] = {}

    def add_statement(self, loc: Dict[str, Any], hits: int) -> None:
        data = self.coverage.data
        key = location_key(loc)
        index = self._statements.get(key)
        if index is None:
            index = str(len(self._statements))
            self._statements[key] = index
            data["statementMap"][index] = loc
            data["s"][index] = hits
        else:
            data["s"][index] += hits

    def add_function(self, name: str, decl: Dict[str, Any], loc: Dict[str, Any], hits: int) -> None:
        data = self.coverage.data
        key = (location_key(decl), location_key(loc))
        index = self._functions.get(key)
        if index is None:
            index = str(len(self._functions))
            self._functions[key] = index
            data["fnMap"][index] = {
                "name": name,
                "decl": decl,
                "loc": loc,
                "line": loc["start"]["line"],
            }
            data["f"][index] = hits
        else:
            data["f"][index] += hits

    def add_branch(
        self, branch_type: str, loc: Dict[str, Any], locations: List[Dict[str, Any]], hits: List[int]
    ) -> None:
        data = self.coverage.data
        key = tuple(location_key(item) for item in locations)
        index = self._branches.get(key)
        if index is None:
            index = str(len(self._branches))
            self._branches[key] = index
            data["branchMap"][index] = {
                "type": branch_type,
                "loc": loc,
                "locations": locations,
                "line": loc["start"]["line"],
            }
            data["b"][index] = list(hits)
        else:
            current = data["b"][index]
            data["b"][index] = [a + b for a, b in zip(current, hits)]


def remap_file_coverage(fc: FileCoverage, source_map: SourceMap) -> Dict[str, FileCoverage]:
    """Remap one file's coverage through ``source_map``.

    Returns:
        Mapping of original path to remapped coverage. If nothing in the
        file could be mapped, the input is returned unchanged under its own
        path.
    """
    mapped: Dict[str, _MappedFile] = {}
    changes = 0
    data = fc.data

    def target(source: str) -> _MappedFile:
        if source not in mapped:
            mapped[source] = _MappedFile(source)
        return mapped[source]

    for key, loc in data["statementMap"].items():
        mapping = get_mapping(source_map, loc, fc.path)
        if mapping is None:
            continue
        changes += 1
        source, new_loc = mapping
        target(source).add_statement(new_loc, data["s"].get(key, 0))

    for key, meta in data["fnMap"].items():
        loc_mapping = get_mapping(source_map, meta.get("loc"), fc.path)
        decl_mapping = get_mapping(source_map, meta.get("decl") or meta.get("loc"), fc.path)
        if loc_mapping is None or decl_mapping is None:
            continue
        if loc_mapping[0] != decl_mapping[0]:
            continue
        changes += 1
        target(loc_mapping[0]).add_function(
            meta.get("name", ""), decl_mapping[1], loc_mapping[1], data["f"].get(key, 0)
        )

    for key, meta in data["branchMap"].items():
        hits = data["b"].get(key, [])
        source: Optional[str] = None
        skip = False
        locations: List[Dict[str, Any]] = []
        kept_hits: List[int] = []
        for index, loc in enumerate(meta.get("locations") or []):
            mapping = get_mapping(source_map, loc, fc.path)
            if mapping is None:
                continue
            if source is None:
                source = mapping[0]
            elif mapping[0] != source:
                skip = True
            locations.append(mapping[1])
            kept_hits.append(hits[index] if index < len(hits) else 0)
        if skip or source is None or not locations:
            continue
        changes += 1
        loc_mapping = get_mapping(source_map, meta.get("loc"), fc.path)
        branch_loc = loc_mapping[1] if loc_mapping and loc_mapping[0] == source else locations[0]
        target(source).add_branch(meta.get("type", "branch"), branch_loc, locations, kept_hits)

    if changes == 0:
        return {fc.path: FileCoverage(fc)}
    return {path: item.coverage for path, item in mapped.items()}
