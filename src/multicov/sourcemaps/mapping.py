"""Source Map v3 parsing and position lookup.

Only what coverage remapping needs is implemented: decoding the base64 VLQ
``mappings`` string and looking up the original position for a generated
one. Index maps (``sections``) are not supported and are rejected.

Positions follow the coverage convention: 1-based lines, 0-based columns.
"""

from __future__ import annotations

import base64
import binascii
import bisect
import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

GREATEST_LOWER_BOUND = 1
LEAST_UPPER_BOUND = 2

_BASE64_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_VALUES = {char: index for index, char in enumerate(_BASE64_CHARS)}

_VLQ_BASE_SHIFT = 5
_VLQ_BASE = 1 << _VLQ_BASE_SHIFT
_VLQ_BASE_MASK = _VLQ_BASE - 1
_VLQ_CONTINUATION_BIT = _VLQ_BASE

# "# sourceMappingURL=..." (Python) or "//# sourceMappingURL=..." / "/*# ... */" (JS, CSS)
SOURCE_MAPPING_URL_PATTERN = re.compile(
    r"^[ \t]*(?://|#|/\*)[ \t]*(?:[#@][ \t]*)?sourceMappingURL=([^\s'\"*]+)",
    re.MULTILINE,
)

_DATA_URI_PATTERN = re.compile(
    r"^data:(?:(?:application|text)/json)?(?:;charset=[^;,]+)?(?P<b64>;base64)?,(?P<payload>.*)$",
    re.DOTALL,
)

# (generated column, source index, original line, original column, name index)
Segment = Tuple[int, int, int, int, int]


class SourceMapError(ValueError):
    """Raised for source maps that cannot be parsed."""


@dataclass(frozen=True)
class OriginalPosition:
    """A position in an original source file."""

    source: str
    line: int
    column: int
    name: Optional[str] = None


def decode_vlq(segment: str) -> List[int]:
    """Decode one comma-separated segment of a ``mappings`` string.

    Raises:
        SourceMapError: On invalid characters or a truncated value.
    """
    values: List[int] = []
    shift = 0
    value = 0
    for char in segment:
        try:
            digit = _BASE64_VALUES[char]
        except KeyError:
            raise SourceMapError(f"Invalid base64 VLQ character: {char!r}") from None
        continuation = digit & _VLQ_CONTINUATION_BIT
        value += (digit & _VLQ_BASE_MASK) << shift
        if continuation:
            shift += _VLQ_BASE_SHIFT
            continue
        negative = value & 1
        value >>= 1
        values.append(-value if negative else value)
        value = 0
        shift = 0
    if shift:
        raise SourceMapError(f"Truncated base64 VLQ segment: {segment!r}")
    return values


def _decode_mappings(mappings: str, source_count: int) -> List[List[Segment]]:
    lines: List[List[Segment]] = []
    source = orig_line = orig_column = name = 0
    for line_text in mappings.split(";"):
        segments: List[Segment] = []
        column = 0
        for text in line_text.split(","):
            if not text:
                continue
            fields = decode_vlq(text)
            if len(fields) not in (1, 4, 5):
                raise SourceMapError(f"Invalid mapping segment with {len(fields)} fields")
            column += fields[0]
            if len(fields) == 1:
                # Generated code with no original counterpart
                segments.append((column, -1, -1, -1, -1))
                continue
            source += fields[1]
            orig_line += fields[2]
            orig_column += fields[3]
            name_index = -1
            if len(fields) == 5:
                name += fields[4]
                name_index = name
            if not 0 <= source < source_count:
                raise SourceMapError(f"Mapping references unknown source index {source}")
            segments.append((column, source, orig_line, orig_column, name_index))
        segments.sort(key=lambda seg: seg[0])
        lines.append(segments)
    return lines


class SourceMap:
    """A parsed Source Map v3 document."""

    def __init__(self, data: Dict[str, Any], base_dir: Optional[Union[str, Path]] = None):
        """Parse ``data``.

        Args:
            data: Decoded source map JSON.
            base_dir: Directory that relative ``sources`` are resolved from.

        Raises:
            SourceMapError: If the document is not a usable v3 map.
        """
        if not isinstance(data, dict):
            raise SourceMapError("Source map must be a JSON object")
        if "sections" in data:
            raise SourceMapError("Indexed source maps are not supported")
        if str(data.get("version", 3)) != "3":
            raise SourceMapError(f"Unsupported source map version: {data.get('version')}")
        mappings = data.get("mappings")
        raw_sources = data.get("sources")
        if not isinstance(mappings, str) or not isinstance(raw_sources, list):
            raise SourceMapError("Source map requires 'mappings' and 'sources'")

        self.raw = data
        self.file: Optional[str] = data.get("file")
        self.names: List[str] = list(data.get("names") or [])
        self.sources_content: List[Optional[str]] = list(data.get("sourcesContent") or [])
        self.sources = [
            self._resolve_source(source, data.get("sourceRoot") or "", base_dir)
            for source in raw_sources
        ]
        self._lines = _decode_mappings(mappings, len(self.sources))
        self._columns = [[seg[0] for seg in line] for line in self._lines]

    @classmethod
    def from_json(
        cls, text: Union[str, bytes], base_dir: Optional[Union[str, Path]] = None
    ) -> "SourceMap":
        if isinstance(text, bytes):
            text = text.decode("utf-8")
        # Strip the XSSI prefix some tools prepend.
        if text.startswith(")]}'"):
            text = text.split("\n", 1)[1] if "\n" in text else ""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SourceMapError(f"Invalid source map JSON: {e}") from e
        return cls(data, base_dir=base_dir)

    @staticmethod
    def _resolve_source(
        source: Optional[str], source_root: str, base_dir: Optional[Union[str, Path]]
    ) -> str:
        source = source or ""
        if source_root and not os.path.isabs(source):
            source = source_root.rstrip("/") + "/" + source
        if source.startswith("file://"):
            source = unquote(source[len("file://"):])
        if base_dir is not None and not os.path.isabs(source) and "://" not in source:
            source = os.path.normpath(os.path.join(str(base_dir), source))
        return source

    def to_json(self) -> str:
        """Serialize with ``sources`` already resolved, so the result can be
        reloaded from any directory."""
        data = {k: v for k, v in self.raw.items() if k != "sourceRoot"}
        data["sources"] = list(self.sources)
        return json.dumps(data)

    def original_position_for(
        self, line: int, column: int, bias: int = GREATEST_LOWER_BOUND
    ) -> Optional[OriginalPosition]:
        """Find the original position of a generated position.

        Args:
            line: Generated line (1-based).
            column: Generated column (0-based).
            bias: GREATEST_LOWER_BOUND picks the closest mapping at or before
                ``column``; LEAST_UPPER_BOUND the closest at or after it.

        Returns:
            The original position, or None when nothing maps there.
        """
        index = line - 1
        if index < 0 or index >= len(self._lines):
            return None
        segments = self._lines[index]
        columns = self._columns[index]
        if not segments:
            return None
        if bias == LEAST_UPPER_BOUND:
            pos = bisect.bisect_left(columns, column)
            if pos >= len(segments):
                return None
        else:
            pos = bisect.bisect_right(columns, column) - 1
            if pos < 0:
                return None
        _, source, orig_line, orig_column, name = segments[pos]
        if source < 0:
            return None
        return OriginalPosition(
            source=self.sources[source],
            line=orig_line + 1,
            column=orig_column,
            name=self.names[name] if 0 <= name < len(self.names) else None,
        )


def _load_data_uri(uri: str) -> Optional[str]:
    match = _DATA_URI_PATTERN.match(uri)
    if not match:
        return None
    payload = match.group("payload")
    if match.group("b64"):
        return base64.b64decode(payload, validate=False).decode("utf-8")
    return unquote(payload)


def find_source_mapping_url(code: str) -> Optional[str]:
    """Return the last ``sourceMappingURL`` reference in ``code``."""
    matches = SOURCE_MAPPING_URL_PATTERN.findall(code)
    return matches[-1] if matches else None


def extract_source_map(code: str, filename: Union[str, Path]) -> Optional[SourceMap]:
    """Extract an inline or sidecar source map referenced by ``code``.

    Malformed or missing maps are treated as absent; this never raises.

    Args:
        code: Generated source text.
        filename: Absolute path of the generated file.

    Returns:
        The parsed map, or None.
    """
    url = find_source_mapping_url(code)
    if not url:
        return None
    base_dir = Path(filename).parent
    try:
        if url.startswith("data:"):
            text = _load_data_uri(url)
            if text is None:
                LOGGER.debug(f"Unsupported source map data URI in {filename}")
                return None
        else:
            map_path = base_dir / unquote(url)
            text = map_path.read_text(encoding="utf-8")
            base_dir = map_path.parent
        return SourceMap.from_json(text, base_dir=base_dir)
    except (OSError, ValueError, binascii.Error, UnicodeDecodeError) as e:
        LOGGER.debug(f"Ignoring invalid source map for {filename}: {e}")
        return None
