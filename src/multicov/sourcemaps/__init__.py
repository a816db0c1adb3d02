"""Source map support: parsing, registry and coverage remapping."""

from multicov.sourcemaps.mapping import (
    OriginalPosition,
    SourceMap,
    SourceMapError,
    extract_source_map,
)
from multicov.sourcemaps.registry import SourceMapRegistry
from multicov.sourcemaps.transformer import remap_file_coverage

__all__ = [
    "OriginalPosition",
    "SourceMap",
    "SourceMapError",
    "SourceMapRegistry",
    "extract_source_map",
    "remap_file_coverage",
]
