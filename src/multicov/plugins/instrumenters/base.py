"""Base class for instrumenter plugins.

An instrumenter rewrites source so that executing it increments counters in
the process accumulator. The instrumented module finds the accumulator in
its globals under ``multicov.coverage.COVERAGE_GLOBAL`` and should call
``register(path, record)`` once to obtain the live record to count into.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from multicov.sourcemaps.mapping import SourceMap

__all__ = ["InstrumenterPlugin"]


class InstrumenterPlugin(ABC):
    """Abstract base class for instrumenters."""

    # Folded into the cache salt; bump when output changes.
    version: str = "0"

    def __init__(
        self,
        compact: bool = True,
        preserve_comments: bool = False,
        produce_source_map: bool = False,
        ignore_class_methods: Optional[List[str]] = None,
        **options: Any,
    ):
        """Initialize the instrumenter with the salt-relevant options.

        Args:
            compact: Emit compact instrumented code.
            preserve_comments: Keep comments in instrumented code.
            produce_source_map: Append a source map to instrumented code.
            ignore_class_methods: Method names never counted as functions.
            **options: Plugin-specific options.
        """
        self.compact = compact
        self.preserve_comments = preserve_comments
        self.produce_source_map = produce_source_map
        self.ignore_class_methods = list(ignore_class_methods or [])
        self.options = options

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin identifier."""

    @abstractmethod
    def instrument(self, code: str, filename: str, source_map: Optional[SourceMap] = None) -> str:
        """Instrument ``code``.

        Args:
            code: Original (or generated) source.
            filename: Absolute path of the file.
            source_map: Map from ``code`` back to its original sources.

        Returns:
            Instrumented source.
        """

    def last_file_coverage(self) -> Optional[Dict[str, Any]]:
        """Zero-count coverage record for the most recently instrumented file.

        Used to build a baseline for files that are never executed.
        """
        return None
