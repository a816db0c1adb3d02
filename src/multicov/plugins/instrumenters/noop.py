"""Instrumenter that leaves source untouched.

Useful when code is instrumented ahead of time and only source maps,
process tracking and merging are wanted.
"""

from __future__ import annotations

from typing import Optional

from multicov.plugins.instrumenters.base import InstrumenterPlugin
from multicov.sourcemaps.mapping import SourceMap


class NoopInstrumenter(InstrumenterPlugin):
    """Returns source unchanged and tracks no coverage."""

    @property
    def name(self) -> str:
        return "noop"

    def instrument(self, code: str, filename: str, source_map: Optional[SourceMap] = None) -> str:
        return code
