"""Base class for reporter plugins.

Reporters receive a fully merged, remapped and filtered coverage map plus
a context describing where and how to render it.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, TextIO

from multicov.config.models import DEFAULT_WATERMARKS
from multicov.coverage.models import CoverageMap

__all__ = ["ReportContext", "ReporterPlugin"]


@dataclass
class ReportContext:
    """Where and how a report is rendered."""

    directory: Path
    watermarks: Dict[str, List[float]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_WATERMARKS.items()}
    )
    output: TextIO = field(default_factory=lambda: sys.stdout)
    skip_empty: bool = False
    skip_full: bool = False
    max_cols: int = 120

    def classify(self, metric: str, pct: float) -> str:
        """Return ``low``, ``medium`` or ``high`` for a percentage."""
        low, high = self.watermarks.get(metric, DEFAULT_WATERMARKS[metric])
        if pct < low:
            return "low"
        if pct >= high:
            return "high"
        return "medium"


class ReporterPlugin(ABC):
    """Abstract base class for coverage reporters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin identifier."""

    @abstractmethod
    def execute(self, coverage_map: CoverageMap, context: ReportContext) -> None:
        """Render ``coverage_map``.

        Args:
            coverage_map: Merged coverage.
            context: Target directory, watermarks and output stream.
        """
