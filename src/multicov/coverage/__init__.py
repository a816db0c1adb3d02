"""Coverage data structures: file coverage, coverage maps and summaries."""

from multicov.coverage.accumulator import COVERAGE_GLOBAL, CoverageAccumulator
from multicov.coverage.models import (
    CoverageMap,
    CoverageSummary,
    FileCoverage,
    Totals,
    empty_file_coverage,
    percent,
)

__all__ = [
    "COVERAGE_GLOBAL",
    "CoverageAccumulator",
    "CoverageMap",
    "CoverageSummary",
    "FileCoverage",
    "Totals",
    "empty_file_coverage",
    "percent",
]
