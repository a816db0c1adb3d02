"""Coverage threshold evaluation."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, TextIO, Union

from multicov.config.models import METRICS, ThresholdConfig
from multicov.core.logging import get_logger
from multicov.coverage.models import CoverageMap, CoverageSummary

LOGGER = get_logger(__name__)


@dataclass
class ThresholdViolation:
    """A metric below its required percentage."""

    metric: str
    actual: float
    required: float
    file: Optional[str] = None

    @property
    def message(self) -> str:
        prefix = f"ERROR: Coverage for {self.metric} ({self.actual:g}%) does not meet"
        if self.file is None:
            return f"{prefix} global threshold ({self.required:g}%)"
        return f"{prefix} threshold ({self.required:g}%) for {self.file}"


@dataclass
class ThresholdResult:
    violations: List[ThresholdViolation] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.violations)


class ThresholdChecker:
    """Compares coverage summaries against minimum percentages."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def check_coverage(
        self,
        coverage_map: CoverageMap,
        thresholds: Union[ThresholdConfig, Mapping[str, float]],
        per_file: Optional[bool] = None,
    ) -> ThresholdResult:
        """Evaluate every configured metric.

        Every violation is reported; evaluation does not stop at the first.

        Args:
            coverage_map: Merged, remapped coverage.
            thresholds: Required percentages per metric.
            per_file: Check each file instead of the totals. Defaults to
                ``thresholds.per_file`` for a ThresholdConfig.

        Returns:
            Result holding all violations.
        """
        if isinstance(thresholds, ThresholdConfig):
            required = thresholds.as_dict()
            if per_file is None:
                per_file = thresholds.per_file
        else:
            required = {k: float(v) for k, v in thresholds.items() if v is not None}

        result = ThresholdResult()
        if per_file:
            for path in coverage_map.files():
                summary = coverage_map.file_coverage_for(path).to_summary()
                self._check_summary(summary, required, path, result)
        else:
            self._check_summary(coverage_map.get_coverage_summary(), required, None, result)

        LOGGER.debug(f"Threshold check found {len(result.violations)} violation(s)")
        return result

    def _check_summary(
        self,
        summary: CoverageSummary,
        required: Mapping[str, float],
        file: Optional[str],
        result: ThresholdResult,
    ) -> None:
        stream = self._stream or sys.stderr
        for metric in METRICS:
            if metric not in required:
                continue
            actual = summary[metric].pct
            if actual < required[metric]:
                violation = ThresholdViolation(metric, actual, required[metric], file)
                result.violations.append(violation)
                print(violation.message, file=stream)


def check_coverage(
    coverage_map: CoverageMap,
    thresholds: Union[ThresholdConfig, Mapping[str, float]],
    per_file: Optional[bool] = None,
) -> ThresholdResult:
    """Module-level shortcut for :meth:`ThresholdChecker.check_coverage`."""
    return ThresholdChecker().check_coverage(coverage_map, thresholds, per_file)
