"""Merging of process snapshots and threshold evaluation."""

from multicov.report.collector import ReportCollector
from multicov.report.thresholds import (
    ThresholdChecker,
    ThresholdResult,
    ThresholdViolation,
    check_coverage,
)

__all__ = [
    "ReportCollector",
    "ThresholdChecker",
    "ThresholdResult",
    "ThresholdViolation",
    "check_coverage",
]
