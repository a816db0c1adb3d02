"""JSON reporter plugin.

Writes the merged coverage map as ``coverage-final.json`` in the report
directory, in the same shape as the per-process snapshots.
"""

from __future__ import annotations

import json

from multicov.core.logging import get_logger
from multicov.coverage.models import CoverageMap
from multicov.plugins.reporters.base import ReportContext, ReporterPlugin

LOGGER = get_logger(__name__)

REPORT_FILENAME = "coverage-final.json"


class JSONReporter(ReporterPlugin):
    """Reporter that writes the raw merged coverage map."""

    @property
    def name(self) -> str:
        return "json"

    def execute(self, coverage_map: CoverageMap, context: ReportContext) -> None:
        context.directory.mkdir(parents=True, exist_ok=True)
        target = context.directory / REPORT_FILENAME
        with target.open("w", encoding="utf-8") as handle:
            json.dump(coverage_map.to_json(), handle)
        LOGGER.info(f"Wrote JSON coverage report to {target}")
