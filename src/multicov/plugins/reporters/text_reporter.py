"""Text reporters.

``text`` prints a per-file table, ``text-summary`` prints the four totals.
Both use Rich and color percentages by the configured watermarks.
"""

from __future__ import annotations

import os
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from multicov.config.models import METRICS
from multicov.coverage.models import CoverageMap, CoverageSummary
from multicov.plugins.reporters.base import ReportContext, ReporterPlugin

_STYLES = {"low": "red", "medium": "yellow", "high": "green"}

_COLUMNS = [
    ("statements", "% Stmts"),
    ("branches", "% Branch"),
    ("functions", "% Funcs"),
    ("lines", "% Lines"),
]


def _format_pct(pct: float) -> str:
    return f"{pct:.2f}"


def _format_line_ranges(lines: List[int]) -> str:
    """Collapse ``[1, 2, 3, 7]`` to ``1-3,7``."""
    if not lines:
        return ""
    parts: List[str] = []
    start = prev = lines[0]
    for line in lines[1:]:
        if line == prev + 1:
            prev = line
            continue
        parts.append(str(start) if start == prev else f"{start}-{prev}")
        start = prev = line
    parts.append(str(start) if start == prev else f"{start}-{prev}")
    return ",".join(parts)


def _is_full(summary: CoverageSummary) -> bool:
    return all(summary[metric].pct == 100 for metric in METRICS)


def _console(context: ReportContext) -> Console:
    return Console(file=context.output, width=context.max_cols, highlight=False)


class TextReporter(ReporterPlugin):
    """Per-file coverage table."""

    @property
    def name(self) -> str:
        return "text"

    def execute(self, coverage_map: CoverageMap, context: ReportContext) -> None:
        table = Table(show_edge=False, pad_edge=False)
        table.add_column("File", no_wrap=True, overflow="fold")
        for _, header in _COLUMNS:
            table.add_column(header, justify="right")
        table.add_column("Uncovered Line #s", overflow="fold")

        total = coverage_map.get_coverage_summary()
        table.add_row("All files", *self._cells(total, context), "", end_section=True)

        root = self._common_root(coverage_map.files())
        for path in coverage_map.files():
            fc = coverage_map.file_coverage_for(path)
            summary = fc.to_summary()
            if context.skip_empty and summary.is_empty():
                continue
            if context.skip_full and _is_full(summary):
                continue
            table.add_row(
                self._display_path(path, root),
                *self._cells(summary, context),
                _format_line_ranges(fc.uncovered_lines()),
            )

        _console(context).print(table)

    def _cells(self, summary: CoverageSummary, context: ReportContext) -> List[str]:
        cells = []
        for metric, _ in _COLUMNS:
            pct = summary[metric].pct
            style = _STYLES[context.classify(metric, pct)]
            cells.append(f"[{style}]{_format_pct(pct)}[/{style}]")
        return cells

    @staticmethod
    def _common_root(paths: List[str]) -> Optional[str]:
        if not paths:
            return None
        try:
            root = os.path.commonpath([os.path.dirname(p) for p in paths])
        except ValueError:
            return None
        return root or None

    @staticmethod
    def _display_path(path: str, root: Optional[str]) -> str:
        if root:
            return os.path.relpath(path, root)
        return path


class TextSummaryReporter(ReporterPlugin):
    """Overall totals only."""

    @property
    def name(self) -> str:
        return "text-summary"

    def execute(self, coverage_map: CoverageMap, context: ReportContext) -> None:
        summary = coverage_map.get_coverage_summary()
        console = _console(context)
        console.print("=============================== Coverage summary ===============================")
        for metric, label in (
            ("statements", "Statements"),
            ("branches", "Branches"),
            ("functions", "Functions"),
            ("lines", "Lines"),
        ):
            totals = summary[metric]
            style = _STYLES[context.classify(metric, totals.pct)]
            console.print(
                f"[{style}]{label:<12}: {_format_pct(totals.pct)}% "
                f"( {totals.covered}/{totals.total} )[/{style}]"
            )
        console.print("================================================================================")
