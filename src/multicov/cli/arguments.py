"""Argument parser for the multicov CLI."""

from __future__ import annotations

import argparse
from pathlib import Path

from multicov.config.models import METRICS


def _add_threshold_arguments(parser: argparse.ArgumentParser) -> None:
    for metric in METRICS:
        parser.add_argument(
            f"--{metric}",
            type=float,
            default=None,
            metavar="PCT",
            help=f"Minimum {metric} coverage percentage.",
        )
    parser.add_argument(
        "--per-file",
        action="store_true",
        default=None,
        help="Check thresholds for each file instead of the totals.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multicov",
        description="multicov - coverage for programs made of many Python processes.",
    )

    # Global options
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show multicov version and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (info-level) logging.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce logging output to errors only.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        type=Path,
        help="Path to config file (default: .multicov.yml in the project root).",
    )
    parser.add_argument(
        "--cwd",
        metavar="PATH",
        help="Project root (default: current directory).",
    )
    parser.add_argument(
        "--temp-dir",
        metavar="PATH",
        help="Directory holding per-process coverage (default: .multicov_output).",
    )
    parser.add_argument(
        "--include",
        action="append",
        metavar="PATTERN",
        help="Only cover files matching this pattern (repeatable).",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="PATTERN",
        help="Never cover files matching this pattern (repeatable).",
    )
    parser.add_argument(
        "--extension",
        action="append",
        metavar="EXT",
        help="Additional source extension to cover (repeatable).",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable the instrumentation cache.",
    )
    parser.add_argument(
        "--no-exclude-after-remap",
        action="store_true",
        help="Apply include/exclude rules to generated paths, before remapping.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    report = subparsers.add_parser("report", help="Render coverage reports.")
    report.add_argument(
        "--reporter",
        action="append",
        metavar="NAME",
        help="Reporter to use (repeatable, default: text).",
    )
    report.add_argument("--report-dir", metavar="PATH", help="Directory for file reports.")
    report.add_argument("--skip-empty", action="store_true", default=None,
                        help="Hide files without statements.")
    report.add_argument("--skip-full", action="store_true", default=None,
                        help="Hide fully covered files.")
    report.add_argument("--check-coverage", action="store_true", default=None,
                        help="Fail when coverage is below the thresholds.")
    _add_threshold_arguments(report)

    check = subparsers.add_parser("check-coverage", help="Check coverage against thresholds.")
    _add_threshold_arguments(check)

    merge = subparsers.add_parser("merge", help="Merge coverage snapshots into one file.")
    merge.add_argument("input_dir", nargs="?", help="Directory of snapshots (default: temp dir).")
    merge.add_argument("--output-file", metavar="PATH", help="Output file (default: coverage.json).")

    instrument = subparsers.add_parser("instrument", help="Instrument a file or directory.")
    instrument.add_argument("input", help="File or directory to instrument.")
    instrument.add_argument("output", nargs="?", help="Output directory (default: print).")
    instrument.add_argument(
        "--complete-copy",
        action="store_true",
        help="Copy every file, not only instrumented sources.",
    )
    instrument.add_argument(
        "--exit-on-error",
        action="store_true",
        default=None,
        help="Stop at the first file that fails to instrument.",
    )

    return parser
