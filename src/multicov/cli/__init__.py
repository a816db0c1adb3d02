"""Command-line interface: ``multicov <command>``."""

from __future__ import annotations

from typing import Iterable, Optional

from multicov.cli.arguments import build_parser
from multicov.cli.exit_codes import (
    EXIT_INVALID_USAGE,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    EXIT_THRESHOLD_FAILED,
)
from multicov.cli.runner import CLIRunner, get_version


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Console-script entry point; returns the process exit code."""
    return CLIRunner().run(argv)


__all__ = [
    "main",
    "build_parser",
    "get_version",
    "CLIRunner",
    "EXIT_SUCCESS",
    "EXIT_THRESHOLD_FAILED",
    "EXIT_RUNTIME_ERROR",
    "EXIT_INVALID_USAGE",
]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
