"""CLI runner: parses arguments, loads config and dispatches commands."""

from __future__ import annotations

import argparse
import os
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from multicov.cli.arguments import build_parser
from multicov.cli.commands import (
    CheckCoverageCommand,
    Command,
    InstrumentCommand,
    MergeCommand,
    ReportCommand,
)
from multicov.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_RUNTIME_ERROR, EXIT_SUCCESS
from multicov.config.loader import load_config
from multicov.config.models import METRICS
from multicov.core.errors import ConfigError, MultiCovError
from multicov.core.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)

# Flag attribute -> config key, copied only when given on the command line
_DIRECT_OVERRIDES = {
    "temp_dir": "temp_directory",
    "include": "include",
    "exclude": "exclude",
    "extension": "extension",
    "reporter": "reporter",
    "report_dir": "report_dir",
    "skip_empty": "skip_empty",
    "skip_full": "skip_full",
    "check_coverage": "check_coverage",
    "exit_on_error": "exit_on_error",
}


def get_version() -> str:
    try:
        return version("multicov")
    except PackageNotFoundError:
        # Fallback for source checkouts without installed metadata.
        from multicov import __version__

        return __version__


def cli_args_to_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Convert CLI arguments to a config override dict.

    Only options given explicitly are included, so config file values
    survive when a flag is omitted.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Dictionary of config overrides.
    """
    overrides: Dict[str, Any] = {}

    for attr, key in _DIRECT_OVERRIDES.items():
        value = getattr(args, attr, None)
        if value is not None:
            overrides[key] = value

    if getattr(args, "no_cache", False):
        overrides["cache"] = False
    if getattr(args, "no_exclude_after_remap", False):
        overrides["exclude_after_remap"] = False

    thresholds: Dict[str, Any] = {}
    for metric in METRICS:
        value = getattr(args, metric, None)
        if value is not None:
            thresholds[metric] = value
    if getattr(args, "per_file", None) is not None:
        thresholds["per_file"] = args.per_file
    if thresholds:
        overrides["thresholds"] = thresholds

    return overrides


class CLIRunner:
    """Runs one invocation of the multicov command."""

    def __init__(self) -> None:
        commands = [ReportCommand(), CheckCoverageCommand(), MergeCommand(), InstrumentCommand()]
        self.commands: Dict[str, Command] = {command.name: command for command in commands}

    def run(self, argv: Optional[Iterable[str]] = None) -> int:
        parser = build_parser()
        args = parser.parse_args(list(argv) if argv is not None else None)

        # Configure logging as early as possible.
        configure_logging(debug=args.debug, verbose=args.verbose, quiet=args.quiet)

        if args.version:
            print(get_version())
            return EXIT_SUCCESS

        if args.command is None:
            parser.print_help()
            return EXIT_SUCCESS

        project_root = Path(args.cwd or os.environ.get("MULTICOV_CWD") or os.getcwd()).resolve()
        try:
            config = load_config(
                project_root=project_root,
                cli_config_path=args.config,
                cli_overrides=cli_args_to_config_overrides(args),
            )
        except ConfigError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE

        command = self.commands[args.command]
        try:
            return command.execute(args, config)
        except ConfigError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE
        except MultiCovError as e:
            LOGGER.error(str(e))
            return EXIT_RUNTIME_ERROR
