"""Report command implementation."""

from __future__ import annotations

from argparse import Namespace
from typing import Optional

from multicov.cli.commands import Command
from multicov.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS, EXIT_THRESHOLD_FAILED
from multicov.config.models import MultiCovConfig
from multicov.core.logging import get_logger
from multicov.session import Session

LOGGER = get_logger(__name__)


class ReportCommand(Command):
    """Merges every process snapshot and renders the configured reports."""

    @property
    def name(self) -> str:
        return "report"

    def execute(self, args: Namespace, config: Optional[MultiCovConfig] = None) -> int:
        """Execute the report command.

        Runs the threshold check afterwards when ``check_coverage`` is set.

        Args:
            args: Parsed command-line arguments.
            config: Loaded configuration.

        Returns:
            EXIT_THRESHOLD_FAILED if a threshold is missed, else EXIT_SUCCESS.
        """
        if config is None:
            LOGGER.error("Configuration is required for the report command")
            return EXIT_INVALID_USAGE

        session = Session(config)
        session.report()

        if config.check_coverage and session.check_coverage().failed:
            return EXIT_THRESHOLD_FAILED
        return EXIT_SUCCESS
