"""Check-coverage command implementation."""

from __future__ import annotations

from argparse import Namespace
from typing import Optional

from multicov.cli.commands import Command
from multicov.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS, EXIT_THRESHOLD_FAILED
from multicov.config.models import MultiCovConfig
from multicov.core.logging import get_logger
from multicov.session import Session

LOGGER = get_logger(__name__)


class CheckCoverageCommand(Command):
    """Fails when merged coverage is below the configured thresholds."""

    @property
    def name(self) -> str:
        return "check-coverage"

    def execute(self, args: Namespace, config: Optional[MultiCovConfig] = None) -> int:
        if config is None:
            LOGGER.error("Configuration is required for the check-coverage command")
            return EXIT_INVALID_USAGE

        result = Session(config).check_coverage()
        if result.failed:
            return EXIT_THRESHOLD_FAILED
        return EXIT_SUCCESS
