"""Instrument command implementation."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from typing import Optional

from multicov.cli.commands import Command
from multicov.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_RUNTIME_ERROR, EXIT_SUCCESS
from multicov.config.models import MultiCovConfig
from multicov.core.errors import InstrumentationError
from multicov.core.logging import get_logger
from multicov.session import Session

LOGGER = get_logger(__name__)


class InstrumentCommand(Command):
    """Writes instrumented copies of a file or a directory tree."""

    @property
    def name(self) -> str:
        return "instrument"

    def execute(self, args: Namespace, config: Optional[MultiCovConfig] = None) -> int:
        """Execute the instrument command.

        Args:
            args: Parsed arguments with ``input``, ``output`` and
                ``complete_copy``.
            config: Loaded configuration.

        Returns:
            Exit code.
        """
        if config is None:
            LOGGER.error("Configuration is required for the instrument command")
            return EXIT_INVALID_USAGE

        source = Path(config.cwd) / args.input
        if not source.exists():
            LOGGER.error(f"Cannot instrument {source}: no such file or directory")
            return EXIT_INVALID_USAGE

        output = Path(config.cwd) / args.output if args.output else None
        if output is not None and source.is_dir() and output.resolve() == source.resolve():
            LOGGER.error("Refusing to instrument a directory in place")
            return EXIT_INVALID_USAGE

        try:
            Session(config).instrument_all_files(source, output, complete_copy=args.complete_copy)
        except InstrumentationError as e:
            print(str(e))
            return EXIT_RUNTIME_ERROR
        return EXIT_SUCCESS
