"""Merge command implementation."""

from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path
from typing import Optional

from multicov.cli.commands import Command
from multicov.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from multicov.config.models import MultiCovConfig
from multicov.core.errors import PersistenceError
from multicov.core.logging import get_logger
from multicov.session import Session

LOGGER = get_logger(__name__)

DEFAULT_OUTPUT_FILE = "coverage.json"


class MergeCommand(Command):
    """Merges a directory of snapshots into a single coverage file.

    The output holds raw merged data; source-map remapping and filtering are
    left to whichever process reports on it.
    """

    @property
    def name(self) -> str:
        return "merge"

    def execute(self, args: Namespace, config: Optional[MultiCovConfig] = None) -> int:
        if config is None:
            LOGGER.error("Configuration is required for the merge command")
            return EXIT_INVALID_USAGE

        cwd = Path(config.cwd)
        input_dir = cwd / args.input_dir if args.input_dir else config.temp_path()
        if not input_dir.is_dir():
            LOGGER.error(f"Input directory does not exist: {input_dir}")
            return EXIT_INVALID_USAGE

        output_file = cwd / (args.output_file or DEFAULT_OUTPUT_FILE)
        coverage_map = Session(config).collector.merged_coverage(input_dir)

        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.write_text(json.dumps(coverage_map.to_json()), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(output_file, e) from e

        print(f"coverage files in {input_dir} merged into {output_file}")
        return EXIT_SUCCESS
