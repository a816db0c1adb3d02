"""multicov subcommands.

Each subcommand is a :class:`Command` registered with the runner by name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import Namespace
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from multicov.config.models import MultiCovConfig


class Command(ABC):
    """A multicov subcommand.

    Commands receive the fully resolved config; they never load it
    themselves.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Command identifier, as typed on the command line."""

    @abstractmethod
    def execute(self, args: Namespace, config: Optional["MultiCovConfig"] = None) -> int:
        """Run the subcommand and return one of the codes in ``exit_codes``."""


# ruff: noqa: E402
from multicov.cli.commands.check_coverage import CheckCoverageCommand
from multicov.cli.commands.instrument import InstrumentCommand
from multicov.cli.commands.merge import MergeCommand
from multicov.cli.commands.report import ReportCommand

__all__ = [
    "Command",
    "CheckCoverageCommand",
    "InstrumentCommand",
    "MergeCommand",
    "ReportCommand",
]
