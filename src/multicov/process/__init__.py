"""Per-process identity, exit handling and coverage persistence."""

from multicov.process.info import (
    PROCESS_ID_ENV,
    PROCESS_INFO_DIRNAME,
    ROOT_ID_ENV,
    ProcessInfo,
)
from multicov.process.lifecycle import ExitLifecycle
from multicov.process.writer import CoverageWriter

__all__ = [
    "PROCESS_ID_ENV",
    "PROCESS_INFO_DIRNAME",
    "ROOT_ID_ENV",
    "CoverageWriter",
    "ExitLifecycle",
    "ProcessInfo",
]
