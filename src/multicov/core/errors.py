"""Exception hierarchy for multicov."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class MultiCovError(Exception):
    """Base class for all multicov errors."""


class ConfigError(MultiCovError):
    """Configuration loading or parsing error."""


class InstrumentationError(MultiCovError):
    """The instrumenter failed on a file and ``exit_on_error`` is set."""

    def __init__(self, filename: Union[str, Path], cause: Optional[BaseException] = None):
        self.filename = str(filename)
        self.cause = cause
        super().__init__(f"Failed to instrument {self.filename}")


class PersistenceError(MultiCovError):
    """A coverage snapshot or process record could not be written."""

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None):
        self.path = str(path)
        self.cause = cause
        message = f"Failed to write coverage data to {self.path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
