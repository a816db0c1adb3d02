"""Process identity and process records.

Every process that writes coverage gets its own uuid. Children learn their
parent and root from the environment exported by the parent, which lets a
process tree be reconstructed from the saved records afterwards.
"""

from __future__ import annotations

import json
import os
import sys
import uuid as uuid_module
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from multicov.core.errors import PersistenceError
from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

PROCESS_ID_ENV = "MULTICOV_PROCESS_ID"
ROOT_ID_ENV = "MULTICOV_ROOT_ID"
EXTERNAL_ID_ENV = "MULTICOV_EXTERNAL_ID"

PROCESS_INFO_DIRNAME = "processinfo"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProcessInfo:
    """Record describing one coverage-writing process."""

    uuid: str = field(default_factory=lambda: str(uuid_module.uuid4()))
    parent: Optional[str] = None
    root: Optional[str] = None
    pid: int = field(default_factory=os.getpid)
    ppid: int = field(default_factory=os.getppid)
    argv: List[str] = field(default_factory=lambda: list(sys.argv))
    cwd: str = field(default_factory=os.getcwd)
    time: str = field(default_factory=_now)
    coverage_filename: Optional[str] = None
    files: List[str] = field(default_factory=list)
    external_id: str = ""
    directory: Optional[str] = None

    def __post_init__(self) -> None:
        if self.root is None:
            self.root = self.uuid

    @classmethod
    def from_environment(
        cls,
        directory: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ProcessInfo":
        """Create the record for the current process.

        Args:
            directory: Where the record will be saved.
            environ: Environment mapping (default: ``os.environ``).

        Returns:
            A new ProcessInfo whose parent and root come from the environment.
        """
        env = os.environ if environ is None else environ
        return cls(
            parent=env.get(PROCESS_ID_ENV) or None,
            root=env.get(ROOT_ID_ENV) or None,
            external_id=env.get(EXTERNAL_ID_ENV, ""),
            directory=str(directory) if directory is not None else None,
        )

    def child_environment(self) -> Dict[str, str]:
        """Variables a spawned child needs to link itself to this process."""
        return {PROCESS_ID_ENV: self.uuid, ROOT_ID_ENV: self.root or self.uuid}

    @property
    def path(self) -> Optional[Path]:
        if self.directory is None:
            return None
        return Path(self.directory) / f"{self.uuid}.json"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("directory")
        return data

    def save(self) -> Path:
        """Write the record as ``<directory>/<uuid>.json``.

        Raises:
            PersistenceError: If no directory is set or the write fails.
        """
        path = self.path
        if path is None:
            raise PersistenceError(f"{self.uuid}.json", ValueError("no process info directory"))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.to_dict()), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(path, e) from e
        LOGGER.debug(f"Saved process info {path}")
        return path
