"""Configuration data models for multicov.

Defines typed configuration classes that represent the .multicov.yml
structure. The same classes are serialized into the environment so that
child processes share the parent's settings.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

# Coverage metrics that can carry a threshold or a watermark
METRICS = ("statements", "branches", "functions", "lines")

# Options that change the instrumenter's output; folded into the cache salt
SALT_OPTIONS = (
    "compact",
    "ignore_class_methods",
    "instrument",
    "instrumenter",
    "preserve_comments",
    "produce_source_map",
    "source_map",
)

DEFAULT_TEMP_DIRECTORY = ".multicov_output"
DEFAULT_REPORT_DIR = "coverage"

DEFAULT_WATERMARKS: Dict[str, List[float]] = {
    "statements": [50.0, 80.0],
    "branches": [50.0, 80.0],
    "functions": [50.0, 80.0],
    "lines": [50.0, 80.0],
}


@dataclass
class ThresholdConfig:
    """Minimum coverage percentages.

    A metric set to None is not checked.
    """

    statements: Optional[float] = 0.0
    branches: Optional[float] = 0.0
    functions: Optional[float] = 0.0
    lines: Optional[float] = 90.0
    per_file: bool = False

    def as_dict(self) -> Dict[str, float]:
        """Return the configured metrics, skipping unset ones."""
        return {
            metric: float(getattr(self, metric))
            for metric in METRICS
            if getattr(self, metric) is not None
        }


@dataclass
class MultiCovConfig:
    """Top-level multicov configuration."""

    cwd: str = field(default_factory=os.getcwd)
    temp_directory: str = DEFAULT_TEMP_DIRECTORY
    report_dir: str = DEFAULT_REPORT_DIR

    # Transform cache
    cache: bool = True
    cache_dir: Optional[str] = None
    eager: bool = False

    # Instrumentation (salt-relevant)
    instrument: bool = True
    instrumenter: str = "noop"
    source_map: bool = True
    produce_source_map: bool = False
    compact: bool = True
    preserve_comments: bool = False
    ignore_class_methods: List[str] = field(default_factory=list)
    exit_on_error: bool = False

    # File selection
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    exclude_site_packages: bool = True
    extension: List[str] = field(default_factory=lambda: [".py"])
    exclude_after_remap: bool = True
    all: bool = False

    # Process
    is_child_process: bool = False
    clean: bool = True
    # Modules imported before the import hook is installed
    require: List[str] = field(default_factory=list)

    # Reporting
    reporter: List[str] = field(default_factory=lambda: ["text"])
    watermarks: Dict[str, List[float]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_WATERMARKS.items()}
    )
    skip_empty: bool = False
    skip_full: bool = False
    check_coverage: bool = False
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    def __post_init__(self) -> None:
        self.extension = normalize_extensions(self.extension)

    def temp_path(self) -> Path:
        """Absolute temp directory holding per-process snapshots."""
        return (Path(self.cwd) / self.temp_directory).resolve()

    def report_path(self) -> Path:
        """Absolute directory reporters write into."""
        return (Path(self.cwd) / self.report_dir).resolve()

    def cache_path(self) -> Path:
        """Absolute transform cache directory."""
        if self.cache_dir:
            return (Path(self.cwd) / self.cache_dir).resolve()
        return (Path(self.cwd) / ".cache" / "multicov").resolve()

    def salt_options(self) -> Dict[str, Any]:
        """Subset of options that affect instrumented output."""
        return {name: getattr(self, name) for name in SALT_OPTIONS}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MultiCovConfig":
        """Build a config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        thresholds = values.get("thresholds")
        if isinstance(thresholds, dict):
            values["thresholds"] = ThresholdConfig(**{
                k: v for k, v in thresholds.items()
                if k in {f.name for f in fields(ThresholdConfig)}
            })
        return cls(**values)


def normalize_extensions(extensions: List[str]) -> List[str]:
    """Lowercase, deduplicate and always include ``.py``.

    Args:
        extensions: Extensions as configured, with or without a leading dot.

    Returns:
        Ordered list of unique extensions.
    """
    result: List[str] = []
    for ext in list(extensions) + [".py"]:
        ext = ext.lower()
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in result:
            result.append(ext)
    return result
