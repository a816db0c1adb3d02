"""Reporter plugins.

Plugins are discovered via Python entry points (multicov.reporters group).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from multicov.plugins.discovery import (
    REPORTER_ENTRY_POINT_GROUP,
    discover_plugins,
    get_plugin,
    list_available_plugins,
)
from multicov.plugins.reporters.base import ReportContext, ReporterPlugin
from multicov.plugins.reporters.json_reporter import JSONReporter
from multicov.plugins.reporters.text_reporter import TextReporter, TextSummaryReporter

BUILTIN_REPORTERS: Dict[str, Type[ReporterPlugin]] = {
    "json": JSONReporter,
    "text": TextReporter,
    "text-summary": TextSummaryReporter,
}


def discover_reporter_plugins() -> Dict[str, Type[ReporterPlugin]]:
    """Discover all installed reporter plugins."""
    return discover_plugins(REPORTER_ENTRY_POINT_GROUP, ReporterPlugin, BUILTIN_REPORTERS)


def get_reporter_plugin(name: str, **options: Any) -> Optional[ReporterPlugin]:
    """Get an instantiated reporter plugin by name."""
    return get_plugin(REPORTER_ENTRY_POINT_GROUP, name, ReporterPlugin, BUILTIN_REPORTERS, **options)


def list_available_reporters() -> List[str]:
    """List names of all available reporter plugins."""
    return list_available_plugins(REPORTER_ENTRY_POINT_GROUP, BUILTIN_REPORTERS)


__all__ = [
    "JSONReporter",
    "ReportContext",
    "ReporterPlugin",
    "TextReporter",
    "TextSummaryReporter",
    "discover_reporter_plugins",
    "get_reporter_plugin",
    "list_available_reporters",
]
