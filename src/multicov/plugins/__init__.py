"""Plugin infrastructure for multicov.

This package provides discovery for the two plugin types:
- Instrumenter plugins (multicov.instrumenters)
- Reporter plugins (multicov.reporters)

Plugins are discovered via Python entry points.
"""

from multicov.plugins.discovery import (
    INSTRUMENTER_ENTRY_POINT_GROUP,
    REPORTER_ENTRY_POINT_GROUP,
    discover_plugins,
    get_plugin,
    list_available_plugins,
)

__all__ = [
    "INSTRUMENTER_ENTRY_POINT_GROUP",
    "REPORTER_ENTRY_POINT_GROUP",
    "discover_plugins",
    "get_plugin",
    "list_available_plugins",
]
