"""Instrumenter plugins.

Plugins are discovered via Python entry points (multicov.instrumenters group).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from multicov.plugins.discovery import (
    INSTRUMENTER_ENTRY_POINT_GROUP,
    discover_plugins,
    get_plugin,
    list_available_plugins,
)
from multicov.plugins.instrumenters.base import InstrumenterPlugin
from multicov.plugins.instrumenters.noop import NoopInstrumenter

BUILTIN_INSTRUMENTERS: Dict[str, Type[InstrumenterPlugin]] = {
    "noop": NoopInstrumenter,
}


def discover_instrumenter_plugins() -> Dict[str, Type[InstrumenterPlugin]]:
    """Discover all installed instrumenter plugins."""
    return discover_plugins(INSTRUMENTER_ENTRY_POINT_GROUP, InstrumenterPlugin, BUILTIN_INSTRUMENTERS)


def get_instrumenter_plugin(name: str, **options: Any) -> Optional[InstrumenterPlugin]:
    """Get an instantiated instrumenter plugin by name."""
    return get_plugin(
        INSTRUMENTER_ENTRY_POINT_GROUP, name, InstrumenterPlugin, BUILTIN_INSTRUMENTERS, **options
    )


def list_available_instrumenters() -> List[str]:
    """List names of all available instrumenter plugins."""
    return list_available_plugins(INSTRUMENTER_ENTRY_POINT_GROUP, BUILTIN_INSTRUMENTERS)


__all__ = [
    "InstrumenterPlugin",
    "NoopInstrumenter",
    "discover_instrumenter_plugins",
    "get_instrumenter_plugin",
    "list_available_instrumenters",
]
