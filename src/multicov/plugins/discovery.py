"""Plugin discovery via Python entry points.

Third-party packages register instrumenters and reporters under the
``multicov.instrumenters`` and ``multicov.reporters`` groups. Built-in
plugins are registered the same way in multicov's own metadata, and are
also passed in explicitly so a source checkout without installed metadata
still finds them.
"""

from __future__ import annotations

from importlib.metadata import entry_points
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

INSTRUMENTER_ENTRY_POINT_GROUP = "multicov.instrumenters"
REPORTER_ENTRY_POINT_GROUP = "multicov.reporters"

T = TypeVar("T")


def discover_plugins(
    group: str,
    base_class: Type[T],
    builtins: Optional[Mapping[str, Type[T]]] = None,
) -> Dict[str, Type[T]]:
    """Discover plugin classes registered under an entry point group.

    Args:
        group: Entry point group name.
        base_class: Required base class; other objects are skipped.
        builtins: Plugins available without entry point metadata.

    Returns:
        Dictionary mapping plugin names to plugin classes.
    """
    plugins: Dict[str, Type[T]] = dict(builtins or {})
    for ep in entry_points(group=group):
        try:
            plugin_class = ep.load()
        except Exception as e:
            LOGGER.warning(f"Failed to load plugin '{ep.name}' from {group}: {e}")
            continue
        if not (isinstance(plugin_class, type) and issubclass(plugin_class, base_class)):
            LOGGER.warning(f"Plugin '{ep.name}' is not a {base_class.__name__}, skipping")
            continue
        plugins[ep.name] = plugin_class
    return plugins


def get_plugin(
    group: str,
    name: str,
    base_class: Type[T],
    builtins: Optional[Mapping[str, Type[T]]] = None,
    **kwargs: Any,
) -> Optional[T]:
    """Instantiate a plugin by name.

    Returns:
        The plugin instance, or None if no plugin has that name.
    """
    plugin_class = discover_plugins(group, base_class, builtins).get(name)
    if plugin_class is None:
        return None
    return plugin_class(**kwargs)


def list_available_plugins(
    group: str, builtins: Optional[Mapping[str, Any]] = None
) -> List[str]:
    """Names of every plugin in ``group``."""
    names = set(builtins or {})
    names.update(ep.name for ep in entry_points(group=group))
    return sorted(names)
