"""Loading of ``.multicov.yml``.

Settings come from three layers, later ones winning: built-in defaults,
the project (or ``--config``) YAML file, then command-line flags. A child
process skips all of this and inherits its parent's resolved settings
through ``MULTICOV_CONFIG``.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from multicov.config.models import MultiCovConfig
from multicov.config.validation import validate_config
from multicov.core.errors import ConfigError
from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

PROJECT_CONFIG_NAMES = [".multicov.yml", ".multicov.yaml", "multicov.yml", "multicov.yaml"]

# Environment variable carrying the parent's serialized config
CONFIG_ENV = "MULTICOV_CONFIG"

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

__all__ = [
    "CONFIG_ENV",
    "ConfigError",
    "config_from_environment",
    "config_to_environment",
    "dict_to_config",
    "expand_env_vars",
    "find_project_config",
    "load_config",
    "load_yaml_file",
    "merge_configs",
]


def load_config(
    project_root: Path,
    cli_config_path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
) -> MultiCovConfig:
    """Resolve the effective configuration for ``project_root``.

    Args:
        project_root: Becomes ``cwd``; searched for a project config file.
        cli_config_path: Explicit ``--config`` file, used instead of the
            project file.
        cli_overrides: Options given on the command line.

    Returns:
        The effective MultiCovConfig.

    Raises:
        ConfigError: If the config file is missing, unparsable or invalid.
    """
    layers: List[str] = ["defaults"]
    merged: Dict[str, Any] = {"cwd": str(project_root)}

    if cli_config_path is not None and not cli_config_path.exists():
        raise ConfigError(f"Config file not found: {cli_config_path}")
    config_path = cli_config_path or find_project_config(project_root)

    if config_path is not None:
        try:
            from_file = load_yaml_file(config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        validate_config(from_file, source=str(config_path))
        merged = merge_configs(merged, from_file)
        layers.append(str(config_path))

    if cli_overrides:
        merged = merge_configs(merged, cli_overrides)
        layers.append("command line")

    LOGGER.debug(f"Configuration layers: {', '.join(layers)}")
    return dict_to_config(merged)


def find_project_config(project_root: Path) -> Optional[Path]:
    """Return the first of PROJECT_CONFIG_NAMES present in ``project_root``."""
    candidates = (project_root / name for name in PROJECT_CONFIG_NAMES)
    return next((path for path in candidates if path.is_file()), None)


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Read a ``.multicov.yml`` document.

    Option names may be written ``kebab-case`` as on the command line;
    they are normalized to the dataclass field names. ``${VAR}``
    references in string values are expanded.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
        ConfigError: If the top level is not a mapping.
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a YAML mapping, not {type(data).__name__}")
    return expand_env_vars(_normalize_keys(data))


def _normalize_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            (k.replace("-", "_") if isinstance(k, str) else k): _normalize_keys(v)
            for k, v in data.items()
        }
    return data


def expand_env_vars(data: Any) -> Any:
    """Expand ``${VAR}`` and ``${VAR:-default}`` in every string of ``data``.

    Unset variables without a default expand to an empty string.
    """
    if isinstance(data, str):
        return ENV_VAR_PATTERN.sub(_substitute_env_var, data)
    if isinstance(data, dict):
        return {key: expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return list(map(expand_env_vars, data))
    return data


def _substitute_env_var(match: re.Match[str]) -> str:
    name, default = match.group(1), match.group(2)
    if name in os.environ:
        return os.environ[name]
    if default is None:
        LOGGER.warning(f"${name} is not set; substituting an empty string")
        return ""
    return default


def merge_configs(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated with ``overlay``.

    Nested mappings (``thresholds``, ``watermarks``) merge key by key;
    any other value, lists included, is replaced wholesale.
    """
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = merge_configs(current, value)
        merged[key] = value
    return merged


def dict_to_config(data: Dict[str, Any]) -> MultiCovConfig:
    """Convert a validated dict to a typed MultiCovConfig.

    Single strings are accepted where lists are expected.

    Args:
        data: Configuration dictionary.

    Returns:
        Typed MultiCovConfig instance.

    Raises:
        ConfigError: If a value has an unusable type.
    """
    values = dict(data)
    for key in ("include", "exclude", "extension", "reporter", "ignore_class_methods", "require"):
        if isinstance(values.get(key), str):
            values[key] = [values[key]]
    if values.get("thresholds") is not None and not isinstance(values["thresholds"], dict):
        raise ConfigError("Invalid configuration: 'thresholds' must be a mapping")

    try:
        return MultiCovConfig.from_dict(values)
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def config_to_environment(config: MultiCovConfig) -> str:
    """Serialize a config for child processes."""
    return json.dumps(config.to_dict(), sort_keys=True)


def config_from_environment(environ: Optional[Dict[str, str]] = None) -> Optional[MultiCovConfig]:
    """Rebuild the parent's config from ``MULTICOV_CONFIG``.

    Args:
        environ: Environment mapping (default: ``os.environ``).

    Returns:
        The inherited config, or None when the variable is unset.

    Raises:
        ConfigError: If the variable does not hold a JSON object.
    """
    env = os.environ if environ is None else environ
    raw = env.get(CONFIG_ENV)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {CONFIG_ENV}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_ENV} must hold a JSON object")
    return dict_to_config(data)
