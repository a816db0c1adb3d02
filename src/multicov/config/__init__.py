"""Configuration module for multicov.

Provides configuration file loading, parsing, and validation with support for:
- Project-level config (.multicov.yml)
- Environment variable expansion
- Config inheritance by child processes
"""

from multicov.config.models import (
    METRICS,
    MultiCovConfig,
    ThresholdConfig,
)
from multicov.config.loader import (
    ConfigError,
    config_from_environment,
    config_to_environment,
    find_project_config,
    load_config,
)
from multicov.config.validation import validate_config, ConfigValidationWarning

__all__ = [
    "METRICS",
    "MultiCovConfig",
    "ThresholdConfig",
    "ConfigError",
    "config_from_environment",
    "config_to_environment",
    "find_project_config",
    "load_config",
    "validate_config",
    "ConfigValidationWarning",
]
