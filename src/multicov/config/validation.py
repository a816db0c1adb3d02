"""Configuration validation for multicov.

Warns on unknown keys (with a suggestion for likely typos) and on values
of the wrong shape. Does not raise; the loader decides what is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from difflib import get_close_matches
from typing import Any, Dict, List, Optional, Set

from multicov.config.models import METRICS, MultiCovConfig, ThresholdConfig
from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

VALID_TOP_LEVEL_KEYS: Set[str] = {f.name for f in fields(MultiCovConfig)}

VALID_THRESHOLD_KEYS: Set[str] = {f.name for f in fields(ThresholdConfig)}

LIST_KEYS: Set[str] = {
    "include", "exclude", "extension", "reporter", "ignore_class_methods", "require",
}


@dataclass
class ConfigValidationWarning:
    """A validation warning for configuration."""

    message: str
    source: str
    key: Optional[str] = None
    suggestion: Optional[str] = None


def validate_config(
    data: Dict[str, Any],
    source: str,
) -> List[ConfigValidationWarning]:
    """Validate configuration dictionary.

    Args:
        data: Config dictionary to validate.
        source: Source file path for warning messages.

    Returns:
        List of validation warnings.
    """
    warnings: List[ConfigValidationWarning] = []

    if not isinstance(data, dict):
        warnings.append(ConfigValidationWarning(
            message=f"Config must be a mapping, got {type(data).__name__}",
            source=source,
        ))
        return warnings

    for key in data.keys():
        if key not in VALID_TOP_LEVEL_KEYS:
            _add(warnings, ConfigValidationWarning(
                message=f"Unknown top-level key '{key}'",
                source=source,
                key=key,
                suggestion=_suggest_key(key, VALID_TOP_LEVEL_KEYS),
            ))

    for key in LIST_KEYS:
        value = data.get(key)
        if value is not None and not isinstance(value, (list, str)):
            _add(warnings, ConfigValidationWarning(
                message=f"'{key}' must be a list, got {type(value).__name__}",
                source=source,
                key=key,
            ))

    thresholds = data.get("thresholds")
    if thresholds is not None:
        if not isinstance(thresholds, dict):
            _add(warnings, ConfigValidationWarning(
                message=f"'thresholds' must be a mapping, got {type(thresholds).__name__}",
                source=source,
                key="thresholds",
            ))
        else:
            warnings.extend(_validate_thresholds(thresholds, source))

    watermarks = data.get("watermarks")
    if isinstance(watermarks, dict):
        for metric, pair in watermarks.items():
            if metric not in METRICS:
                _add(warnings, ConfigValidationWarning(
                    message=f"Unknown watermark metric '{metric}'",
                    source=source,
                    key=f"watermarks.{metric}",
                    suggestion=_suggest_key(metric, set(METRICS)),
                ))
            elif not (isinstance(pair, list) and len(pair) == 2):
                _add(warnings, ConfigValidationWarning(
                    message=f"'watermarks.{metric}' must be a [low, high] pair",
                    source=source,
                    key=f"watermarks.{metric}",
                ))

    return warnings


def _validate_thresholds(
    thresholds: Dict[str, Any], source: str
) -> List[ConfigValidationWarning]:
    warnings: List[ConfigValidationWarning] = []
    for key, value in thresholds.items():
        if key not in VALID_THRESHOLD_KEYS:
            _add(warnings, ConfigValidationWarning(
                message=f"Unknown key 'thresholds.{key}'",
                source=source,
                key=f"thresholds.{key}",
                suggestion=_suggest_key(key, VALID_THRESHOLD_KEYS),
            ))
            continue
        if key == "per_file":
            if not isinstance(value, bool):
                _add(warnings, ConfigValidationWarning(
                    message="'thresholds.per_file' must be a boolean",
                    source=source,
                    key="thresholds.per_file",
                ))
            continue
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            _add(warnings, ConfigValidationWarning(
                message=f"'thresholds.{key}' must be a number",
                source=source,
                key=f"thresholds.{key}",
            ))
        elif not 0 <= value <= 100:
            _add(warnings, ConfigValidationWarning(
                message=f"'thresholds.{key}' should be between 0 and 100, got {value}",
                source=source,
                key=f"thresholds.{key}",
            ))
    return warnings


def _suggest_key(invalid_key: str, valid_keys: Set[str]) -> Optional[str]:
    """Suggest a valid key for a potential typo."""
    matches = get_close_matches(invalid_key, sorted(valid_keys), n=1, cutoff=0.6)
    return matches[0] if matches else None


def _add(warnings: List[ConfigValidationWarning], warning: ConfigValidationWarning) -> None:
    warnings.append(warning)
    msg = f"{warning.message} in {warning.source}"
    if warning.suggestion:
        msg += f" (did you mean '{warning.suggestion}'?)"
    LOGGER.warning(msg)
