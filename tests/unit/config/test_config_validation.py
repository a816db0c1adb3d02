"""Tests for multicov.config.validation."""

from __future__ import annotations

from multicov.config.validation import validate_config


class TestValidateConfig:
    """Tests for validate_config."""

    def test_valid_config_has_no_warnings(self) -> None:
        data = {
            "include": ["src/**"],
            "thresholds": {"lines": 80, "per_file": True},
            "watermarks": {"lines": [50, 80]},
        }
        assert validate_config(data, source="test") == []

    def test_unknown_key_suggests_typo_fix(self) -> None:
        warnings = validate_config({"reporterr": ["text"]}, source="test")
        assert len(warnings) == 1
        assert warnings[0].key == "reporterr"
        assert warnings[0].suggestion == "reporter"

    def test_list_key_with_wrong_type(self) -> None:
        warnings = validate_config({"exclude": 5}, source="test")
        assert warnings[0].message == "'exclude' must be a list, got int"

    def test_threshold_out_of_range(self) -> None:
        warnings = validate_config({"thresholds": {"lines": 120}}, source="test")
        assert "between 0 and 100" in warnings[0].message

    def test_threshold_not_a_number(self) -> None:
        warnings = validate_config({"thresholds": {"branches": "high"}}, source="test")
        assert warnings[0].key == "thresholds.branches"

    def test_per_file_must_be_boolean(self) -> None:
        warnings = validate_config({"thresholds": {"per_file": "yes"}}, source="test")
        assert warnings[0].key == "thresholds.per_file"

    def test_watermark_shape(self) -> None:
        warnings = validate_config({"watermarks": {"lines": [50]}}, source="test")
        assert warnings[0].key == "watermarks.lines"

    def test_non_mapping(self) -> None:
        warnings = validate_config(["a"], source="test")  # type: ignore[arg-type]
        assert "must be a mapping" in warnings[0].message
