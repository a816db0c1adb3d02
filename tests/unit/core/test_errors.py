"""Tests for multicov.core.errors."""

from __future__ import annotations

from multicov.core.errors import (
    ConfigError,
    InstrumentationError,
    MultiCovError,
    PersistenceError,
)


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_all_derive_from_base(self) -> None:
        for error_class in (ConfigError, InstrumentationError, PersistenceError):
            assert issubclass(error_class, MultiCovError)

    def test_instrumentation_error_message(self) -> None:
        cause = RuntimeError("bad syntax")
        error = InstrumentationError("/src/a.py", cause)
        assert str(error) == "Failed to instrument /src/a.py"
        assert error.cause is cause

    def test_persistence_error_includes_cause(self) -> None:
        error = PersistenceError("/tmp/out.json", OSError("disk full"))
        assert str(error) == "Failed to write coverage data to /tmp/out.json: disk full"
