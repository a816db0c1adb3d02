"""Tests for the noop instrumenter and instrumenter defaults."""

from __future__ import annotations

from multicov.plugins.instrumenters.noop import NoopInstrumenter


class TestNoopInstrumenter:
    def test_name(self) -> None:
        assert NoopInstrumenter().name == "noop"

    def test_returns_code_unchanged(self) -> None:
        code = "def f():\n    return 1\n"
        assert NoopInstrumenter().instrument(code, "/src/f.py") == code

    def test_has_no_baseline(self) -> None:
        instrumenter = NoopInstrumenter()
        instrumenter.instrument("x = 1\n", "/src/f.py")
        assert instrumenter.last_file_coverage() is None

    def test_keeps_options(self) -> None:
        instrumenter = NoopInstrumenter(
            compact=False, ignore_class_methods=["render"], custom="value"
        )
        assert instrumenter.compact is False
        assert instrumenter.ignore_class_methods == ["render"]
        assert instrumenter.options == {"custom": "value"}
