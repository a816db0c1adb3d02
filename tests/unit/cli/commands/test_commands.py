"""Tests for the multicov CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict
from unittest.mock import patch

import pytest

from multicov.cli import EXIT_INVALID_USAGE, EXIT_RUNTIME_ERROR, EXIT_SUCCESS, EXIT_THRESHOLD_FAILED, main
from multicov.core.errors import InstrumentationError


@pytest.fixture
def half_covered(project: Path, coverage_factory: Callable[..., Dict[str, Any]]) -> Path:
    """A project whose only snapshot covers half of pkg/a.py."""
    path = str((project / "pkg" / "a.py").resolve())
    output = project / ".multicov_output"
    output.mkdir()
    (output / "one.json").write_text(
        json.dumps({path: coverage_factory(path, statements=[(1, 1), (2, 0)])})
    )
    return project


class TestReportCommand:
    """Tests for the report command."""

    def test_renders_reports(self, half_covered: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--cwd", str(half_covered), "report", "--reporter", "text-summary"])
        assert code == EXIT_SUCCESS
        assert "Statements  : 50.00% ( 1/2 )" in capsys.readouterr().out

    def test_check_coverage_flag(self, half_covered: Path) -> None:
        code = main([
            "--cwd", str(half_covered), "report", "--reporter", "json",
            "--check-coverage", "--lines", "90",
        ])
        assert code == EXIT_THRESHOLD_FAILED
        assert (half_covered / "coverage" / "coverage-final.json").exists()


class TestCheckCoverageCommand:
    """Tests for the check-coverage command."""

    def test_below_threshold(self, half_covered: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--cwd", str(half_covered), "check-coverage", "--lines", "90"]) == EXIT_THRESHOLD_FAILED
        assert "does not meet global threshold (90%)" in capsys.readouterr().err

    def test_meets_threshold(self, half_covered: Path) -> None:
        assert main(["--cwd", str(half_covered), "check-coverage", "--lines", "50"]) == EXIT_SUCCESS

    def test_thresholds_from_config_file(self, half_covered: Path) -> None:
        (half_covered / ".multicov.yml").write_text("thresholds:\n  statements: 60\n  lines: 0\n")
        assert main(["--cwd", str(half_covered), "check-coverage"]) == EXIT_THRESHOLD_FAILED


class TestMergeCommand:
    """Tests for the merge command."""

    def test_merges_into_output_file(
        self, half_covered: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["--cwd", str(half_covered), "merge", "--output-file", "out/all.json"]) == EXIT_SUCCESS

        data = json.loads((half_covered / "out" / "all.json").read_text())
        assert len(data) == 1
        assert "merged into" in capsys.readouterr().out

    def test_default_output_file(self, half_covered: Path) -> None:
        assert main(["--cwd", str(half_covered), "merge"]) == EXIT_SUCCESS
        assert (half_covered / "coverage.json").exists()

    def test_missing_input_directory(self, project: Path) -> None:
        assert main(["--cwd", str(project), "merge", "missing"]) == EXIT_INVALID_USAGE

    def test_write_failure_is_runtime_error(self, half_covered: Path) -> None:
        with patch.object(Path, "write_text", side_effect=OSError("read-only")):
            assert main(["--cwd", str(half_covered), "merge"]) == EXIT_RUNTIME_ERROR


class TestInstrumentCommand:
    """Tests for the instrument command."""

    def test_prints_single_file(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--cwd", str(project), "instrument", "pkg/a.py"]) == EXIT_SUCCESS
        assert "x = 1" in capsys.readouterr().out

    def test_writes_output_directory(self, project: Path) -> None:
        assert main(["--cwd", str(project), "instrument", "pkg", "build"]) == EXIT_SUCCESS
        assert (project / "build" / "a.py").read_text() == "x = 1\n"

    def test_missing_input(self, project: Path) -> None:
        assert main(["--cwd", str(project), "instrument", "nope"]) == EXIT_INVALID_USAGE

    def test_refuses_in_place(self, project: Path) -> None:
        assert main(["--cwd", str(project), "instrument", "pkg", "pkg"]) == EXIT_INVALID_USAGE

    def test_instrumentation_error(self, project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch(
            "multicov.session.Session.instrument_all_files",
            side_effect=InstrumentationError("pkg/a.py"),
        ):
            code = main(["--cwd", str(project), "instrument", "pkg", "build", "--exit-on-error"])
        assert code == EXIT_RUNTIME_ERROR
        assert "Failed to instrument pkg/a.py" in capsys.readouterr().out
