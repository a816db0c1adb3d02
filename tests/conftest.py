"""Shared fixtures for multicov unit tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from unittest.mock import patch

import pytest

from multicov.config.models import MultiCovConfig
from multicov.plugins.instrumenters.base import InstrumenterPlugin
from multicov.sourcemaps.mapping import SourceMap

MULTICOV_ENV_VARS = (
    "MULTICOV_CWD",
    "MULTICOV_PROCESS_ID",
    "MULTICOV_ROOT_ID",
    "MULTICOV_CONFIG",
    "MULTICOV_EXTERNAL_ID",
)


def loc(start_line: int, start_col: int, end_line: int, end_col: int) -> Dict[str, Any]:
    return {
        "start": {"line": start_line, "column": start_col},
        "end": {"line": end_line, "column": end_col},
    }


def make_coverage(
    path: str,
    statements: Sequence[Tuple[int, int]] = (),
    functions: Sequence[Tuple[str, int, int]] = (),
    branches: Sequence[Tuple[int, List[int]]] = (),
) -> Dict[str, Any]:
    """Build an istanbul-shaped record.

    statements: (line, hits); functions: (name, line, hits);
    branches: (line, [hits per arm]).
    """
    data: Dict[str, Any] = {
        "path": path,
        "statementMap": {},
        "fnMap": {},
        "branchMap": {},
        "s": {},
        "f": {},
        "b": {},
    }
    for index, (line, hits) in enumerate(statements):
        data["statementMap"][str(index)] = loc(line, 0, line, 10)
        data["s"][str(index)] = hits
    for index, (name, line, hits) in enumerate(functions):
        data["fnMap"][str(index)] = {
            "name": name,
            "decl": loc(line, 4, line, 4 + len(name)),
            "loc": loc(line, 0, line + 1, 0),
            "line": line,
        }
        data["f"][str(index)] = hits
    for index, (line, arm_hits) in enumerate(branches):
        data["branchMap"][str(index)] = {
            "type": "if",
            "loc": loc(line, 0, line, 20),
            "locations": [loc(line, arm * 5, line, arm * 5 + 4) for arm in range(len(arm_hits))],
            "line": line,
        }
        data["b"][str(index)] = list(arm_hits)
    return data


class CountingInstrumenter(InstrumenterPlugin):
    """Test instrumenter that tags code and counts its calls."""

    version = "test-1"

    def __init__(self, fail: bool = False, **options: Any):
        super().__init__(**options)
        self.calls: List[str] = []
        self.fail = fail
        self._last: Optional[Dict[str, Any]] = None

    @property
    def name(self) -> str:
        return "counting"

    def instrument(self, code: str, filename: str, source_map: Optional[SourceMap] = None) -> str:
        self.calls.append(filename)
        if self.fail:
            raise RuntimeError("boom")
        self._last = make_coverage(filename, statements=[(1, 0), (2, 0)])
        return f"# instrumented\n{code}"

    def last_file_coverage(self) -> Optional[Dict[str, Any]]:
        return self._last


@pytest.fixture(autouse=True)
def clean_multicov_env() -> Any:
    """Keep process identity variables from leaking between tests."""
    with patch.dict(os.environ):
        for name in MULTICOV_ENV_VARS:
            os.environ.pop(name, None)
        yield


@pytest.fixture
def coverage_factory() -> Callable[..., Dict[str, Any]]:
    return make_coverage


@pytest.fixture
def instrumenter() -> CountingInstrumenter:
    return CountingInstrumenter()


@pytest.fixture
def instrumenter_factory() -> Callable[..., CountingInstrumenter]:
    return CountingInstrumenter


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small project tree with sources, a test file and a site-packages copy."""
    root = tmp_path / "project"
    (root / "pkg").mkdir(parents=True)
    (root / "tests").mkdir()
    (root / "pkg" / "__init__.py").write_text("")
    (root / "pkg" / "a.py").write_text("x = 1\n")
    (root / "pkg" / "b.py").write_text("y = 2\n")
    (root / "pkg" / "data.txt").write_text("not code\n")
    (root / "tests" / "test_a.py").write_text("def test(): pass\n")
    (root / "venv" / "lib" / "site-packages" / "dep").mkdir(parents=True)
    (root / "venv" / "lib" / "site-packages" / "dep" / "mod.py").write_text("z = 3\n")
    return root


@pytest.fixture
def config(project: Path) -> MultiCovConfig:
    return MultiCovConfig(cwd=str(project))
