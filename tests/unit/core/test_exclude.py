"""Tests for multicov.core.exclude."""

from __future__ import annotations

from pathlib import Path

from multicov.core.exclude import FileFilter


class TestShouldInstrument:
    """Tests for FileFilter.should_instrument."""

    def test_source_file_is_instrumented(self, project: Path) -> None:
        assert FileFilter(project).should_instrument(project / "pkg" / "a.py")

    def test_accepts_relative_paths(self, project: Path) -> None:
        assert FileFilter(project).should_instrument("pkg/a.py")

    def test_default_excludes_tests(self, project: Path) -> None:
        assert not FileFilter(project).should_instrument(project / "tests" / "test_a.py")

    def test_excludes_site_packages(self, project: Path) -> None:
        path = project / "venv" / "lib" / "site-packages" / "dep" / "mod.py"
        assert not FileFilter(project).should_instrument(path)

    def test_site_packages_can_be_allowed(self, project: Path) -> None:
        path = project / "venv" / "lib" / "site-packages" / "dep" / "mod.py"
        file_filter = FileFilter(project, exclude=["tests/**"], exclude_site_packages=False)
        assert file_filter.should_instrument(path)

    def test_negated_exclude_wins_over_site_packages(self, project: Path) -> None:
        path = project / "venv" / "lib" / "site-packages" / "dep" / "mod.py"
        file_filter = FileFilter(project, exclude=["!**/site-packages/dep/**"])
        assert file_filter.should_instrument(path)

    def test_rejects_other_extensions(self, project: Path) -> None:
        assert not FileFilter(project).should_instrument(project / "pkg" / "data.txt")

    def test_extra_extension(self, project: Path) -> None:
        file_filter = FileFilter(project, extensions=[".py", ".txt"])
        assert file_filter.should_instrument(project / "pkg" / "data.txt")

    def test_rejects_files_outside_root(self, project: Path, tmp_path: Path) -> None:
        outside = tmp_path / "elsewhere.py"
        assert not FileFilter(project).should_instrument(outside)

    def test_include_restricts(self, project: Path) -> None:
        file_filter = FileFilter(project, include=["pkg/a.py"])
        assert file_filter.should_instrument(project / "pkg" / "a.py")
        assert not file_filter.should_instrument(project / "pkg" / "b.py")


class TestRelative:
    """Tests for FileFilter.relative."""

    def test_posix_relative_path(self, project: Path) -> None:
        assert FileFilter(project).relative(project / "pkg" / "a.py") == "pkg/a.py"

    def test_outside_root_is_none(self, project: Path, tmp_path: Path) -> None:
        assert FileFilter(project).relative(tmp_path / "x.py") is None


class TestGlob:
    """Tests for FileFilter.glob."""

    def test_yields_included_sources(self, project: Path) -> None:
        assert list(FileFilter(project).glob()) == ["pkg/__init__.py", "pkg/a.py", "pkg/b.py"]

    def test_relative_to_given_root(self, project: Path) -> None:
        assert list(FileFilter(project).glob(project / "pkg")) == ["__init__.py", "a.py", "b.py"]
