"""Include/exclude predicate and file discovery.

Patterns use gitignore syntax (evaluated with pathspec) relative to the
project root. A file is instrumented when it lives under the root, has a
configured extension, matches ``include`` (or ``include`` is empty) and
does not match ``exclude``. Exclude patterns may be negated with ``!``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

import pathspec

from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_EXCLUDE: List[str] = [
    "coverage/**",
    "test/**",
    "tests/**",
    "**/test_*.py",
    "**/*_test.py",
    "**/conftest.py",
    "setup.py",
    "**/__pycache__/**",
    ".git/**",
]

SITE_PACKAGES_EXCLUDE: List[str] = [
    "**/site-packages/**",
    "**/dist-packages/**",
    "**/.venv/**",
    "**/venv/**",
]


class FileFilter:
    """Decides which files are instrumented and reported."""

    def __init__(
        self,
        cwd: Union[str, Path],
        include: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        extensions: Optional[Sequence[str]] = None,
        exclude_site_packages: bool = True,
    ):
        """Initialize FileFilter.

        Args:
            cwd: Project root that patterns are relative to.
            include: Patterns a file must match; empty means everything.
            exclude: Patterns that reject a file (default: DEFAULT_EXCLUDE).
            extensions: Accepted lowercase extensions including the dot.
            exclude_site_packages: Also reject installed third-party code.
        """
        self.cwd = Path(cwd).resolve()
        self.include = list(include or [])
        self.exclude = list(exclude) if exclude else list(DEFAULT_EXCLUDE)
        if exclude_site_packages:
            # Prepend so user negations such as "!**/site-packages/mine/**" still win.
            self.exclude = SITE_PACKAGES_EXCLUDE + self.exclude
        self.extensions = [ext.lower() for ext in (extensions or [".py"])]

        self._include_spec = (
            pathspec.PathSpec.from_lines("gitignore", self.include) if self.include else None
        )
        self._exclude_spec = pathspec.PathSpec.from_lines("gitignore", self.exclude)

    def relative(self, filename: Union[str, Path]) -> Optional[str]:
        """Path relative to the project root with forward slashes.

        Returns None for files outside the project root.
        """
        path = Path(filename)
        if not path.is_absolute():
            path = self.cwd / path
        try:
            rel = Path(os.path.normpath(path)).relative_to(self.cwd)
        except ValueError:
            return None
        return rel.as_posix()

    def should_instrument(self, filename: Union[str, Path]) -> bool:
        """Check whether ``filename`` passes the include/exclude rules.

        Args:
            filename: Absolute path, or a path relative to the project root.

        Returns:
            True if the file should be instrumented and reported.
        """
        rel = self.relative(filename)
        if rel is None or rel in ("", "."):
            return False
        if Path(rel).suffix.lower() not in self.extensions:
            return False
        if self._include_spec is not None and not self._include_spec.match_file(rel):
            return False
        return not self._exclude_spec.match_file(rel)

    def glob(self, root: Optional[Union[str, Path]] = None) -> Iterator[str]:
        """Yield files under ``root`` that pass :meth:`should_instrument`.

        Args:
            root: Directory to walk (default: the project root).

        Yields:
            Paths relative to ``root``, sorted per directory.
        """
        base = Path(root).resolve() if root is not None else self.cwd
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if d not in (".git", "__pycache__"))
            for name in sorted(filenames):
                path = Path(dirpath) / name
                if self.should_instrument(path):
                    yield path.relative_to(base).as_posix()
