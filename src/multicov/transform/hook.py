"""Import-time interception.

:class:`InstrumentingFinder` sits at the front of ``sys.meta_path``. For
every module whose source file passes the filter it swaps in an
:class:`InstrumentingLoader`, which compiles the instrumented source instead
of the original and injects the process accumulator into the module
namespace before execution. Bytecode caches are bypassed so stale ``.pyc``
files never hide instrumentation.
"""

from __future__ import annotations

import importlib.abc
import importlib.machinery
import importlib.util
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from multicov.core.errors import InstrumentationError
from multicov.core.logging import get_logger
from multicov.coverage.accumulator import COVERAGE_GLOBAL, CoverageAccumulator

LOGGER = get_logger(__name__)

# (code, filename) -> instrumented code
SourceTransform = Callable[[str, str], str]


class InstrumentingLoader(importlib.machinery.SourceFileLoader):
    """Source loader that runs every module through a transform."""

    def __init__(
        self,
        fullname: str,
        path: str,
        transform: SourceTransform,
        accumulator: CoverageAccumulator,
    ):
        super().__init__(fullname, path)
        self._transform = transform
        self._accumulator = accumulator

    def get_code(self, fullname: str) -> Any:
        source_path = self.get_filename(fullname)
        return self.source_to_code(self.get_data(source_path), source_path)

    def source_to_code(self, data: Any, path: Any, *, _optimize: int = -1) -> Any:
        source = importlib.util.decode_source(data)
        try:
            instrumented = self._transform(source, str(path))
        except InstrumentationError as e:
            print(str(e), file=sys.stderr)
            raise SystemExit(1) from e
        return compile(instrumented, path, "exec", dont_inherit=True, optimize=_optimize)

    def exec_module(self, module: Any) -> None:
        setattr(module, COVERAGE_GLOBAL, self._accumulator)
        super().exec_module(module)


class InstrumentingFinder(importlib.abc.MetaPathFinder):
    """Meta path finder that routes matching source files through a transform."""

    def __init__(
        self,
        transform: SourceTransform,
        should_instrument: Callable[[str], bool],
        accumulator: CoverageAccumulator,
        extensions: Optional[Sequence[str]] = None,
    ):
        """Initialize InstrumentingFinder.

        Args:
            transform: Called with ``(source, filename)`` for each module.
            should_instrument: Include/exclude predicate on absolute paths.
            accumulator: Injected into instrumented modules.
            extensions: Source extensions to consider.
        """
        self._transform = transform
        self._should_instrument = should_instrument
        self._accumulator = accumulator
        self._extensions = [ext.lower() for ext in (extensions or [".py"])]

    def find_spec(self, fullname: str, path: Any = None, target: Any = None) -> Any:
        spec = importlib.machinery.PathFinder.find_spec(fullname, path)
        if spec is None or not spec.origin:
            return None
        if not isinstance(spec.loader, importlib.machinery.SourceFileLoader):
            return None
        origin = spec.origin
        if Path(origin).suffix.lower() not in self._extensions:
            return None
        if not self._should_instrument(origin):
            return None

        LOGGER.debug(f"Instrumenting module {fullname} from {origin}")
        spec.loader = InstrumentingLoader(fullname, origin, self._transform, self._accumulator)
        return spec

    def install(self) -> "InstrumentingFinder":
        """Put this finder in front of ``sys.meta_path``."""
        if self not in sys.meta_path:
            sys.meta_path.insert(0, self)
        return self

    def uninstall(self) -> None:
        if self in sys.meta_path:
            sys.meta_path.remove(self)
