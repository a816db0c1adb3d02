"""Coverage session.

A :class:`Session` builds every component once from a
:class:`~multicov.config.models.MultiCovConfig` and hands them to each other
by reference: the file filter, the source-map registry, one caching
transform per extension, the instrumenter, the accumulator, the writer and
the report collector. It is used in two roles:

* inside a measured process, :meth:`Session.wrap` installs the import hook
  and the exit flush (:meth:`Session.start` first prepares the run in the
  root process);
* in the reporting process, :meth:`Session.report` and
  :meth:`Session.check_coverage` merge the snapshots every process wrote.
"""

from __future__ import annotations

import dataclasses
import importlib
import importlib.util
import os
import shutil
import sys
from pathlib import Path
from typing import Dict, Optional, TextIO, Union

from multicov.config.loader import CONFIG_ENV, config_to_environment
from multicov.config.models import MultiCovConfig, ThresholdConfig
from multicov.core.errors import ConfigError, InstrumentationError
from multicov.core.exclude import FileFilter
from multicov.core.hashing import salt
from multicov.core.logging import get_logger
from multicov.coverage.accumulator import CoverageAccumulator
from multicov.coverage.models import CoverageMap
from multicov.plugins.instrumenters import (
    InstrumenterPlugin,
    discover_instrumenter_plugins,
    get_instrumenter_plugin,
)
from multicov.plugins.reporters import ReportContext, get_reporter_plugin
from multicov.process.info import PROCESS_INFO_DIRNAME, ProcessInfo
from multicov.process.lifecycle import ExitLifecycle
from multicov.process.writer import CoverageWriter
from multicov.report.collector import ReportCollector
from multicov.report.thresholds import ThresholdChecker, ThresholdResult
from multicov.sourcemaps.mapping import SourceMap
from multicov.sourcemaps.registry import SourceMapRegistry
from multicov.transform.cache import CachingTransform, TransformFunction
from multicov.transform.hook import InstrumentingFinder

LOGGER = get_logger(__name__)

# Set for nested invocations; the temp directory then belongs to an outer run.
CWD_ENV = "MULTICOV_CWD"

# Returned instead of instrumented code while discovering never-loaded files
DISCOVERY_STUB = "def _multicov_stub():\n    pass\n"

# Used whatever the configured instrumenter when ``instrument`` is off
NOOP_INSTRUMENTER = "noop"


class Session:
    """All coverage components of one process, built once."""

    def __init__(
        self,
        config: MultiCovConfig,
        accumulator: Optional[CoverageAccumulator] = None,
        instrumenter: Optional[InstrumenterPlugin] = None,
    ):
        """Initialize Session.

        Args:
            config: Effective configuration.
            accumulator: Process-wide coverage store (default: a new one).
            instrumenter: Pre-built instrumenter; otherwise the plugin named
                by ``config.instrumenter`` is created once when first needed.

        Raises:
            ConfigError: If the configured instrumenter is not installed.
        """
        self.config = config
        self.cwd = Path(config.cwd).resolve()
        self.cache_directory = config.cache_path()
        self.cache = bool(config.cache)
        self.extensions = list(config.extension)

        self.file_filter = FileFilter(
            self.cwd,
            include=config.include,
            exclude=config.exclude,
            extensions=self.extensions,
            exclude_site_packages=config.exclude_site_packages,
        )
        self.source_maps = SourceMapRegistry(cache=self.cache, cache_directory=self.cache_directory)
        self.accumulator = accumulator if accumulator is not None else CoverageAccumulator()
        self.process_info = ProcessInfo.from_environment(
            directory=self.temp_directory() / PROCESS_INFO_DIRNAME
        )
        # filename -> content hash, shared by every transform and the writer
        self.content_hashes: Dict[str, str] = {}

        self._instrumenter = instrumenter
        self._discovery = False
        self.salt = salt(config.salt_options(), self._instrumenter_version())
        self.transforms: Dict[str, CachingTransform] = {
            ext: self._create_transform(ext) for ext in self.extensions
        }

        self.writer = CoverageWriter(
            self.accumulator,
            self.process_info,
            self.temp_directory(),
            self.file_filter.should_instrument,
            self.source_maps,
            hashes=self.content_hashes,
            cache=self.cache,
        )
        self.collector = ReportCollector(
            self.temp_directory(),
            self.source_maps,
            self.file_filter,
            exclude_after_remap=config.exclude_after_remap,
        )
        self.threshold_checker = ThresholdChecker()

        self._finder: Optional[InstrumentingFinder] = None
        self._lifecycle: Optional[ExitLifecycle] = None

    # Instrumentation

    def _instrumenter_name(self) -> str:
        # With instrumentation off, files are only hooked for source maps.
        return self.config.instrumenter if self.config.instrument else NOOP_INSTRUMENTER

    def _instrumenter_version(self) -> str:
        if self._instrumenter is not None:
            return self._instrumenter.version
        name = self._instrumenter_name()
        plugin_class = discover_instrumenter_plugins().get(name)
        if plugin_class is None:
            raise ConfigError(f"Unknown instrumenter: {name}")
        return plugin_class.version

    def instrumenter(self) -> InstrumenterPlugin:
        """The session's instrumenter, created on first use."""
        if self._instrumenter is None:
            self._instrumenter = self._create_instrumenter()
        return self._instrumenter

    def _create_instrumenter(self) -> InstrumenterPlugin:
        config = self.config
        name = self._instrumenter_name()
        instrumenter = get_instrumenter_plugin(
            name,
            compact=config.compact,
            preserve_comments=config.preserve_comments,
            produce_source_map=config.produce_source_map,
            ignore_class_methods=config.ignore_class_methods,
        )
        if instrumenter is None:
            raise ConfigError(f"Unknown instrumenter: {name}")
        LOGGER.debug(f"Using instrumenter {instrumenter.name}")
        return instrumenter

    def _disable_caching_transform(self) -> bool:
        return not (self.cache and self.config.is_child_process)

    def _create_transform(self, ext: str) -> CachingTransform:
        if self.config.eager:
            return CachingTransform(
                self.cache_directory,
                salt=self.salt,
                transform=self._transform_factory(self.cache_directory),
                ext=ext,
                disable_cache=self._disable_caching_transform(),
                hashes=self.content_hashes,
            )
        return CachingTransform(
            self.cache_directory,
            salt=self.salt,
            factory=self._transform_factory,
            ext=ext,
            disable_cache=self._disable_caching_transform(),
            hashes=self.content_hashes,
        )

    def _transform_factory(self, cache_dir: Optional[Path]) -> TransformFunction:
        instrumenter = self.instrumenter()

        def transform(code: str, filename: str, hash_value: str) -> str:
            source_map = None
            if self.config.source_map:
                source_map = self.source_maps.extract_and_register(code, filename, hash_value)
            instrumented = self._instrument(instrumenter, code, filename, source_map)
            if self._discovery:
                return DISCOVERY_STUB
            return instrumented

        return transform

    def _instrument(
        self,
        instrumenter: InstrumenterPlugin,
        code: str,
        filename: str,
        source_map: Optional[SourceMap],
    ) -> str:
        try:
            return instrumenter.instrument(code, filename, source_map)
        except Exception as e:
            LOGGER.debug(f"Failed to instrument {filename}", exc_info=True)
            if self.config.exit_on_error:
                raise InstrumentationError(filename, e) from e
            return code

    def _transform(self, code: str, filename: str) -> Optional[str]:
        transform = self.transforms.get(Path(filename).suffix.lower())
        if transform is None:
            return None
        return transform(code, filename)

    def _maybe_instrument_source(self, code: str, filename: str) -> Optional[str]:
        if not self.file_filter.should_instrument(filename):
            return None
        return self._transform(code, filename)

    def _handle_source(self, code: str, filename: str) -> str:
        filename = str((self.cwd / filename).resolve())
        return self._maybe_instrument_source(code, filename) or code

    # Files

    def add_file(self, filename: Union[str, Path]) -> Optional[str]:
        """Instrument ``filename`` if it passes the filter."""
        source = importlib.util.decode_source(Path(filename).read_bytes())
        return self._maybe_instrument_source(source, str(filename))

    def add_all_files(self) -> None:
        """Record zero coverage for every matching file, then write it.

        Files are instrumented without the cache and without executing them;
        the instrumenter's location tables become baseline entries marked
        ``all`` so that executed data always takes precedence when merged.
        """
        saved = {ext: transform.disable_cache for ext, transform in self.transforms.items()}
        self._discovery = True
        for transform in self.transforms.values():
            transform.disable_cache = True
        try:
            for rel_file in self.file_filter.glob(self.cwd):
                self.add_file(self.cwd / rel_file)
                last = self.instrumenter().last_file_coverage()
                if last:
                    record = dict(last)
                    record["all"] = True
                    self.accumulator.set(record["path"], record)
        finally:
            self._discovery = False
            for ext, disabled in saved.items():
                self.transforms[ext].disable_cache = disabled

        self.write_coverage_file()

    def instrument_all_files(
        self,
        input_path: Union[str, Path],
        output: Optional[Union[str, Path]] = None,
        complete_copy: bool = False,
        stream: Optional[TextIO] = None,
    ) -> None:
        """Instrument a file or a directory tree.

        Args:
            input_path: File or directory to instrument.
            output: Destination directory; instrumented code is printed
                when omitted.
            complete_copy: Copy every file of a directory before writing
                instrumented sources over the copies.
            stream: Where to print without ``output`` (default: stdout).
        """
        source = Path(input_path).resolve()
        target = Path(output).resolve() if output is not None else None

        if source.is_dir():
            if complete_copy and target is not None:
                self._copy_tree(source, target)
            for rel_file in list(self.file_filter.glob(source)):
                if target is not None and (source / rel_file).is_relative_to(target):
                    continue
                self._instrument_to(source / rel_file, target / rel_file if target else None, stream)
        else:
            self._instrument_to(source, target / source.name if target else None, stream)

    def _instrument_to(self, in_file: Path, out_file: Optional[Path], stream: Optional[TextIO]) -> None:
        code = in_file.read_text(encoding="utf-8")
        out_code = self._transform(code, str(in_file)) or code
        if out_file is None:
            print(out_code, file=stream or sys.stdout)
            return
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text(out_code, encoding="utf-8")
        shutil.copymode(in_file, out_file)

    @staticmethod
    def _copy_tree(source: Path, target: Path) -> None:
        for dirpath, dirnames, filenames in os.walk(source):
            current = Path(dirpath)
            dirnames[:] = [
                d for d in dirnames if d != ".git" and (current / d).resolve() != target
            ]
            for name in filenames:
                src = current / name
                dst = target / src.relative_to(source)
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dst)

    # Process lifecycle

    def start(self) -> "Session":
        """Begin a run in the root process, then measure it.

        Clears the previous run when ``clean`` is set, records the zero
        baseline when ``all`` is set and finally wraps this process.
        """
        if self.config.clean:
            self.reset()
        else:
            self.create_temp_directory()
        if self.config.all:
            self.add_all_files()
        return self.wrap()

    def wrap(self) -> "Session":
        """Start measuring this process.

        Imports the ``require`` modules, exports the identity and config for
        child processes, installs the import hook and arranges for coverage
        to be written at exit.

        Raises:
            ConfigError: If a ``require`` module cannot be imported.
        """
        self._load_additional_modules()

        child_config = dataclasses.replace(self.config, is_child_process=True)
        os.environ.update(self.process_info.child_environment())
        os.environ[CONFIG_ENV] = config_to_environment(child_config)
        os.environ.setdefault(CWD_ENV, str(self.cwd))

        self._lifecycle = ExitLifecycle(self.write_coverage_file)
        self._lifecycle.install()

        self._finder = InstrumentingFinder(
            self._handle_source,
            self.file_filter.should_instrument,
            self.accumulator,
            extensions=self.extensions,
        )
        self._finder.install()
        return self

    def _load_additional_modules(self) -> None:
        for name in self.config.require:
            try:
                importlib.import_module(name)
            except ImportError as e:
                raise ConfigError(f"Cannot import required module {name}: {e}") from e
            LOGGER.debug(f"Loaded required module {name}")

    def unwrap(self) -> None:
        """Remove the import hook and the exit flush."""
        if self._finder is not None:
            self._finder.uninstall()
            self._finder = None
        if self._lifecycle is not None:
            self._lifecycle.uninstall()
            self._lifecycle = None

    def write_coverage_file(self) -> Path:
        return self.writer.write_coverage_file()

    # Directories

    def temp_directory(self) -> Path:
        return self.config.temp_path()

    def report_directory(self) -> Path:
        return self.config.report_path()

    def cleanup(self) -> None:
        """Delete the temp directory unless an outer run owns it."""
        if os.environ.get(CWD_ENV):
            return
        shutil.rmtree(self.temp_directory(), ignore_errors=True)

    def clear_cache(self) -> None:
        if self.cache:
            shutil.rmtree(self.cache_directory, ignore_errors=True)

    def create_temp_directory(self) -> None:
        self.temp_directory().mkdir(parents=True, exist_ok=True)
        if self.cache:
            self.cache_directory.mkdir(parents=True, exist_ok=True)
        (self.temp_directory() / PROCESS_INFO_DIRNAME).mkdir(parents=True, exist_ok=True)

    def reset(self) -> None:
        self.cleanup()
        self.create_temp_directory()

    # Reporting

    def coverage_map(self) -> CoverageMap:
        return self.collector.coverage_map_from_all_files()

    def report(self, output: Optional[TextIO] = None) -> CoverageMap:
        """Render the merged coverage with every configured reporter.

        Raises:
            ConfigError: If a reporter is not installed.
        """
        coverage_map = self.coverage_map()
        context = ReportContext(
            directory=self.report_directory(),
            watermarks=self.config.watermarks,
            output=output or sys.stdout,
            skip_empty=self.config.skip_empty,
            skip_full=self.config.skip_full,
            max_cols=shutil.get_terminal_size((100, 20)).columns,
        )
        for name in self.config.reporter:
            reporter = get_reporter_plugin(name)
            if reporter is None:
                raise ConfigError(f"Unknown reporter: {name}")
            LOGGER.info(f"Running reporter {name}")
            reporter.execute(coverage_map, context)
        return coverage_map

    def check_coverage(
        self,
        thresholds: Optional[ThresholdConfig] = None,
        per_file: Optional[bool] = None,
    ) -> ThresholdResult:
        """Compare merged coverage against ``thresholds`` (default: config)."""
        return self.threshold_checker.check_coverage(
            self.coverage_map(),
            thresholds if thresholds is not None else self.config.thresholds,
            per_file,
        )
