"""Tests for multicov.core.logging."""

from __future__ import annotations

import io
import logging

from multicov.core.logging import ROOT_LOGGER_NAME, configure_logging, get_logger


class TestGetLogger:
    """Tests for get_logger."""

    def test_prefixes_foreign_names(self) -> None:
        assert get_logger("thirdparty").name == "multicov.thirdparty"

    def test_keeps_package_names(self) -> None:
        assert get_logger("multicov.session").name == "multicov.session"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def teardown_method(self) -> None:
        configure_logging()

    def test_default_level_is_warning(self) -> None:
        configure_logging()
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.WARNING

    def test_debug_wins_over_quiet(self) -> None:
        configure_logging(debug=True, quiet=True)
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_quiet(self) -> None:
        configure_logging(quiet=True)
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.ERROR

    def test_reconfiguring_does_not_stack_handlers(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=True, stream=stream)
        configure_logging(verbose=True, stream=stream)
        get_logger("test").info("hello")
        assert stream.getvalue().count("hello") == 1
