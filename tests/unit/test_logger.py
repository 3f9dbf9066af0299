"""
Unit tests for the pipeline logger.
"""

import logging

import pytest

from src.common import logger as logger_module
from src.common.logger import get_logger, set_global_debug_mode, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    set_global_debug_mode(False)


class TestPipelineLogger:
    """Tests for run/stage prefixes."""

    def test_prefix_with_run_and_stage(self, caplog):
        log = get_logger("tests.logger", run_id="3f2a9c1e77aa", stage="match")

        with caplog.at_level(logging.INFO, logger="tests.logger"):
            log.log(logging.INFO, "Matched 2 companies")

        assert caplog.records[0].getMessage() == "[run:3f2a9c1e] [match] Matched 2 companies"

    def test_no_prefix_without_context(self, caplog):
        log = get_logger("tests.logger")

        with caplog.at_level(logging.INFO, logger="tests.logger"):
            log.log(logging.WARNING, "plain")

        assert caplog.records[0].getMessage() == "plain"
        assert caplog.records[0].levelno == logging.WARNING

    def test_bind_keeps_run(self):
        log = get_logger("tests.logger", run_id="abcdef0123", stage="crawl")

        bound = log.bind("persist")

        assert bound.prefix() == "[run:abcdef01] [persist]"
        assert log.prefix() == "[run:abcdef01] [crawl]"

    def test_global_debug_mode(self):
        set_global_debug_mode(True)

        log = get_logger("tests.logger.debug")

        assert log.debug_mode is True
        assert log.logger.level == logging.DEBUG


class TestSetupLogging:
    def test_json_format_and_quiet_libraries(self):
        setup_logging(level="INFO", format="json")

        handler = logging.getLogger().handlers[0]
        assert handler.formatter._fmt == logger_module.JSON_FORMAT
        assert logging.getLogger("pymongo").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(level="chatty")

        assert logging.getLogger().level == logging.INFO
