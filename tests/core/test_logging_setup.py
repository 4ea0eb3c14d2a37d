"""
Tests for logging setup.
"""
import logging

import pytest

from arangomap.core.logging_setup import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    arango_level = logging.getLogger("arango").level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("arango").setLevel(arango_level)


def test_console_handler_replaces_existing():
    setup_logging("warning")
    setup_logging("warning")
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)


def test_unknown_level_falls_back_to_info():
    setup_logging("chatty")
    assert logging.getLogger().level == logging.INFO


def test_arango_logger_is_quieted():
    setup_logging("INFO")
    assert logging.getLogger("arango").level == logging.WARNING
    setup_logging("DEBUG")
    assert logging.getLogger("arango").level == logging.DEBUG


def test_log_file(tmp_path):
    log_file = tmp_path / "logs" / "arangomap.log"
    setup_logging("INFO", log_file=log_file)
    logging.getLogger("arangomap.test").info("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert log_file.exists()
    assert "hello from the test" in log_file.read_text()
