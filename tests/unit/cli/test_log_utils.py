"""Unit tests for logging setup."""

import logging

import pytest

from gobin.log_utils import setup_logging


def gobin_handlers():
    return [h for h in logging.getLogger().handlers if getattr(h, "_gobin_handler", False)]


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    for handler in gobin_handlers():
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)


def test_repeated_setup_does_not_stack_handlers():
    setup_logging()
    setup_logging()
    assert len(gobin_handlers()) == 1


def test_verbose_sets_debug():
    setup_logging(verbose=True)
    assert logging.getLogger().level == logging.DEBUG


def test_log_file(tmp_path):
    log_file = tmp_path / "logs" / "gobin.log"
    setup_logging(log_file=log_file)

    logging.info("hello from test")
    for handler in gobin_handlers():
        handler.flush()

    assert len(gobin_handlers()) == 2
    assert "INFO - hello from test" in log_file.read_text()
