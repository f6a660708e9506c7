"""Tests for logging configuration."""

from __future__ import annotations

import logging

import pytest
from openfolio.log_config import setup


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetup:
    """Tests for root logger setup."""

    def test_verbose_sets_debug(self, restore_root_logger):
        setup(verbose=True)
        assert restore_root_logger.level == logging.DEBUG

    def test_default_is_info(self, restore_root_logger):
        setup()
        assert restore_root_logger.level == logging.INFO

    def test_log_file(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "openfolio.log"
        setup(log_file=log_file)
        logging.getLogger("openfolio.test").info("project opened")
        for handler in restore_root_logger.handlers:
            handler.flush()
        assert "| openfolio.test | INFO | project opened" in log_file.read_text()
