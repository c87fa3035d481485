"""Tests for logging setup."""

from __future__ import annotations

import json
import logging

import structlog

from jdowser.core.logging import setup_logging


class TestSetupLogging:
    def test_log_file_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("JDOWSER_LOG_FORMAT", "json")
        log_file = tmp_path / "jdowser.log"
        setup_logging(verbose=True, log_file=str(log_file))
        try:
            structlog.get_logger("jdowser.test").info("scan.finished", installations=3)
            for handler in logging.getLogger().handlers:
                handler.flush()
            entry = json.loads(log_file.read_text().splitlines()[-1])
            assert entry["event"] == "scan.finished"
            assert entry["installations"] == 3
            assert entry["level"] == "info"
        finally:
            setup_logging()

    def test_default_level_is_warning(self, monkeypatch):
        monkeypatch.delenv("JDOWSER_LOG_LEVEL", raising=False)
        setup_logging()
        assert logging.getLogger("jdowser").level == logging.WARNING

    def test_verbose_is_debug(self):
        setup_logging(verbose=True)
        assert logging.getLogger("jdowser").level == logging.DEBUG
        setup_logging()
