"""Tests for sirius/logging_config.py"""

import logging

import structlog

from sirius.logging_config import setup_logging, user_log_context


class TestSetupLogging:
    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("SIRIUS_LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("SIRIUS_LOG_LEVEL", "warning")
        setup_logging(level="DEBUG", json_output=True)
        assert logging.getLogger().level == logging.DEBUG
        assert len(logging.getLogger().handlers) == 1


class TestUserLogContext:
    def test_binds_and_restores(self):
        assert "user_id" not in structlog.contextvars.get_contextvars()
        with user_log_context("alice"):
            assert structlog.contextvars.get_contextvars()["user_id"] == "alice"
            with user_log_context("bob"):
                assert structlog.contextvars.get_contextvars()["user_id"] == "bob"
            assert structlog.contextvars.get_contextvars()["user_id"] == "alice"
        assert "user_id" not in structlog.contextvars.get_contextvars()
