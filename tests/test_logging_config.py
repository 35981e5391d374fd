"""Tests for structlog configuration."""

import pytest

from sessionscope import logging_config
from sessionscope.logging_config import (
    ENV_DEBUG,
    ENV_LOG_FILE,
    configure_logging,
    get_logger,
    is_debug_enabled,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(ENV_DEBUG, raising=False)
    monkeypatch.delenv(ENV_LOG_FILE, raising=False)
    monkeypatch.setattr(logging_config, "_configured", False)


class TestDebugFlag:
    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_truthy(self, monkeypatch, value):
        monkeypatch.setenv(ENV_DEBUG, value)
        assert is_debug_enabled()

    @pytest.mark.parametrize("value", ["", "0", "false", "nope"])
    def test_falsy(self, monkeypatch, value):
        monkeypatch.setenv(ENV_DEBUG, value)
        assert not is_debug_enabled()


class TestConfigureLogging:
    def test_debug_to_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv(ENV_DEBUG, "1")
        log_file = tmp_path / "logs" / "sessionscope.log"
        configure_logging(log_file=log_file)

        get_logger("test").debug("resolved %s", "/home/dev/app")

        text = log_file.read_text()
        assert "resolved /home/dev/app" in text
        assert "debug" in text

    def test_quiet_by_default(self, tmp_path):
        log_file = tmp_path / "quiet.log"
        configure_logging(log_file=log_file)

        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")

        text = log_file.read_text()
        assert "hidden" not in text
        assert "shown" in text

    def test_env_log_file(self, monkeypatch, tmp_path):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv(ENV_LOG_FILE, str(log_file))
        configure_logging()

        get_logger("test").error("boom")
        assert "boom" in log_file.read_text()

    def test_configures_once(self, tmp_path):
        first = tmp_path / "first.log"
        second = tmp_path / "second.log"
        configure_logging(log_file=first)
        configure_logging(log_file=second)

        get_logger("test").warning("where")
        assert "where" in first.read_text()
        assert not second.exists()

    def test_existing_logger_follows_forced_reconfigure(self, tmp_path):
        first = tmp_path / "first.log"
        second = tmp_path / "second.log"
        logger = get_logger("test")
        configure_logging(log_file=first)
        logger.warning("before")

        configure_logging(log_file=second, force=True)
        logger.warning("after")

        assert "after" not in first.read_text()
        assert "after" in second.read_text()
