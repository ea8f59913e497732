"""Tests for agentlab logging configuration."""

import logging

import pytest

from agentlab.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    configure_logging()


def _marked_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_agentlab_handler", False)]


class TestConfigureLogging:
    def test_quiet_by_default(self, capsys) -> None:
        logger = configure_logging()
        get_logger("agentlab.test").debug("hidden")
        assert _marked_handlers(logger) == []
        assert capsys.readouterr().err == ""

    def test_verbose_logs_to_stderr(self, capsys) -> None:
        configure_logging(verbose=True)
        get_logger("agentlab.test").debug("visible message")
        assert "visible message" in capsys.readouterr().err

    def test_debug_env(self, capsys, monkeypatch) -> None:
        monkeypatch.setenv("AGENTLAB_DEBUG", "1")
        configure_logging()
        get_logger("agentlab.test").debug("from env")
        assert "from env" in capsys.readouterr().err

    def test_reconfigure_replaces_handlers(self) -> None:
        configure_logging(verbose=True)
        logger = configure_logging(verbose=True)
        assert len(_marked_handlers(logger)) == 1

    def test_log_file_from_env(self, tmp_path, monkeypatch, capsys) -> None:
        log_path = tmp_path / "logs" / "agentlab.log"
        monkeypatch.setenv("AGENTLAB_LOG_FILE", str(log_path))

        logger = configure_logging()
        get_logger("agentlab.test").debug("to file")
        for handler in logger.handlers:
            handler.flush()

        assert "to file" in log_path.read_text()
        assert capsys.readouterr().err == ""
