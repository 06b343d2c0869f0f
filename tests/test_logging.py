"""Tests for the two-handler logging system (terminal + log file)."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from sessionscore.config import SessionscoreSettings
from sessionscore.logging import level_from_name, log_path_for, setup_logging


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch: pytest.MonkeyPatch):
    """Keep the environment out of settings and reset root handlers afterwards."""
    monkeypatch.delenv("SESSIONSCORE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("SESSIONSCORE_OUTPUT_DIR", raising=False)
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    logging.basicConfig(level=logging.WARNING, force=True)


def _settings(**fields: object) -> SessionscoreSettings:
    return SessionscoreSettings(_env_file=None, **fields)  # type: ignore[arg-type]


def _file_handlers() -> list[RotatingFileHandler]:
    return [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]


def _terminal_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger().handlers if not isinstance(h, RotatingFileHandler)]


class TestSetupLogging:
    def test_terminal_only_without_output_dir(self) -> None:
        assert setup_logging(_settings()) is None
        assert _file_handlers() == []
        assert [h.level for h in _terminal_handlers()] == [logging.WARNING]

    def test_verbose_terminal(self) -> None:
        setup_logging(_settings(), verbose=True)
        assert _terminal_handlers()[0].level == logging.DEBUG

    def test_file_handler_with_output_dir(self, tmp_path: Path) -> None:
        log_path = setup_logging(_settings(output_dir=tmp_path))
        assert log_path == tmp_path / ".sessionscore" / "sessionscore.log"
        assert log_path == log_path_for(tmp_path)
        assert log_path.parent.is_dir()
        assert len(_file_handlers()) == 1

    def test_file_level_defaults_to_info(self, tmp_path: Path) -> None:
        setup_logging(_settings(output_dir=tmp_path))
        assert _file_handlers()[0].level == logging.INFO

    def test_file_level_from_settings(self, tmp_path: Path) -> None:
        setup_logging(_settings(output_dir=tmp_path, log_level="debug"))
        assert _file_handlers()[0].level == logging.DEBUG

    def test_file_level_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SESSIONSCORE_LOG_LEVEL", "error")
        setup_logging(_settings(output_dir=tmp_path))
        assert _file_handlers()[0].level == logging.ERROR

    def test_terminal_and_file_independent(self, tmp_path: Path) -> None:
        setup_logging(_settings(output_dir=tmp_path, log_level="ERROR"), verbose=True)
        assert _terminal_handlers()[0].level == logging.DEBUG
        assert _file_handlers()[0].level == logging.ERROR

    def test_messages_reach_file(self, tmp_path: Path) -> None:
        log_path = setup_logging(_settings(output_dir=tmp_path))
        log = logging.getLogger("sessionscore.analysis.draft")
        log.info("block finished")
        log.debug("too chatty")
        for handler in _file_handlers():
            handler.flush()
        text = log_path.read_text(encoding="utf-8")
        assert "block finished" in text
        assert "too chatty" not in text

    def test_repeat_calls_replace_handlers(self, tmp_path: Path) -> None:
        setup_logging(_settings(output_dir=tmp_path))
        setup_logging(_settings(output_dir=tmp_path))
        assert len(logging.getLogger().handlers) == 2


class TestLevelFromName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("DEBUG", logging.DEBUG),
            ("warning", logging.WARNING),
            (" Error ", logging.ERROR),
            ("nonsense", logging.INFO),
            ("", logging.INFO),
        ],
    )
    def test_parse(self, name: str, expected: int) -> None:
        assert level_from_name(name) == expected
