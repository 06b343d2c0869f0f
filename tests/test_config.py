"""Tests for settings loading and variant alias normalisation."""

from __future__ import annotations

from pathlib import Path

import pytest

from sessionscore.config import SessionscoreSettings, load_settings
from sessionscore.taxonomy import ConfigurationMismatch


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SESSIONSCORE_DEFAULT_VARIANT",
        "SESSIONSCORE_DEFAULT_SORT",
        "SESSIONSCORE_TAXONOMY_DIRS",
        "SESSIONSCORE_OUTPUT_DIR",
        "SESSIONSCORE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self) -> None:
        settings = SessionscoreSettings(_env_file=None)
        assert settings.default_variant == "aba"
        assert settings.default_sort == "severity"
        assert settings.taxonomy_dirs == []
        assert settings.output_dir is None
        assert settings.log_level == "INFO"


class TestEnvironment:
    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SESSIONSCORE_DEFAULT_SORT", "alphabetical")
        assert SessionscoreSettings(_env_file=None).default_sort == "alphabetical"

    def test_output_dir_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("SESSIONSCORE_OUTPUT_DIR", str(tmp_path))
        assert SessionscoreSettings(_env_file=None).output_dir == tmp_path

    def test_log_level_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SESSIONSCORE_LOG_LEVEL", "debug")
        assert SessionscoreSettings(_env_file=None).log_level == "debug"

    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("SESSIONSCORE_DEFAULT_VARIANT=fisioterapia\n", encoding="utf-8")
        assert SessionscoreSettings(_env_file=env_file).default_variant == "fisioterapia"


class TestLoadSettings:
    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("to", "terapia_ocupacional"),
            ("FISIO", "fisioterapia"),
            ("music-therapy", "musicoterapia"),
            ("aba", "aba"),
        ],
    )
    def test_alias_normalised(self, alias: str, expected: str) -> None:
        assert load_settings(default_variant=alias).default_variant == expected

    def test_alias_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SESSIONSCORE_DEFAULT_VARIANT", "musi")
        assert load_settings().default_variant == "musicoterapia"

    def test_unknown_variant(self) -> None:
        with pytest.raises(ConfigurationMismatch):
            load_settings(default_variant="dance")

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SESSIONSCORE_DEFAULT_SORT", "order")
        assert load_settings(default_sort="performance").default_sort == "performance"
