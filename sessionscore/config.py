"""Application settings loaded from environment variables or .env."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_files() -> list[Path]:
    """Find .env files to load, searching upward from CWD and in the package dir.

    Checks (in priority order, last wins in pydantic-settings):
    1. The directory containing the sessionscore package
    2. The current working directory, or the nearest parent that has one
    """
    candidates: list[Path] = []

    pkg_env = Path(__file__).resolve().parent.parent / ".env"
    if pkg_env.is_file():
        candidates.append(pkg_env)

    cwd = Path.cwd().resolve()
    for parent in [cwd, *cwd.parents]:
        env_path = parent / ".env"
        if env_path.is_file() and env_path not in candidates:
            candidates.append(env_path)
            break  # stop at first match going upward

    return candidates


class SessionscoreSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SESSIONSCORE_",
        env_file=_find_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Taxonomy used when a session file doesn't name one
    default_variant: str = "aba"
    default_sort: str = "severity"  # "severity", "alphabetical", "order", "performance"

    # Extra directories scanned for taxonomy YAML files
    taxonomy_dirs: list[Path] = Field(default_factory=list)

    # Where the log file goes (None = terminal logging only)
    output_dir: Path | None = None
    # Log file level (DEBUG, INFO, WARNING, ...); the terminal follows --verbose
    log_level: str = "INFO"


def load_settings(**overrides: object) -> SessionscoreSettings:
    """Load settings with optional CLI overrides.

    Normalises variant aliases (``"to"`` → ``"terapia_ocupacional"``,
    ``"ABA-style"`` → ``"aba"``).  Raises ConfigurationMismatch when the
    variant names no known taxonomy.
    """
    # Import here to keep settings importable without loading taxonomy files
    from sessionscore.taxonomy import resolve_taxonomy

    settings = SessionscoreSettings(**overrides)  # type: ignore[arg-type]
    taxonomy = resolve_taxonomy(settings.default_variant, settings.taxonomy_dirs)
    if taxonomy.id != settings.default_variant:
        settings = settings.model_copy(update={"default_variant": taxonomy.id})
    return settings
