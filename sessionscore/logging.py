"""Terminal and log-file handlers for the CLI.

The terminal (stderr) shows warnings, or everything with ``--verbose``.
When settings name an ``output_dir``, the rotating file
``<output_dir>/.sessionscore/sessionscore.log`` records at
``settings.log_level`` (``SESSIONSCORE_LOG_LEVEL``, default INFO), so a
clinician's terminal stays quiet while the file keeps a history of which
sessions were summarised with which taxonomy.

Engine modules only create module loggers; configuring handlers is the
CLI's job.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from sessionscore.config import SessionscoreSettings

LOG_DIRNAME = ".sessionscore"
LOG_FILENAME = "sessionscore.log"

# Rotate at 1 MB, keep three old files
_MAX_BYTES = 1024 * 1024
_BACKUP_COUNT = 3

_TERMINAL_FORMAT = "%(levelname)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def level_from_name(name: str) -> int:
    """``"debug"`` → ``logging.DEBUG``.  Anything unrecognised means INFO."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def log_path_for(output_dir: Path) -> Path:
    return Path(output_dir) / LOG_DIRNAME / LOG_FILENAME


def _terminal_handler(verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handler.setFormatter(logging.Formatter(_TERMINAL_FORMAT))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(settings: SessionscoreSettings, *, verbose: bool = False) -> Path | None:
    """Install the terminal handler and, if configured, the log file handler.

    Replaces whatever handlers the root logger had, so calling it twice in
    one process doesn't duplicate output.  Returns the log file path, or
    None when ``settings.output_dir`` is unset.
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    # Handlers do the filtering
    root.setLevel(logging.DEBUG)
    root.addHandler(_terminal_handler(verbose))

    if settings.output_dir is None:
        return None

    path = log_path_for(settings.output_dir)
    root.addHandler(_file_handler(path, level_from_name(settings.log_level)))
    logging.getLogger(__name__).debug("Logging to %s at %s", path, settings.log_level)
    return path
