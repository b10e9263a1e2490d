"""Logging setup for sfxgen.

Console output goes through the ``sfxgen`` logger. A log file is only written
when asked for: ``configure_logging(log_to_file=True)`` (the CLI does this) or
when ``SFXGEN_LOG_DIR`` is set.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
from datetime import datetime
from pathlib import Path

_LOGGER = logging.getLogger("sfxgen.logging")

LOG_DIR_ENV = "SFXGEN_LOG_DIR"
DEBUG_ENV = "SFXGEN_DEBUG"
LOG_FILE_NAME = "sfxgen.log"

_CONSOLE_FORMAT = "%(level_prefix)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LEVEL_PREFIXES = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
}

_console_configured = False
_file_handler: logging.FileHandler | None = None


class _LevelPrefixFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.level_prefix = _LEVEL_PREFIXES.get(record.levelno, "")
        return super().format(record)


def debug_enabled() -> bool:
    return bool(os.environ.get(DEBUG_ENV))


def file_logging_requested() -> bool:
    return bool(os.environ.get(LOG_DIR_ENV))


def get_log_dir() -> Path:
    configured = os.environ.get(LOG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".cache" / "sfxgen" / "logs"


def get_log_path() -> Path:
    return get_log_dir() / LOG_FILE_NAME


def _drop_handlers(logger: logging.Logger) -> None:
    global _file_handler
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    _file_handler = None


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.__stderr__)
    handler.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
    handler.setFormatter(_LevelPrefixFormatter(_CONSOLE_FORMAT))
    return handler


def _install_file_handler(logger: logging.Logger) -> logging.FileHandler | None:
    global _file_handler
    path = get_log_path()
    if _file_handler is not None:
        if _file_handler.baseFilename == os.path.abspath(path):
            return _file_handler
        logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _LOGGER.warning("File logging disabled, cannot create %s: %s", path.parent, exc)
        return None

    handler = logging.FileHandler(path, encoding="utf-8", delay=True)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATE_FORMAT))
    logger.addHandler(handler)
    _file_handler = handler
    return handler


def configure_logging(*, force: bool = False, log_to_file: bool | None = None) -> None:
    """Set up the ``sfxgen`` logger.

    Args:
        force: Drop every handler installed earlier and start over.
        log_to_file: Also write ``sfxgen.log`` under ``get_log_dir()``.
            ``None`` means "only if ``SFXGEN_LOG_DIR`` is set".
    """
    global _console_configured, _file_handler
    logger = logging.getLogger("sfxgen")

    if force:
        _drop_handlers(logger)
        _console_configured = False

    if not _console_configured:
        logger.setLevel(logging.DEBUG)
        # Leave console output to whoever already configured the root logger.
        if force or not logging.getLogger().handlers:
            logger.addHandler(_console_handler())
        logger.propagate = True
        _console_configured = True

    wants_file = file_logging_requested() if log_to_file is None else log_to_file
    if wants_file:
        _install_file_handler(logger)
    elif log_to_file is False and _file_handler is not None:
        logger.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None


def log_exception(
    context: str, exc: BaseException, *, source: str | Path | None = None
) -> Path | None:
    """Append a failure record with its traceback to the log file.

    ``source`` names what was being processed (a preset, a .rfx/.sfs/.wav
    path) and is written next to ``context``.
    """
    path = get_log_path()
    subject = f"{context} failed" if source is None else f"{context} failed for {source}"
    lines = [f"[{datetime.now().isoformat()}] {subject}: {type(exc).__name__}: {exc}\n"]
    lines.extend(traceback.format_exception(type(exc), exc, exc.__traceback__))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.writelines(lines)
            handle.write("\n")
    except OSError as log_exc:
        _LOGGER.warning("Could not record %s failure in %s: %s", context, path, log_exc)
        return None
    return path
