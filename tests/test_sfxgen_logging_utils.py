from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from sfxgen.logging_utils import (
    DEBUG_ENV,
    LOG_DIR_ENV,
    configure_logging,
    debug_enabled,
    get_log_dir,
    get_log_path,
    log_exception,
)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    configure_logging(force=True, log_to_file=False)


def _file_handlers() -> list[logging.FileHandler]:
    logger = logging.getLogger("sfxgen")
    return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def test_log_path_uses_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    assert get_log_dir() == tmp_path
    assert get_log_path() == tmp_path / "sfxgen.log"


def test_debug_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(DEBUG_ENV, raising=False)
    assert not debug_enabled()
    monkeypatch.setenv(DEBUG_ENV, "1")
    assert debug_enabled()


def test_default_setup_writes_no_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(LOG_DIR_ENV, raising=False)

    configure_logging(force=True)

    assert _file_handlers() == []
    assert not (tmp_path / ".cache").exists()


def test_log_dir_env_turns_on_file_logging(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    log_dir = tmp_path / "logs"
    monkeypatch.setenv(LOG_DIR_ENV, str(log_dir))
    configure_logging(force=True)

    handlers = _file_handlers()
    assert len(handlers) == 1
    assert Path(handlers[0].baseFilename) == log_dir / "sfxgen.log"

    logging.getLogger("sfxgen.test").info("rendered blip")
    handlers[0].flush()
    assert "rendered blip" in (log_dir / "sfxgen.log").read_text(encoding="utf-8")

    configure_logging(log_to_file=False)
    assert _file_handlers() == []


def test_explicit_file_logging_uses_home_cache(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(LOG_DIR_ENV, raising=False)

    configure_logging(force=True, log_to_file=True)

    expected = tmp_path / ".cache" / "sfxgen" / "logs"
    assert expected.is_dir()
    assert [Path(h.baseFilename) for h in _file_handlers()] == [expected / "sfxgen.log"]


def test_file_handler_follows_log_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path / "first"))
    configure_logging(force=True)
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path / "second"))
    configure_logging()

    handlers = _file_handlers()
    assert len(handlers) == 1
    assert Path(handlers[0].baseFilename) == tmp_path / "second" / "sfxgen.log"


def test_log_exception_names_the_source(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    try:
        raise ValueError("bad sound")
    except ValueError as exc:
        path = log_exception("sfxgen render", exc, source="coin.rfx")

    assert path == tmp_path / "sfxgen.log"
    text = path.read_text(encoding="utf-8")
    assert "sfxgen render failed for coin.rfx: ValueError: bad sound" in text
    assert "Traceback" in text


def test_log_exception_without_source(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    path = log_exception("sfxgen play", RuntimeError("no device"))

    assert path is not None
    assert "sfxgen play failed: RuntimeError: no device" in path.read_text(encoding="utf-8")


def test_log_exception_reports_unwritable_dir(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.setenv(LOG_DIR_ENV, str(blocker))
    caplog.set_level(logging.WARNING, logger="sfxgen.logging")

    assert log_exception("sfxgen render", ValueError("bad"), source="x.rfx") is None
    assert any("Could not record" in record.getMessage() for record in caplog.records)
