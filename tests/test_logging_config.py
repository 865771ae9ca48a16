from __future__ import annotations

import io
import logging as py_logging
from pathlib import Path

import gcmsender.logging as gcm_logging


def test_warning_alias_maps_to_warning_level() -> None:
    logger = gcm_logging.configure_logging("warning")

    assert logger.level == gcm_logging.LOG_LEVELS["WARN"]


def test_unknown_log_level_falls_back_to_info() -> None:
    logger = gcm_logging.configure_logging("not-a-level")

    assert logger.level == py_logging.INFO


def test_configure_logging_resets_existing_handlers() -> None:
    logger = gcm_logging.configure_logging("INFO")
    assert len(logger.handlers) == 1

    logger = gcm_logging.configure_logging("INFO")

    assert len(logger.handlers) == 1


def test_child_loggers_write_to_configured_stream() -> None:
    stream = io.StringIO()
    gcm_logging.configure_logging("DEBUG", stream)

    py_logging.getLogger("gcmsender.sender").debug("Retry round %s", 1)

    assert "Retry round 1" in stream.getvalue()
    assert "gcmsender.sender" in stream.getvalue()


def test_configure_logging_adds_debug_file_handler(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "gcmsender.log"

    logger = gcm_logging.configure_logging("ERROR", log_file=log_file)
    file_handlers = [
        handler for handler in logger.handlers if isinstance(handler, py_logging.FileHandler)
    ]

    assert len(file_handlers) == 1
    assert file_handlers[0].level == py_logging.DEBUG
    assert log_file.exists()


def test_configure_logging_ignores_file_handler_oserror(monkeypatch, tmp_path: Path) -> None:
    def raise_os_error(*args: object, **kwargs: object) -> py_logging.Handler:
        raise OSError("disk full")

    monkeypatch.setattr(gcm_logging.py_logging, "FileHandler", raise_os_error)

    logger = gcm_logging.configure_logging("INFO", io.StringIO(), log_file=tmp_path / "nope" / "gcmsender.log")

    assert len(logger.handlers) == 1
    assert type(logger.handlers[0]) is py_logging.StreamHandler
