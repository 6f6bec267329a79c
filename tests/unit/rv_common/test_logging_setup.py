"""Tests for the structlog-backed logging setup."""

from __future__ import annotations

import logging

import pytest

from rv_common.logging import configure_logging


pytestmark = pytest.mark.unit_common


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_configure_logging_without_stream_writes_only_to_file(
    tmp_path, restore_root_logger, monkeypatch
) -> None:
    monkeypatch.delenv("RV_LOG_FILE", raising=False)
    log_file = tmp_path / "rv.log"
    configure_logging(level="INFO", log_file=str(log_file), force=True, stream=False)

    root = restore_root_logger
    assert not any(
        type(handler) is logging.StreamHandler for handler in root.handlers
    )
    logging.getLogger("rv.test").info("scan finished")
    for handler in root.handlers:
        handler.flush()

    assert "scan finished" in log_file.read_text()


def test_configure_logging_installs_null_handler_when_silent(
    restore_root_logger, monkeypatch
) -> None:
    monkeypatch.delenv("RV_LOG_FILE", raising=False)
    configure_logging(force=True, stream=False)

    handlers = restore_root_logger.handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.NullHandler)


def test_configure_logging_reads_level_from_env(restore_root_logger, monkeypatch) -> None:
    monkeypatch.setenv("RV_LOG_LEVEL", "warning")
    monkeypatch.delenv("RV_LOG_FILE", raising=False)
    configure_logging(force=True, stream=False)
    assert restore_root_logger.level == logging.WARNING


def test_debug_flag_overrides_level(restore_root_logger, monkeypatch) -> None:
    monkeypatch.delenv("RV_LOG_FILE", raising=False)
    configure_logging(level="ERROR", debug=True, force=True, stream=False)
    assert restore_root_logger.level == logging.DEBUG
