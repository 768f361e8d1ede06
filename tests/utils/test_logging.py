"""configure_logging / get_logger behaviour."""

from __future__ import annotations

import logging
import sys

import pytest

from nicetable.utils.logging import ROOT_LOGGER_NAME, configure_logging, get_logger


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved_handlers = logger.handlers[:]
    saved_level = logger.level
    yield logger
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    for h in saved_handlers:
        logger.addHandler(h)
    logger.setLevel(saved_level)


def _stderr_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, logging.StreamHandler) and h.stream is sys.stderr]


def test_get_logger_defaults_to_package_logger() -> None:
    assert get_logger().name == "nicetable"
    assert get_logger("nicetable.table_controller").name == "nicetable.table_controller"


def test_package_installs_null_handler() -> None:
    import nicetable  # noqa: F401

    handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert any(isinstance(h, logging.NullHandler) for h in handlers)


def test_configure_logging_is_idempotent(clean_logger: logging.Logger) -> None:
    configure_logging(level="DEBUG")
    configure_logging(level="DEBUG")
    assert clean_logger.level == logging.DEBUG
    assert len(_stderr_handlers(clean_logger)) == 1
    # never attached to root
    assert not any(h in logging.getLogger().handlers for h in _stderr_handlers(clean_logger))


def test_configure_logging_reads_env(clean_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NICETABLE_LOG_LEVEL", "warning")
    configure_logging(force=True)
    assert clean_logger.level == logging.WARNING
    assert len(_stderr_handlers(clean_logger)) == 1


def test_configure_logging_again_updates_level(clean_logger: logging.Logger) -> None:
    configure_logging(level="INFO")
    configure_logging(level=logging.DEBUG)
    handlers = _stderr_handlers(clean_logger)
    assert len(handlers) == 1
    assert handlers[0].level == logging.DEBUG
    assert clean_logger.level == logging.DEBUG
