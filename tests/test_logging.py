"""Tests for logging setup."""

import logging
from collections.abc import Iterator

import pytest

from taskboard.logging_setup import _QuietThirdPartyFilter, setup_logging


@pytest.fixture
def root_logger() -> Iterator[logging.Logger]:
    """The root logger, restored after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)


def _ours(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, "_taskboard", False)]


def test_setup_logging_is_idempotent(root_logger: logging.Logger) -> None:
    """Test that repeated setup keeps a single handler."""
    setup_logging("debug")
    setup_logging("DEBUG")
    assert len(_ours(root_logger)) == 1
    assert root_logger.level == logging.DEBUG


def test_unknown_level_falls_back_to_info(root_logger: logging.Logger) -> None:
    """Test that an unrecognised level name does not break startup."""
    setup_logging("chatty")
    assert root_logger.level == logging.INFO


def test_third_party_noise_is_filtered() -> None:
    """Test that only warnings pass from libraries other than ours and the server."""
    quiet = _QuietThirdPartyFilter()

    def record(name: str, level: int) -> logging.LogRecord:
        return logging.LogRecord(name, level, __file__, 1, "msg", None, None)

    assert quiet.filter(record("taskboard.store", logging.DEBUG))
    assert quiet.filter(record("uvicorn.access", logging.INFO))
    assert not quiet.filter(record("httpx", logging.INFO))
    assert quiet.filter(record("httpx", logging.WARNING))
