from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Iterator

import pytest

from adspend_pipeline.logging_config import NOISY_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def restore_root_handlers() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_adds_stream_handler() -> None:
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)
    assert root.level == logging.INFO


def test_configure_logging_writes_log_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "pipeline.log"
    configure_logging(log_path, logging.DEBUG)
    logging.getLogger("adspend_pipeline.test").info("hello file")
    for h in logging.getLogger().handlers:
        h.flush()
    assert "| INFO | adspend_pipeline.test | hello file" in log_path.read_text(encoding="utf-8")


def test_noisy_loggers_are_quieted() -> None:
    configure_logging(None, logging.DEBUG)
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_console_stream_can_be_redirected() -> None:
    buf = io.StringIO()
    configure_logging(None, logging.INFO, stream=buf)
    logging.getLogger("adspend_pipeline.test").warning("to the side")
    assert "| WARNING | adspend_pipeline.test | to the side" in buf.getvalue()
