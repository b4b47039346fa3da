"""Root logging setup shared by the CLI and library callers."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are chatty at INFO during CSV reads and downloads
NOISY_LOGGERS = ("urllib3", "fsspec", "distributed")


def configure_logging(
    log_path: Path | None = None,
    level: int = logging.INFO,
    stream: TextIO | None = None,
) -> None:
    """Install console and optional file handlers on the root logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        log_path: File that receives a copy of every record; parent
            directories are created.
        level: Root level (defaults to INFO).
        stream: Console stream, stdout when omitted. The CLI passes stderr
            when stdout carries JSON.
    """
    console = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handlers: list[logging.Handler] = [console]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
