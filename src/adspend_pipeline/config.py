"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads pipeline options from the environment (optionally via a `.env` file at
the project root).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

# Percentages whose sum drifts further than this from 100 are rescaled
DEFAULT_PCT_TOLERANCE = 1e-9

@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        source: CSV file, directory, glob pattern or http(s) URL to ingest.
        cache_dir: Local directory for downloaded sources.
        log_path: File that receives a copy of the pipeline log.
        blocksize: Dask `read_csv` blocksize (e.g. "64MB").
        pct_tolerance: Allowed drift of a percentage set from 100.
        http_timeout: Timeout in seconds for URL sources.
    """
    source: str
    cache_dir: Path
    log_path: Path
    blocksize: str
    pct_tolerance: float
    http_timeout: float


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if a numeric setting cannot be parsed.
    """
    source = os.getenv("ADSPEND_SOURCE", "data/raw").strip() or "data/raw"
    cache_dir = Path(os.getenv("ADSPEND_CACHE_DIR", "data/cache"))
    log_path = Path(os.getenv("ADSPEND_LOG_PATH", "logs/pipeline.log"))
    blocksize = os.getenv("ADSPEND_BLOCKSIZE", "64MB").strip() or "64MB"

    return Settings(
        source=source,
        cache_dir=cache_dir,
        log_path=log_path,
        blocksize=blocksize,
        pct_tolerance=_float_env("ADSPEND_PCT_TOLERANCE", DEFAULT_PCT_TOLERANCE),
        http_timeout=_float_env("ADSPEND_HTTP_TIMEOUT", 60.0),
    )
