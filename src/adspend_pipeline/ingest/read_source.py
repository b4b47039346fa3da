"""Source discovery and partitioned CSV reading.

A source is a CSV file, a directory (every ``*.csv`` below it), a glob
pattern, or an ``http(s)`` URL that is downloaded into a local cache first.
Each file is read with Dask and normalized partition by partition; the
per-file results are concatenated into one canonical records frame.

Any failure to locate, download or parse a source raises `SourceUnavailable`.
Whether that is fatal is decided by the caller (see `AggregationStore.load`).
"""
from __future__ import annotations

import glob
import hashlib
import logging
import re
from pathlib import Path
from typing import Any, cast
from urllib.parse import urlparse

import pandas as pd
import dask.dataframe as dd

from adspend_pipeline.clean.normalize import (
    AMOUNT_COLUMNS,
    BANK_COLUMN,
    CATEGORY_COLUMN,
    MONTH_COLUMN,
    RECORD_COLUMNS,
    normalize_ddf,
)
from adspend_pipeline.errors import SourceUnavailable
from adspend_pipeline.models import IngestReport

log = logging.getLogger(__name__)

_BENCHMARK_SUFFIX_RE = re.compile(r"-benchmark(?:-v\d+)?(?:-\d+)?$", re.IGNORECASE)


def is_url(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def bank_from_filename(path: Path) -> str:
    """Derive a bank name from an export filename.

    ``bank-of-america-benchmark-v3.csv`` -> ``"Bank Of America"``.
    """
    stem = _BENCHMARK_SUFFIX_RE.sub("", path.stem)
    words = [w for w in re.split(r"[-_\s]+", stem) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def download_source(url: str, cache_dir: Path, timeout: float = 60.0) -> Path:
    """Download or return the cached copy of a remote CSV.

    Args:
        url: http(s) URL of the CSV export.
        cache_dir: Local directory to cache downloads.
        timeout: Request timeout in seconds.

    Returns:
        Path to the cached file.

    Raises:
        SourceUnavailable: if the request fails or returns a non-2xx status.
    """
    cache_dir.mkdir(parents=True, exist_ok=True)
    name = Path(urlparse(url).path).name or "source.csv"
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:10]
    out_path = cache_dir / f"{digest}_{name}"

    if out_path.exists() and out_path.stat().st_size > 0:
        log.info("Cache hit: %s", out_path)
        return out_path

    log.info("Downloading %s", url)
    import requests  # type: ignore[import-untyped]  # local import to avoid requiring type stubs at module import
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as exc:
        raise SourceUnavailable(url, str(exc)) from exc
    out_path.write_bytes(r.content)
    log.info("Saved: %s (%d bytes)", out_path, out_path.stat().st_size)
    return out_path


def resolve_paths(source: str, cache_dir: Path, timeout: float = 60.0) -> list[Path]:
    """Expand a source string into the CSV files it denotes.

    Raises:
        SourceUnavailable: if nothing readable is found.
    """
    if is_url(source):
        return [download_source(source, cache_dir, timeout)]

    p = Path(source)
    if p.is_dir():
        paths = sorted(p.rglob("*.csv"))
    elif p.is_file():
        paths = [p]
    else:
        # Expanded here, not by dd.read_csv: header check and filename bank are per file
        paths = sorted(Path(m) for m in glob.glob(source, recursive=True) if Path(m).is_file())

    if not paths:
        raise SourceUnavailable(source, "no CSV files found")
    return paths


def _check_header(path: Path) -> list[str]:
    """Read only the header row and verify the required columns exist."""
    try:
        columns = [str(c) for c in pd.read_csv(path, nrows=0).columns]
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise SourceUnavailable(str(path), f"unreadable CSV: {exc}") from exc

    missing = [c for c in (MONTH_COLUMN, CATEGORY_COLUMN) if c not in columns]
    if not any(c in columns for c in AMOUNT_COLUMNS):
        missing.append("Dollars")
    if missing:
        raise SourceUnavailable(str(path), f"missing column(s): {', '.join(missing)}")
    return columns


def read_csv_ddf(path: Path, blocksize: str = "64MB") -> Any:
    """Open one CSV as a Dask DataFrame of raw string columns.

    Files without a ``Bank`` column get one derived from the filename.
    """
    columns = _check_header(path)
    dd_mod = cast(Any, dd)
    ddf = dd_mod.read_csv(
        str(path),
        dtype=str,
        keep_default_na=False,
        blocksize=blocksize,
    )
    if BANK_COLUMN not in columns:
        bank = bank_from_filename(path)
        log.info("%s has no %s column; using %r from filename", path.name, BANK_COLUMN, bank)
        ddf = ddf.assign(**{BANK_COLUMN: bank})
    return ddf


def load_source(
    source: str,
    cache_dir: Path,
    blocksize: str = "64MB",
    timeout: float = 60.0,
) -> tuple[pd.DataFrame, IngestReport]:
    """Read and normalize every CSV a source denotes.

    Returns:
        ``(records, report)``: canonical records frame and merged diagnostics.

    Raises:
        SourceUnavailable: if the source cannot be located, downloaded or parsed.
    """
    paths = resolve_paths(source, cache_dir, timeout)
    log.info("Reading %d file(s) from %s", len(paths), source)

    frames: list[pd.DataFrame] = []
    report = IngestReport()
    for path in paths:
        ddf = read_csv_ddf(path, blocksize)
        try:
            records, file_report = normalize_ddf(ddf)
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, ValueError) as exc:
            raise SourceUnavailable(str(path), f"failed to parse: {exc}") from exc
        log.info("%s: %d of %d rows accepted", path.name, file_report.accepted, file_report.total_rows)
        frames.append(records)
        report = report.merge(file_report.model_copy(update={"sources": [str(path)]}))

    records = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=RECORD_COLUMNS)
    return records, report
