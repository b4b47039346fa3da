"""
AggregationStore: in-memory records plus the snapshot for the active selection.

Records are ingested once and never mutated afterwards. `recompute` builds a
complete new `Snapshot` from the stored records before exposing it, so
readers only ever see a fully consistent snapshot. Year-over-year entries are
cached per month key and are always computed against the unfiltered trends;
month-over-month change follows the active selection.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import pandas as pd

from adspend_pipeline.aggregate.build_snapshot import aggregate
from adspend_pipeline.aggregate.filters import Selection, filter_snapshot
from adspend_pipeline.aggregate.yoy import mom_series, yoy_for, yoy_series
from adspend_pipeline.clean.months import parse_token, to_month_key
from adspend_pipeline.clean.normalize import (
    RECORD_COLUMNS,
    check_records_frame,
    frame_to_records,
    log_report,
    normalize_frame,
    records_to_frame,
    split_normalized,
)
from adspend_pipeline.config import DEFAULT_PCT_TOLERANCE
from adspend_pipeline.errors import SourceUnavailable
from adspend_pipeline.ingest.fallback import load_fallback
from adspend_pipeline.ingest.read_source import load_source
from adspend_pipeline.models import IngestReport, MomEntry, Record, Snapshot, YoyEntry

log = logging.getLogger(__name__)


class AggregationStore:
    """Canonical records with selection-driven snapshot recomputation."""

    def __init__(self, pct_tolerance: float = DEFAULT_PCT_TOLERANCE) -> None:
        self.pct_tolerance = pct_tolerance
        self._records: pd.DataFrame = pd.DataFrame(columns=RECORD_COLUMNS)
        self._report = IngestReport()
        self._full = Snapshot.empty()
        self._snapshot = self._full
        self._selection = Selection()
        self._yoy_cache: dict[str, YoyEntry] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def ingest(
        self,
        records: Iterable[Record] | pd.DataFrame,
        report: IngestReport | None = None,
    ) -> "AggregationStore":
        """Replace the stored records and rebuild the full snapshot.

        Frames are checked against the `Record` rules here, once, so
        aggregation, filtering and YoY never see an invalid row.

        Args:
            records: Canonical records (models or frame).
            report: Diagnostics from normalization; defaults to a report
                counting every record as accepted.

        Raises:
            ValueError: if a frame lacks a record column or holds an invalid
                row. The store keeps its previous state.
        """
        frame = check_records_frame(records_to_frame(records)).reset_index(drop=True)
        if report is None:
            report = IngestReport(total_rows=len(frame), accepted=len(frame))

        full = aggregate(frame, is_fallback=report.is_fallback, pct_tolerance=self.pct_tolerance)

        self._records = frame
        self._report = report
        self._full = full
        self._snapshot = full
        self._selection = Selection()
        self._yoy_cache = {}
        log.info(
            "Ingested %d records (total=%.2f, fallback=%s)",
            len(frame),
            full.total_investment,
            report.is_fallback,
        )
        return self

    def ingest_rows(self, rows: Iterable[dict]) -> "AggregationStore":
        """Normalize raw source-schema rows and ingest the valid ones."""
        records, report = split_normalized(normalize_frame(pd.DataFrame(list(rows))))
        log_report(report)
        return self.ingest(records, report)

    def load(
        self,
        source: str,
        cache_dir: Path = Path("data/cache"),
        allow_fallback: bool = True,
        blocksize: str = "64MB",
        timeout: float = 60.0,
    ) -> "AggregationStore":
        """Load a source, substituting the reference dataset when allowed.

        Args:
            source: File, directory, glob or URL.
            cache_dir: Download cache for URL sources.
            allow_fallback: Interactive mode. When True an unavailable source
                (or one yielding no valid records) is replaced by the embedded
                reference dataset; when False `SourceUnavailable` propagates.

        Raises:
            SourceUnavailable: only when ``allow_fallback`` is False.
        """
        try:
            records, report = load_source(source, cache_dir, blocksize, timeout)
        except SourceUnavailable as exc:
            if not allow_fallback:
                raise
            log.warning("%s; substituting reference dataset", exc)
            return self.ingest(*load_fallback())

        if report.accepted == 0 and allow_fallback:
            log.warning("No valid records in %s; substituting reference dataset", source)
            records, fallback_report = load_fallback()
            return self.ingest(records, report.merge(fallback_report))

        return self.ingest(records, report)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def recompute(self, selection: Selection | None = None) -> Snapshot:
        """Rebuild and expose the snapshot for a selection.

        An empty (or absent) selection returns the full snapshot.
        """
        selection = selection or Selection()
        for token in selection.months:
            if parse_token(token) is None:
                log.warning("Month token %r matches no known encoding", token)

        if selection.is_empty:
            snapshot = self._full
        else:
            snapshot = filter_snapshot(
                self._records,
                selection.years,
                selection.months,
                is_fallback=self._report.is_fallback,
                pct_tolerance=self.pct_tolerance,
            )

        self._selection = selection
        self._snapshot = snapshot
        return snapshot

    @property
    def snapshot(self) -> Snapshot:
        """Snapshot for the active selection."""
        return self._snapshot

    @property
    def full_snapshot(self) -> Snapshot:
        return self._full

    @property
    def selection(self) -> Selection:
        return self._selection

    # ------------------------------------------------------------------
    # Year over year / month over month
    # ------------------------------------------------------------------

    def yoy(self, month: str) -> YoyEntry:
        """YoY entry for a month against the unfiltered trends (cached)."""
        key = to_month_key(month) or month
        entry = self._yoy_cache.get(key)
        if entry is None:
            entry = yoy_for(key, self._full.monthly_trends)
            self._yoy_cache[key] = entry
        return entry

    def yoy_all(self) -> list[YoyEntry]:
        entries = yoy_series(self._full.monthly_trends)
        for entry in entries:
            self._yoy_cache.setdefault(entry.month_key, entry)
        return entries

    def mom(self) -> list[MomEntry]:
        """Month-over-month change along the active snapshot's trends."""
        return mom_series(self._snapshot.monthly_trends)

    # ------------------------------------------------------------------
    # Metadata queries
    # ------------------------------------------------------------------

    @property
    def report(self) -> IngestReport:
        return self._report

    @property
    def is_fallback(self) -> bool:
        return self._report.is_fallback

    def records(self) -> list[Record]:
        return frame_to_records(self._records)

    def record_count(self) -> int:
        return len(self._records)

    def available_years(self) -> list[str]:
        if self._records.empty:
            return []
        return sorted(self._records["year"].astype(str).unique().tolist())

    def available_months(self, years: Iterable[str] | None = None) -> list[str]:
        """Month keys with data, optionally restricted to some years."""
        df = self._records
        if df.empty:
            return []
        if years:
            df = df[df["year"].astype(str).isin({str(y) for y in years})]
        return sorted(df["month_key"].astype(str).unique().tolist())
