"""Year/month selection over canonical records.

A filtered `Snapshot` is always rebuilt by `aggregate` from the qualifying
records; numbers of an existing snapshot are never rescaled, so every
consistency property of a full snapshot also holds for a filtered one.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import pandas as pd

from adspend_pipeline.aggregate.build_snapshot import aggregate
from adspend_pipeline.clean.months import matches
from adspend_pipeline.clean.normalize import records_to_frame
from adspend_pipeline.config import DEFAULT_PCT_TOLERANCE
from adspend_pipeline.models import Record, Snapshot


@dataclass(frozen=True)
class Selection:
    """Active filter selection.

    Attributes:
        years: Four-digit year strings; empty means every year.
        months: Month tokens (``"January 2024"`` or ``"2024-01"``); empty
            means every month.
    """
    years: frozenset[str] = field(default_factory=frozenset)
    months: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, years: Iterable[Any] = (), months: Iterable[str] = ()) -> "Selection":
        return cls(
            years=frozenset(str(y).strip() for y in years),
            months=frozenset(str(m).strip() for m in months),
        )

    @property
    def is_empty(self) -> bool:
        return not self.years and not self.months


def select_records(
    records: Iterable[Record] | pd.DataFrame,
    years: Iterable[str] = (),
    month_tokens: Iterable[str] = (),
) -> pd.DataFrame:
    """Return the records qualifying for a year/month selection.

    A record qualifies iff (no years given or its year is selected) and
    (no month tokens given or `matches(record.raw_month, token)` for some
    token). Month matching is evaluated once per distinct ``raw_month``.

    Returns:
        Canonical records frame, original order preserved.
    """
    frame = records_to_frame(records)
    year_set = {str(y) for y in years}
    token_set = {str(t) for t in month_tokens}

    mask = pd.Series(True, index=frame.index)
    if year_set:
        mask &= frame["year"].astype(str).isin(year_set)
    if token_set:
        distinct = frame["raw_month"].dropna().unique()
        hits = [m for m in distinct if any(matches(m, t) for t in token_set)]
        mask &= frame["raw_month"].isin(hits)

    return frame[mask]


def filter_snapshot(
    records: Iterable[Record] | pd.DataFrame,
    years: Iterable[str] = (),
    month_tokens: Iterable[str] = (),
    is_fallback: bool = False,
    pct_tolerance: float = DEFAULT_PCT_TOLERANCE,
) -> Snapshot:
    """Aggregate only the records matching the selection.

    An empty qualifying subset produces an empty `Snapshot` (total 0), not
    an error.
    """
    subset = select_records(records, years, month_tokens)
    return aggregate(subset, is_fallback=is_fallback, pct_tolerance=pct_tolerance)
