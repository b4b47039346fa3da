"""Snapshot aggregation.

`aggregate` turns canonical records into a `Snapshot` using three pandas
groupby passes over the records (bank x category, category x bank,
month x bank). Every coarser total is derived from those grouped sums, so
the cost is O(n) plus work proportional to the number of groups.

Conventions:
- Each percentage uses the denominator in scope: a bank's own total for its
  media breakdown, a category's own total for its bank shares, a month's own
  total for its bank shares, the grand total for top-level market shares.
- A zero denominator yields ``pct = 0``.
- Every emitted percentage set goes through `normalize_pcts`.
- Banks and categories are ordered by total descending, trends by month key
  ascending, breakdowns by amount descending; ties break on name.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Sequence

import pandas as pd

from adspend_pipeline.clean.months import month_label
from adspend_pipeline.clean.normalize import records_to_frame
from adspend_pipeline.config import DEFAULT_PCT_TOLERANCE
from adspend_pipeline.models import (
    BankAggregate,
    BankSlice,
    MediaCategoryAggregate,
    MediaSlice,
    MonthlyTrend,
    Record,
    Snapshot,
    TrendSlice,
)

log = logging.getLogger(__name__)


# =========================================================
# PERCENTAGES
# =========================================================

def normalize_pcts(pcts: Sequence[float], tolerance: float = DEFAULT_PCT_TOLERANCE) -> list[float]:
    """Rescale a percentage set to sum to 100 when it drifts past `tolerance`.

    Sets that sum to zero (all parts zero) are returned unchanged.
    """
    total = math.fsum(pcts)
    if total <= 0 or abs(total - 100.0) <= tolerance:
        return [float(p) for p in pcts]
    return [p * 100.0 / total for p in pcts]


def share_pcts(
    amounts: Sequence[float],
    whole: float,
    tolerance: float = DEFAULT_PCT_TOLERANCE,
) -> list[float]:
    """Return ``part / whole * 100`` for each amount (0 when whole is 0)."""
    if whole <= 0:
        return [0.0 for _ in amounts]
    return normalize_pcts([a / whole * 100.0 for a in amounts], tolerance)


def _ranked(amounts: pd.Series) -> list[tuple[str, float]]:
    """Return ``(name, amount)`` pairs by amount descending, name ascending."""
    pairs = ((str(k), float(v)) for k, v in amounts.items())
    return sorted(pairs, key=lambda kv: (-kv[1], kv[0]))


# =========================================================
# GROUPED SUMS
# =========================================================

def _grouped(frame: pd.DataFrame, outer: str, inner: str) -> dict[str, list[tuple[str, float]]]:
    """Sum `amount` by (outer, inner) and return ranked inner pairs per outer key."""
    sums = frame.groupby([outer, inner], sort=False)["amount"].sum()
    out: dict[str, list[tuple[str, float]]] = {}
    for key, part in sums.groupby(level=0, sort=False):
        out[str(key)] = _ranked(part.droplevel(0))
    return out


def _bank_aggregates(
    bank_media: dict[str, list[tuple[str, float]]],
    grand_total: float,
    tolerance: float,
) -> list[BankAggregate]:
    totals = {bank: math.fsum(a for _, a in parts) for bank, parts in bank_media.items()}
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    shares = share_pcts([t for _, t in ranked], grand_total, tolerance)

    banks: list[BankAggregate] = []
    for (bank, total), share in zip(ranked, shares):
        parts = bank_media[bank]
        pcts = share_pcts([a for _, a in parts], total, tolerance)
        banks.append(
            BankAggregate(
                name=bank,
                total_investment=total,
                market_share_pct=share,
                media_breakdown=[
                    MediaSlice(category=c, amount=a, pct=p) for (c, a), p in zip(parts, pcts)
                ],
            )
        )
    return banks


def _category_aggregates(
    category_bank: dict[str, list[tuple[str, float]]],
    grand_total: float,
    tolerance: float,
) -> list[MediaCategoryAggregate]:
    totals = {cat: math.fsum(a for _, a in parts) for cat, parts in category_bank.items()}
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    shares = share_pcts([t for _, t in ranked], grand_total, tolerance)

    categories: list[MediaCategoryAggregate] = []
    for (category, total), share in zip(ranked, shares):
        parts = category_bank[category]
        pcts = share_pcts([a for _, a in parts], total, tolerance)
        categories.append(
            MediaCategoryAggregate(
                category=category,
                total_investment=total,
                market_share_pct=share,
                bank_shares=[BankSlice(bank=b, amount=a, pct=p) for (b, a), p in zip(parts, pcts)],
            )
        )
    return categories


def _monthly_trends(
    month_bank: dict[str, list[tuple[str, float]]],
    tolerance: float,
) -> list[MonthlyTrend]:
    trends: list[MonthlyTrend] = []
    for month_key in sorted(month_bank):
        parts = month_bank[month_key]
        total = math.fsum(a for _, a in parts)
        pcts = share_pcts([a for _, a in parts], total, tolerance)
        trends.append(
            MonthlyTrend(
                month_key=month_key,
                raw_month=month_label(month_key),
                total=total,
                bank_shares=[
                    TrendSlice(bank=b, investment=a, pct=p) for (b, a), p in zip(parts, pcts)
                ],
            )
        )
    return trends


# =========================================================
# SNAPSHOT
# =========================================================

def aggregate(
    records: Iterable[Record] | pd.DataFrame,
    is_fallback: bool = False,
    pct_tolerance: float = DEFAULT_PCT_TOLERANCE,
) -> Snapshot:
    """Build a consistent `Snapshot` from canonical records.

    Args:
        records: `Record` models or a canonical records frame
            (see `adspend_pipeline.clean.normalize.RECORD_COLUMNS`).
        is_fallback: Tag the snapshot as built from the reference dataset.
        pct_tolerance: Drift from 100 tolerated before a set is rescaled.

    Returns:
        A new `Snapshot`. Empty input yields empty aggregates and a zero total.
    """
    frame: Any = records_to_frame(records)
    if frame.empty:
        return Snapshot.empty(is_fallback=is_fallback)

    grand_total = float(frame["amount"].sum())

    bank_media = _grouped(frame, "bank", "media_category")
    category_bank = _grouped(frame, "media_category", "bank")
    month_bank = _grouped(frame, "month_key", "bank")

    snapshot = Snapshot(
        banks=_bank_aggregates(bank_media, grand_total, pct_tolerance),
        media_categories=_category_aggregates(category_bank, grand_total, pct_tolerance),
        monthly_trends=_monthly_trends(month_bank, pct_tolerance),
        total_investment=grand_total,
        is_fallback=is_fallback,
    )
    log.debug(
        "Aggregated %d records: banks=%d categories=%d months=%d total=%.2f",
        len(frame),
        len(snapshot.banks),
        len(snapshot.media_categories),
        len(snapshot.monthly_trends),
        grand_total,
    )
    return snapshot
