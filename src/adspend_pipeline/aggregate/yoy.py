"""Year-over-year growth and month-over-month change per month.

`yoy_for` compares a month's total with the same month one year earlier.
When that month is missing it falls back to the prior-year month whose number
is closest (ties go to the earlier month) and says so in the note. It is
meant to run against the unfiltered trend list so comparisons stay meaningful
while a filter is active elsewhere.

`mom_series` walks a trend list in month order and reports each month's
change against the previous entry.
"""
from __future__ import annotations

from typing import Iterable

from adspend_pipeline.clean.months import month_label, split_month_key, to_month_key
from adspend_pipeline.models import MomEntry, MonthlyTrend, YoyEntry

NO_HISTORY_NOTE = "No historical data available for {year}"


def _growth(current: float, prior: float) -> float:
    return (current - prior) / prior * 100.0


def yoy_for(month: str, all_trends: Iterable[MonthlyTrend]) -> YoyEntry:
    """Compute year-over-year growth for one month.

    Args:
        month: Month key ``"YYYY-MM"`` (``"MonthName Year"`` is accepted too).
        all_trends: Complete monthly trends of the unfiltered snapshot.

    Returns:
        A `YoyEntry`. Missing data is reported through ``growth_pct = 0``
        and the note, never raised.
    """
    month_key = to_month_key(month)
    parts = split_month_key(month_key) if month_key else None
    if month_key is None or parts is None:
        return YoyEntry(month_key=str(month), growth_pct=0.0, note=f"Unrecognized month: {month}")

    year, month_num = parts
    by_key = {t.month_key: t for t in all_trends}

    current = by_key.get(month_key)
    if current is None:
        return YoyEntry(
            month_key=month_key,
            growth_pct=0.0,
            note=f"No data for {month_label(month_key)}",
        )

    prior_key = f"{year - 1}-{month_num:02d}"
    prior = by_key.get(prior_key)
    if prior is not None and prior.total > 0:
        return YoyEntry(
            month_key=month_key,
            growth_pct=_growth(current.total, prior.total),
            compared_to_month_key=prior_key,
            note=f"Compared to {month_label(prior_key)}",
        )

    candidates = []
    for key, trend in by_key.items():
        split = split_month_key(key)
        if split and split[0] == year - 1 and trend.total > 0:
            candidates.append((abs(split[1] - month_num), split[1], trend))
    if not candidates:
        return YoyEntry(
            month_key=month_key,
            growth_pct=0.0,
            note=NO_HISTORY_NOTE.format(year=year - 1),
        )

    _, _, nearest = min(candidates, key=lambda c: (c[0], c[1]))
    return YoyEntry(
        month_key=month_key,
        growth_pct=_growth(current.total, nearest.total),
        compared_to_month_key=nearest.month_key,
        note=(
            f"Approximate: {month_label(prior_key)} has no data, "
            f"compared to nearest month {month_label(nearest.month_key)}"
        ),
    )


def yoy_series(all_trends: Iterable[MonthlyTrend]) -> list[YoyEntry]:
    """Return one `YoyEntry` per trend, in trend order."""
    trends = list(all_trends)
    return [yoy_for(t.month_key, trends) for t in trends]


def mom_series(trends: Iterable[MonthlyTrend]) -> list[MomEntry]:
    """Month-over-month change along a trend list.

    Each entry compares a month with the entry before it in ``trends`` (which
    need not be the adjacent calendar month when a selection leaves gaps).
    The first month, and any month whose predecessor totals 0, gets 0.
    """
    entries: list[MomEntry] = []
    previous: MonthlyTrend | None = None
    for trend in sorted(trends, key=lambda t: t.month_key):
        if previous is None:
            entries.append(MomEntry(month_key=trend.month_key, change_pct=0.0))
        else:
            change = _growth(trend.total, previous.total) if previous.total > 0 else 0.0
            entries.append(
                MomEntry(
                    month_key=trend.month_key,
                    change_pct=change,
                    compared_to_month_key=previous.month_key,
                )
            )
        previous = trend
    return entries
