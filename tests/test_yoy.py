from __future__ import annotations

import pytest

from adspend_pipeline.aggregate.yoy import mom_series, yoy_for, yoy_series
from adspend_pipeline.models import MonthlyTrend


def _trend(key: str, total: float) -> MonthlyTrend:
    return MonthlyTrend(month_key=key, raw_month=key, total=total, bank_shares=[])


def test_growth_against_same_month_last_year() -> None:
    trends = [_trend("2023-01", 100), _trend("2024-01", 125)]
    entry = yoy_for("2024-01", trends)
    assert entry.growth_pct == pytest.approx(25.0)
    assert entry.compared_to_month_key == "2023-01"
    assert entry.note == "Compared to January 2023"


def test_month_name_token_is_accepted() -> None:
    trends = [_trend("2023-01", 100), _trend("2024-01", 125)]
    assert yoy_for("January 2024", trends) == yoy_for("2024-01", trends)


def test_nearest_prior_year_month_is_used() -> None:
    trends = [_trend("2023-01", 100), _trend("2023-06", 50), _trend("2024-03", 150)]
    entry = yoy_for("2024-03", trends)
    assert entry.compared_to_month_key == "2023-01"
    assert entry.growth_pct == pytest.approx(50.0)
    assert entry.note.startswith("Approximate: March 2023 has no data")
    assert "January 2023" in entry.note


def test_nearest_tie_goes_to_earlier_month() -> None:
    trends = [_trend("2023-02", 100), _trend("2023-04", 200), _trend("2024-03", 300)]
    entry = yoy_for("2024-03", trends)
    assert entry.compared_to_month_key == "2023-02"
    assert entry.growth_pct == pytest.approx(200.0)


def test_no_prior_year_data() -> None:
    entry = yoy_for("2024-01", [_trend("2024-01", 125)])
    assert entry.growth_pct == 0
    assert entry.compared_to_month_key is None
    assert entry.note == "No historical data available for 2023"


def test_month_without_data() -> None:
    entry = yoy_for("2024-05", [_trend("2023-05", 10)])
    assert entry.growth_pct == 0
    assert entry.note == "No data for May 2024"


def test_unrecognized_month() -> None:
    entry = yoy_for("Q1 2024", [_trend("2024-01", 1)])
    assert entry.growth_pct == 0
    assert entry.note == "Unrecognized month: Q1 2024"


def test_series_follows_trend_order() -> None:
    trends = [_trend("2023-01", 100), _trend("2024-01", 80)]
    series = yoy_series(trends)
    assert [e.month_key for e in series] == ["2023-01", "2024-01"]
    assert series[0].growth_pct == 0
    assert series[1].growth_pct == pytest.approx(-20.0)


def test_mom_series_compares_with_previous_entry() -> None:
    trends = [_trend("2024-02", 150), _trend("2024-01", 100), _trend("2024-04", 120)]
    series = mom_series(trends)
    assert [e.month_key for e in series] == ["2024-01", "2024-02", "2024-04"]
    assert series[0].change_pct == 0
    assert series[0].compared_to_month_key is None
    assert series[1].change_pct == pytest.approx(50.0)
    assert series[1].compared_to_month_key == "2024-01"
    assert series[2].change_pct == pytest.approx(-20.0)
    assert series[2].compared_to_month_key == "2024-02"


def test_mom_series_zero_previous_total() -> None:
    series = mom_series([_trend("2024-01", 0), _trend("2024-02", 40)])
    assert series[1].change_pct == 0
    assert mom_series([]) == []
