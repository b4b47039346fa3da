from __future__ import annotations

import pytest

from adspend_pipeline.aggregate.build_snapshot import aggregate
from adspend_pipeline.aggregate.filters import Selection, filter_snapshot, select_records
from adspend_pipeline.models import Record

MONTH_KEYS = {"January": "01", "February": "02", "March": "03"}


def _rec(bank: str, category: str, month: str, amount: float) -> Record:
    name, year = month.split()
    return Record(
        bank=bank,
        media_category=category,
        raw_month=month,
        month_key=f"{year}-{MONTH_KEYS[name]}",
        year=year,
        amount=amount,
    )


@pytest.fixture
def records() -> list[Record]:
    return [
        _rec("Capital One", "Digital", "January 2023", 80),
        _rec("Capital One", "Digital", "January 2024", 100),
        _rec("Chase Bank", "Television", "January 2024", 300),
        _rec("Chase Bank", "Digital", "February 2024", 50),
        _rec("Td Bank", "Print", "March 2024", 25),
    ]


def test_selecting_everything_equals_selecting_nothing(records: list[Record]) -> None:
    everything = filter_snapshot(
        records,
        years=["2023", "2024"],
        month_tokens=["January 2023", "January 2024", "February 2024", "March 2024"],
    )
    assert everything == aggregate(records)
    assert filter_snapshot(records) == aggregate(records)


def test_filtered_snapshot_equals_aggregate_of_subset(records: list[Record]) -> None:
    filtered = filter_snapshot(records, years=["2024"])
    subset = [r for r in records if r.year == "2024"]
    assert filtered == aggregate(subset)
    assert filtered.total_investment == 475


def test_month_tokens_accept_both_encodings(records: list[Record]) -> None:
    by_name = filter_snapshot(records, month_tokens=["January 2024"])
    by_key = filter_snapshot(records, month_tokens=["2024-01"])
    assert by_name == by_key
    assert by_key.total_investment == 400
    assert [b.name for b in by_key.banks] == ["Chase Bank", "Capital One"]


def test_year_and_month_constraints_combine(records: list[Record]) -> None:
    snap = filter_snapshot(records, years=["2023"], month_tokens=["2024-01"])
    assert snap.total_investment == 0
    assert snap.banks == []


def test_empty_subset_gives_empty_snapshot(records: list[Record]) -> None:
    snap = filter_snapshot(records, years=["1999"], is_fallback=True)
    assert snap.total_investment == 0
    assert snap.monthly_trends == []
    assert snap.is_fallback is True


def test_select_records_preserves_order(records: list[Record]) -> None:
    subset = select_records(records, month_tokens=["2024-01", "March 2024"])
    assert subset["amount"].tolist() == [100.0, 300.0, 25.0]


def test_selection_of_normalizes_tokens() -> None:
    sel = Selection.of(years=[2024, " 2023 "], months=[" 2024-01"])
    assert sel.years == frozenset({"2024", "2023"})
    assert sel.months == frozenset({"2024-01"})
    assert not sel.is_empty
    assert Selection().is_empty
