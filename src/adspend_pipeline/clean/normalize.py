"""Record normalization: raw spend rows -> canonical records.

This is the only module that knows about source header variants (``Dollars``
vs ``Dollars `` vs ``dollars``) and textual currency/month encodings. Every
downstream component reads the canonical columns listed in `RECORD_COLUMNS`.

Rows that cannot be used are never raised on; they are tagged with a
`RejectReason` and counted. Precedence when a row has several problems:
MissingField, then InvalidAmount, then UnrecognizedMonthFormat.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, cast

import numpy as np
import pandas as pd
from dask import compute  # type: ignore[attr-defined]

from adspend_pipeline.clean.months import parse_raw_month
from adspend_pipeline.models import IngestReport, Record, RejectReason

log = logging.getLogger(__name__)

BANK_COLUMN = "Bank"
CATEGORY_COLUMN = "Media Category"
MONTH_COLUMN = "Month"
# Checked in order; the first non-empty value on a row wins
AMOUNT_COLUMNS = ("Dollars", "Dollars ", "dollars")

RECORD_COLUMNS = ["bank", "media_category", "raw_month", "month_key", "year", "amount"]
REASON_COLUMN = "reject_reason"

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")

NORMALIZED_META = pd.DataFrame(
    {
        "bank": pd.Series(dtype=object),
        "media_category": pd.Series(dtype=object),
        "raw_month": pd.Series(dtype=object),
        "month_key": pd.Series(dtype=object),
        "year": pd.Series(dtype=object),
        "amount": pd.Series(dtype=float),
        REASON_COLUMN: pd.Series(dtype=object),
    }
)


# -----------------------------
# Field parsers
# -----------------------------
def parse_amount(value: Any) -> float:
    """Parse a currency value such as ``"$1,234.56"``; NaN when unparseable.

    Every character other than digits, ``.`` and ``-`` is removed before the
    numeric conversion, so ``"-$5"`` parses to ``-5.0``.
    """
    if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
        return float(value)
    if value is None:
        return float("nan")
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return float("nan")


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    return None if pd.isna(value) else value


def _clean_text(value: Any) -> str | None:
    value = _blank_to_none(value)
    return None if value is None else str(value).strip()


def _empty_column(pdf: pd.DataFrame) -> pd.Series:
    return pd.Series([None] * len(pdf), index=pdf.index, dtype=object)


def _text_column(pdf: pd.DataFrame, column: str) -> pd.Series:
    """Return a stripped text column with blanks/NA as None."""
    if column not in pdf.columns:
        return _empty_column(pdf)
    return pdf[column].astype(object).map(_clean_text).astype(object)


def _amount_column(pdf: pd.DataFrame) -> pd.Series:
    """Coalesce the amount header variants into one raw value per row."""
    raw = _empty_column(pdf)
    for column in AMOUNT_COLUMNS:
        if column not in pdf.columns:
            continue
        candidate = pdf[column].astype(object).map(_blank_to_none).astype(object)
        raw = raw.where(raw.notna(), candidate)
    return raw


def _parse_amounts(raw: pd.Series) -> pd.Series:
    """Vectorized `parse_amount` over a raw amount column."""
    if pd.api.types.is_numeric_dtype(raw):
        return raw.astype(float)
    is_number = raw.map(
        lambda v: isinstance(v, (int, float, np.number)) and not isinstance(v, bool)
    )
    text = raw.where(~is_number, "").fillna("").astype(str)
    parsed = pd.to_numeric(text.str.replace(_NON_NUMERIC_RE, "", regex=True), errors="coerce")
    numeric = pd.to_numeric(raw.where(is_number), errors="coerce")
    return parsed.where(~is_number, numeric).astype(float)


# -----------------------------
# Frame / row normalization
# -----------------------------
def normalize_frame(pdf: pd.DataFrame) -> pd.DataFrame:
    """Normalize a pandas frame of raw rows.

    Args:
        pdf: Raw rows with (some of) the source headers.

    Returns:
        Frame with `RECORD_COLUMNS` plus ``reject_reason`` (None for rows
        that produced a valid record). Row order and index are preserved.
    """
    if pdf is None or len(pdf) == 0:
        return NORMALIZED_META.copy()

    bank = _text_column(pdf, BANK_COLUMN)
    category = _text_column(pdf, CATEGORY_COLUMN)
    raw_month = _text_column(pdf, MONTH_COLUMN)
    raw_month = raw_month.map(lambda v: " ".join(v.split()) if isinstance(v, str) else None)
    amount = _parse_amounts(_amount_column(pdf))

    # Month resolution runs once per distinct month string
    resolved = {m: parse_raw_month(m) for m in raw_month.dropna().unique()}
    month_key = raw_month.map(lambda m: resolved[m][0] if isinstance(m, str) and resolved[m] else None)
    year = raw_month.map(lambda m: resolved[m][1] if isinstance(m, str) and resolved[m] else None)

    missing = bank.isna() | category.isna() | raw_month.isna()
    bad_amount = amount.isna() | ~(amount > 0) | ~np.isfinite(amount)
    bad_month = month_key.isna()

    reason = pd.Series([None] * len(pdf), index=pdf.index, dtype=object)
    reason = reason.where(~bad_month, RejectReason.UNRECOGNIZED_MONTH_FORMAT.value)
    reason = reason.where(~bad_amount, RejectReason.INVALID_AMOUNT.value)
    reason = reason.where(~missing, RejectReason.MISSING_FIELD.value)

    return pd.DataFrame(
        {
            "bank": bank,
            "media_category": category,
            "raw_month": raw_month,
            "month_key": month_key,
            "year": year,
            "amount": amount,
            REASON_COLUMN: reason,
        },
        index=pdf.index,
    )


def normalize_row(row: Mapping[str, Any]) -> Record | RejectReason:
    """Normalize a single raw row.

    Uses the same code path as `normalize_frame`, so a row is accepted or
    rejected identically whether it arrives alone or inside a partition.

    Returns:
        A `Record`, or the `RejectReason` explaining why the row was dropped.
    """
    out = normalize_frame(pd.DataFrame([dict(row)])).iloc[0]
    if out[REASON_COLUMN] is not None and not pd.isna(out[REASON_COLUMN]):
        return RejectReason(out[REASON_COLUMN])
    return Record(**{c: out[c] for c in RECORD_COLUMNS})


def split_normalized(frame: pd.DataFrame) -> tuple[pd.DataFrame, IngestReport]:
    """Separate accepted records from rejections and count the latter."""
    accepted_mask = frame[REASON_COLUMN].isna()
    records = frame.loc[accepted_mask, RECORD_COLUMNS].reset_index(drop=True)
    records["amount"] = records["amount"].astype(float)
    counts = frame.loc[~accepted_mask, REASON_COLUMN].value_counts()
    report = IngestReport(
        total_rows=len(frame),
        accepted=len(records),
        rejected={reason: int(counts.get(reason.value, 0)) for reason in RejectReason},
    )
    return records, report


def normalize_ddf(ddf: Any) -> tuple[pd.DataFrame, IngestReport]:
    """Normalize a Dask DataFrame of raw rows partition by partition.

    The accepted records and the rejection counts are computed in a single
    pass over the partitions.

    Returns:
        ``(records, report)`` where ``records`` is a pandas frame with
        `RECORD_COLUMNS` in source order.
    """
    log.info("Normalizing %d partition(s)", ddf.npartitions)
    normed = ddf.map_partitions(normalize_frame, meta=NORMALIZED_META)
    accepted = normed[normed[REASON_COLUMN].isna()][RECORD_COLUMNS]
    reasons = normed[REASON_COLUMN].dropna().value_counts()
    row_count = normed.shape[0]

    records, counts, total = cast(Any, compute)(accepted, reasons, row_count)
    records = records.reset_index(drop=True)
    records["amount"] = records["amount"].astype(float)

    report = IngestReport(
        total_rows=int(total),
        accepted=len(records),
        rejected={reason: int(counts.get(reason.value, 0)) for reason in RejectReason},
    )
    log_report(report)
    return records, report


def log_report(report: IngestReport) -> None:
    log.info(
        "Normalization complete: rows=%d accepted=%d rejected=%d",
        report.total_rows,
        report.accepted,
        report.rejected_total,
    )
    for reason, count in report.rejected.items():
        if count:
            log.info("  %s: %d", reason.value, count)


# -----------------------------
# Record <-> frame conversion
# -----------------------------
def records_to_frame(records: Iterable[Record] | pd.DataFrame) -> pd.DataFrame:
    """Return a canonical records frame for `Record` objects or a frame."""
    if isinstance(records, pd.DataFrame):
        return records
    rows = [r.model_dump() for r in records]
    if not rows:
        return NORMALIZED_META[RECORD_COLUMNS].copy()
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def frame_to_records(frame: pd.DataFrame) -> list[Record]:
    """Materialize a canonical records frame as validated `Record` models."""
    return [Record(**row) for row in frame[RECORD_COLUMNS].to_dict(orient="records")]


def check_records_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """Validate a records frame supplied from outside the normalizer.

    Applies the `Record` rules column-wise: non-blank bank and category, a
    positive finite amount, and ``month_key``/``year`` derived from
    ``raw_month``.

    Returns:
        The frame restricted to `RECORD_COLUMNS` with a float ``amount``.

    Raises:
        ValueError: if a column is missing or any row breaks a rule.
    """
    missing = [c for c in RECORD_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"records frame is missing column(s): {', '.join(missing)}")

    out = frame[RECORD_COLUMNS].copy()
    if out.empty:
        return out

    amount = pd.to_numeric(out["amount"], errors="coerce").astype(float)
    bad = amount.isna() | ~(amount > 0) | ~np.isfinite(amount)
    for column in ("bank", "media_category"):
        bad |= out[column].map(lambda v: not isinstance(v, str) or not v.strip()).astype(bool)

    resolved = {m: parse_raw_month(m) for m in out["raw_month"].dropna().unique() if isinstance(m, str)}
    expected = out["raw_month"].map(lambda m: resolved.get(m) if isinstance(m, str) else None)
    agrees = [
        exp is not None and exp == (str(key), str(year))
        for exp, key, year in zip(expected, out["month_key"], out["year"])
    ]
    bad |= ~pd.Series(agrees, index=out.index, dtype=bool)

    if bad.any():
        first = out.index[bad.to_numpy()][0]
        raise ValueError(f"{int(bad.sum())} of {len(out)} record rows are invalid (first at index {first!r})")

    out["amount"] = amount
    return out
