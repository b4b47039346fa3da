"""Pydantic models for canonical records and aggregate snapshots.

Records are produced once by the normalizer and are immutable afterwards.
Aggregate models are frozen value objects; a new `Snapshot` is built for
every selection rather than mutating an existing one. Serialized names follow
the camelCase output schema consumed by the dashboard (`totalInvestment`,
`bankShares`, ...); Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from adspend_pipeline.clean.months import parse_raw_month


class RejectReason(str, Enum):
    """Row-level reasons a raw row is dropped during normalization."""
    MISSING_FIELD = "MissingField"
    INVALID_AMOUNT = "InvalidAmount"
    UNRECOGNIZED_MONTH_FORMAT = "UnrecognizedMonthFormat"


class _Frozen(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Record(_Frozen):
    """Canonical spend record for one campaign placement.

    Attributes:
        bank: Advertiser the spend belongs to.
        media_category: Advertising channel (e.g. 'Digital').
        raw_month: Human-readable month, e.g. 'January 2024'.
        month_key: Sortable canonical month, e.g. '2024-01'.
        year: Four-digit year string.
        amount: Positive dollar amount.
    """
    bank: str = Field(..., min_length=1)
    media_category: str = Field(..., min_length=1)
    raw_month: str
    month_key: str = Field(..., pattern=r"^[0-9]{4}-(0[1-9]|1[0-2])$")
    year: str = Field(..., pattern=r"^[0-9]{4}$")
    amount: float = Field(..., gt=0)

    @model_validator(mode="after")
    def check_month_fields(self) -> "Record":
        # month_key and year are derived from raw_month and nothing else
        if parse_raw_month(self.raw_month) != (self.month_key, self.year):
            raise ValueError(
                f"month_key={self.month_key!r} year={self.year!r} do not match raw_month={self.raw_month!r}"
            )
        return self


class MediaSlice(_Frozen):
    """One media category inside a bank's breakdown."""
    category: str
    amount: float = Field(..., ge=0)
    pct: float = Field(..., ge=0)


class BankSlice(_Frozen):
    """One bank inside a media category's shares."""
    bank: str
    amount: float = Field(..., ge=0)
    pct: float = Field(..., ge=0)


class TrendSlice(_Frozen):
    """One bank inside a month's shares."""
    bank: str
    investment: float = Field(..., ge=0)
    pct: float = Field(..., ge=0)


class BankAggregate(_Frozen):
    name: str
    total_investment: float = Field(..., ge=0)
    market_share_pct: float = Field(..., ge=0)
    media_breakdown: list[MediaSlice]


class MediaCategoryAggregate(_Frozen):
    category: str
    total_investment: float = Field(..., ge=0)
    market_share_pct: float = Field(..., ge=0)
    bank_shares: list[BankSlice]


class MonthlyTrend(_Frozen):
    month_key: str
    raw_month: str
    total: float = Field(..., ge=0)
    bank_shares: list[TrendSlice]


class Snapshot(_Frozen):
    """Fully consistent aggregate view over a set of records.

    Attributes:
        banks: Bank totals, descending by investment.
        media_categories: Category totals, descending by investment.
        monthly_trends: Month totals, ascending by month key.
        total_investment: Grand total over the records.
        is_fallback: True when built from the embedded reference dataset.
    """
    banks: list[BankAggregate]
    media_categories: list[MediaCategoryAggregate]
    monthly_trends: list[MonthlyTrend]
    total_investment: float = Field(..., ge=0)
    is_fallback: bool = False

    @classmethod
    def empty(cls, is_fallback: bool = False) -> "Snapshot":
        return cls(
            banks=[],
            media_categories=[],
            monthly_trends=[],
            total_investment=0.0,
            is_fallback=is_fallback,
        )

    def to_json(self, indent: int | None = None) -> str:
        """Serialize using the camelCase output schema."""
        return self.model_dump_json(by_alias=True, indent=indent)


class YoyEntry(_Frozen):
    """Year-over-year comparison for a single month."""
    month_key: str
    growth_pct: float
    compared_to_month_key: str | None = None
    note: str


class MomEntry(_Frozen):
    """Change of a month's total against the preceding trend entry."""
    month_key: str
    change_pct: float
    compared_to_month_key: str | None = None


class IngestReport(BaseModel):
    """Diagnostics collected while normalizing a source."""
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)
    total_rows: int = Field(0, ge=0)
    accepted: int = Field(0, ge=0)
    rejected: dict[RejectReason, int] = Field(
        default_factory=lambda: {reason: 0 for reason in RejectReason}
    )
    is_fallback: bool = False
    sources: list[str] = Field(default_factory=list)

    @property
    def rejected_total(self) -> int:
        return sum(self.rejected.values())

    def merge(self, other: "IngestReport") -> "IngestReport":
        """Return a new report summing the counters of both reports."""
        rejected = {
            reason: self.rejected.get(reason, 0) + other.rejected.get(reason, 0)
            for reason in RejectReason
        }
        return IngestReport(
            total_rows=self.total_rows + other.total_rows,
            accepted=self.accepted + other.accepted,
            rejected=rejected,
            is_fallback=self.is_fallback or other.is_fallback,
            sources=[*self.sources, *other.sources],
        )
