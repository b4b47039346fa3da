"""Embedded reference dataset used when the primary source is unavailable.

Monthly spend per bank and media category for January to March 2024. Rows
go through the regular normalizer so fallback records are indistinguishable
from source records apart from the ``is_fallback`` tag on the report and on
every snapshot built from them.
"""
from __future__ import annotations

import logging
from typing import Any, Iterator

import pandas as pd

from adspend_pipeline.clean.normalize import normalize_frame, split_normalized
from adspend_pipeline.models import IngestReport

log = logging.getLogger(__name__)

FALLBACK_SOURCE = "<embedded reference dataset>"

MEDIA_CATEGORIES = ("Digital", "Television", "Audio", "Print", "Outdoor", "Streaming", "Cinema")

# bank -> month -> amounts in MEDIA_CATEGORIES order
REFERENCE_SPEND: dict[str, dict[str, tuple[int, ...]]] = {
    "Capital One": {
        "January 2024": (72500000, 54300000, 12800000, 18500000, 14200000, 9800000, 1700000),
        "February 2024": (73800000, 55100000, 13100000, 18900000, 14500000, 10100000, 1700000),
        "March 2024": (74200000, 55600000, 13200000, 19100000, 14700000, 10200000, 1700000),
    },
    "Chase Bank": {
        "January 2024": (23570226, 15800000, 5200000, 4500000, 3500000, 2400000, 1000000),
        "February 2024": (35600000, 26700000, 6300000, 9100000, 7000000, 4900000, 500000),
        "March 2024": (36000000, 27000000, 6400000, 9200000, 7100000, 4900000, 500000),
    },
    "Bank Of America": {
        "January 2024": (24500000, 18300000, 4300000, 6200000, 4800000, 3300000, 300000),
        "February 2024": (24800000, 18500000, 4400000, 6300000, 4900000, 3400000, 300000),
        "March 2024": (25100000, 18700000, 4400000, 6400000, 4900000, 3400000, 300000),
    },
    "Wells Fargo Bank": {
        "January 2024": (17000000, 12700000, 3000000, 4300000, 3300000, 2300000, 100000),
        "February 2024": (17200000, 12800000, 3000000, 4400000, 3400000, 2300000, 100000),
        "March 2024": (17400000, 13000000, 3100000, 4400000, 3400000, 2400000, 100000),
    },
    "Pnc Bank": {
        "January 2024": (6500000, 4900000, 1200000, 1700000, 1300000, 900000, 0),
        "February 2024": (6600000, 4900000, 1200000, 1700000, 1300000, 900000, 0),
        "March 2024": (6700000, 5000000, 1200000, 1700000, 1300000, 900000, 0),
    },
    "Td Bank": {
        "January 2024": (3300000, 2500000, 600000, 800000, 600000, 400000, 0),
        "February 2024": (3400000, 2500000, 600000, 900000, 700000, 500000, 0),
        "March 2024": (3400000, 2500000, 600000, 900000, 700000, 500000, 0),
    },
}


def reference_rows() -> Iterator[dict[str, Any]]:
    """Yield raw rows in the source schema; zero-spend cells are omitted."""
    for bank, months in REFERENCE_SPEND.items():
        for month, amounts in months.items():
            for category, amount in zip(MEDIA_CATEGORIES, amounts):
                if amount <= 0:
                    continue
                yield {
                    "Bank": bank,
                    "Media Category": category,
                    "Month": month,
                    "Dollars": f"${amount:,}",
                }


def load_fallback() -> tuple[pd.DataFrame, IngestReport]:
    """Return the reference records and an ingest report tagged as fallback."""
    records, report = split_normalized(normalize_frame(pd.DataFrame(list(reference_rows()))))
    report = report.model_copy(update={"is_fallback": True, "sources": [FALLBACK_SOURCE]})
    log.warning("Using %s (%d records)", FALLBACK_SOURCE, report.accepted)
    return records, report
