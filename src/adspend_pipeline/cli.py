"""Command-line interface for the aggregation pipeline.

Provides subcommands: `summary`, `filter`, `yoy`, and `diagnostics`. Each
command is implemented as a `cmd_*` function that accepts an argparse
namespace. The CLI is a batch context: an unavailable source is fatal and
exits with status 1 instead of falling back to the reference dataset.
"""
from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from adspend_pipeline.aggregate.filters import Selection
from adspend_pipeline.config import Settings, get_settings
from adspend_pipeline.errors import SourceUnavailable
from adspend_pipeline.logging_config import configure_logging
from adspend_pipeline.models import Snapshot
from adspend_pipeline.store import AggregationStore

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _load_store(args: argparse.Namespace, settings: Settings) -> AggregationStore:
    """Load the requested source into a store without fallback substitution."""
    source = args.source or settings.source
    store = AggregationStore(pct_tolerance=settings.pct_tolerance)
    return store.load(
        source,
        cache_dir=settings.cache_dir,
        allow_fallback=False,
        blocksize=settings.blocksize,
        timeout=settings.http_timeout,
    )


def _fmt_money(value: float) -> str:
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"${value / 1_000:.1f}K"
    return f"${value:.0f}"


def _log_snapshot(snapshot: Snapshot, top_n: int) -> None:
    """Log grand total, leading banks, categories and the month range."""
    log.info("Total investment: %s", _fmt_money(snapshot.total_investment))
    if not snapshot.banks:
        log.warning("No records match the selection.")
        return

    log.info("Banks by investment:")
    for bank in snapshot.banks[:top_n]:
        log.info("  %-24s %12s  %6.2f%%", bank.name, _fmt_money(bank.total_investment), bank.market_share_pct)

    log.info("Media categories by investment:")
    for cat in snapshot.media_categories[:top_n]:
        log.info("  %-24s %12s  %6.2f%%", cat.category, _fmt_money(cat.total_investment), cat.market_share_pct)

    first, last = snapshot.monthly_trends[0], snapshot.monthly_trends[-1]
    log.info("Months: %d (%s to %s)", len(snapshot.monthly_trends), first.raw_month, last.raw_month)


def _emit(snapshot: Snapshot, args: argparse.Namespace) -> None:
    if args.json:
        print(snapshot.to_json(indent=2))
    else:
        _log_snapshot(snapshot, args.top_n)


# --------------------------------------------------
# Commands
# --------------------------------------------------
def cmd_summary(args: argparse.Namespace, settings: Settings) -> None:
    """Aggregate the whole source and report the full snapshot."""
    store = _load_store(args, settings)
    _emit(store.snapshot, args)


def cmd_filter(args: argparse.Namespace, settings: Settings) -> None:
    """Aggregate only the records matching `--year` / `--month` selections."""
    store = _load_store(args, settings)
    selection = Selection.of(years=args.year or (), months=args.month or ())
    log.info("Selection: years=%s months=%s", sorted(selection.years), sorted(selection.months))
    _emit(store.recompute(selection), args)


def cmd_yoy(args: argparse.Namespace, settings: Settings) -> None:
    """Report year-over-year growth and month-over-month change."""
    store = _load_store(args, settings)
    entries = [store.yoy(args.month)] if args.month else store.yoy_all()
    mom = {m.month_key: m for m in store.mom()}
    for entry in entries:
        change = mom.get(entry.month_key)
        log.info(
            "%s  YoY %+8.2f%%  MoM %+8.2f%%  %s",
            entry.month_key,
            entry.growth_pct,
            change.change_pct if change else 0.0,
            entry.note,
        )


def cmd_diagnostics(args: argparse.Namespace, settings: Settings) -> None:
    """Report row counts and per-reason rejection counts for the source."""
    store = _load_store(args, settings)
    report = store.report
    log.info("Sources: %s", ", ".join(report.sources))
    log.info("Rows: %d  accepted: %d  rejected: %d", report.total_rows, report.accepted, report.rejected_total)
    for reason, count in report.rejected.items():
        log.info("  %-24s %d", reason.value, count)
    log.info("Years: %s", ", ".join(store.available_years()) or "none")


COMMANDS = {
    "summary": cmd_summary,
    "filter": cmd_filter,
    "yoy": cmd_yoy,
    "diagnostics": cmd_diagnostics,
}


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="adspend_pipeline")
    p.add_argument("--source", default=None, help="CSV file, directory, glob or URL (overrides ADSPEND_SOURCE)")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_summary = sub.add_parser("summary")
    p_summary.add_argument("--json", action="store_true")
    p_summary.add_argument("--top-n", type=int, default=10)

    p_filter = sub.add_parser("filter")
    p_filter.add_argument("--year", action="append", help="four-digit year; repeatable")
    p_filter.add_argument("--month", action="append", help="'January 2024' or '2024-01'; repeatable")
    p_filter.add_argument("--json", action="store_true")
    p_filter.add_argument("--top-n", type=int, default=10)

    p_yoy = sub.add_parser("yoy")
    p_yoy.add_argument("--month", default=None)

    sub.add_parser("diagnostics")

    return p


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = get_settings()
    level = logging.DEBUG if args.verbose else logging.INFO
    # stdout carries the JSON document, so logs go to stderr
    stream = sys.stderr if getattr(args, "json", False) else None
    configure_logging(settings.log_path, level, stream)

    handler = COMMANDS.get(args.cmd)
    if handler is None:
        raise SystemExit(2)

    try:
        handler(args, settings)
    except SourceUnavailable as exc:
        log.error("%s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
