"""Snapshot aggregation helpers.

This package turns canonical records into `Snapshot` value objects (bank,
media-category and monthly totals with consistent percentages), re-derives
them for year/month selections, and computes year-over-year growth against
the unfiltered monthly trends.
"""
