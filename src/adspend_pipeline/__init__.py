"""adspend_pipeline package.

Contains modules for reading row-level advertising-spend exports, normalizing
them into canonical records, and building consistent aggregate snapshots
(bank totals, media-category totals, monthly trends) that can be re-derived
for any year/month selection.

Architecture:
- Source -> Records -> Snapshot
- Dask is used for partitioned CSV reads and normalization
- Pandas groupby passes build every aggregate in O(n)
- Pydantic models validate records and snapshots
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
