"""Cleaning utilities for the pipeline.

Provides the calendar table and month-token reconciliation, plus the record
normalizer that turns raw source rows into canonical records and counts the
rows it has to reject.
"""
