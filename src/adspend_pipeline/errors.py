"""Source-level errors raised at the ingestion boundary."""

from __future__ import annotations


class SourceUnavailable(RuntimeError):
    """The primary input source could not be read or is malformed.

    Attributes:
        source: The file, directory, glob or URL that failed.
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Source unavailable: {source} ({reason})")
        self.source = source
        self.reason = reason
