from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import requests

from adspend_pipeline.errors import SourceUnavailable
from adspend_pipeline.ingest.read_source import (
    bank_from_filename,
    download_source,
    is_url,
    load_source,
    resolve_paths,
)

HEADER = "Media Category,Month,Dollars\n"


class _FakeResponse:
    def __init__(self, content: bytes, status: int = 200) -> None:
        self.content = content
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_bank_from_filename() -> None:
    assert bank_from_filename(Path("capital-one-benchmark-v3-1.csv")) == "Capital One"
    assert bank_from_filename(Path("bank-of-america-benchmark.csv")) == "Bank Of America"
    assert bank_from_filename(Path("td_bank.csv")) == "Td Bank"


def test_is_url() -> None:
    assert is_url("https://example.com/a.csv")
    assert not is_url("data/raw/a.csv")


def test_file_without_bank_column_uses_filename(tmp_path: Path) -> None:
    path = tmp_path / "pnc-bank-benchmark-v3-1.csv"
    path.write_text(HEADER + "Digital,January 2024,$10\nAudio,January 2024,$5\n", encoding="utf-8")
    records, report = load_source(str(path), tmp_path)
    assert records["bank"].tolist() == ["Pnc Bank", "Pnc Bank"]
    assert report.accepted == 2


def test_directory_and_glob_sources(tmp_path: Path) -> None:
    raw = tmp_path / "raw"
    raw.mkdir()
    (raw / "chase-bank.csv").write_text(HEADER + "Digital,January 2024,$10\n", encoding="utf-8")
    (raw / "td-bank.csv").write_text(HEADER + "Print,February 2024,$20\n", encoding="utf-8")
    (raw / "notes.txt").write_text("ignored", encoding="utf-8")

    records, report = load_source(str(raw), tmp_path / "cache")
    assert sorted(records["bank"].tolist()) == ["Chase Bank", "Td Bank"]
    assert report.total_rows == 2
    assert len(report.sources) == 2

    assert resolve_paths(str(raw / "td-*.csv"), tmp_path) == [raw / "td-bank.csv"]


def test_nothing_found_raises(tmp_path: Path) -> None:
    with pytest.raises(SourceUnavailable, match="no CSV files found"):
        resolve_paths(str(tmp_path / "*.csv"), tmp_path)


def test_bad_header_raises(tmp_path: Path) -> None:
    path = tmp_path / "x.csv"
    path.write_text("Bank,Amount\nTd Bank,5\n", encoding="utf-8")
    with pytest.raises(SourceUnavailable) as excinfo:
        load_source(str(path), tmp_path)
    assert "Month" in excinfo.value.reason
    assert excinfo.value.source == str(path)


def test_url_is_downloaded_once(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def fake_get(url: str, timeout: float) -> Any:
        calls.append(url)
        return _FakeResponse(b"Bank," + HEADER.encode() + b"Chase Bank,Digital,March 2024,$7\n")

    monkeypatch.setattr(requests, "get", fake_get)
    url = "https://example.com/exports/spend.csv"

    first = download_source(url, tmp_path)
    second = download_source(url, tmp_path)
    assert first == second
    assert first.name.endswith("_spend.csv")
    assert calls == [url]

    records, _ = load_source(url, tmp_path)
    assert records["amount"].tolist() == [7.0]


def test_download_failure_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_get(url: str, timeout: float) -> Any:
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(requests, "get", fake_get)
    with pytest.raises(SourceUnavailable, match="unreachable"):
        download_source("https://example.com/a.csv", tmp_path)


def test_http_error_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(b"", status=404))
    with pytest.raises(SourceUnavailable):
        download_source("https://example.com/missing.csv", tmp_path)
