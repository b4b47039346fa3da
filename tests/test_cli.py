from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest

from adspend_pipeline.cli import build_parser, main

CSV = (
    "Bank,Media Category,Month,Dollars\n"
    "Capital One,Digital,January 2023,$80\n"
    "Capital One,Digital,January 2024,$100\n"
    "Chase Bank,Television,January 2024,$300\n"
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("ADSPEND_LOG_PATH", str(tmp_path / "logs" / "pipeline.log"))
    monkeypatch.setenv("ADSPEND_CACHE_DIR", str(tmp_path / "cache"))
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    path = tmp_path / "spend.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
    args = build_parser().parse_args(["filter", "--year", "2024", "--month", "2024-01", "--month", "March 2024"])
    assert args.year == ["2024"]
    assert args.month == ["2024-01", "March 2024"]


def test_summary_json(csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--source", str(csv_path), "summary", "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["totalInvestment"] == 480
    assert payload["isFallback"] is False
    assert [b["name"] for b in payload["banks"]] == ["Chase Bank", "Capital One"]


def test_filter_json(csv_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--source", str(csv_path), "filter", "--year", "2023", "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert payload["totalInvestment"] == 80
    assert [t["monthKey"] for t in payload["monthlyTrends"]] == ["2023-01"]


def test_yoy_and_diagnostics_log(csv_path: Path, tmp_path: Path) -> None:
    main(["--source", str(csv_path), "yoy", "--month", "January 2024"])
    main(["--source", str(csv_path), "diagnostics"])
    for h in logging.getLogger().handlers:
        h.flush()
    text = (tmp_path / "logs" / "pipeline.log").read_text(encoding="utf-8")
    assert "2024-01" in text
    assert "Compared to January 2023" in text
    assert "MoM  +400.00%" in text
    assert "Rows: 3  accepted: 3  rejected: 0" in text


def test_missing_source_exits_with_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--source", str(tmp_path / "missing.csv"), "summary"])
    assert excinfo.value.code == 1
