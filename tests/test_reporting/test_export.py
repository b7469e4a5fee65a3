"""Tests for techscout.reporting.export."""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from techscout.config import AppConfig
from techscout.pipeline.orchestrator import MatchingOrchestrator, MatchingResult
from techscout.reporting.export import (
    FLAT_COLUMNS,
    export_recommendations_csv,
    export_result_json,
    export_to_csv,
    export_to_json,
    flatten_recommendations,
)


@pytest.fixture
def run_result(make_item, sample_profile, as_of, offline_client) -> MatchingResult:
    items = [
        make_item("hn-1"),
        make_item("hn-2", title="Zod 4 released", technologies=["zod", "typescript"]),
    ]
    return MatchingOrchestrator(AppConfig(), offline_client).run(items, sample_profile, as_of)


# ── export_to_csv / export_to_json ────────────────────────────────────────────


def test_export_to_csv_basic(tmp_path: Path) -> None:
    """Writes a valid CSV with correct headers and values."""
    records = [
        {"subject": "zod", "delta": 0.21, "verdict": "RECOMMEND"},
        {"subject": "vite", "delta": -0.3, "verdict": "DEFER"},
    ]
    out = export_to_csv(records, tmp_path / "recs.csv")

    with out.open(encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["subject"] for r in rows] == ["zod", "vite"]
    assert rows[1]["verdict"] == "DEFER"


def test_export_to_csv_empty(tmp_path: Path) -> None:
    """No records writes an empty file."""
    out = export_to_csv([], tmp_path / "empty.csv")
    assert out.exists()
    assert out.read_text(encoding="utf-8") == ""


def test_export_to_csv_column_order(tmp_path: Path) -> None:
    """Explicit fieldnames fix the column order; extra keys are dropped."""
    out = export_to_csv([{"b": 2, "a": 1, "c": 3}], tmp_path / "x.csv", ["a", "b"])
    assert out.read_text(encoding="utf-8").splitlines()[0] == "a,b"


def test_export_to_json_creates_parents(tmp_path: Path) -> None:
    out = export_to_json({"k": [1, 2]}, tmp_path / "nested" / "dir" / "out.json")
    assert json.loads(out.read_text(encoding="utf-8")) == {"k": [1, 2]}


# ── Result exports ────────────────────────────────────────────────────────────


def test_flatten_recommendations(run_result) -> None:
    """One flat row per recommendation, rank starting at 1, no nested values."""
    rows = flatten_recommendations(run_result)

    assert [r["rank"] for r in rows] == [1, 2]
    assert all(set(r) == set(FLAT_COLUMNS) for r in rows)
    assert all(not isinstance(v, (dict, list)) for r in rows for v in r.values())
    assert rows[0]["project_id"] == "proj-web"
    assert rows[0]["subject"] == run_result.recommendations[0].subject.name


def test_export_recommendations_csv(run_result, tmp_path: Path) -> None:
    out = export_recommendations_csv(run_result, tmp_path / "recs.csv")
    with out.open(encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = list(reader)
    assert reader.fieldnames == FLAT_COLUMNS
    assert len(rows) == 2


def test_export_result_json(run_result, tmp_path: Path) -> None:
    out = export_result_json(run_result, tmp_path / "run.json")
    data = json.loads(out.read_text(encoding="utf-8"))

    assert data["trace_id"] == run_result.trace_id
    assert data["status"] == "success"
    assert len(data["recommendations"]) == 2
    assert data["recommendations"][0]["trace_id"].startswith("IFX-2026-0315-REC-")
