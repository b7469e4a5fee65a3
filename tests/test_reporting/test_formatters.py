"""Tests for techscout.reporting.formatters."""

from __future__ import annotations

import pytest

from techscout.config import AppConfig
from techscout.matching.calibration import AdoptionRecord, accuracy_report
from techscout.matching.prefilter import prefilter_batch
from techscout.pipeline.orchestrator import MatchingOrchestrator, MatchingResult
from techscout.reporting.formatters import (
    format_calibration_report,
    format_matching_result,
    format_prefilter_table,
    format_recommendations_table,
    format_status_banner,
)


@pytest.fixture
def run_result(sample_item, sample_profile, as_of, offline_client) -> MatchingResult:
    orch = MatchingOrchestrator(AppConfig(), offline_client)
    return orch.run([sample_item], sample_profile, as_of)


# ── format_status_banner ──────────────────────────────────────────────────────


def test_status_banner_success() -> None:
    banner = format_status_banner("success", 3, 0)
    assert "[SUCCESS]" in banner
    assert "3 recommendation(s) delivered" in banner


def test_status_banner_partial() -> None:
    """Partial runs report how many errors were recorded."""
    banner = format_status_banner("partial", 2, 1)
    assert "[PARTIAL]" in banner
    assert "1 error(s)" in banner


def test_status_banner_failed() -> None:
    assert "[FAILED]" in format_status_banner("failed", 0, 1)


# ── format_matching_result ────────────────────────────────────────────────────


def test_matching_result_sections(run_result) -> None:
    """Header, funnel, timing and table all appear."""
    text = format_matching_result(run_result)
    assert "=== Matching Run ===" in text
    assert run_result.trace_id in text
    assert "passed prefilter" in text
    assert "Timing (ms)" in text
    assert "react" in text
    assert "Errors" not in text


def test_matching_result_lists_errors(sample_profile, as_of) -> None:
    """A failed result shows its banner and error list."""
    result = MatchingResult(
        project_id=sample_profile.id,
        trace_id="IFX-2026-0315-RUN-ABC123",
        as_of=as_of,
        errors=["Stage 'ranking' failed: boom"],
        status="failed",
    )
    text = format_matching_result(result)
    assert "[FAILED]" in text
    assert "Errors (1)" in text
    assert "Stage 'ranking' failed: boom" in text
    assert "(no recommendations)" in text


def test_matching_result_hides_errors_on_request(as_of) -> None:
    result = MatchingResult(
        project_id="p", trace_id="IFX-2026-0315-RUN-ABC123", as_of=as_of,
        errors=["Enrichment failed for hn-2: timeout"], status="partial",
    )
    assert "Enrichment failed" not in format_matching_result(result, show_errors=False)


def test_recommendations_table_one_row_per_rec(run_result) -> None:
    table = format_recommendations_table(run_result)
    rows = [line for line in table.splitlines() if line.strip().startswith("1 ")]
    assert len(rows) == 1
    assert run_result.recommendations[0].verdict.value in rows[0]


# ── format_prefilter_table ────────────────────────────────────────────────────


def test_prefilter_table(make_item, sample_profile) -> None:
    """Rejected items appear with their reason; counts in the header."""
    items = [make_item("hn-1"), make_item("ops-1", categories=["devops"])]
    matches = prefilter_batch(items, sample_profile)
    text = format_prefilter_table(items, matches)

    assert "=== Prefilter ===" in text
    assert "Evaluated: 2   Passed: 1" in text
    assert "ops-1" in text
    assert "React compiler reaches beta" in text


# ── format_calibration_report ─────────────────────────────────────────────────


def test_calibration_report() -> None:
    records = [
        AdoptionRecord(recommendation_id="r1", subject="vite", estimated_days=2, actual_days=5),
        AdoptionRecord(recommendation_id="r2", subject="zod", estimated_days=2, actual_days=2.5),
    ]
    text = format_calibration_report(accuracy_report(records), project_id="proj-web")

    assert "=== Effort Calibration ===" in text
    assert "proj-web" in text
    assert "Adoptions:        2" in text
    assert "underestimate" in text
    assert "Outliers (1)" in text
    assert "vite" in text
