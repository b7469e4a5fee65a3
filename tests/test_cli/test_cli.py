"""
Tests for the techscout CLI.

What we test
------------
1. ``validate-config`` accepts the committed defaults and rejects a bad
   threshold with exit code 1.
2. ``prefilter`` prints the scored item table.
3. ``run-matching`` runs offline end to end and writes JSON and CSV output.
4. Input problems (missing file, invalid profile) exit with code 1.
5. ``show-calibration`` reports the effort factor.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from techscout.cli import app

runner = CliRunner()


# ── Helpers ───────────────────────────────────────────────────────────────────

ITEMS = [
    {
        "id": "hn-1", "title": "React compiler reaches beta", "source_name": "Hacker News",
        "source_reliability": "high", "categories": ["frontend"],
        "technologies": ["react", "typescript"], "language_ecosystems": ["npm"],
        "traction": {"hn_points": 300, "github_stars": 12000},
    },
    {
        "id": "ops-1", "title": "Terraform 2.0", "categories": ["devops"],
        "technologies": ["terraform"],
    },
]

PROFILE = {
    "project": {
        "id": "proj-web", "name": "Storefront Web",
        "focus_areas": ["frontend"], "exclude_categories": ["devops"],
    },
    "stack": {
        "languages": [{"name": "TypeScript", "percentage": 90}],
        "frameworks": [{"name": "React"}],
        "all_dependencies": {"npm": ["react", "zod"]},
    },
    "stack_health": {"overall_score": 0.6},
}


@pytest.fixture
def inputs(tmp_path: Path) -> tuple[Path, Path]:
    items = tmp_path / "items.json"
    profile = tmp_path / "profile.json"
    items.write_text(json.dumps(ITEMS), encoding="utf-8")
    profile.write_text(json.dumps(PROFILE), encoding="utf-8")
    return items, profile


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _offline(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("TECHSCOUT_SKIP_ENRICHMENT", raising=False)
    monkeypatch.delenv("TECHSCOUT_ENRICHMENT_PROVIDER", raising=False)


# ── validate-config ───────────────────────────────────────────────────────────

class TestValidateConfig:
    def test_defaults_valid(self):
        result = runner.invoke(app, ["validate-config"])
        assert result.exit_code == 0
        assert "[OK] Config valid." in result.output

    def test_bad_threshold(self, tmp_path):
        cfg = tmp_path / "bad.toml"
        cfg.write_text("[stability]\nrecommend_threshold = -1\n", encoding="utf-8")
        result = runner.invoke(app, ["validate-config", "--config", str(cfg)])
        assert result.exit_code == 1


# ── prefilter / run-matching ──────────────────────────────────────────────────

class TestPrefilterCommand:
    def test_prints_table(self, inputs):
        items, profile = inputs
        result = runner.invoke(app, ["prefilter", "--items", str(items), "--profile", str(profile)])
        assert result.exit_code == 0
        assert "=== Prefilter ===" in result.output
        assert "Evaluated: 2   Passed: 1" in result.output


class TestRunMatchingCommand:
    def test_offline_run_writes_outputs(self, inputs, tmp_path):
        items, profile = inputs
        out_json = tmp_path / "out" / "run.json"
        out_csv = tmp_path / "out" / "run.csv"

        result = runner.invoke(
            app,
            [
                "run-matching", "--items", str(items), "--profile", str(profile),
                "--provider", "offline", "--as-of", "2026-03-15T09:00:00",
                "-o", str(out_json), "--csv", str(out_csv),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "=== Matching Run ===" in result.output
        data = json.loads(out_json.read_text(encoding="utf-8"))
        assert data["project_id"] == "proj-web"
        assert data["as_of"] == "2026-03-15T09:00:00+00:00"
        assert data["summary"]["evaluated"] == 2
        assert out_csv.exists()

    def test_skip_enrichment(self, inputs):
        items, profile = inputs
        result = runner.invoke(
            app,
            ["run-matching", "--items", str(items), "--profile", str(profile), "--skip-enrichment"],
        )
        assert result.exit_code == 0
        assert "enrichment=skipped" in result.output
        assert "(no recommendations)" in result.output

    def test_missing_items_file(self, inputs, tmp_path):
        _, profile = inputs
        result = runner.invoke(
            app,
            ["run-matching", "--items", str(tmp_path / "nope.json"), "--profile", str(profile)],
        )
        assert result.exit_code == 1

    def test_invalid_profile(self, inputs, tmp_path):
        items, _ = inputs
        bad = tmp_path / "bad_profile.json"
        bad.write_text(json.dumps({"project": {"id": "p"}}), encoding="utf-8")
        result = runner.invoke(
            app, ["run-matching", "--items", str(items), "--profile", str(bad)]
        )
        assert result.exit_code == 1

    def test_invalid_as_of(self, inputs):
        items, profile = inputs
        result = runner.invoke(
            app,
            [
                "run-matching", "--items", str(items), "--profile", str(profile),
                "--provider", "offline", "--as-of", "yesterday",
            ],
        )
        assert result.exit_code == 1


# ── show-calibration ──────────────────────────────────────────────────────────

class TestShowCalibrationCommand:
    def test_factor_reported(self, tmp_path):
        adoptions = tmp_path / "adoptions.json"
        adoptions.write_text(
            json.dumps(
                [
                    {"recommendation_id": "r1", "subject": "zod", "estimated_days": 2, "actual_days": 3},
                    {"recommendation_id": "r2", "subject": "vite", "estimated_days": 4, "actual_days": 6},
                ]
            ),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["show-calibration", "--adoptions", str(adoptions)])

        assert result.exit_code == 0
        assert "=== Effort Calibration ===" in result.output
        assert "1.50x" in result.output

    def test_too_few_adoptions(self, tmp_path):
        adoptions = tmp_path / "adoptions.json"
        adoptions.write_text(
            json.dumps([{"recommendation_id": "r1", "subject": "zod",
                         "estimated_days": 2, "actual_days": 3}]),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["show-calibration", "--adoptions", str(adoptions)])
        assert result.exit_code == 0
        assert "Calibration inactive" in result.output
