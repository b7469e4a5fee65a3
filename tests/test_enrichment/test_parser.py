"""
Tests for enrichment response validation.

What we test
------------
1. JSON extraction from bare and fenced responses.
2. A well-formed payload converts into an ``EnrichmentResult`` with the
   effort parsed once and the subject maturity taken from the gate.
3. camelCase keys are accepted.
4. Tagging rules: FACT needs a source; INFERENCE needs a derivation and a
   confidence in [0, 1].  Violations raise ``EnrichmentError``.
"""

from __future__ import annotations

import json

import pytest

from techscout.enrichment.base import build_enrichment_request
from techscout.enrichment.parser import parse_enrichment_payload, parse_enrichment_text
from techscout.errors import EnrichmentError
from techscout.matching.maturity import evaluate_maturity
from techscout.matching.prefilter import prefilter_item
from techscout.taxonomy.maturity_taxonomy import Maturity, RecommendationAction
from techscout.taxonomy.risk_taxonomy import Complexity, Reversibility, RiskLevel


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def request_(make_item, sample_profile):
    item = make_item(technologies=["zod"], categories=["backend"])
    match = prefilter_item(item, sample_profile)
    gate = evaluate_maturity(Maturity.STABLE, RecommendationAction.COMPLEMENT)
    return build_enrichment_request(
        item, sample_profile, match, gate, RecommendationAction.COMPLEMENT
    )


# ── Text extraction ───────────────────────────────────────────────────────────

class TestParseText:
    def test_bare_json(self):
        assert parse_enrichment_text('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        text = 'Here is the analysis:\n```json\n{"a": 1}\n```\nDone.'
        assert parse_enrichment_text(text) == {"a": 1}

    def test_no_json(self):
        with pytest.raises(EnrichmentError, match="Could not parse JSON"):
            parse_enrichment_text("I cannot help with that.")

    def test_broken_fenced_json(self):
        with pytest.raises(EnrichmentError, match="Invalid JSON"):
            parse_enrichment_text("```json\n{not json}\n```")

    def test_non_object(self):
        with pytest.raises(EnrichmentError, match="JSON object"):
            parse_enrichment_text("[1, 2, 3]")


# ── Payload validation ────────────────────────────────────────────────────────

class TestParsePayload:
    def test_valid_payload(self, request_, valid_payload):
        result = parse_enrichment_payload(valid_payload, request_, "test-model")

        assert result.subject.name == "Zod"
        assert result.subject.maturity == Maturity.STABLE
        assert result.effort.estimate.min_days == pytest.approx(2.0)
        assert result.effort.estimate.max_days == pytest.approx(3.0)
        assert result.effort.calibration_applied is False
        assert result.effort.complexity == Complexity.LOW
        assert result.effort.reversibility == Reversibility.EASY
        assert result.impact.risk.level == RiskLevel.LOW
        assert len(result.analysis.facts) == 1
        assert result.analysis.assumptions[0].validated is None
        assert result.reported_confidence == pytest.approx(0.72)
        assert result.model_used == "test-model"

    def test_camel_case_keys(self, request_, valid_payload):
        payload = json.loads(
            json.dumps(valid_payload)
            .replace('"human_friendly"', '"humanFriendly"')
            .replace('"raw_estimate_days"', '"rawEstimateDays"')
            .replace('"source_reliability"', '"sourceReliability"')
            .replace('"derived_from"', '"derivedFrom"')
        )
        result = parse_enrichment_payload(payload, request_, "test-model")
        assert result.human_friendly.title == "Upgrade Zod"

    def test_fact_without_source_rejected(self, request_, valid_payload):
        valid_payload["technical"]["analysis"]["facts"][0]["source"] = ""
        with pytest.raises(EnrichmentError, match="Malformed enrichment payload"):
            parse_enrichment_payload(valid_payload, request_, "test-model")

    def test_inference_without_derivation_rejected(self, request_, valid_payload):
        valid_payload["technical"]["analysis"]["inferences"][0]["derived_from"] = []
        with pytest.raises(EnrichmentError):
            parse_enrichment_payload(valid_payload, request_, "test-model")

    def test_inference_confidence_out_of_range(self, request_, valid_payload):
        valid_payload["technical"]["analysis"]["inferences"][0]["confidence"] = 1.5
        with pytest.raises(EnrichmentError):
            parse_enrichment_payload(valid_payload, request_, "test-model")

    def test_missing_effort_rejected(self, request_, valid_payload):
        del valid_payload["technical"]["effort"]
        with pytest.raises(EnrichmentError, match="effort"):
            parse_enrichment_payload(valid_payload, request_, "test-model")

    def test_bad_failure_mode_probability_rejected(self, request_, valid_payload):
        valid_payload["technical"]["failure_modes"][0]["probability"] = "certain"
        with pytest.raises(EnrichmentError):
            parse_enrichment_payload(valid_payload, request_, "test-model")

    def test_unparseable_effort_uses_default(self, request_, valid_payload):
        valid_payload["technical"]["effort"]["raw_estimate_days"] = "a few days"
        result = parse_enrichment_payload(valid_payload, request_, "test-model")
        assert result.effort.estimate.max_days == pytest.approx(5.0)
