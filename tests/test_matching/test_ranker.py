"""
Tests for the stage-5 ranker.

What we test
------------
1. ``build_recommendation`` assembles a valid recommendation (trace id,
   generated_at, subject maturity, action-specific fields).
2. Priority mapping from verdict, risk and confidence.
3. Role visibility from item categories.
4. Deduplication by normalized subject: higher ranking score wins, idempotent.
5. Final order: verdict, then priority, then confidence; stable on full ties.
6. The cap is always respected, and every verdict is ranked.
"""

from __future__ import annotations

import pytest

from techscout.enrichment.base import build_enrichment_request
from techscout.matching.maturity import evaluate_maturity, infer_maturity
from techscout.matching.prefilter import prefilter_item
from techscout.matching.ranker import (
    RankedRecommendation,
    RankerInput,
    build_recommendation,
    calculate_priority,
    deduplicate_by_subject,
    filter_by_role,
    normalize_subject_name,
    rank,
    role_visibility,
    summarize,
)
from techscout.matching.stability import StabilityInput, evaluate_stability
from techscout.models.claims import TRACE_ID_PATTERN
from techscout.models.recommendation import CostOfNoChange, Recommendation
from techscout.taxonomy.maturity_taxonomy import (
    Priority,
    RecommendationAction,
    StabilityVerdict,
    TeamRole,
)
from techscout.taxonomy.risk_taxonomy import RiskLevel


# ── Helpers ───────────────────────────────────────────────────────────────────

def _ranker_input(item, profile, as_of, client, action=RecommendationAction.COMPLEMENT):
    """Run one item through stages 1–4 for real and return the ranker input."""
    match = prefilter_item(item, profile)
    gate = evaluate_maturity(
        infer_maturity(item.traction, as_of), action, item.traction, as_of
    )
    enrichment = client.analyze(build_enrichment_request(item, profile, match, gate, action))
    stability = evaluate_stability(
        StabilityInput(
            effort=enrichment.effort,
            profile=profile,
            maturity_result=gate,
            action=action,
            technologies_matched=match.technologies_matched,
            item_title=item.title,
            item_description=item.description,
        )
    )
    return RankerInput(
        item=item,
        profile=profile,
        match=match,
        enrichment=enrichment,
        stability=stability,
        action=action,
    )


def _variant(
    rec: Recommendation,
    name: str | None = None,
    verdict: StabilityVerdict | None = None,
    priority: Priority | None = None,
    confidence: float | None = None,
) -> Recommendation:
    update: dict = {}
    if name is not None:
        update["subject"] = rec.subject.model_copy(update={"name": name})
    if verdict is not None:
        update["stability"] = rec.stability.model_copy(update={"verdict": verdict})
    if priority is not None:
        update["priority"] = priority
    if confidence is not None:
        update["confidence"] = confidence
    return rec.model_copy(update=update)


@pytest.fixture
def base_rec(sample_item, sample_profile, as_of, offline_client) -> Recommendation:
    data = _ranker_input(sample_item, sample_profile, as_of, offline_client)
    return build_recommendation(data, as_of).recommendation


# ── Assembly ──────────────────────────────────────────────────────────────────

class TestBuildRecommendation:
    def test_fields(self, sample_item, sample_profile, as_of, offline_client):
        data = _ranker_input(sample_item, sample_profile, as_of, offline_client)
        ranked = build_recommendation(data, as_of)
        rec = ranked.recommendation

        assert TRACE_ID_PATTERN.match(rec.trace_id)
        assert rec.trace_id.startswith("IFX-2026-0315-REC-")
        assert rec.generated_at == as_of
        assert rec.project_id == "proj-web"
        assert rec.feed_item_id == "hn-1"
        assert rec.model_used == "offline-metadata"
        assert rec.subject.maturity == data.stability.maturity_gate.subject_maturity
        assert rec.complements == "react, typescript"
        assert rec.replaces is None
        assert rec.delivery_state == "pending"
        assert 0.0 <= rec.confidence <= 1.0
        assert ranked.ranking_score > 0

    def test_replace_lists_replaced_dependencies(
        self, sample_item, sample_profile, as_of, offline_client
    ):
        data = _ranker_input(
            sample_item, sample_profile, as_of, offline_client,
            action=RecommendationAction.REPLACE_EXISTING,
        )
        rec = build_recommendation(data, as_of).recommendation
        assert rec.replaces == "react"
        assert rec.complements is None

    def test_ids_are_unique(self, sample_item, sample_profile, as_of, offline_client):
        data = _ranker_input(sample_item, sample_profile, as_of, offline_client)
        a = build_recommendation(data, as_of).recommendation
        b = build_recommendation(data, as_of).recommendation
        assert a.id != b.id
        assert a.stability == b.stability


# ── Priority and roles ────────────────────────────────────────────────────────

class TestPriority:
    def _stability(self, base_rec, verdict, **risks):
        return base_rec.stability.model_copy(
            update={"verdict": verdict, "cost_of_no_change": CostOfNoChange(**risks)}
        )

    def test_defer_is_info(self, base_rec):
        st = self._stability(base_rec, StabilityVerdict.DEFER, security_exposure=RiskLevel.CRITICAL)
        assert calculate_priority(st, 0.9, True) == Priority.INFO

    def test_monitor_is_low(self, base_rec):
        st = self._stability(base_rec, StabilityVerdict.MONITOR)
        assert calculate_priority(st, 0.9, False) == Priority.LOW

    def test_critical_security(self, base_rec):
        st = self._stability(
            base_rec, StabilityVerdict.RECOMMEND, security_exposure=RiskLevel.CRITICAL
        )
        assert calculate_priority(st, 0.9, False) == Priority.CRITICAL

    def test_high_security_with_findings_is_critical(self, base_rec):
        st = self._stability(base_rec, StabilityVerdict.RECOMMEND, security_exposure=RiskLevel.HIGH)
        assert calculate_priority(st, 0.9, True) == Priority.CRITICAL
        assert calculate_priority(st, 0.9, False) == Priority.HIGH

    def test_deprecation_is_high(self, base_rec):
        st = self._stability(base_rec, StabilityVerdict.RECOMMEND, deprecation_risk=RiskLevel.HIGH)
        assert calculate_priority(st, 0.9, False) == Priority.HIGH

    def test_low_confidence_is_low(self, base_rec):
        st = self._stability(base_rec, StabilityVerdict.RECOMMEND)
        assert calculate_priority(st, 0.4, False) == Priority.LOW
        assert calculate_priority(st, 0.6, False) == Priority.MEDIUM


class TestRoleVisibility:
    def test_pm_and_stakeholder_always(self):
        roles = role_visibility(["frontend"])
        assert roles[:2] == [TeamRole.PM, TeamRole.STAKEHOLDER]
        assert TeamRole.DEVELOPER_FRONTEND in roles

    def test_unknown_category_falls_back_to_fullstack(self):
        roles = role_visibility(["blockchain"])
        assert roles == [TeamRole.PM, TeamRole.STAKEHOLDER, TeamRole.DEVELOPER_FULLSTACK]

    def test_no_duplicates(self):
        roles = role_visibility(["backend", "database", "auth"])
        assert len(roles) == len(set(roles))

    def test_filter_by_role(self, base_rec):
        assert filter_by_role([base_rec], TeamRole.DEVELOPER_FRONTEND) == [base_rec]
        assert filter_by_role([base_rec], TeamRole.DEVELOPER_BACKEND) == []


# ── Dedup and ranking ─────────────────────────────────────────────────────────

class TestDeduplicate:
    def test_normalize_subject_name(self):
        assert normalize_subject_name("Next.js") == "nextjs"
        assert normalize_subject_name("next-js ") == "nextjs"

    def test_higher_score_wins(self, base_rec):
        low = RankedRecommendation(_variant(base_rec, name="Next.js"), 1.0)
        high = RankedRecommendation(_variant(base_rec, name="nextjs", confidence=0.9), 2.0)

        deduped = deduplicate_by_subject([low, high])

        assert len(deduped) == 1
        assert deduped[0] is high

    def test_tie_keeps_first(self, base_rec):
        first = RankedRecommendation(_variant(base_rec, name="Zod"), 1.0)
        second = RankedRecommendation(_variant(base_rec, name="zod"), 1.0)
        assert deduplicate_by_subject([first, second]) == [first]

    def test_idempotent(self, base_rec):
        candidates = [
            RankedRecommendation(_variant(base_rec, name=n), s)
            for n, s in [("A", 1.0), ("a", 3.0), ("B", 2.0), ("b.", 0.5)]
        ]
        once = deduplicate_by_subject(candidates)
        assert deduplicate_by_subject(once) == once
        assert [c.ranking_score for c in once] == [3.0, 2.0]


class TestRank:
    def test_order_by_verdict_priority_confidence(self, base_rec):
        recs = [
            _variant(base_rec, "defer", StabilityVerdict.DEFER, Priority.INFO, 0.9),
            _variant(base_rec, "rec-low", StabilityVerdict.RECOMMEND, Priority.MEDIUM, 0.3),
            _variant(base_rec, "monitor", StabilityVerdict.MONITOR, Priority.LOW, 0.9),
            _variant(base_rec, "rec-high", StabilityVerdict.RECOMMEND, Priority.MEDIUM, 0.8),
            _variant(base_rec, "rec-crit", StabilityVerdict.RECOMMEND, Priority.CRITICAL, 0.1),
        ]
        ranked = rank([RankedRecommendation(r, 1.0) for r in recs], 10)
        assert [r.subject.name for r in ranked] == [
            "rec-crit", "rec-high", "rec-low", "monitor", "defer",
        ]

    def test_full_ties_keep_input_order(self, base_rec):
        recs = [_variant(base_rec, name=f"lib-{n}") for n in range(4)]
        ranked = rank([RankedRecommendation(r, 1.0) for r in recs], 10)
        assert [r.subject.name for r in ranked] == ["lib-0", "lib-1", "lib-2", "lib-3"]

    @pytest.mark.parametrize("cap", [0, 1, 3, 20])
    def test_cap_respected(self, base_rec, cap):
        recs = [_variant(base_rec, name=f"lib-{n}") for n in range(5)]
        assert len(rank([RankedRecommendation(r, 1.0) for r in recs], cap)) == min(cap, 5)

    def test_summarize(self, base_rec):
        recs = [
            _variant(base_rec, "a", StabilityVerdict.RECOMMEND, Priority.HIGH),
            _variant(base_rec, "b", StabilityVerdict.DEFER, Priority.INFO),
        ]
        summary = summarize(recs)
        assert summary["total"] == 2
        assert summary["by_priority"]["high"] == 1
        assert summary["by_priority"]["critical"] == 0
        assert summary["by_verdict"]["DEFER"] == 1
        assert summary["top"][0]["subject"] == "a"
