"""
Tests for the stage-4 stability gate.

What we test
------------
1. Verdict thresholds: RECOMMEND / MONITOR / DEFER bands.
2. Maturity-gate failure always yields DEFER.
3. Healthy stacks (> 0.8) widen both thresholds; pain points discount RECOMMEND.
4. Monotonicity: a costlier change never earns a better verdict.
5. Cost-of-change and cost-of-no-change weighting and clamping.
6. Risk inference from findings, stack-health components and the action.
7. ``evaluate_stability`` calibrates effort without touching its input.
8. ``quick_check`` pre-enrichment rejections.
"""

from __future__ import annotations

import pytest

from techscout.config import StabilityThresholds
from techscout.matching.stability import (
    StabilityInput,
    cost_of_change_score,
    cost_of_no_change_score,
    decide_verdict,
    evaluate_stability,
    infer_cost_of_change,
    infer_cost_of_no_change,
    quick_check,
    stack_health_influence,
)
from techscout.models.effort import CalibratedEffort
from techscout.models.matching import MaturityGateResult
from techscout.models.recommendation import CostOfChange, CostOfNoChange
from techscout.taxonomy.maturity_taxonomy import (
    Maturity,
    RecommendationAction,
    StabilityVerdict,
)
from techscout.taxonomy.risk_taxonomy import (
    Complexity,
    LearningCurve,
    Reversibility,
    RiskLevel,
)

_VERDICT_RANK = {
    StabilityVerdict.DEFER: 0,
    StabilityVerdict.MONITOR: 1,
    StabilityVerdict.RECOMMEND: 2,
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def _gate(passed: bool = True, maturity: Maturity = Maturity.STABLE) -> MaturityGateResult:
    return MaturityGateResult(
        maturity=maturity,
        min_maturity_for_action=Maturity.GROWTH,
        action=RecommendationAction.COMPLEMENT,
        passed=passed,
        warnings=[] if passed else ["Maturity deprecated below required growth"],
    )


def _light_effort() -> CalibratedEffort:
    return CalibratedEffort.from_raw(
        "1-2",
        complexity=Complexity.LOW,
        reversibility=Reversibility.EASY,
        steps=["Add the dependency", "Wire it in"],
    )


def _security_profile(make_profile):
    """Profile with a critical auth finding on react and low freshness."""
    return make_profile(
        findings=[
            {
                "id": "F-1",
                "category": "security",
                "severity": "critical",
                "pattern_id": "react-xss",
                "description": "Unsanitized HTML in react component",
            }
        ],
        stack_health={
            "overall_score": 0.6,
            "components": {"freshness": {"score": 0.2}, "security": {"score": 0.7}},
        },
    )


# ── decide_verdict ────────────────────────────────────────────────────────────

class TestDecideVerdict:
    def test_clear_benefit_recommends(self):
        decision = decide_verdict(0.20, 0.50, 0.5, False, True)
        assert decision.verdict == StabilityVerdict.RECOMMEND
        assert decision.delta == pytest.approx(0.30)

    def test_small_delta_monitors(self):
        decision = decide_verdict(0.30, 0.35, 0.5, False, True)
        assert decision.verdict == StabilityVerdict.MONITOR

    def test_negative_delta_defers(self):
        decision = decide_verdict(0.50, 0.30, 0.5, False, True)
        assert decision.verdict == StabilityVerdict.DEFER

    def test_boundaries_are_inclusive(self):
        assert decide_verdict(0.0, 0.15, 0.5, False, True).verdict == StabilityVerdict.RECOMMEND
        assert decide_verdict(0.10, 0.0, 0.5, False, True).verdict == StabilityVerdict.DEFER

    def test_maturity_failure_always_defers(self):
        decision = decide_verdict(0.0, 1.0, 0.5, True, False)
        assert decision.verdict == StabilityVerdict.DEFER
        assert decision.delta == pytest.approx(1.0)

    def test_healthy_stack_widens_thresholds(self):
        decision = decide_verdict(0.0, 0.20, 0.9, False, True)
        assert decision.recommend_threshold == pytest.approx(0.225)
        assert decision.defer_threshold == pytest.approx(-0.15)
        assert decision.verdict == StabilityVerdict.MONITOR

    def test_health_exactly_at_threshold_is_not_conservative(self):
        decision = decide_verdict(0.0, 0.20, 0.8, False, True)
        assert decision.recommend_threshold == pytest.approx(0.15)
        assert decision.verdict == StabilityVerdict.RECOMMEND

    def test_pain_point_discounts_recommend_threshold(self):
        without = decide_verdict(0.0, 0.12, 0.5, False, True)
        with_pain = decide_verdict(0.0, 0.12, 0.5, True, True)

        assert without.verdict == StabilityVerdict.MONITOR
        assert with_pain.verdict == StabilityVerdict.RECOMMEND
        assert with_pain.recommend_threshold == pytest.approx(0.105)
        assert with_pain.defer_threshold == pytest.approx(-0.10)

    def test_health_scaling_applies_before_discount(self):
        decision = decide_verdict(0.0, 0.5, 0.9, True, True)
        assert decision.recommend_threshold == pytest.approx(0.15 * 1.5 * 0.7)

    def test_custom_thresholds(self):
        thresholds = StabilityThresholds(recommend_threshold=0.4, defer_threshold=-0.2)
        decision = decide_verdict(0.20, 0.50, 0.5, False, True, thresholds)
        assert decision.verdict == StabilityVerdict.MONITOR

    @pytest.mark.parametrize("health", [0.3, 0.9])
    @pytest.mark.parametrize("pain", [False, True])
    def test_costlier_change_never_improves_verdict(self, health, pain):
        ranks = [
            _VERDICT_RANK[decide_verdict(c / 20, 0.4, health, pain, True).verdict]
            for c in range(21)
        ]
        assert ranks == sorted(ranks, reverse=True)

    @pytest.mark.parametrize("health", [0.3, 0.9])
    @pytest.mark.parametrize("pain", [False, True])
    def test_costlier_status_quo_never_worsens_verdict(self, health, pain):
        """Raising cost of no-change never moves a verdict toward DEFER."""
        ranks = [
            _VERDICT_RANK[decide_verdict(0.4, n / 20, health, pain, True).verdict]
            for n in range(21)
        ]
        assert ranks == sorted(ranks)
        assert ranks[0] < ranks[-1]


# ── Cost scores ───────────────────────────────────────────────────────────────

class TestCostScores:
    def test_cost_of_change_weighting(self):
        cost = CostOfChange(
            effort_days="3-5",
            effort_upper_days=5.0,
            regression_risk=RiskLevel.HIGH,
            learning_curve=LearningCurve.MEDIUM,
            dependencies_affected=2,
            reversibility=Reversibility.MEDIUM,
        )
        # 0.125 + 0.1875 + 0.075 + 0.015 + 0.08
        assert cost_of_change_score(cost) == pytest.approx(0.4825)

    def test_cost_of_change_is_bounded(self):
        cost = CostOfChange(
            effort_days="100",
            effort_upper_days=100.0,
            regression_risk=RiskLevel.CRITICAL,
            learning_curve=LearningCurve.HIGH,
            dependencies_affected=400,
            reversibility=Reversibility.IRREVERSIBLE,
        )
        assert 0.0 <= cost_of_change_score(cost) <= 1.0

    def test_cost_of_no_change_all_critical(self):
        cost = CostOfNoChange(
            security_exposure=RiskLevel.CRITICAL,
            maintenance_risk=RiskLevel.CRITICAL,
            performance_impact=RiskLevel.CRITICAL,
            deprecation_risk=RiskLevel.CRITICAL,
            compliance_risk=RiskLevel.CRITICAL,
        )
        assert cost_of_no_change_score(cost) == pytest.approx(1.0)

    def test_cost_of_no_change_defaults_to_zero(self):
        assert cost_of_no_change_score(CostOfNoChange()) == 0.0


# ── Cost inference ────────────────────────────────────────────────────────────

class TestInferCosts:
    def test_breaking_change_is_high_regression_risk(self):
        effort = CalibratedEffort.from_raw("3-5", breaking_changes=True)
        assert infer_cost_of_change(effort).regression_risk == RiskLevel.HIGH

    def test_explicit_regression_risk_wins(self):
        effort = CalibratedEffort.from_raw(
            "3-5", breaking_changes=True, regression_risk=RiskLevel.LOW
        )
        assert infer_cost_of_change(effort).regression_risk == RiskLevel.LOW

    def test_learning_curve_from_complexity(self):
        effort = CalibratedEffort.from_raw("3", complexity=Complexity.VERY_HIGH)
        assert infer_cost_of_change(effort).learning_curve == LearningCurve.HIGH

    def test_dependencies_and_tests_from_steps(self):
        effort = CalibratedEffort.from_raw(
            "3-5",
            steps=["Prototype", "Migrate call sites", "Update e2e suite", "Remove old lib"],
        )
        cost = infer_cost_of_change(effort)
        assert cost.dependencies_affected == 2
        assert cost.tests_to_update == "Update e2e suite"
        assert cost.effort_upper_days == pytest.approx(5.0)

    def test_no_findings_no_components_is_riskless(self, sample_profile):
        cost = infer_cost_of_no_change(sample_profile, ["react"], RecommendationAction.COMPLEMENT)
        assert cost.security_exposure == RiskLevel.NONE
        assert cost.maintenance_risk == RiskLevel.NONE
        assert cost.deprecation_risk == RiskLevel.NONE
        assert cost.detail == "No significant risk identified."

    def test_replace_implies_low_maintenance_risk(self, sample_profile):
        cost = infer_cost_of_no_change(
            sample_profile, [], RecommendationAction.REPLACE_EXISTING
        )
        assert cost.maintenance_risk == RiskLevel.LOW

    def test_findings_and_health_raise_risk(self, make_profile):
        profile = _security_profile(make_profile)
        cost = infer_cost_of_no_change(profile, ["react"], RecommendationAction.COMPLEMENT)

        assert cost.security_exposure == RiskLevel.CRITICAL
        assert cost.deprecation_risk == RiskLevel.HIGH
        assert cost.performance_impact == RiskLevel.NONE
        assert cost.compliance_risk == RiskLevel.NONE
        assert "1 critical/high finding(s)" in cost.detail

    def test_low_security_health_floors_exposure(self, make_profile):
        profile = make_profile(
            stack_health={"overall_score": 0.5, "components": {"security": {"score": 0.25}}}
        )
        cost = infer_cost_of_no_change(profile, [], RecommendationAction.COMPLEMENT)
        assert cost.security_exposure == RiskLevel.HIGH


# ── Health influence ──────────────────────────────────────────────────────────

class TestStackHealthInfluence:
    @pytest.mark.parametrize(
        "health, tier",
        [(0.85, "high"), (0.8, "medium"), (0.51, "medium"), (0.5, "low")],
    )
    def test_tiers(self, make_profile, health, tier):
        profile = make_profile(stack_health={"overall_score": health})
        assert stack_health_influence(profile, None).threshold_applied == tier

    def test_pain_point_recorded(self, sample_profile):
        influence = stack_health_influence(sample_profile, "Slow bundle builds in CI")
        assert influence.pain_point_match is True
        assert influence.matched_pain_point == "Slow bundle builds in CI"


# ── evaluate_stability ────────────────────────────────────────────────────────

class TestEvaluateStability:
    def test_security_pressure_recommends_light_change(self, make_profile):
        data = StabilityInput(
            effort=_light_effort(),
            profile=_security_profile(make_profile),
            maturity_result=_gate(),
            action=RecommendationAction.COMPLEMENT,
            technologies_matched=["react"],
            item_title="React 19.1 security release",
        )
        assessment = evaluate_stability(data)

        assert assessment.verdict == StabilityVerdict.RECOMMEND
        assert assessment.delta == pytest.approx(
            assessment.cost_of_no_change_score - assessment.cost_of_change_score
        )
        assert assessment.verdict_reasoning[-1] == "VERDICT: RECOMMEND"
        assert assessment.maturity_gate.passed is True

    def test_maturity_failure_defers_with_explanation(self, make_profile):
        data = StabilityInput(
            effort=_light_effort(),
            profile=_security_profile(make_profile),
            maturity_result=_gate(passed=False, maturity=Maturity.DEPRECATED),
            action=RecommendationAction.MONITOR,
            technologies_matched=["react"],
            item_title="Legacy router",
        )
        assessment = evaluate_stability(data)

        assert assessment.verdict == StabilityVerdict.DEFER
        assert any("Maturity gate failed" in line for line in assessment.verdict_reasoning)
        assert "deprecated" in assessment.verdict_plain

    def test_effort_calibrated_without_mutating_input(self, make_profile):
        profile = make_profile(
            calibration={"total_adoptions": 4, "avg_accuracy_ratio": 2.0, "bias": "underestimate"}
        )
        effort = _light_effort()
        data = StabilityInput(
            effort=effort,
            profile=profile,
            maturity_result=_gate(),
            action=RecommendationAction.COMPLEMENT,
        )
        assessment = evaluate_stability(data)

        assert assessment.calibrated_effort.calibration_applied is True
        assert assessment.calibrated_effort.calibrated.max_days == pytest.approx(4.0)
        assert assessment.cost_of_change.effort_upper_days == pytest.approx(4.0)
        assert data.effort is effort
        assert effort.calibration_applied is False

    def test_pain_point_from_item_text(self, sample_profile):
        data = StabilityInput(
            effort=_light_effort(),
            profile=sample_profile,
            maturity_result=_gate(),
            action=RecommendationAction.COMPLEMENT,
            item_title="Turbopack",
            item_description="Incremental bundle builds for large apps",
        )
        influence = evaluate_stability(data).stack_health_influence
        assert influence.matched_pain_point == "Slow bundle builds in CI"


# ── quick_check ───────────────────────────────────────────────────────────────

class TestQuickCheck:
    def test_maturity_failure(self, sample_profile):
        ok, reason = quick_check(sample_profile, _gate(passed=False, maturity=Maturity.DEPRECATED), 0.9)
        assert ok is False
        assert reason == "Maturity insufficient: deprecated"

    def test_low_score(self, sample_profile):
        ok, _ = quick_check(sample_profile, _gate(), 0.1)
        assert ok is False

    def test_healthy_stack_needs_higher_score(self, make_profile):
        profile = make_profile(stack_health={"overall_score": 0.9})
        assert quick_check(profile, _gate(), 0.3)[0] is False
        assert quick_check(profile, _gate(), 0.5)[0] is True

    def test_moderate_stack_passes(self, sample_profile):
        assert quick_check(sample_profile, _gate(), 0.3) == (True, "Passed quick stability check")
