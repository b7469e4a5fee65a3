"""
Stage 4 — stability gate: recommend a change only when staying put costs more.

Cost of change (0–1, higher = more expensive to change)
-------------------------------------------------------
    effort         * 0.25   # min(1, calibrated upper-bound days / 10)
    regression     * 0.25   # RISK_VALUES
    learning_curve * 0.15   # LEARNING_VALUES
    dependencies   * 0.15   # min(1, dependencies_affected / 20)
    reversibility  * 0.20   # REVERSIBILITY_VALUES

Cost of no-change (0–1, higher = more expensive to stay put)
------------------------------------------------------------
    security_exposure * 0.30
    maintenance_risk  * 0.20
    performance       * 0.15
    deprecation_risk  * 0.20
    compliance_risk   * 0.15

Verdict
-------
    delta = cost_of_no_change - cost_of_change

    maturity gate failed        → DEFER (whatever the delta)
    delta >= recommend_threshold → RECOMMEND
    delta <= defer_threshold     → DEFER
    otherwise                    → MONITOR

Thresholds start at 0.15 / -0.10.  Stack health above
``conservative_health_score`` multiplies both by 1.5; a declared pain point
addressed by the item then multiplies the recommend threshold by 0.7.

Everything here is pure: inputs are never modified.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from techscout.config import StabilityThresholds
from techscout.matching.calibration import calibrate_effort
from techscout.matching.keywords import first_matching_pain_point
from techscout.models.effort import CalibratedEffort
from techscout.models.matching import MaturityGateResult
from techscout.models.project import ProjectProfile
from techscout.models.recommendation import (
    CostOfChange,
    CostOfNoChange,
    MaturityGateSummary,
    StabilityAssessment,
    StackHealthInfluence,
)
from techscout.taxonomy.maturity_taxonomy import RecommendationAction, StabilityVerdict
from techscout.taxonomy.risk_taxonomy import (
    SEVERITY_RISK,
    Complexity,
    LearningCurve,
    Reversibility,
    RiskLevel,
    max_risk,
)

logger = logging.getLogger(__name__)

# ── Weights and ordinal tables ────────────────────────────────────────────────

W_EFFORT        = 0.25
W_REGRESSION    = 0.25
W_LEARNING      = 0.15
W_DEPENDENCIES  = 0.15
W_REVERSIBILITY = 0.20

W_SECURITY      = 0.30
W_MAINTENANCE   = 0.20
W_PERFORMANCE   = 0.15
W_DEPRECATION   = 0.20
W_COMPLIANCE    = 0.15

EFFORT_NORMALIZER_DAYS = 10.0
DEPENDENCY_NORMALIZER  = 20.0

RISK_VALUES: dict[RiskLevel, float] = {
    RiskLevel.NONE:     0.0,
    RiskLevel.LOW:      0.25,
    RiskLevel.MEDIUM:   0.5,
    RiskLevel.HIGH:     0.75,
    RiskLevel.CRITICAL: 1.0,
}

REVERSIBILITY_VALUES: dict[Reversibility, float] = {
    Reversibility.EASY:         0.1,
    Reversibility.MEDIUM:       0.4,
    Reversibility.HARD:         0.7,
    Reversibility.IRREVERSIBLE: 1.0,
}

LEARNING_VALUES: dict[LearningCurve, float] = {
    LearningCurve.NONE:   0.0,
    LearningCurve.LOW:    0.25,
    LearningCurve.MEDIUM: 0.5,
    LearningCurve.HIGH:   0.75,
}

SECURITY_CATEGORIES    = frozenset({"security", "crypto", "auth"})
MAINTENANCE_CATEGORIES = frozenset({"maintainability", "code_smell", "complexity"})

HEALTH_HIGH   = 0.8
HEALTH_MEDIUM = 0.5

QUICK_MIN_SCORE         = 0.2
QUICK_MIN_SCORE_HEALTHY = 0.4


@dataclass
class StabilityInput:
    """Everything the stability gate needs for one analyzed item.

    Attributes:
        effort:               Uncalibrated effort reported by enrichment.
        profile:              Project profile (read-only).
        maturity_result:      Stage-2 verdict for the item.
        action:               Action after maturity downgrades.
        technologies_matched: Item technologies found in the stack.
        item_title:           Feed item title.
        item_description:     Feed item description, if any.
    """

    effort:               CalibratedEffort
    profile:              ProjectProfile
    maturity_result:      MaturityGateResult
    action:               RecommendationAction
    technologies_matched: list[str] = field(default_factory=list)
    item_title:           str = ""
    item_description:     Optional[str] = None


@dataclass
class VerdictDecision:
    """Verdict plus the effective thresholds that produced it."""

    verdict:             StabilityVerdict
    delta:               float
    recommend_threshold: float
    defer_threshold:     float


# ── Cost of change ────────────────────────────────────────────────────────────

def _regression_risk(effort: CalibratedEffort) -> RiskLevel:
    if effort.regression_risk is not None:
        return effort.regression_risk
    if effort.breaking_changes:
        return RiskLevel.HIGH
    if effort.complexity in (Complexity.HIGH, Complexity.VERY_HIGH):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _learning_curve(effort: CalibratedEffort) -> LearningCurve:
    if effort.learning_curve is not None:
        return effort.learning_curve
    if effort.complexity == Complexity.VERY_HIGH:
        return LearningCurve.HIGH
    if effort.complexity in (Complexity.HIGH, Complexity.MEDIUM):
        return LearningCurve.MEDIUM
    return LearningCurve.LOW


def infer_cost_of_change(effort: CalibratedEffort) -> CostOfChange:
    """Derive the cost-of-change breakdown from a (calibrated) effort."""
    tests_step = next(
        (s for s in effort.steps if "test" in s.lower() or "e2e" in s.lower()),
        None,
    )
    return CostOfChange(
        effort_days=effort.calibrated_estimate_days,
        effort_upper_days=effort.calibrated.max_days,
        regression_risk=_regression_risk(effort),
        learning_curve=_learning_curve(effort),
        dependencies_affected=max(1, len(effort.steps) // 2),
        tests_to_update=tests_step,
        reversibility=effort.reversibility,
    )


def cost_of_change_score(cost: CostOfChange) -> float:
    """Weighted cost-of-change score in [0, 1]."""
    score = (
        min(1.0, cost.effort_upper_days / EFFORT_NORMALIZER_DAYS) * W_EFFORT
        + RISK_VALUES[cost.regression_risk] * W_REGRESSION
        + LEARNING_VALUES[cost.learning_curve] * W_LEARNING
        + min(1.0, cost.dependencies_affected / DEPENDENCY_NORMALIZER) * W_DEPENDENCIES
        + REVERSIBILITY_VALUES[cost.reversibility] * W_REVERSIBILITY
    )
    return min(1.0, max(0.0, score))


# ── Cost of no-change ─────────────────────────────────────────────────────────

def infer_cost_of_no_change(
    profile: ProjectProfile,
    technologies_matched: list[str],
    action: RecommendationAction,
) -> CostOfNoChange:
    """Derive the cost-of-no-change breakdown from findings and stack health.

    Findings whose pattern/description mention a matched technology raise
    security or maintenance risk to their severity.  Critical/high
    security-category findings raise security risk project-wide.  Health
    sub-scores floor security and deprecation risk.
    """
    techs = [t.lower() for t in technologies_matched]
    relevant = [
        f for f in profile.findings
        if any(t in f.searchable_text for t in techs)
    ]
    severe = [
        f for f in profile.findings
        if SEVERITY_RISK[f.severity] in (RiskLevel.CRITICAL, RiskLevel.HIGH)
    ]

    security = RiskLevel.NONE
    maintenance = RiskLevel.NONE
    deprecation = RiskLevel.NONE
    performance = RiskLevel.NONE

    for finding in relevant:
        category = finding.category.lower()
        if category in SECURITY_CATEGORIES:
            security = max_risk(security, SEVERITY_RISK[finding.severity])
        if category in MAINTENANCE_CATEGORIES:
            maintenance = max_risk(maintenance, SEVERITY_RISK[finding.severity])

    for finding in severe:
        if finding.category.lower() in SECURITY_CATEGORIES:
            security = max_risk(security, SEVERITY_RISK[finding.severity])

    health = profile.stack_health
    security_health = health.component_score("security")
    if security_health is not None:
        if security_health < 0.5:
            security = max_risk(security, RiskLevel.MEDIUM)
        if security_health < 0.3:
            security = max_risk(security, RiskLevel.HIGH)

    freshness = health.component_score("freshness")
    if freshness is not None:
        if freshness < 0.5:
            deprecation = RiskLevel.MEDIUM
        if freshness < 0.3:
            deprecation = RiskLevel.HIGH

    if action == RecommendationAction.REPLACE_EXISTING:
        maintenance = max_risk(maintenance, RiskLevel.LOW)

    details: list[str] = []
    if severe:
        details.append(f"{len(severe)} critical/high finding(s) in the project")
    if relevant:
        details.append(f"{len(relevant)} finding(s) mention the matched technologies")
    if deprecation != RiskLevel.NONE and freshness is not None:
        details.append(f"Low stack freshness ({freshness * 100:.0f}%)")
    if security != RiskLevel.NONE:
        details.append(f"Security exposure: {security}")

    return CostOfNoChange(
        security_exposure=security,
        maintenance_risk=maintenance,
        performance_impact=performance,
        deprecation_risk=deprecation,
        compliance_risk=RiskLevel.NONE,
        detail=". ".join(details) if details else "No significant risk identified.",
    )


def cost_of_no_change_score(cost: CostOfNoChange) -> float:
    """Weighted cost-of-no-change score in [0, 1]."""
    score = (
        RISK_VALUES[cost.security_exposure] * W_SECURITY
        + RISK_VALUES[cost.maintenance_risk] * W_MAINTENANCE
        + RISK_VALUES[cost.performance_impact] * W_PERFORMANCE
        + RISK_VALUES[cost.deprecation_risk] * W_DEPRECATION
        + RISK_VALUES[cost.compliance_risk] * W_COMPLIANCE
    )
    return min(1.0, max(0.0, score))


# ── Health influence and verdict ──────────────────────────────────────────────

def stack_health_influence(
    profile: ProjectProfile,
    matched_pain_point: Optional[str],
) -> StackHealthInfluence:
    health = profile.health_score
    if health > HEALTH_HIGH:
        tier = "high"
    elif health > HEALTH_MEDIUM:
        tier = "medium"
    else:
        tier = "low"
    return StackHealthInfluence(
        current_score=health,
        threshold_applied=tier,
        pain_point_match=matched_pain_point is not None,
        matched_pain_point=matched_pain_point,
    )


def decide_verdict(
    change_score: float,
    no_change_score: float,
    health_score: float,
    pain_point_match: bool,
    maturity_passed: bool,
    thresholds: Optional[StabilityThresholds] = None,
) -> VerdictDecision:
    """Apply the threshold policy to a pair of cost scores.

    Health scaling is applied before the pain-point discount.
    """
    thresholds = thresholds or StabilityThresholds()
    delta = no_change_score - change_score

    recommend = thresholds.recommend_threshold
    defer = thresholds.defer_threshold
    if health_score > thresholds.conservative_health_score:
        recommend *= thresholds.healthy_stack_multiplier
        defer *= thresholds.healthy_stack_multiplier
    if pain_point_match:
        recommend *= thresholds.pain_point_discount

    if not maturity_passed:
        verdict = StabilityVerdict.DEFER
    elif delta >= recommend:
        verdict = StabilityVerdict.RECOMMEND
    elif delta <= defer:
        verdict = StabilityVerdict.DEFER
    else:
        verdict = StabilityVerdict.MONITOR

    return VerdictDecision(
        verdict=verdict,
        delta=delta,
        recommend_threshold=recommend,
        defer_threshold=defer,
    )


def _reasoning(
    change_score: float,
    no_change_score: float,
    delta: float,
    matched_pain_point: Optional[str],
    maturity_result: MaturityGateResult,
    verdict: StabilityVerdict,
) -> list[str]:
    lines = [
        f"[FACT] Cost of change score: {change_score * 100:.0f}%",
        f"[FACT] Cost of no-change score: {no_change_score * 100:.0f}%",
        f"[INFERENCE] Delta: {delta * 100:+.0f}%",
    ]
    if matched_pain_point is not None:
        lines.append(f"[FACT] Matches declared pain point: {matched_pain_point}")
    if not maturity_result.passed:
        lines.append(f"[FACT] Maturity gate failed: {'; '.join(maturity_result.warnings)}")
    lines.append(f"VERDICT: {verdict}")
    return lines


def _plain_verdict(
    verdict: StabilityVerdict,
    change: CostOfChange,
    no_change: CostOfNoChange,
    maturity_result: MaturityGateResult,
) -> str:
    if verdict == StabilityVerdict.RECOMMEND:
        return (
            f"We recommend this change: the benefits ({no_change.detail}) outweigh "
            f"the cost ({change.effort_days} days of work, {change.regression_risk} "
            "regression risk)."
        )
    if verdict == StabilityVerdict.MONITOR:
        return (
            "We suggest keeping an eye on this technology. The benefits are "
            "interesting but do not justify an immediate change. Revisit in a "
            "few months."
        )
    if not maturity_result.passed:
        return (
            f"We advise against this change for now: the technology is "
            f"{maturity_result.maturity}, below the {maturity_result.min_maturity_for_action} "
            f"level required for {maturity_result.action}."
        )
    return (
        f"We advise against this change for now: its cost ({change.effort_days} "
        f"days, {change.regression_risk} risk) outweighs the potential benefits."
    )


# ── Public API ────────────────────────────────────────────────────────────────

def evaluate_stability(
    data: StabilityInput,
    thresholds: Optional[StabilityThresholds] = None,
) -> StabilityAssessment:
    """Run the stability gate for one analyzed item.

    Args:
        data:       Gate input (effort, profile, maturity verdict, action, item text).
        thresholds: Verdict thresholds; defaults when ``None``.

    Returns:
        A ``StabilityAssessment`` carrying the calibrated effort it used.
    """
    thresholds = thresholds or StabilityThresholds()
    profile = data.profile

    effort = calibrate_effort(data.effort, profile.calibration)
    change = infer_cost_of_change(effort)
    no_change = infer_cost_of_no_change(profile, data.technologies_matched, data.action)
    change_score = cost_of_change_score(change)
    no_change_score = cost_of_no_change_score(no_change)

    pain_point = first_matching_pain_point(
        profile.manifest.pain_points,
        f"{data.item_title} {data.item_description or ''}",
    )
    influence = stack_health_influence(profile, pain_point)

    decision = decide_verdict(
        change_score,
        no_change_score,
        profile.health_score,
        pain_point_match=pain_point is not None,
        maturity_passed=data.maturity_result.passed,
        thresholds=thresholds,
    )

    logger.debug(
        "Stability gate | change=%.2f | no_change=%.2f | delta=%.2f | verdict=%s",
        change_score, no_change_score, decision.delta, decision.verdict,
    )

    return StabilityAssessment(
        cost_of_change=change,
        cost_of_no_change=no_change,
        maturity_gate=MaturityGateSummary(
            subject_maturity=data.maturity_result.maturity,
            min_maturity_for_action=data.maturity_result.min_maturity_for_action,
            passed=data.maturity_result.passed,
        ),
        stack_health_influence=influence,
        cost_of_change_score=change_score,
        cost_of_no_change_score=no_change_score,
        delta=decision.delta,
        recommend_threshold=decision.recommend_threshold,
        defer_threshold=decision.defer_threshold,
        verdict=decision.verdict,
        verdict_reasoning=_reasoning(
            change_score, no_change_score, decision.delta,
            pain_point, data.maturity_result, decision.verdict,
        ),
        verdict_plain=_plain_verdict(decision.verdict, change, no_change, data.maturity_result),
        calibrated_effort=effort,
    )


def quick_check(
    profile: ProjectProfile,
    maturity_result: MaturityGateResult,
    match_score: float,
) -> tuple[bool, str]:
    """Cheap pre-enrichment filter.

    Fails on maturity-gate failure, on match score < 0.2, and on a healthy
    stack (> 0.8) with match score < 0.4.

    Returns:
        ``(passed, reason)``.
    """
    if not maturity_result.passed:
        return False, f"Maturity insufficient: {maturity_result.maturity}"
    if match_score < QUICK_MIN_SCORE:
        return False, f"Match score too low: {match_score}"
    if profile.health_score > HEALTH_HIGH and match_score < QUICK_MIN_SCORE_HEALTHY:
        return False, f"Healthy stack requires higher relevance: {match_score}"
    return True, "Passed quick stability check"
