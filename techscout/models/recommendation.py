"""
Stability assessment and recommendation output models.

``StabilityAssessment`` is the policy-core output: competing cost-of-change
and cost-of-no-change breakdowns, the thresholds that applied, the verdict,
and the reasoning trail that produced it.

``Recommendation`` is the final entity delivered to persistence/delivery
collaborators.  It has a dual output: ``technical`` (for developers) and
``human_friendly`` (for PMs and stakeholders).  Both models are frozen —
once assembled by the ranker, the core never mutates them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from techscout.models.claims import TRACE_ID_PATTERN, ClaimSet
from techscout.models.effort import CalibratedEffort
from techscout.models.feed_item import FeedTraction
from techscout.taxonomy.maturity_taxonomy import (
    Maturity,
    Priority,
    RecommendationAction,
    StabilityVerdict,
    SubjectType,
    TeamRole,
)
from techscout.taxonomy.risk_taxonomy import LearningCurve, Reversibility, RiskLevel

HealthTier = Literal["high", "medium", "low"]
Probability = Literal["low", "medium", "high"]
DeliveryState = Literal["pending", "delivered", "failed"]


# ── Stability assessment ──────────────────────────────────────────────────────

class CostOfChange(BaseModel):
    """What adopting the technology would cost."""

    model_config = ConfigDict(frozen=True)

    effort_days: str
    effort_upper_days: float = Field(ge=0.0)
    regression_risk: RiskLevel
    learning_curve: LearningCurve
    dependencies_affected: int = Field(ge=0)
    tests_to_update: Optional[str] = None
    reversibility: Reversibility


class CostOfNoChange(BaseModel):
    """What leaving the stack unchanged would cost."""

    model_config = ConfigDict(frozen=True)

    security_exposure: RiskLevel = RiskLevel.NONE
    maintenance_risk: RiskLevel = RiskLevel.NONE
    performance_impact: RiskLevel = RiskLevel.NONE
    deprecation_risk: RiskLevel = RiskLevel.NONE
    compliance_risk: RiskLevel = RiskLevel.NONE
    detail: str = ""


class MaturityGateSummary(BaseModel):
    """Maturity-gate outcome as recorded on the assessment."""

    model_config = ConfigDict(frozen=True)

    subject_maturity: Maturity
    min_maturity_for_action: Maturity
    passed: bool


class StackHealthInfluence(BaseModel):
    """How stack health and pain points shaped the thresholds."""

    model_config = ConfigDict(frozen=True)

    current_score: float = Field(ge=0.0, le=1.0)
    threshold_applied: HealthTier
    pain_point_match: bool
    matched_pain_point: Optional[str] = None


class StabilityAssessment(BaseModel):
    """Stability-gate output for one item.

    Attributes:
        cost_of_change: Breakdown of the cost of adopting.
        cost_of_no_change: Breakdown of the cost of staying put.
        maturity_gate: Maturity-gate summary.
        stack_health_influence: Health tier and pain-point match.
        cost_of_change_score: Weighted cost of change in [0, 1].
        cost_of_no_change_score: Weighted cost of no-change in [0, 1].
        delta: ``cost_of_no_change_score - cost_of_change_score``.
        recommend_threshold: Effective RECOMMEND threshold.
        defer_threshold: Effective DEFER threshold.
        verdict: RECOMMEND, MONITOR or DEFER.
        verdict_reasoning: Ordered, tagged reasoning lines ending in ``VERDICT: X``.
        verdict_plain: Plain-language justification.
        calibrated_effort: Effort after historical calibration.
    """

    model_config = ConfigDict(frozen=True)

    cost_of_change: CostOfChange
    cost_of_no_change: CostOfNoChange
    maturity_gate: MaturityGateSummary
    stack_health_influence: StackHealthInfluence
    cost_of_change_score: float
    cost_of_no_change_score: float
    delta: float
    recommend_threshold: float
    defer_threshold: float
    verdict: StabilityVerdict
    verdict_reasoning: list[str]
    verdict_plain: str
    calibrated_effort: CalibratedEffort


# ── Technical output ──────────────────────────────────────────────────────────

class ImpactScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score_change: str
    detail: str


class RiskImpact(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: RiskLevel
    detail: str


class TechnicalImpact(BaseModel):
    """Five-dimension impact of the change."""

    model_config = ConfigDict(frozen=True)

    security: ImpactScore
    performance: ImpactScore
    maintainability: ImpactScore
    cost: ImpactScore
    risk: RiskImpact


class Tradeoffs(BaseModel):
    model_config = ConfigDict(frozen=True)

    gains: list[str] = []
    losses: list[str] = []


class FailureMode(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: str
    probability: Probability
    mitigation: str


class TechnicalOutput(BaseModel):
    """Developer-facing analysis."""

    model_config = ConfigDict(frozen=True)

    analysis: ClaimSet
    effort: CalibratedEffort
    impact: TechnicalImpact
    tradeoffs: Tradeoffs = Tradeoffs()
    failure_modes: list[FailureMode] = []
    limitations: list[str] = []


# ── Human-friendly output ─────────────────────────────────────────────────────

class TalkingPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    point: str
    answer: str


class HumanImpactSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    security: str
    cost: str
    risk: str
    urgency: str


class HumanFriendlyOutput(BaseModel):
    """PM/stakeholder-facing write-up; no jargon."""

    model_config = ConfigDict(frozen=True)

    title: str
    one_liner: str
    summary: str
    why_now: str
    talking_points: list[TalkingPoint] = []
    impact_summary: HumanImpactSummary


# ── Subject and qualification ─────────────────────────────────────────────────

class RecommendationSubject(BaseModel):
    """The technology being recommended."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    type: SubjectType = SubjectType.LIBRARY
    url: Optional[str] = None
    version: Optional[str] = None
    ecosystem: Optional[str] = None
    license: Optional[str] = None
    maturity: Maturity
    traction: FeedTraction = FeedTraction()


class ConfidenceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_reliability: float
    factual_basis: float
    inference_quality: float
    assumption_risk: float


class Qualification(BaseModel):
    """Confidence qualification of a recommendation."""

    model_config = ConfigDict(frozen=True)

    confidence: float = Field(ge=0.0, le=1.0)
    breakdown: ConfidenceBreakdown
    statement: str


# ── Recommendation ────────────────────────────────────────────────────────────

class Recommendation(BaseModel):
    """A delivered technology recommendation.

    Attributes:
        id: Recommendation UUID.
        trace_id: Audit trace id (``IFX-YYYY-MMDD-REC-XXXXXX``).
        project_id: Profile the recommendation was generated for.
        feed_item_id: Feed item it was generated from.
        generated_at: Generation timestamp (the run's ``as_of``).
        model_used: Enrichment model identifier.
        action: Adoption action after maturity downgrades.
        priority: Urgency.
        confidence: Confidence in [0, 1].
        subject: The recommended technology.
        replaces: Stack technologies it would replace (REPLACE_EXISTING).
        complements: Stack technologies it complements (COMPLEMENT).
        enables: Capability it adds (NEW_CAPABILITY).
        role_visibility: Team roles that should see it.
        stability: Stability-gate assessment.
        technical: Developer-facing output.
        human_friendly: PM/stakeholder-facing output.
        qualification: Confidence breakdown and statement.
        delivery_state: Updated by delivery collaborators only.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    trace_id: str
    project_id: str
    feed_item_id: str
    generated_at: datetime
    model_used: str
    action: RecommendationAction
    priority: Priority
    confidence: float = Field(ge=0.0, le=1.0)
    subject: RecommendationSubject
    replaces: Optional[str] = None
    complements: Optional[str] = None
    enables: Optional[str] = None
    role_visibility: list[TeamRole]
    stability: StabilityAssessment
    technical: TechnicalOutput
    human_friendly: HumanFriendlyOutput
    qualification: Qualification
    delivery_state: DeliveryState = "pending"

    @field_validator("trace_id")
    @classmethod
    def validate_trace_id(cls, v: str) -> str:
        if not TRACE_ID_PATTERN.match(v):
            raise ValueError(f"Malformed trace id '{v}'.")
        return v

    @property
    def verdict(self) -> StabilityVerdict:
        return self.stability.verdict
