"""
Enrichment contract: what the matching core sends to an analysis service and
what it expects back.

The request carries a *trimmed* project context: stack names and versions,
pain points, constraints, unresolved finding metadata and the stack-health
score.  It never carries source code or file contents.

Clients implement ``EnrichmentClient`` and raise ``EnrichmentError`` on any
failure; the orchestrator isolates those per item.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from techscout.models.claims import ClaimSet
from techscout.models.effort import CalibratedEffort
from techscout.models.feed_item import FeedItem, FeedTraction
from techscout.models.matching import MaturityGateResult, PreFilterMatch
from techscout.models.project import ProjectProfile
from techscout.models.recommendation import (
    FailureMode,
    HumanFriendlyOutput,
    RecommendationSubject,
    TechnicalImpact,
    Tradeoffs,
)
from techscout.taxonomy.evidence_taxonomy import Reliability
from techscout.taxonomy.maturity_taxonomy import Maturity, RecommendationAction
from techscout.taxonomy.risk_taxonomy import FindingSeverity


# ── Request ───────────────────────────────────────────────────────────────────

class NamedVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: Optional[str] = None
    ecosystem: Optional[str] = None


class LanguageShare(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    percentage: float
    role: str


class FindingSummary(BaseModel):
    """Finding metadata forwarded to enrichment (no file paths, no code)."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: str
    severity: FindingSeverity
    pattern_id: str
    description: str


class ProjectContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    languages: list[LanguageShare] = []
    frameworks: list[NamedVersion] = []
    key_dependencies: list[NamedVersion] = []
    pain_points: list[str] = []
    constraints: list[str] = []
    findings: list[FindingSummary] = []
    stack_health: float


class ItemContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: Optional[str] = None
    description: Optional[str] = None
    content_summary: Optional[str] = None
    categories: list[str] = []
    technologies: list[str] = []
    traction: FeedTraction = FeedTraction()
    source_name: str
    source_reliability: Reliability


class MatchContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    technologies_matched: list[str] = []
    categories_matched: list[str] = []
    reasons: list[str] = []


class MaturityContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    maturity: Maturity
    min_required: Maturity
    passed: bool
    warnings: list[str] = []


class EnrichmentRequest(BaseModel):
    """Everything an enrichment service may see about one surviving item."""

    model_config = ConfigDict(frozen=True)

    feed_item_id: str
    project: ProjectContext
    item: ItemContext
    match: MatchContext
    maturity: MaturityContext
    proposed_action: RecommendationAction


def build_enrichment_request(
    item: FeedItem,
    profile: ProjectProfile,
    match: PreFilterMatch,
    maturity: MaturityGateResult,
    action: RecommendationAction,
) -> EnrichmentRequest:
    """Assemble the trimmed enrichment request for one item."""
    stack = profile.stack
    project = ProjectContext(
        name=profile.name,
        languages=[
            LanguageShare(name=l.name, percentage=l.percentage, role=l.role)
            for l in stack.languages
        ],
        frameworks=[NamedVersion(name=f.name, version=f.version) for f in stack.frameworks],
        key_dependencies=[
            NamedVersion(name=d.name, version=d.version, ecosystem=d.ecosystem)
            for d in stack.key_dependencies
        ],
        pain_points=list(profile.manifest.pain_points),
        constraints=list(profile.manifest.constraints),
        findings=[
            FindingSummary(
                id=f.id,
                category=f.category,
                severity=f.severity,
                pattern_id=f.pattern_id,
                description=f.description,
            )
            for f in profile.findings
        ],
        stack_health=profile.health_score,
    )
    return EnrichmentRequest(
        feed_item_id=item.id,
        project=project,
        item=ItemContext(
            title=item.title,
            url=item.url,
            description=item.description,
            content_summary=item.content_summary,
            categories=list(item.categories),
            technologies=list(item.technologies),
            traction=item.traction,
            source_name=item.source_name,
            source_reliability=item.source_reliability,
        ),
        match=MatchContext(
            score=match.score,
            technologies_matched=list(match.technologies_matched),
            categories_matched=list(match.categories_matched),
            reasons=list(match.reasons),
        ),
        maturity=MaturityContext(
            maturity=maturity.maturity,
            min_required=maturity.min_maturity_for_action,
            passed=maturity.passed,
            warnings=list(maturity.warnings),
        ),
        proposed_action=action,
    )


# ── Result ────────────────────────────────────────────────────────────────────

class EnrichmentResult(BaseModel):
    """Validated analysis of one item.

    Attributes:
        subject: The technology the item is about.
        analysis: Tagged claims.
        effort: Parsed, uncalibrated effort plus migration attributes.
        impact: Five-dimension impact.
        tradeoffs: Gains and losses.
        failure_modes: Ways the change could go wrong.
        limitations: Known limits of the analysis.
        human_friendly: PM/stakeholder write-up.
        reported_confidence: Confidence the service reported for itself.
        model_used: Model or engine identifier.
    """

    model_config = ConfigDict(frozen=True)

    subject: RecommendationSubject
    analysis: ClaimSet
    effort: CalibratedEffort
    impact: TechnicalImpact
    tradeoffs: Tradeoffs = Tradeoffs()
    failure_modes: list[FailureMode] = []
    limitations: list[str] = []
    human_friendly: HumanFriendlyOutput
    reported_confidence: Optional[float] = None
    model_used: str


@runtime_checkable
class EnrichmentClient(Protocol):
    """Anything that can analyze one enrichment request."""

    model_name: str

    def analyze(self, request: EnrichmentRequest) -> EnrichmentResult:
        """Analyze one item; raise ``EnrichmentError`` on failure."""
        ...
