"""
Validation of raw enrichment responses.

A response is a JSON object (see ``RESPONSE_SCHEMA_HINT`` in
``messages_client``).  Keys may be snake_case or camelCase.  Validation rules:

  - FACT needs a non-empty ``source`` and a ``source_reliability``.
  - INFERENCE needs a non-empty ``derived_from`` list and a confidence in [0, 1].
  - The free-form effort day string is parsed once into ``EffortRange``.

Any violation raises ``EnrichmentError``; the orchestrator then drops the item.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from techscout.enrichment.base import EnrichmentRequest, EnrichmentResult
from techscout.errors import EnrichmentError
from techscout.models.claims import Assumption, ClaimSet, Fact, Inference
from techscout.models.effort import CalibratedEffort
from techscout.models.recommendation import (
    FailureMode,
    HumanFriendlyOutput,
    HumanImpactSummary,
    ImpactScore,
    RecommendationSubject,
    RiskImpact,
    TalkingPoint,
    TechnicalImpact,
    Tradeoffs,
)
from techscout.taxonomy.evidence_taxonomy import Reliability
from techscout.taxonomy.maturity_taxonomy import SubjectType
from techscout.taxonomy.risk_taxonomy import Complexity, Reversibility, RiskLevel

_FENCED_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class _Raw(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Raw response schema ───────────────────────────────────────────────────────

class _RawSubject(_Raw):
    name: str = Field(min_length=1)
    type: SubjectType = SubjectType.LIBRARY
    url: Optional[str] = None
    version: Optional[str] = None
    ecosystem: Optional[str] = None
    license: Optional[str] = None


class _RawFact(_Raw):
    claim: str = Field(min_length=1)
    source: str = Field(min_length=1)
    source_reliability: Reliability
    source_url: Optional[str] = None
    finding_id: Optional[str] = None


class _RawInference(_Raw):
    claim: str = Field(min_length=1)
    derived_from: list[str] = Field(min_length=1)
    confidence: float = Field(ge=0.0, le=1.0)


class _RawAssumption(_Raw):
    claim: str = Field(min_length=1)


class _RawAnalysis(_Raw):
    facts: list[_RawFact] = []
    inferences: list[_RawInference] = []
    assumptions: list[_RawAssumption] = []


class _RawEffort(_Raw):
    raw_estimate_days: str
    complexity: Complexity = Complexity.MEDIUM
    breaking_changes: bool = False
    reversibility: Reversibility = Reversibility.MEDIUM
    steps: list[str] = []


class _RawScore(_Raw):
    score_change: str = ""
    detail: str = ""


class _RawRisk(_Raw):
    level: RiskLevel = RiskLevel.LOW
    detail: str = ""


class _RawImpact(_Raw):
    security: _RawScore = _RawScore()
    performance: _RawScore = _RawScore()
    maintainability: _RawScore = _RawScore()
    cost: _RawScore = _RawScore()
    risk: _RawRisk = _RawRisk()


class _RawTradeoffs(_Raw):
    gains: list[str] = []
    losses: list[str] = []


class _RawFailureMode(_Raw):
    mode: str
    probability: str = "medium"
    mitigation: str = ""


class _RawTechnical(_Raw):
    analysis: _RawAnalysis = _RawAnalysis()
    effort: _RawEffort
    impact: _RawImpact = _RawImpact()
    tradeoffs: _RawTradeoffs = _RawTradeoffs()
    failure_modes: list[_RawFailureMode] = []
    limitations: list[str] = []


class _RawTalkingPoint(_Raw):
    point: str
    answer: str


class _RawImpactSummary(_Raw):
    security: str = ""
    cost: str = ""
    risk: str = ""
    urgency: str = ""


class _RawHumanFriendly(_Raw):
    title: str = Field(min_length=1)
    one_liner: str = ""
    summary: str = ""
    why_now: str = ""
    talking_points: list[_RawTalkingPoint] = []
    impact_summary: _RawImpactSummary = _RawImpactSummary()


class _RawResponse(_Raw):
    subject: _RawSubject
    technical: _RawTechnical
    human_friendly: _RawHumanFriendly
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


# ── Conversion ────────────────────────────────────────────────────────────────

def _score(raw: _RawScore) -> ImpactScore:
    return ImpactScore(score_change=raw.score_change, detail=raw.detail)


def _to_result(
    raw: _RawResponse,
    request: EnrichmentRequest,
    model_used: str,
) -> EnrichmentResult:
    tech = raw.technical
    analysis = ClaimSet(
        facts=[
            Fact(
                claim=f.claim,
                source=f.source,
                source_reliability=f.source_reliability,
                source_url=f.source_url,
                finding_id=f.finding_id,
            )
            for f in tech.analysis.facts
        ],
        inferences=[
            Inference(claim=i.claim, derived_from=i.derived_from, confidence=i.confidence)
            for i in tech.analysis.inferences
        ],
        assumptions=[Assumption(claim=a.claim) for a in tech.analysis.assumptions],
    )
    effort = CalibratedEffort.from_raw(
        tech.effort.raw_estimate_days,
        complexity=tech.effort.complexity,
        breaking_changes=tech.effort.breaking_changes,
        reversibility=tech.effort.reversibility,
        steps=tech.effort.steps,
    )
    hf = raw.human_friendly
    return EnrichmentResult(
        subject=RecommendationSubject(
            name=raw.subject.name,
            type=raw.subject.type,
            url=raw.subject.url,
            version=raw.subject.version,
            ecosystem=raw.subject.ecosystem,
            license=raw.subject.license,
            # The maturity gate owns maturity; the service's opinion is ignored.
            maturity=request.maturity.maturity,
            traction=request.item.traction,
        ),
        analysis=analysis,
        effort=effort,
        impact=TechnicalImpact(
            security=_score(tech.impact.security),
            performance=_score(tech.impact.performance),
            maintainability=_score(tech.impact.maintainability),
            cost=_score(tech.impact.cost),
            risk=RiskImpact(level=tech.impact.risk.level, detail=tech.impact.risk.detail),
        ),
        tradeoffs=Tradeoffs(gains=tech.tradeoffs.gains, losses=tech.tradeoffs.losses),
        failure_modes=[
            FailureMode(mode=m.mode, probability=m.probability, mitigation=m.mitigation)
            for m in tech.failure_modes
        ],
        limitations=tech.limitations,
        human_friendly=HumanFriendlyOutput(
            title=hf.title,
            one_liner=hf.one_liner,
            summary=hf.summary,
            why_now=hf.why_now,
            talking_points=[TalkingPoint(point=t.point, answer=t.answer) for t in hf.talking_points],
            impact_summary=HumanImpactSummary(
                security=hf.impact_summary.security,
                cost=hf.impact_summary.cost,
                risk=hf.impact_summary.risk,
                urgency=hf.impact_summary.urgency,
            ),
        ),
        reported_confidence=raw.confidence,
        model_used=model_used,
    )


# ── Public API ────────────────────────────────────────────────────────────────

def parse_enrichment_text(text: str) -> dict[str, Any]:
    """Extract the JSON object from raw response text.

    Accepts bare JSON or JSON wrapped in a fenced code block.

    Raises:
        EnrichmentError: If no JSON object can be extracted.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        match = _FENCED_RE.search(text)
        if not match:
            raise EnrichmentError("Could not parse JSON from enrichment response.") from None
        try:
            payload = json.loads(match.group(1))
        except json.JSONDecodeError as exc:
            raise EnrichmentError(f"Invalid JSON in fenced block: {exc}") from exc

    if not isinstance(payload, dict):
        raise EnrichmentError(
            f"Enrichment response must be a JSON object, got {type(payload).__name__}."
        )
    return payload


def parse_enrichment_payload(
    payload: dict[str, Any],
    request: EnrichmentRequest,
    model_used: str,
) -> EnrichmentResult:
    """Validate a decoded response and convert it to an ``EnrichmentResult``.

    Args:
        payload:    Decoded JSON object.
        request:    Request the payload answers (supplies maturity and traction).
        model_used: Model identifier recorded on the result.

    Raises:
        EnrichmentError: If the payload does not match the response schema.
    """
    try:
        raw = _RawResponse.model_validate(payload)
        return _to_result(raw, request, model_used)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(p) for p in first["loc"])
        raise EnrichmentError(
            f"Malformed enrichment payload for item '{request.feed_item_id}': "
            f"{exc.error_count()} error(s), first at '{location}': {first['msg']}"
        ) from exc
