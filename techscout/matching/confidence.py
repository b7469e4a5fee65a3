"""
Knowledge qualification: how far a recommendation can be trusted.

    confidence = source_reliability
               * factual_basis
               * inference_quality
               * (1 - assumption_risk)

source_reliability
    Weighted mean of ``RELIABILITY_SCORES`` over the qualified sources
    (0.5 when no source carries weight).
factual_basis
    facts / all claims, plus min(0.1, (facts - 3) * 0.02) when there are more
    than three facts.  No claims → 0.
inference_quality
    Mean inference confidence minus 0.1 per inference below 0.5.
    No inferences → 1.
assumption_risk
    min(1, unvalidated assumptions / max(1, facts)).  No assumptions → 0.

All components are clamped to [0, 1]; the confidence and the breakdown are
rounded to 2 decimals.
"""

from __future__ import annotations

from dataclasses import dataclass

from techscout.models.claims import ClaimSet
from techscout.models.feed_item import FeedItem
from techscout.models.recommendation import ConfidenceBreakdown, Qualification
from techscout.taxonomy.evidence_taxonomy import RELIABILITY_SCORES, Reliability

FACT_BONUS_THRESHOLD   = 3
FACT_BONUS_STEP        = 0.02
FACT_BONUS_CAP         = 0.1
LOW_INFERENCE          = 0.5
LOW_INFERENCE_PENALTY  = 0.1
DEFAULT_RELIABILITY    = 0.5
ITEM_SOURCE_WEIGHT     = 0.3


@dataclass(frozen=True)
class QualifiedSource:
    """A source behind a recommendation with its relative weight."""

    name:        str
    reliability: Reliability
    weight:      float


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def item_sources(item: FeedItem) -> list[QualifiedSource]:
    """The feed item's own source, the only source every recommendation has."""
    return [
        QualifiedSource(
            name=item.source_name,
            reliability=item.source_reliability,
            weight=ITEM_SOURCE_WEIGHT,
        )
    ]


def source_reliability(sources: list[QualifiedSource]) -> float:
    total = sum(s.weight for s in sources)
    if total <= 0:
        return DEFAULT_RELIABILITY
    return sum(s.weight * RELIABILITY_SCORES[s.reliability] for s in sources) / total


def factual_basis(claims: ClaimSet) -> float:
    total = len(claims.all_claims())
    if total == 0:
        return 0.0
    facts = len(claims.facts)
    score = facts / total
    if facts > FACT_BONUS_THRESHOLD:
        score += min(FACT_BONUS_CAP, (facts - FACT_BONUS_THRESHOLD) * FACT_BONUS_STEP)
    return _clamp(score)


def inference_quality(claims: ClaimSet) -> float:
    if not claims.inferences:
        return 1.0
    mean = sum(i.confidence for i in claims.inferences) / len(claims.inferences)
    low = sum(1 for i in claims.inferences if i.confidence < LOW_INFERENCE)
    return _clamp(mean - low * LOW_INFERENCE_PENALTY)


def assumption_risk(claims: ClaimSet) -> float:
    if not claims.assumptions:
        return 0.0
    unvalidated = sum(1 for a in claims.assumptions if a.validated is not True)
    return _clamp(unvalidated / max(1, len(claims.facts)))


def calculate_confidence(
    sources: list[QualifiedSource],
    claims: ClaimSet,
) -> tuple[float, ConfidenceBreakdown]:
    """Return ``(confidence, breakdown)`` for a set of sources and claims."""
    reliability = _clamp(source_reliability(sources))
    basis = factual_basis(claims)
    quality = inference_quality(claims)
    risk = assumption_risk(claims)

    confidence = round(reliability * basis * quality * (1 - risk), 2)
    breakdown = ConfidenceBreakdown(
        source_reliability=round(reliability, 2),
        factual_basis=round(basis, 2),
        inference_quality=round(quality, 2),
        assumption_risk=round(risk, 2),
    )
    return confidence, breakdown


def qualification_statement(
    sources: list[QualifiedSource],
    confidence: float,
    breakdown: ConfidenceBreakdown,
) -> str:
    """One-paragraph plain statement of the confidence and its weakest part."""
    reliable = sum(
        1 for s in sources
        if s.reliability in (Reliability.HIGH, Reliability.VERY_HIGH)
    )
    parts = [
        f"Based on {len(sources)} independent source(s), {reliable} of them highly reliable.",
        f"Overall confidence {confidence:.2f}.",
    ]
    if breakdown.assumption_risk > 0.3:
        parts.append("Main uncertainty: unverified assumptions.")
    elif breakdown.inference_quality < 0.7:
        parts.append("Main uncertainty: quality of inferences.")
    elif breakdown.factual_basis < 0.5:
        parts.append("Main uncertainty: limited factual basis.")
    return " ".join(parts)


def qualify(sources: list[QualifiedSource], claims: ClaimSet) -> Qualification:
    """Build the full ``Qualification`` for a recommendation."""
    confidence, breakdown = calculate_confidence(sources, claims)
    return Qualification(
        confidence=confidence,
        breakdown=breakdown,
        statement=qualification_statement(sources, confidence, breakdown),
    )
