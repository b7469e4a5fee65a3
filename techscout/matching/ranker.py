"""
Stage 5 — ranker: assemble recommendations, deduplicate, order, cap.

Priority (``calculate_priority``)
---------------------------------
    DEFER    → info
    MONITOR  → low
    RECOMMEND:
      security critical, or security high with relevant findings → critical
      security / compliance / deprecation high                   → high
      maintenance / performance high, or pain-point match        → medium
      confidence < 0.5                                           → low
      otherwise                                                  → medium

Internal ranking score (``ranking_score``)
------------------------------------------
    PRIORITY_WEIGHTS[priority] * ACTION_WEIGHTS[action] * (0.5 + confidence * 0.5)
    * 1.2 on pain-point match
    * 1.1 when security exposure is not none

Used only to pick the winner among duplicates; dropped before returning.

Final order (``rank``)
----------------------
    verdict (RECOMMEND > MONITOR > DEFER), then priority, then confidence.
    Python's sort is stable, so full ties keep input order.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime

from techscout.enrichment.base import EnrichmentResult
from techscout.matching.confidence import item_sources, qualify
from techscout.models.claims import generate_trace_id
from techscout.models.feed_item import FeedItem
from techscout.models.matching import PreFilterMatch
from techscout.models.project import ProjectProfile
from techscout.models.recommendation import (
    Recommendation,
    StabilityAssessment,
    TechnicalOutput,
)
from techscout.taxonomy.maturity_taxonomy import (
    DEVELOPER_ROLES,
    Priority,
    RecommendationAction,
    StabilityVerdict,
    TeamRole,
)
from techscout.taxonomy.risk_taxonomy import RiskLevel

logger = logging.getLogger(__name__)

PRIORITY_WEIGHTS: dict[Priority, int] = {
    Priority.CRITICAL: 5,
    Priority.HIGH:     4,
    Priority.MEDIUM:   3,
    Priority.LOW:      2,
    Priority.INFO:     1,
}

ACTION_WEIGHTS: dict[RecommendationAction, float] = {
    RecommendationAction.REPLACE_EXISTING: 1.2,
    RecommendationAction.NEW_CAPABILITY:   1.1,
    RecommendationAction.COMPLEMENT:       1.0,
    RecommendationAction.MONITOR:          0.8,
}

VERDICT_WEIGHTS: dict[StabilityVerdict, int] = {
    StabilityVerdict.RECOMMEND: 3,
    StabilityVerdict.MONITOR:   2,
    StabilityVerdict.DEFER:     1,
}

PAIN_POINT_BOOST = 1.2
SECURITY_BOOST   = 1.1

_BACKEND   = (TeamRole.DEVELOPER_BACKEND, TeamRole.DEVELOPER_FULLSTACK)
_FRONTEND  = (TeamRole.DEVELOPER_FRONTEND, TeamRole.DEVELOPER_FULLSTACK)
_ALL_DEVS  = (
    TeamRole.DEVELOPER_FRONTEND,
    TeamRole.DEVELOPER_BACKEND,
    TeamRole.DEVELOPER_FULLSTACK,
)

CATEGORY_ROLE_MAP: dict[str, tuple[TeamRole, ...]] = {
    "auth":        _BACKEND,
    "backend":     _BACKEND,
    "database":    _BACKEND,
    "api":         _BACKEND,
    "ai":          _BACKEND,
    "infra":       (*_BACKEND, TeamRole.OTHER),
    "security":    (*_BACKEND, TeamRole.OTHER),
    "devops":      (TeamRole.DEVELOPER_FULLSTACK, TeamRole.OTHER),
    "frontend":    _FRONTEND,
    "ui":          (*_FRONTEND, TeamRole.OTHER),
    "styling":     (*_FRONTEND, TeamRole.OTHER),
    "ux":          (*_FRONTEND, TeamRole.OTHER),
    "testing":     (*_ALL_DEVS, TeamRole.OTHER),
    "tooling":     _ALL_DEVS,
    "performance": _ALL_DEVS,
}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


@dataclass
class RankerInput:
    """One fully assessed item, ready to become a recommendation.

    Attributes:
        item:       Source feed item.
        profile:    Project profile.
        match:      Stage-1 verdict.
        enrichment: Validated enrichment result.
        stability:  Stage-4 assessment.
        action:     Action after maturity downgrades.
    """

    item:       FeedItem
    profile:    ProjectProfile
    match:      PreFilterMatch
    enrichment: EnrichmentResult
    stability:  StabilityAssessment
    action:     RecommendationAction


@dataclass
class RankedRecommendation:
    """A recommendation paired with its internal ranking score."""

    recommendation: Recommendation
    ranking_score:  float


# ── Scoring ───────────────────────────────────────────────────────────────────

def calculate_priority(
    stability: StabilityAssessment,
    confidence: float,
    has_findings: bool,
) -> Priority:
    """Map a stability assessment and confidence to a priority."""
    if stability.verdict == StabilityVerdict.DEFER:
        return Priority.INFO
    if stability.verdict == StabilityVerdict.MONITOR:
        return Priority.LOW

    nc = stability.cost_of_no_change
    if nc.security_exposure == RiskLevel.CRITICAL or (
        nc.security_exposure == RiskLevel.HIGH and has_findings
    ):
        return Priority.CRITICAL
    if RiskLevel.HIGH in (nc.security_exposure, nc.compliance_risk, nc.deprecation_risk):
        return Priority.HIGH
    if (
        RiskLevel.HIGH in (nc.maintenance_risk, nc.performance_impact)
        or stability.stack_health_influence.pain_point_match
    ):
        return Priority.MEDIUM
    if confidence < 0.5:
        return Priority.LOW
    return Priority.MEDIUM


def ranking_score(
    priority: Priority,
    confidence: float,
    action: RecommendationAction,
    stability: StabilityAssessment,
) -> float:
    score = PRIORITY_WEIGHTS[priority] * ACTION_WEIGHTS[action]
    score *= 0.5 + confidence * 0.5
    if stability.stack_health_influence.pain_point_match:
        score *= PAIN_POINT_BOOST
    if stability.cost_of_no_change.security_exposure != RiskLevel.NONE:
        score *= SECURITY_BOOST
    return score


def role_visibility(categories: list[str]) -> list[TeamRole]:
    """Roles that should see a recommendation about ``categories``.

    PM and stakeholder always; developer roles from ``CATEGORY_ROLE_MAP``;
    full-stack developers when no developer role was mapped.
    """
    roles: list[TeamRole] = [TeamRole.PM, TeamRole.STAKEHOLDER]
    for category in categories:
        for role in CATEGORY_ROLE_MAP.get(category.lower(), ()):
            if role not in roles:
                roles.append(role)
    if not any(r in DEVELOPER_ROLES for r in roles):
        roles.append(TeamRole.DEVELOPER_FULLSTACK)
    return roles


def _has_relevant_findings(profile: ProjectProfile, technologies: list[str]) -> bool:
    techs = [t.lower() for t in technologies]
    return any(
        t in f.searchable_text for f in profile.findings for t in techs
    )


# ── Assembly ──────────────────────────────────────────────────────────────────

def build_recommendation(data: RankerInput, as_of: datetime) -> RankedRecommendation:
    """Assemble one ``Recommendation`` and its ranking score.

    Args:
        data:  Assessed item.
        as_of: Run timestamp; becomes ``generated_at`` and anchors the trace id.
    """
    enrichment = data.enrichment
    qualification = qualify(item_sources(data.item), enrichment.analysis)
    confidence = qualification.confidence

    priority = calculate_priority(
        data.stability,
        confidence,
        _has_relevant_findings(data.profile, data.match.technologies_matched),
    )

    replaces = complements = enables = None
    if data.action == RecommendationAction.REPLACE_EXISTING:
        dep_names = [d.name.lower() for d in data.profile.stack.key_dependencies]
        replaced = [
            t for t in data.match.technologies_matched
            if any(t.lower() in name for name in dep_names)
        ]
        replaces = ", ".join(replaced) or None
    elif data.action == RecommendationAction.COMPLEMENT:
        complements = ", ".join(data.match.technologies_matched) or None
    elif data.action == RecommendationAction.NEW_CAPABILITY:
        enables = enrichment.subject.name

    recommendation = Recommendation(
        id=str(uuid.uuid4()),
        trace_id=generate_trace_id(as_of, "REC"),
        project_id=data.profile.id,
        feed_item_id=data.item.id,
        generated_at=as_of,
        model_used=enrichment.model_used,
        action=data.action,
        priority=priority,
        confidence=confidence,
        subject=enrichment.subject,
        replaces=replaces,
        complements=complements,
        enables=enables,
        role_visibility=role_visibility(data.item.categories),
        stability=data.stability,
        technical=TechnicalOutput(
            analysis=enrichment.analysis,
            effort=data.stability.calibrated_effort,
            impact=enrichment.impact,
            tradeoffs=enrichment.tradeoffs,
            failure_modes=enrichment.failure_modes,
            limitations=enrichment.limitations,
        ),
        human_friendly=enrichment.human_friendly,
        qualification=qualification,
    )
    return RankedRecommendation(
        recommendation=recommendation,
        ranking_score=ranking_score(priority, confidence, data.action, data.stability),
    )


# ── Ranking ───────────────────────────────────────────────────────────────────

def normalize_subject_name(name: str) -> str:
    """Lower-case and keep only alphanumerics (``Next.js`` → ``nextjs``)."""
    return _NON_ALNUM_RE.sub("", name.lower())


def deduplicate_by_subject(
    candidates: list[RankedRecommendation],
) -> list[RankedRecommendation]:
    """Keep one candidate per normalized subject name.

    The higher ranking score wins; on a tie the first seen is kept.  The
    result keeps the order in which subjects were first seen.
    """
    best: dict[str, RankedRecommendation] = {}
    for candidate in candidates:
        key = normalize_subject_name(candidate.recommendation.subject.name)
        existing = best.get(key)
        if existing is None or candidate.ranking_score > existing.ranking_score:
            best[key] = candidate
    if len(best) < len(candidates):
        logger.debug("Deduplicated by subject | before=%d | after=%d", len(candidates), len(best))
    return list(best.values())


def _sort_key(rec: Recommendation) -> tuple[int, int, float]:
    return (
        -VERDICT_WEIGHTS[rec.verdict],
        -PRIORITY_WEIGHTS[rec.priority],
        -rec.confidence,
    )


def rank(
    candidates: list[RankedRecommendation],
    max_recommendations: int,
) -> list[Recommendation]:
    """Deduplicate, order and cap.  Ranking scores are dropped.

    Args:
        candidates:          Assembled candidates in processing order.
        max_recommendations: Hard cap on the returned list.

    Returns:
        At most ``max_recommendations`` recommendations, best first.
    """
    deduped = deduplicate_by_subject(candidates)
    ordered = sorted((c.recommendation for c in deduped), key=_sort_key)
    capped = ordered[:max(0, max_recommendations)]
    logger.debug(
        "Ranked | candidates=%d | unique=%d | returned=%d | cap=%d",
        len(candidates), len(deduped), len(capped), max_recommendations,
    )
    return capped


def filter_by_role(recommendations: list[Recommendation], role: TeamRole) -> list[Recommendation]:
    return [r for r in recommendations if role in r.role_visibility]


def summarize(recommendations: list[Recommendation]) -> dict[str, object]:
    """Counts by priority, action and verdict plus the top five subjects."""
    return {
        "total": len(recommendations),
        "by_priority": {p.value: 0 for p in Priority}
        | dict(Counter(r.priority.value for r in recommendations)),
        "by_action": {a.value: 0 for a in RecommendationAction}
        | dict(Counter(r.action.value for r in recommendations)),
        "by_verdict": {v.value: 0 for v in StabilityVerdict}
        | dict(Counter(r.verdict.value for r in recommendations)),
        "top": [
            {"subject": r.subject.name, "priority": r.priority.value, "verdict": r.verdict.value}
            for r in recommendations[:5]
        ],
    }
