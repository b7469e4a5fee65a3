"""
Offline enrichment — deterministic analysis from item metadata only.

Used when no API credentials are configured, and for reproducible runs.
The same request always yields the same result: every claim is derived from
the feed item's own traction numbers, the match context, and the proposed
action.

Effort presets by action
------------------------
    REPLACE_EXISTING → "3-5" days, medium complexity, medium reversibility
    NEW_CAPABILITY   → "2-3" days, low complexity,    medium reversibility
    COMPLEMENT       → "1-2" days, low complexity,    easy reversibility
    MONITOR          → "0.5" days, trivial,           easy reversibility
"""

from __future__ import annotations

import logging
from typing import ClassVar

from techscout.enrichment.base import EnrichmentRequest, EnrichmentResult
from techscout.models.claims import Assumption, ClaimSet, Fact, Inference
from techscout.models.effort import CalibratedEffort
from techscout.models.recommendation import (
    HumanFriendlyOutput,
    HumanImpactSummary,
    ImpactScore,
    RecommendationSubject,
    RiskImpact,
    TechnicalImpact,
    Tradeoffs,
)
from techscout.taxonomy.maturity_taxonomy import Maturity, RecommendationAction
from techscout.taxonomy.risk_taxonomy import Complexity, Reversibility, RiskLevel

logger = logging.getLogger(__name__)

_EFFORT_PRESETS: dict[RecommendationAction, tuple[str, Complexity, Reversibility]] = {
    RecommendationAction.REPLACE_EXISTING: ("3-5", Complexity.MEDIUM, Reversibility.MEDIUM),
    RecommendationAction.NEW_CAPABILITY:   ("2-3", Complexity.LOW, Reversibility.MEDIUM),
    RecommendationAction.COMPLEMENT:       ("1-2", Complexity.LOW, Reversibility.EASY),
    RecommendationAction.MONITOR:          ("0.5", Complexity.TRIVIAL, Reversibility.EASY),
}

_STEPS: dict[RecommendationAction, list[str]] = {
    RecommendationAction.REPLACE_EXISTING: [
        "Prototype the replacement on one module",
        "Migrate remaining call sites",
        "Update unit and e2e tests",
        "Remove the replaced dependency",
    ],
    RecommendationAction.NEW_CAPABILITY: [
        "Add the dependency",
        "Integrate behind a feature flag",
        "Add tests for the new capability",
    ],
    RecommendationAction.COMPLEMENT: [
        "Add the dependency",
        "Wire it alongside the existing setup",
    ],
    RecommendationAction.MONITOR: [
        "Track releases and adoption",
    ],
}


class OfflineEnrichmentClient:
    """Deterministic, network-free enrichment client."""

    MODEL_NAME: ClassVar[str] = "offline-metadata"

    def __init__(self) -> None:
        self.model_name = self.MODEL_NAME

    def analyze(self, request: EnrichmentRequest) -> EnrichmentResult:
        item = request.item
        action = request.proposed_action
        subject_name = item.technologies[0] if item.technologies else item.title

        facts = self._traction_facts(request)
        fact_claims = [f.claim for f in facts]
        inferences: list[Inference] = []
        if fact_claims:
            inferences.append(
                Inference(
                    claim=f"{subject_name} has visible community adoption.",
                    derived_from=fact_claims,
                    confidence=0.6 if request.maturity.maturity == Maturity.EXPERIMENTAL else 0.7,
                )
            )
        if request.match.technologies_matched:
            inferences.append(
                Inference(
                    claim=(
                        f"{subject_name} fits the existing stack "
                        f"({', '.join(request.match.technologies_matched)})."
                    ),
                    derived_from=request.match.reasons or fact_claims or [item.title],
                    confidence=round(min(1.0, 0.4 + request.match.score * 0.5), 2),
                )
            )
        assumptions = [
            Assumption(claim="The team can absorb the learning curve within the estimate."),
        ]

        raw_days, complexity, reversibility = _EFFORT_PRESETS[action]
        effort = CalibratedEffort.from_raw(
            raw_days,
            complexity=complexity,
            breaking_changes=action == RecommendationAction.REPLACE_EXISTING,
            reversibility=reversibility,
            steps=list(_STEPS[action]),
        )

        why_now = (
            "It addresses a pain point the team has declared."
            if "Pain point match" in request.match.reasons
            else "It is gaining traction in the community."
        )

        logger.debug("Offline enrichment | item=%s | action=%s", request.feed_item_id, action)

        return EnrichmentResult(
            subject=RecommendationSubject(
                name=subject_name,
                url=item.url,
                maturity=request.maturity.maturity,
                traction=item.traction,
            ),
            analysis=ClaimSet(facts=facts, inferences=inferences, assumptions=assumptions),
            effort=effort,
            impact=TechnicalImpact(
                security=ImpactScore(score_change="0", detail="Not assessed offline."),
                performance=ImpactScore(score_change="0", detail="Not assessed offline."),
                maintainability=ImpactScore(score_change="0", detail="Not assessed offline."),
                cost=ImpactScore(score_change="0", detail=f"About {raw_days} days of work."),
                risk=RiskImpact(
                    level=RiskLevel.MEDIUM if effort.breaking_changes else RiskLevel.LOW,
                    detail="Derived from the proposed action.",
                ),
            ),
            tradeoffs=Tradeoffs(
                gains=[f"Relevant to: {', '.join(item.categories)}"] if item.categories else [],
                losses=["Migration and learning time"],
            ),
            limitations=["Analysis derived from feed metadata only; no expert review."],
            human_friendly=HumanFriendlyOutput(
                title=f"Consider {subject_name}",
                one_liner=item.description or item.title,
                summary=item.content_summary or item.description or item.title,
                why_now=why_now,
                impact_summary=HumanImpactSummary(
                    security="No change expected.",
                    cost=f"About {raw_days} days of engineering time.",
                    risk="Low" if not effort.breaking_changes else "Medium",
                    urgency="Low",
                ),
            ),
            model_used=self.model_name,
        )

    def _traction_facts(self, request: EnrichmentRequest) -> list[Fact]:
        item = request.item
        t = item.traction
        facts: list[Fact] = []

        def add(claim: str) -> None:
            facts.append(
                Fact(
                    claim=claim,
                    source=item.source_name,
                    source_reliability=item.source_reliability,
                    source_url=item.url,
                )
            )

        if t.github_stars is not None:
            add(f"The repository has {t.github_stars} GitHub stars.")
        if t.npm_weekly_downloads is not None:
            add(f"The package has {t.npm_weekly_downloads} weekly npm downloads.")
        if t.hn_points is not None:
            add(f"The Hacker News post scored {t.hn_points} points.")
        if t.github_contributors is not None:
            add(f"The project has {t.github_contributors} contributors.")
        return facts
