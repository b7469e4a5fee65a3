"""
Stage 1 — prefilter: cheap, deterministic relevance scoring of feed items.

No network calls, no I/O, never raises.  Items with missing optional fields
simply score low.

Score formula (weighted sum, range 0–1)
---------------------------------------
    score = (
        tech_overlap        * 0.4   # item tech tags found in the project stack
        + category_relevance * 0.3   # item categories in the focus areas
        + traction_norm      * 0.2   # min(1, raw_traction / 500)
        + pain_point_boost   * 0.1   # 0.3 * min(1, matched_pain_points / 2)
    ) + pain_point_bonus            # config.pain_point_boost when any pain point matched
    score = min(1, score)

Raw traction
------------
    hn_points * 0.5 + min(github_stars, 10000) * 0.01 + ph_upvotes * 0.3
    + log10(npm_weekly_downloads + 1) * 10 + points * 0.2

Hard rejects (score 0, checked before scoring)
----------------------------------------------
1. Any item category in ``scouting.exclude_categories`` → "Excluded category".
2. Item declares ecosystems, project has dependency ecosystems, and none are
   shared → "Irrelevant ecosystem".

Pass rule
---------
    score >= max(min_tech_overlap, min_category_relevance)
    AND raw_traction >= min_traction

Thresholds come from ``config_from_profile()`` and get stricter as stack
health rises: a healthy stack needs a stronger reason to change.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from techscout.matching.keywords import matching_pain_points, tech_name_matches
from techscout.models.feed_item import FeedItem
from techscout.models.matching import PreFilterMatch
from techscout.models.project import ProjectProfile

logger = logging.getLogger(__name__)

W_TECH_OVERLAP       = 0.4
W_CATEGORY_RELEVANCE = 0.3
W_TRACTION           = 0.2
W_PAIN_POINT         = 0.1

TRACTION_NORMALIZER  = 500.0
STAR_CAP             = 10_000
NO_FOCUS_RELEVANCE   = 0.5
OUTPUT_MULTIPLIER    = 6


@dataclass(frozen=True)
class PreFilterConfig:
    """Prefilter thresholds.

    Attributes:
        min_tech_overlap:       Score floor driven by tech overlap strictness.
        min_category_relevance: Score floor driven by category strictness.
        min_traction:           Raw traction floor.
        pain_point_boost:       Additive bonus when a pain point matched.
        max_output_items:       Cap on returned passing matches.
    """

    min_tech_overlap:       float = 0.10
    min_category_relevance: float = 0.10
    min_traction:           float = 20.0
    pain_point_boost:       float = 0.3
    max_output_items:       int   = 30

    @property
    def min_score(self) -> float:
        return max(self.min_tech_overlap, self.min_category_relevance)


@dataclass
class _Overlap:
    score:   float
    matches: list[str]


def config_from_profile(profile: ProjectProfile) -> PreFilterConfig:
    """Derive prefilter thresholds from the profile's health and scouting config.

    Stack health > 0.8 → strict   (overlap 0.15, category 0.15, traction 50)
    Stack health > 0.5 → moderate (overlap 0.10, category 0.10, traction 20)
    otherwise          → lenient  (overlap 0.05, category 0.10, traction 10)
    """
    health = profile.health_score
    if health > 0.8:
        min_overlap, min_category, min_traction = 0.15, 0.15, 50.0
    elif health > 0.5:
        min_overlap, min_category, min_traction = 0.10, 0.10, 20.0
    else:
        min_overlap, min_category, min_traction = 0.05, 0.10, 10.0

    return PreFilterConfig(
        min_tech_overlap=min_overlap,
        min_category_relevance=min_category,
        min_traction=min_traction,
        pain_point_boost=0.3 if profile.manifest.pain_points else 0.0,
        max_output_items=profile.scouting.max_recommendations * OUTPUT_MULTIPLIER,
    )


# ── Sub-scores ────────────────────────────────────────────────────────────────

def tech_overlap(item: FeedItem, profile: ProjectProfile) -> _Overlap:
    """Fraction of item technology tags present in the project stack."""
    if not item.technologies:
        return _Overlap(score=0.0, matches=[])
    stack_names = profile.stack.technology_names()
    matches = [t for t in item.technologies if tech_name_matches(t, stack_names)]
    return _Overlap(score=len(matches) / len(item.technologies), matches=matches)


def category_relevance(item: FeedItem, profile: ProjectProfile) -> tuple[_Overlap, bool]:
    """Fraction of item categories in the focus areas, plus the exclusion flag."""
    excluded = {c.lower() for c in profile.scouting.exclude_categories}
    if any(c.lower() in excluded for c in item.categories):
        return _Overlap(score=0.0, matches=[]), True

    focus = {f.lower() for f in profile.scouting.focus_areas}
    if not focus:
        return _Overlap(score=NO_FOCUS_RELEVANCE, matches=[]), False
    if not item.categories:
        return _Overlap(score=0.0, matches=[]), False

    matches = [c for c in item.categories if c.lower() in focus]
    return _Overlap(score=len(matches) / len(item.categories), matches=matches), False


def raw_traction(item: FeedItem) -> float:
    """Un-normalized traction score (see module docstring)."""
    t = item.traction
    score = 0.0
    score += (t.hn_points or 0) * 0.5
    score += min(t.github_stars or 0, STAR_CAP) * 0.01
    score += (t.ph_upvotes or 0) * 0.3
    score += math.log10((t.npm_weekly_downloads or 0) + 1) * 10
    score += (t.points or 0) * 0.2
    return score


def is_relevant_ecosystem(item: FeedItem, profile: ProjectProfile) -> bool:
    if not item.language_ecosystems:
        return True
    project_ecosystems = {e.lower() for e in profile.stack.all_dependencies}
    if not project_ecosystems:
        return True
    return any(e.lower() in project_ecosystems for e in item.language_ecosystems)


# ── Public API ────────────────────────────────────────────────────────────────

def prefilter_item(
    item: FeedItem,
    profile: ProjectProfile,
    config: Optional[PreFilterConfig] = None,
) -> PreFilterMatch:
    """Score one item against a profile.

    Args:
        item:    Feed item to score.
        profile: Project profile.
        config:  Thresholds; derived from the profile when ``None``.

    Returns:
        A ``PreFilterMatch``; ``passed`` tells whether the item survives.
    """
    config = config or config_from_profile(profile)

    categories, excluded = category_relevance(item, profile)
    if excluded:
        return _rejected(item, "Excluded category")
    if not is_relevant_ecosystem(item, profile):
        return _rejected(item, "Irrelevant ecosystem")

    tech = tech_overlap(item, profile)
    traction = raw_traction(item)
    pain_points = matching_pain_points(profile.manifest.pain_points, item.searchable_text)
    pain_boost = 0.3 * min(1.0, len(pain_points) / 2)

    reasons: list[str] = []
    score = tech.score * W_TECH_OVERLAP
    if tech.matches:
        reasons.append(f"Tech match: {', '.join(tech.matches)}")

    score += categories.score * W_CATEGORY_RELEVANCE
    if categories.matches:
        reasons.append(f"Focus area: {', '.join(categories.matches)}")

    score += min(1.0, traction / TRACTION_NORMALIZER) * W_TRACTION
    if traction >= config.min_traction:
        reasons.append(f"Traction: {round(traction)}")

    score += pain_boost * W_PAIN_POINT
    if pain_points:
        reasons.append("Pain point match")
        score += config.pain_point_boost

    score = min(1.0, score)
    passed = score >= config.min_score and traction >= config.min_traction

    return PreFilterMatch(
        feed_item_id=item.id,
        score=round(score, 2),
        reasons=reasons,
        technologies_matched=tech.matches,
        categories_matched=categories.matches,
        raw_traction=round(traction, 2),
        matched_pain_point=pain_points[0] if pain_points else None,
        passed=passed,
    )


def prefilter_batch(
    items: list[FeedItem],
    profile: ProjectProfile,
    config: Optional[PreFilterConfig] = None,
) -> list[PreFilterMatch]:
    """Score every item; returns one match per item in input order."""
    config = config or config_from_profile(profile)
    return [prefilter_item(item, profile, config) for item in items]


def filter_items(
    items: list[FeedItem],
    profile: ProjectProfile,
    config: Optional[PreFilterConfig] = None,
) -> list[PreFilterMatch]:
    """Return passing matches sorted by score descending, capped.

    The sort is stable: equal scores keep input order.

    Args:
        items:   Feed items to score.
        profile: Project profile.
        config:  Thresholds; derived from the profile when ``None``.

    Returns:
        At most ``config.max_output_items`` passing matches.
    """
    config = config or config_from_profile(profile)
    matches = prefilter_batch(items, profile, config)
    passed = sorted((m for m in matches if m.passed), key=lambda m: -m.score)
    logger.debug(
        "Prefilter | evaluated=%d | passed=%d | cap=%d",
        len(matches), len(passed), config.max_output_items,
    )
    return passed[: config.max_output_items]


def _rejected(item: FeedItem, reason: str) -> PreFilterMatch:
    return PreFilterMatch(
        feed_item_id=item.id,
        score=0.0,
        reasons=[reason],
        technologies_matched=[],
        categories_matched=[],
        raw_traction=0.0,
        passed=False,
    )
