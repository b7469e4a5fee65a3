"""
Stage 2 — maturity gate: is the technology mature enough for the proposed action?

Maturity order
--------------
    experimental < growth < stable < declining < deprecated

``declining`` and ``deprecated`` are health overrides, not "more mature"
levels:

    deprecated → fails every requirement (MONITOR included).
    declining  → passes requirements below ``stable`` only.

Minimum maturity per action
---------------------------
    REPLACE_EXISTING → growth
    COMPLEMENT, NEW_CAPABILITY, MONITOR → experimental

A project's ``scouting.maturity_policy`` may raise or lower any of these.

Deprecation signals (override the supplied maturity before the check)
----------------------------------------------------------------------
    last release > 24 months ago        → declining
    last release > 36 months ago        → deprecated
    30-day star loss > 10%              → declining
    open issues / stars > 0.1           → declining

All functions are pure and never raise.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from techscout.models.feed_item import FeedTraction
from techscout.models.matching import MaturityGateResult
from techscout.taxonomy.maturity_taxonomy import (
    MATURITY_ORDER,
    Maturity,
    RecommendationAction,
)
from techscout.utils.time_utils import months_since, utcnow

logger = logging.getLogger(__name__)

MATURITY_REQUIREMENTS: dict[RecommendationAction, Maturity] = {
    RecommendationAction.REPLACE_EXISTING: Maturity.GROWTH,
    RecommendationAction.COMPLEMENT:       Maturity.EXPERIMENTAL,
    RecommendationAction.NEW_CAPABILITY:   Maturity.EXPERIMENTAL,
    RecommendationAction.MONITOR:          Maturity.EXPERIMENTAL,
}

# Downgrade chain, most committal first.
_DOWNGRADE_CHAIN: dict[RecommendationAction, RecommendationAction] = {
    RecommendationAction.REPLACE_EXISTING: RecommendationAction.COMPLEMENT,
    RecommendationAction.COMPLEMENT:       RecommendationAction.MONITOR,
    RecommendationAction.NEW_CAPABILITY:   RecommendationAction.MONITOR,
}

DECLINING_AFTER_MONTHS   = 24
DEPRECATED_AFTER_MONTHS  = 36
STAR_LOSS_PCT_THRESHOLD  = 10
ISSUE_RATIO_THRESHOLD    = 0.1

_STAR_LOSS_RE = re.compile(r"^\s*-\s*(\d+)")


@dataclass(frozen=True)
class MaturityThresholds:
    """Traction thresholds for ``infer_maturity`` (growth floor, stable floor)."""

    stars_for_growth:         int = 500
    stars_for_stable:         int = 5000
    downloads_for_growth:     int = 1000
    downloads_for_stable:     int = 50_000
    age_months_for_growth:    int = 6
    age_months_for_stable:    int = 24
    contributors_for_growth:  int = 5
    contributors_for_stable:  int = 20


DEFAULT_MATURITY_THRESHOLDS = MaturityThresholds()


@dataclass
class DeprecationSignals:
    """Outcome of ``detect_deprecation_signals``."""

    is_deprecated: bool = False
    is_declining:  bool = False
    reasons:       list[str] = field(default_factory=list)


# ── Ordering ──────────────────────────────────────────────────────────────────

def is_at_least_as_mature(actual: Maturity, required: Maturity) -> bool:
    """Return True when ``actual`` satisfies the ``required`` maturity.

    deprecated never satisfies anything; declining satisfies only
    requirements below stable; otherwise the order decides.
    """
    if actual == Maturity.DEPRECATED:
        return False
    if actual == Maturity.DECLINING:
        return MATURITY_ORDER.index(required) < MATURITY_ORDER.index(Maturity.STABLE)
    return MATURITY_ORDER.index(actual) >= MATURITY_ORDER.index(required)


def required_maturity(
    action: RecommendationAction,
    policy: Optional[Mapping[RecommendationAction, Maturity]] = None,
) -> Maturity:
    if policy and action in policy:
        return policy[action]
    return MATURITY_REQUIREMENTS[action]


# ── Inference ─────────────────────────────────────────────────────────────────

def _vote(value: Optional[float], growth_floor: float, stable_floor: float) -> Optional[Maturity]:
    if value is None:
        return None
    if value >= stable_floor:
        return Maturity.STABLE
    if value >= growth_floor:
        return Maturity.GROWTH
    return Maturity.EXPERIMENTAL


def infer_maturity(
    traction: FeedTraction,
    as_of: Optional[datetime] = None,
    thresholds: MaturityThresholds = DEFAULT_MATURITY_THRESHOLDS,
) -> Maturity:
    """Infer maturity from traction by majority vote.

    Each available signal (stars, weekly downloads, age since first release,
    contributors) votes stable / growth / experimental.  Stable wins with at
    least half the votes; growth wins when stable+growth reach half;
    otherwise experimental.  No signals → experimental.
    """
    as_of = as_of or utcnow()
    age = months_since(traction.first_release, as_of) if traction.first_release else None

    votes = [
        _vote(traction.github_stars, thresholds.stars_for_growth, thresholds.stars_for_stable),
        _vote(
            traction.npm_weekly_downloads,
            thresholds.downloads_for_growth,
            thresholds.downloads_for_stable,
        ),
        _vote(age, thresholds.age_months_for_growth, thresholds.age_months_for_stable),
        _vote(
            traction.github_contributors,
            thresholds.contributors_for_growth,
            thresholds.contributors_for_stable,
        ),
    ]
    cast = [v for v in votes if v is not None]
    if not cast:
        return Maturity.EXPERIMENTAL

    stable = sum(1 for v in cast if v == Maturity.STABLE)
    growth = sum(1 for v in cast if v == Maturity.GROWTH)
    if stable / len(cast) >= 0.5:
        return Maturity.STABLE
    if (stable + growth) / len(cast) >= 0.5:
        return Maturity.GROWTH
    return Maturity.EXPERIMENTAL


def detect_deprecation_signals(
    traction: FeedTraction,
    as_of: Optional[datetime] = None,
) -> DeprecationSignals:
    """Detect release-age, star-loss and issue-ratio deprecation signals."""
    as_of = as_of or utcnow()
    signals = DeprecationSignals()

    if traction.last_release is not None:
        age = months_since(traction.last_release, as_of)
        if age > DECLINING_AFTER_MONTHS:
            signals.reasons.append("No releases in over 2 years")
            signals.is_declining = True
        if age > DEPRECATED_AFTER_MONTHS:
            signals.reasons.append("No releases in over 3 years - likely abandoned")
            signals.is_deprecated = True

    growth = traction.github_stars_30d_growth
    if growth:
        match = _STAR_LOSS_RE.match(growth)
        if match and int(match.group(1)) > STAR_LOSS_PCT_THRESHOLD:
            signals.reasons.append(f"Losing stars: {growth.strip()}")
            signals.is_declining = True

    if traction.github_stars and traction.github_open_issues:
        if traction.github_open_issues / traction.github_stars > ISSUE_RATIO_THRESHOLD:
            signals.reasons.append(
                "High open issues ratio - may indicate maintenance problems"
            )
            signals.is_declining = True

    return signals


# ── Gate ──────────────────────────────────────────────────────────────────────

def evaluate_maturity(
    maturity: Maturity,
    action: RecommendationAction,
    traction: Optional[FeedTraction] = None,
    as_of: Optional[datetime] = None,
    policy: Optional[Mapping[RecommendationAction, Maturity]] = None,
) -> MaturityGateResult:
    """Evaluate the maturity gate for one item and action.

    Args:
        maturity: Supplied (or inferred) maturity.
        action:   Proposed action.
        traction: Traction used for deprecation detection; skipped when ``None``.
        as_of:    Reference time for release-age signals.
        policy:   Per-action requirement overrides.

    Returns:
        ``MaturityGateResult`` with the effective (possibly overridden) maturity.
    """
    min_required = required_maturity(action, policy)
    signals = (
        detect_deprecation_signals(traction, as_of)
        if traction is not None
        else DeprecationSignals()
    )

    effective = maturity
    if signals.is_deprecated:
        effective = Maturity.DEPRECATED
    elif signals.is_declining and maturity != Maturity.DEPRECATED:
        effective = Maturity.DECLINING

    passed = is_at_least_as_mature(effective, min_required)

    warnings = list(signals.reasons)
    if effective == Maturity.DECLINING:
        warnings.append("Technology shows signs of declining adoption")
    if effective == Maturity.EXPERIMENTAL and action != RecommendationAction.MONITOR:
        warnings.append("Technology is experimental - higher risk of breaking changes")
    if not passed:
        warnings.append(f"Maturity {effective} below required {min_required} for {action}")

    logger.debug(
        "Maturity gate | maturity=%s | required=%s | action=%s | passed=%s",
        effective, min_required, action, passed,
    )

    return MaturityGateResult(
        maturity=effective,
        min_maturity_for_action=min_required,
        action=action,
        passed=passed,
        warnings=warnings,
        deprecation_signals=list(signals.reasons),
    )


def recommended_action(
    maturity: Maturity,
    preferred: RecommendationAction,
    policy: Optional[Mapping[RecommendationAction, Maturity]] = None,
) -> RecommendationAction:
    """Step ``preferred`` down REPLACE_EXISTING → COMPLEMENT → MONITOR until
    the maturity bar is met.  Never upgrades; deprecated always yields MONITOR.
    """
    if maturity == Maturity.DEPRECATED:
        return RecommendationAction.MONITOR

    action = preferred
    while action != RecommendationAction.MONITOR:
        if is_at_least_as_mature(maturity, required_maturity(action, policy)):
            return action
        action = _DOWNGRADE_CHAIN[action]
    return RecommendationAction.MONITOR


def action_for_match_score(score: float) -> RecommendationAction:
    """Propose an action from the prefilter score.

    >= 0.6 REPLACE_EXISTING, >= 0.4 COMPLEMENT, >= 0.2 NEW_CAPABILITY, else MONITOR.
    """
    if score >= 0.6:
        return RecommendationAction.REPLACE_EXISTING
    if score >= 0.4:
        return RecommendationAction.COMPLEMENT
    if score >= 0.2:
        return RecommendationAction.NEW_CAPABILITY
    return RecommendationAction.MONITOR
