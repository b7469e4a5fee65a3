"""
Per-item stage verdicts produced by the matching core.

``PreFilterMatch``     — stage 1: relevance score, reasons, pass/fail.
``MaturityGateResult`` — stage 2: effective maturity and pass/fail for the
                         proposed action.

Both are frozen and created exactly once per item; the chain
PreFilterMatch → MaturityGateResult → StabilityAssessment is 1:1.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from techscout.taxonomy.maturity_taxonomy import Maturity, RecommendationAction


class PreFilterMatch(BaseModel):
    """Stage-1 verdict for one feed item.

    Attributes:
        feed_item_id: Id of the scored item.
        score: Composite relevance score in [0, 1].
        reasons: Human-readable reasons, e.g. ``"Tech match: react"``.
        technologies_matched: Item technology tags found in the project stack.
        categories_matched: Item categories found in the project focus areas.
        raw_traction: Un-normalized traction score.
        matched_pain_point: First declared pain point the item addresses.
        passed: Whether the item survives the prefilter.
    """

    model_config = ConfigDict(frozen=True)

    feed_item_id: str
    score: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = []
    technologies_matched: list[str] = []
    categories_matched: list[str] = []
    raw_traction: float = 0.0
    matched_pain_point: Optional[str] = None
    passed: bool


class MaturityGateResult(BaseModel):
    """Stage-2 verdict for one feed item.

    Attributes:
        maturity: Effective maturity after deprecation overrides.
        min_maturity_for_action: Minimum maturity the action requires.
        action: Action the gate was evaluated against.
        passed: Whether ``maturity`` satisfies the requirement.
        warnings: Human-readable warnings.
        deprecation_signals: Detected deprecation signals (subset of warnings).
    """

    model_config = ConfigDict(frozen=True)

    maturity: Maturity
    min_maturity_for_action: Maturity
    action: RecommendationAction
    passed: bool
    warnings: list[str] = []
    deprecation_signals: list[str] = []
