"""
Evidence taxonomy: how a claim is tagged and how far its source can be trusted.

  - ``ClaimTag``    — epistemic status of a statement (FACT / INFERENCE / ASSUMPTION).
  - ``Reliability`` — reliability grade of the source behind a claim.

``RELIABILITY_SCORES`` maps reliability grades onto [0, 1] for the confidence
formula in ``techscout.matching.confidence``.

This module has NO imports from any other ``techscout`` package.
"""

from enum import StrEnum


class ClaimTag(StrEnum):
    """Epistemic status of a claim."""

    FACT = "FACT"
    """Verifiable without assumptions; always carries a named source."""

    INFERENCE = "INFERENCE"
    """Derived from facts; carries its derivation and a 0–1 confidence."""

    ASSUMPTION = "ASSUMPTION"
    """Explicit, unverified hypothesis."""


class Reliability(StrEnum):
    """Reliability grade of an information source."""

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


RELIABILITY_SCORES: dict[Reliability, float] = {
    Reliability.VERY_HIGH: 0.95,
    Reliability.HIGH:      0.80,
    Reliability.MEDIUM:    0.60,
    Reliability.LOW:       0.35,
}
