"""
Risk and effort taxonomy used by the stability gate.

  - ``RiskLevel``       — ordinal risk for every cost-of-change / no-change dimension.
  - ``Reversibility``   — how hard it is to back a change out.
  - ``LearningCurve``   — team ramp-up cost.
  - ``Complexity``      — migration complexity reported by enrichment.
  - ``FindingSeverity`` — severity of an unresolved code-analysis finding.
  - ``CalibrationBias`` — historical estimation bias of the team.

``RISK_ORDER`` is used to "raise to at least" a level without ever lowering it.

This module has NO imports from any other ``techscout`` package.
"""

from enum import StrEnum


class RiskLevel(StrEnum):
    """Ordinal risk level."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


RISK_ORDER: tuple[RiskLevel, ...] = (
    RiskLevel.NONE,
    RiskLevel.LOW,
    RiskLevel.MEDIUM,
    RiskLevel.HIGH,
    RiskLevel.CRITICAL,
)


def max_risk(current: RiskLevel, candidate: RiskLevel) -> RiskLevel:
    """Return whichever of the two levels is higher."""
    if RISK_ORDER.index(candidate) > RISK_ORDER.index(current):
        return candidate
    return current


class Reversibility(StrEnum):
    """How easily an adopted change can be rolled back."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    IRREVERSIBLE = "irreversible"


class LearningCurve(StrEnum):
    """Team ramp-up cost for a technology."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Complexity(StrEnum):
    """Migration complexity tier."""

    TRIVIAL = "trivial"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class FindingSeverity(StrEnum):
    """Severity of an unresolved code-analysis finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# Finding severity → the risk level it implies.
SEVERITY_RISK: dict[FindingSeverity, RiskLevel] = {
    FindingSeverity.CRITICAL: RiskLevel.CRITICAL,
    FindingSeverity.HIGH:     RiskLevel.HIGH,
    FindingSeverity.MEDIUM:   RiskLevel.MEDIUM,
    FindingSeverity.LOW:      RiskLevel.LOW,
    FindingSeverity.INFO:     RiskLevel.NONE,
}


class CalibrationBias(StrEnum):
    """Direction of the team's historical effort-estimation error."""

    UNDERESTIMATE = "underestimate"
    OVERESTIMATE = "overestimate"
    BALANCED = "balanced"
