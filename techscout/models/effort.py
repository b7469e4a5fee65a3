"""
Effort estimate models.

Enrichment reports effort as a free-form day string (``"2-3"``, ``"5 days"``,
``"1.5"``).  ``EffortRange.parse()`` converts it once, at the enrichment
boundary, into a numeric ``(min_days, max_days)`` interval; everything
downstream works on the interval.

Parsing rules
-------------
- ``"A-B"`` anywhere in the string → ``(A, B)``.
- A leading number ``"A..."``         → ``(A, A)``.
- Anything else                      → ``(5, 5)`` (default estimate).

``CalibratedEffort`` couples the parsed estimate with the calibrated one and
the migration attributes the stability gate needs.
"""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from techscout.taxonomy.risk_taxonomy import (
    Complexity,
    LearningCurve,
    Reversibility,
    RiskLevel,
)

DEFAULT_EFFORT_DAYS = 5.0

_RANGE_RE  = re.compile(r"(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)")
_SINGLE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")


class EffortRange(BaseModel):
    """Closed interval of estimated effort in days."""

    model_config = ConfigDict(frozen=True)

    min_days: float = Field(ge=0.0)
    max_days: float = Field(ge=0.0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "EffortRange":
        if self.min_days > self.max_days:
            raise ValueError(
                f"min_days ({self.min_days}) must be <= max_days ({self.max_days})."
            )
        return self

    @classmethod
    def parse(cls, text: Optional[str]) -> "EffortRange":
        """Parse a free-form day string into an interval (see module docstring)."""
        if text:
            match = _RANGE_RE.search(text)
            if match:
                low, high = float(match.group(1)), float(match.group(2))
                return cls(min_days=min(low, high), max_days=max(low, high))
            match = _SINGLE_RE.match(text)
            if match:
                value = float(match.group(1))
                return cls(min_days=value, max_days=value)
        return cls(min_days=DEFAULT_EFFORT_DAYS, max_days=DEFAULT_EFFORT_DAYS)

    @property
    def is_single(self) -> bool:
        return self.min_days == self.max_days

    def scaled(self, factor: float) -> "EffortRange":
        """Return both bounds multiplied by ``factor``, rounded to 0.1 day."""
        return EffortRange(
            min_days=round(self.min_days * factor, 1),
            max_days=round(self.max_days * factor, 1),
        )

    def __str__(self) -> str:
        if self.is_single:
            return f"{self.max_days:.1f}"
        return f"{self.min_days:.1f}-{self.max_days:.1f}"


class CalibratedEffort(BaseModel):
    """Effort estimate plus the migration attributes reported by enrichment.

    Attributes:
        raw_estimate_days: Day string exactly as reported.
        estimate: Parsed interval of ``raw_estimate_days``.
        calibrated: Interval after historical calibration (``estimate``
            until calibration runs).
        calibration_applied: Whether a calibration step ran.
        calibration_factor: Multiplier applied, when calibration ran.
        calibration_note: Explanation of the calibration step.
        complexity: Migration complexity.
        breaking_changes: Whether the change breaks existing APIs.
        reversibility: How easily the change can be rolled back.
        steps: Ordered migration steps.
        regression_risk: Explicit regression risk; inferred when ``None``.
        learning_curve: Explicit learning curve; inferred when ``None``.
    """

    model_config = ConfigDict(frozen=True)

    raw_estimate_days: str
    estimate: EffortRange
    calibrated: EffortRange
    calibration_applied: bool = False
    calibration_factor: Optional[float] = None
    calibration_note: Optional[str] = None
    complexity: Complexity = Complexity.MEDIUM
    breaking_changes: bool = False
    reversibility: Reversibility = Reversibility.MEDIUM
    steps: list[str] = []
    regression_risk: Optional[RiskLevel] = None
    learning_curve: Optional[LearningCurve] = None

    @classmethod
    def from_raw(cls, raw_estimate_days: str, **kwargs) -> "CalibratedEffort":
        """Build an uncalibrated effort from the raw day string."""
        estimate = EffortRange.parse(raw_estimate_days)
        return cls(
            raw_estimate_days=raw_estimate_days,
            estimate=estimate,
            calibrated=estimate,
            **kwargs,
        )

    @property
    def calibrated_estimate_days(self) -> str:
        if not self.calibration_applied:
            return self.raw_estimate_days
        return str(self.calibrated)
