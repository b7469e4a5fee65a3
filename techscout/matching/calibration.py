"""
Effort calibration from the team's adoption history.

Accuracy ratio
--------------
Each adopted recommendation records estimated and actual days.  The ratio is
``actual / estimated``: above 1 the team underestimates, below 1 it
overestimates.

    mean ratio > 1.15 → underestimate
    mean ratio < 0.85 → overestimate
    otherwise         → balanced

Calibration factor (needs at least ``MIN_ADOPTIONS`` adoptions)
---------------------------------------------------------------
    underestimate → factor = ratio                          (grows estimates)
    overestimate  → factor = max(0.7, 1 - |ratio - 1| * 0.5) (shrinks, gently)
    balanced      → factor = 1, note only

Both bounds of the effort interval are scaled by the factor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from techscout.models.effort import CalibratedEffort
from techscout.models.project import CalibrationStats
from techscout.taxonomy.risk_taxonomy import CalibrationBias

logger = logging.getLogger(__name__)

MIN_ADOPTIONS         = 2
UNDERESTIMATE_RATIO   = 1.15
OVERESTIMATE_RATIO    = 0.85
MIN_SHRINK_FACTOR     = 0.7
OUTLIER_LOW           = 0.5
OUTLIER_HIGH          = 2.0
TREND_WINDOW          = 5
TREND_BAND            = 0.1

# Upper bound (days) of each estimate-size bucket, in order.
_SIZE_BUCKETS: tuple[tuple[str, float], ...] = (
    ("trivial", 1.0),
    ("low", 3.0),
    ("medium", 7.0),
    ("high", 14.0),
)


class AdoptionRecord(BaseModel):
    """One adopted recommendation with tracked effort."""

    model_config = ConfigDict(frozen=True)

    recommendation_id: str
    subject: str
    estimated_days: float = Field(gt=0.0)
    actual_days: float = Field(gt=0.0)
    adopted_at: Optional[datetime] = None

    @property
    def accuracy_ratio(self) -> float:
        return self.actual_days / self.estimated_days


@dataclass
class AccuracyReport:
    """Historical estimation accuracy of one project.

    Attributes:
        calibration:            Aggregate stats used by the stability gate.
        accuracy_by_size:       Estimate-size bucket → mean ratio (2 decimals).
        outliers:               Adoptions off by more than 2x in either direction.
        recent_trend:           ``improving``, ``worsening`` or ``stable``.
    """

    calibration:       CalibrationStats
    accuracy_by_size:  dict[str, float] = field(default_factory=dict)
    outliers:          list[AdoptionRecord] = field(default_factory=list)
    recent_trend:      str = "stable"


# ── Stats ─────────────────────────────────────────────────────────────────────

def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def calibration_from_adoptions(records: list[AdoptionRecord]) -> CalibrationStats:
    """Aggregate adoption records into ``CalibrationStats``."""
    if not records:
        return CalibrationStats(
            total_adoptions=0, avg_accuracy_ratio=1.0, bias=CalibrationBias.BALANCED
        )

    ratio = _mean([r.accuracy_ratio for r in records])
    if ratio > UNDERESTIMATE_RATIO:
        bias = CalibrationBias.UNDERESTIMATE
    elif ratio < OVERESTIMATE_RATIO:
        bias = CalibrationBias.OVERESTIMATE
    else:
        bias = CalibrationBias.BALANCED

    return CalibrationStats(
        total_adoptions=len(records),
        avg_accuracy_ratio=round(ratio, 2),
        bias=bias,
    )


def _size_bucket(estimated_days: float) -> str:
    if estimated_days < _SIZE_BUCKETS[0][1]:
        return _SIZE_BUCKETS[0][0]
    for name, upper in _SIZE_BUCKETS[1:]:
        if estimated_days <= upper:
            return name
    return "very_high"


def accuracy_report(records: list[AdoptionRecord]) -> AccuracyReport:
    """Build an accuracy report.  ``records`` are expected newest first."""
    by_size: dict[str, list[float]] = {}
    for record in records:
        by_size.setdefault(_size_bucket(record.estimated_days), []).append(
            record.accuracy_ratio
        )

    outliers = [
        r for r in records
        if r.accuracy_ratio < OUTLIER_LOW or r.accuracy_ratio > OUTLIER_HIGH
    ]

    trend = "stable"
    if len(records) >= TREND_WINDOW * 2:
        recent = abs(_mean([r.accuracy_ratio for r in records[:TREND_WINDOW]]) - 1.0)
        previous = abs(
            _mean([r.accuracy_ratio for r in records[TREND_WINDOW:TREND_WINDOW * 2]]) - 1.0
        )
        if recent < previous - TREND_BAND:
            trend = "improving"
        elif recent > previous + TREND_BAND:
            trend = "worsening"

    return AccuracyReport(
        calibration=calibration_from_adoptions(records),
        accuracy_by_size={k: round(_mean(v), 2) for k, v in by_size.items()},
        outliers=outliers,
        recent_trend=trend,
    )


# ── Effort calibration ────────────────────────────────────────────────────────

def calibration_factor(stats: CalibrationStats) -> float:
    """Multiplier implied by ``stats`` (1.0 for balanced teams)."""
    if stats.bias == CalibrationBias.UNDERESTIMATE:
        return stats.avg_accuracy_ratio
    if stats.bias == CalibrationBias.OVERESTIMATE:
        return max(MIN_SHRINK_FACTOR, 1.0 - abs(stats.avg_accuracy_ratio - 1.0) * 0.5)
    return 1.0


def calibrate_effort(
    effort: CalibratedEffort,
    stats: Optional[CalibrationStats],
) -> CalibratedEffort:
    """Return ``effort`` with the historical calibration applied.

    The input is not modified.  With fewer than ``MIN_ADOPTIONS`` adoptions
    (or no stats) the effort is returned unchanged.

    Args:
        effort: Uncalibrated effort from enrichment.
        stats:  Project calibration stats, if any.

    Returns:
        A new ``CalibratedEffort``; ``calibrated`` holds the scaled interval.
    """
    if stats is None or stats.total_adoptions < MIN_ADOPTIONS:
        return effort

    factor = calibration_factor(stats)
    if stats.bias == CalibrationBias.BALANCED:
        note = f"Estimate confirmed by history ({stats.total_adoptions} data points)."
    else:
        note = (
            f"Base estimate: {effort.raw_estimate_days}. Factor {factor:.2f}x applied "
            f"for historical bias ({stats.bias})."
        )

    logger.debug(
        "Effort calibrated | raw=%s | bias=%s | factor=%.2f",
        effort.raw_estimate_days, stats.bias, factor,
    )

    return effort.model_copy(
        update={
            "calibrated": effort.estimate.scaled(factor),
            "calibration_applied": True,
            "calibration_factor": factor,
            "calibration_note": note,
        }
    )
