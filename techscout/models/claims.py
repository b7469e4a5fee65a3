"""
Tagged claims and trace identifiers.

Every statement carried by a recommendation is tagged with its epistemic
status so the decision can be audited back to its evidence:

  ``Fact``        — verifiable; must name its source and the source's reliability.
  ``Inference``   — derived from facts; must list what it derives from and
                    carry a confidence in [0, 1].
  ``Assumption``  — an unverified hypothesis; ``validated`` is set later by
                    the feedback collaborator.

Trace ids
---------
Format: ``IFX-YYYY-MMDD-<KIND>-<SEQ>`` where SEQ is six upper-case
alphanumerics, e.g. ``IFX-2026-0315-REC-7KQ2ZD``.  ``generate_trace_id()``
takes the timestamp explicitly so callers control the clock.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from techscout.taxonomy.evidence_taxonomy import ClaimTag, Reliability

TRACE_ID_PATTERN = re.compile(r"^IFX-\d{4}-\d{4}-(?:[A-Z]+-)?[A-Z0-9]{6}$")


class Fact(BaseModel):
    """A sourced, verifiable claim."""

    model_config = ConfigDict(frozen=True)

    tag: Literal["FACT"] = "FACT"
    claim: str = Field(min_length=1)
    source: str = Field(min_length=1)
    source_reliability: Reliability
    source_url: Optional[str] = None
    finding_id: Optional[str] = None


class Inference(BaseModel):
    """A claim derived from facts, with a confidence score."""

    model_config = ConfigDict(frozen=True)

    tag: Literal["INFERENCE"] = "INFERENCE"
    claim: str = Field(min_length=1)
    derived_from: list[str]
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("derived_from")
    @classmethod
    def validate_derivation(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("An inference must derive from at least one claim.")
        return v


class Assumption(BaseModel):
    """An explicit, unverified hypothesis."""

    model_config = ConfigDict(frozen=True)

    tag: Literal["ASSUMPTION"] = "ASSUMPTION"
    claim: str = Field(min_length=1)
    validated: Optional[bool] = None


Claim = Union[Fact, Inference, Assumption]


class ClaimSet(BaseModel):
    """All tagged claims behind one analysis."""

    model_config = ConfigDict(frozen=True)

    facts: list[Fact] = []
    inferences: list[Inference] = []
    assumptions: list[Assumption] = []

    def all_claims(self) -> list[Claim]:
        return [*self.facts, *self.inferences, *self.assumptions]

    def count(self, tag: ClaimTag) -> int:
        return sum(1 for c in self.all_claims() if c.tag == tag)


def format_claim(claim: Claim) -> str:
    """Render a claim as ``[TAG] text``."""
    return f"[{claim.tag}] {claim.claim}"


def generate_trace_id(now: datetime, kind: Optional[str] = None) -> str:
    """Generate a new trace id.

    Args:
        now: Timestamp the id is anchored to.
        kind: Optional upper-case kind suffix, e.g. ``"REC"`` or ``"RUN"``.

    Returns:
        Trace id string matching ``TRACE_ID_PATTERN``.
    """
    seq = uuid4().hex[:6].upper()
    date_part = f"{now.year:04d}-{now.month:02d}{now.day:02d}"
    if kind:
        return f"IFX-{date_part}-{kind.upper()}-{seq}"
    return f"IFX-{date_part}-{seq}"
