"""
Fixtures for the enrichment test suite.

Provides ``valid_payload``: a fresh copy of a well-formed enrichment
response (one fact, one inference, one assumption; "2-3" days effort).
Tests mutate their copy to probe individual validation rules.
"""

from __future__ import annotations

import copy

import pytest

_VALID_PAYLOAD = {
    "subject": {"name": "Zod", "type": "library", "ecosystem": "npm", "maturity": "experimental"},
    "technical": {
        "analysis": {
            "facts": [
                {
                    "claim": "Zod 4 parses objects 14x faster than Zod 3.",
                    "source": "zod.dev release notes",
                    "source_reliability": "high",
                }
            ],
            "inferences": [
                {
                    "claim": "Request validation overhead will drop.",
                    "derived_from": ["Zod 4 parses objects 14x faster than Zod 3."],
                    "confidence": 0.7,
                }
            ],
            "assumptions": [{"claim": "Existing schemas need no rewrite."}],
        },
        "effort": {
            "raw_estimate_days": "2-3",
            "complexity": "low",
            "breaking_changes": False,
            "reversibility": "easy",
            "steps": ["Bump the dependency", "Run the test suite"],
        },
        "impact": {"risk": {"level": "low", "detail": "Minor API changes."}},
        "failure_modes": [
            {"mode": "Type inference differs", "probability": "low", "mitigation": "Pin types"}
        ],
    },
    "human_friendly": {"title": "Upgrade Zod", "one_liner": "Faster input validation."},
    "confidence": 0.72,
}


@pytest.fixture
def valid_payload() -> dict:
    """Deep copy of a well-formed enrichment response."""
    return copy.deepcopy(_VALID_PAYLOAD)
