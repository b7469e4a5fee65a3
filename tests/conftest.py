"""
Shared pytest fixtures for the techscout test suite.

Provides:
  - ``as_of``: the fixed run timestamp every age calculation is anchored to.
  - ``make_item`` / ``make_profile``: factories returning valid domain
    objects with sensible defaults; keyword arguments override fields.
  - ``sample_item`` / ``sample_profile``: one ready-made instance of each.
  - ``offline_client``: the deterministic, network-free enrichment client.

The sample project is a React/TypeScript frontend on npm with moderate stack
health (0.6) and one declared pain point ("Slow bundle builds in CI").
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from techscout.enrichment.offline_client import OfflineEnrichmentClient
from techscout.models.feed_item import FeedItem, FeedTraction
from techscout.models.project import ProjectProfile
from techscout.taxonomy.evidence_taxonomy import Reliability

AS_OF = datetime(2026, 3, 15, 9, 0, 0, tzinfo=timezone.utc)


# ── Time ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def as_of() -> datetime:
    """Fixed UTC run timestamp (2026-03-15 09:00)."""
    return AS_OF


# ── Domain object factories ───────────────────────────────────────────────────

def _default_profile_data() -> dict[str, Any]:
    return {
        "id": "proj-web",
        "name": "Storefront Web",
        "owner": "team-frontend",
        "phase": "growth",
        "stack": {
            "languages": [{"name": "TypeScript", "percentage": 85.0, "role": "primary"}],
            "frameworks": [
                {"name": "React", "version": "18.2.0", "category": "frontend"},
                {"name": "Next.js", "version": "14.1.0", "category": "frontend"},
            ],
            "key_dependencies": [
                {"name": "react", "version": "18.2.0", "ecosystem": "npm"},
                {"name": "zod", "version": "3.22.0", "ecosystem": "npm"},
            ],
            "all_dependencies": {
                "npm": {"direct": ["react", "next", "zod"], "dev": ["vitest"]},
            },
        },
        "stack_health": {"overall_score": 0.6},
        "manifest": {
            "objectives": ["Ship the checkout redesign"],
            "pain_points": ["Slow bundle builds in CI"],
            "constraints": ["No new paid services"],
        },
        "findings": [],
        "scouting": {
            "focus_areas": ["frontend", "performance"],
            "exclude_categories": ["devops"],
            "max_recommendations": 5,
        },
    }


@pytest.fixture
def make_profile() -> Callable[..., ProjectProfile]:
    """Factory: ``make_profile(**top_level_overrides) -> ProjectProfile``.

    Overrides replace whole top-level sections, e.g.
    ``make_profile(stack_health={"overall_score": 0.9})``.
    """

    def _make(**overrides: Any) -> ProjectProfile:
        data = _default_profile_data()
        data.update(overrides)
        return ProjectProfile.model_validate(data)

    return _make


@pytest.fixture
def make_item() -> Callable[..., FeedItem]:
    """Factory: ``make_item(id="hn-1", **fields) -> FeedItem``.

    ``traction`` may be given as a dict.  Defaults describe a React story on
    Hacker News with 300 points and 12k stars.
    """

    def _make(id: str = "hn-1", **fields: Any) -> FeedItem:
        traction = fields.pop("traction", {"hn_points": 300, "github_stars": 12_000})
        data: dict[str, Any] = {
            "id": id,
            "source_id": "hn",
            "source_name": "Hacker News",
            "source_reliability": Reliability.HIGH,
            "title": "React compiler reaches beta",
            "url": f"https://example.com/{id}",
            "description": "Automatic memoization for React components.",
            "categories": ["frontend"],
            "technologies": ["react", "typescript"],
            "language_ecosystems": ["npm"],
            "traction": FeedTraction.model_validate(traction),
        }
        data.update(fields)
        return FeedItem.model_validate(data)

    return _make


@pytest.fixture
def sample_profile(make_profile) -> ProjectProfile:
    return make_profile()


@pytest.fixture
def sample_item(make_item) -> FeedItem:
    return make_item()


# ── Enrichment ────────────────────────────────────────────────────────────────

@pytest.fixture
def offline_client() -> OfflineEnrichmentClient:
    """Deterministic enrichment client (no network)."""
    return OfflineEnrichmentClient()
