"""
Feed item models — normalized external technology signals.

``FeedItem`` is produced by the ingestion collaborator (deduplicated and
normalized before it reaches techscout) and is read-only to the matching core.

``FeedTraction`` holds every optional traction number a source may report.
All fields are optional: a Hacker News story has points and comments, a
GitHub trending entry has stars and contributors, an npm entry has downloads.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from techscout.taxonomy.evidence_taxonomy import Reliability


class FeedTraction(BaseModel):
    """Traction signals attached to a feed item.

    Attributes:
        hn_points: Hacker News score.
        hn_comments: Hacker News comment count.
        github_stars: Repository stars.
        github_stars_30d_growth: 30-day star delta as reported, e.g. ``"+12%"``
            or ``"-15%"``.
        github_forks: Repository forks.
        github_open_issues: Open issue count.
        github_contributors: Contributor count.
        npm_weekly_downloads: npm weekly downloads.
        pypi_monthly_downloads: PyPI monthly downloads.
        ph_upvotes: Product Hunt upvotes.
        reddit_score: Reddit post score.
        points: Generic source points (sources without a dedicated field).
        comments: Generic comment count.
        first_release: Date of the first public release.
        last_release: Date of the most recent release.
    """

    model_config = ConfigDict(frozen=True)

    hn_points: Optional[int] = Field(default=None, ge=0)
    hn_comments: Optional[int] = Field(default=None, ge=0)
    github_stars: Optional[int] = Field(default=None, ge=0)
    github_stars_30d_growth: Optional[str] = None
    github_forks: Optional[int] = Field(default=None, ge=0)
    github_open_issues: Optional[int] = Field(default=None, ge=0)
    github_contributors: Optional[int] = Field(default=None, ge=0)
    npm_weekly_downloads: Optional[int] = Field(default=None, ge=0)
    pypi_monthly_downloads: Optional[int] = Field(default=None, ge=0)
    ph_upvotes: Optional[int] = Field(default=None, ge=0)
    reddit_score: Optional[int] = None
    points: Optional[int] = None
    comments: Optional[int] = Field(default=None, ge=0)
    first_release: Optional[date] = None
    last_release: Optional[date] = None


class FeedItem(BaseModel):
    """A normalized external signal about a technology.

    Attributes:
        id: Stable identifier assigned by ingestion.
        source_id: Identifier of the feed source, e.g. ``"hn"``.
        source_name: Display name of the source, e.g. ``"Hacker News"``.
        source_tier: Source tier (1 = most trusted).
        source_reliability: Reliability grade used for confidence scoring.
        external_id: Identifier of the item at the source, if any.
        title: Headline or repository name.
        url: Link to the original item.
        description: Short description.
        content_summary: Normalized summary of the item content.
        published_at: Publication timestamp (UTC).
        fetched_at: Time ingestion fetched the item.
        categories: Category tags, e.g. ``["frontend", "performance"]``.
        technologies: Technology tags, e.g. ``["react", "typescript"]``.
        language_ecosystems: Package ecosystems, e.g. ``["npm"]``.
        traction: Traction signals.
        is_processed: Whether matching has already consumed this item.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source_id: str = "unknown"
    source_name: str = "unknown"
    source_tier: int = Field(default=2, ge=1, le=3)
    source_reliability: Reliability = Reliability.MEDIUM
    external_id: Optional[str] = None
    title: str
    url: Optional[str] = None
    description: Optional[str] = None
    content_summary: Optional[str] = None
    published_at: Optional[datetime] = None
    fetched_at: Optional[datetime] = None
    categories: list[str] = []
    technologies: list[str] = []
    language_ecosystems: list[str] = []
    traction: FeedTraction = FeedTraction()
    is_processed: bool = False

    @field_validator("id", "title")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("id and title must be non-empty.")
        return v

    @property
    def searchable_text(self) -> str:
        """Lower-cased title, description and summary joined for keyword search."""
        parts = [self.title, self.description or "", self.content_summary or ""]
        return " ".join(parts).lower()
