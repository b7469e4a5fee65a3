"""
Adoption taxonomy for technology recommendations.

Four orthogonal dimensions describe every recommendation:
  - ``Maturity``             — how ready is the technology for adoption?
  - ``RecommendationAction`` — what would the project do with it?
  - ``StabilityVerdict``     — should the change happen now?
  - ``Priority``             — how urgently should the team look at it?

``MATURITY_ORDER`` gives the ordinal rank used by the maturity gate.
``declining`` and ``deprecated`` sit at the top of the order but are health
overrides, not "more mature" levels; see ``techscout.matching.maturity``.

Usage example::

    from techscout.taxonomy.maturity_taxonomy import Maturity, RecommendationAction

    maturity = Maturity.GROWTH
    action   = RecommendationAction.COMPLEMENT

This module has NO imports from any other ``techscout`` package.
"""

from enum import StrEnum


class Maturity(StrEnum):
    """Adoption-readiness classification of a technology."""

    EXPERIMENTAL = "experimental"
    """Early releases, small community; breaking changes likely."""

    GROWTH = "growth"
    """Growing adoption and a visible release cadence."""

    STABLE = "stable"
    """Widely adopted, mature API, long release history."""

    DECLINING = "declining"
    """Losing adoption or maintenance; fine for low-commitment use only."""

    DEPRECATED = "deprecated"
    """Abandoned or officially deprecated; never adopt."""


MATURITY_ORDER: tuple[Maturity, ...] = (
    Maturity.EXPERIMENTAL,
    Maturity.GROWTH,
    Maturity.STABLE,
    Maturity.DECLINING,
    Maturity.DEPRECATED,
)


class RecommendationAction(StrEnum):
    """What the project would do with the recommended technology."""

    REPLACE_EXISTING = "REPLACE_EXISTING"
    """Swap out a technology already in the stack."""

    COMPLEMENT = "COMPLEMENT"
    """Add alongside an existing technology."""

    NEW_CAPABILITY = "NEW_CAPABILITY"
    """Add something the stack does not cover yet."""

    MONITOR = "MONITOR"
    """Keep an eye on it; no change proposed."""


class StabilityVerdict(StrEnum):
    """Outcome of the stability gate."""

    RECOMMEND = "RECOMMEND"
    """Cost of no-change clearly exceeds cost of change."""

    MONITOR = "MONITOR"
    """Costs are too close to call; revisit later."""

    DEFER = "DEFER"
    """Change costs more than it saves, or the technology is not mature enough."""


class Priority(StrEnum):
    """Urgency of a recommendation."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class SubjectType(StrEnum):
    """Kind of thing being recommended."""

    LIBRARY = "library"
    FRAMEWORK = "framework"
    PLATFORM = "platform"
    TOOL = "tool"
    SERVICE = "service"
    PATTERN = "pattern"
    PRACTICE = "practice"


class TeamRole(StrEnum):
    """Team roles used for recommendation visibility."""

    DEVELOPER_FRONTEND = "developer_frontend"
    DEVELOPER_BACKEND = "developer_backend"
    DEVELOPER_FULLSTACK = "developer_fullstack"
    PM = "pm"
    STAKEHOLDER = "stakeholder"
    OTHER = "other"


DEVELOPER_ROLES: frozenset[TeamRole] = frozenset({
    TeamRole.DEVELOPER_FRONTEND,
    TeamRole.DEVELOPER_BACKEND,
    TeamRole.DEVELOPER_FULLSTACK,
})
