"""
Project profile models — the decision context for one matching run.

``ProjectProfile`` is assembled by the persistence collaborator (see
``techscout.ingestion.profile_builder``) and supplied whole per invocation.
The matching core reads it and never mutates it; every model here is frozen.

Sub-models
----------
ProjectStack       : languages, frameworks, key dependencies, databases,
                     and the per-ecosystem dependency map.
StackHealth        : overall 0–1 score plus named component sub-scores.
ProjectManifest    : declared objectives, pain points, and constraints.
Finding            : an unresolved, severity-tagged code-analysis finding.
ScoutingConfig     : focus areas, exclusions, output cap, maturity policy.
CalibrationStats   : historical effort-estimation accuracy.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from techscout.taxonomy.maturity_taxonomy import Maturity, RecommendationAction
from techscout.taxonomy.risk_taxonomy import CalibrationBias, FindingSeverity


# ── Stack ─────────────────────────────────────────────────────────────────────

class LanguageUsage(BaseModel):
    """A programming language used by the project."""

    model_config = ConfigDict(frozen=True)

    name: str
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    role: str = "primary"


class Framework(BaseModel):
    """A framework used by the project."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: Optional[str] = None
    category: Optional[str] = None


class KeyDependency(BaseModel):
    """A dependency important enough to be tracked by name."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: Optional[str] = None
    ecosystem: str
    is_dev_dep: bool = False


class DatabaseUsage(BaseModel):
    """A database the project depends on."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: Optional[str] = None
    provider: Optional[str] = None


class EcosystemDependencies(BaseModel):
    """Direct and development dependencies in one package ecosystem."""

    model_config = ConfigDict(frozen=True)

    direct: list[str] = []
    dev: list[str] = []

    @property
    def count(self) -> int:
        return len(self.direct) + len(self.dev)


class ProjectStack(BaseModel):
    """Technology stack of the project.

    Attributes:
        languages: Languages with share and role.
        frameworks: Frameworks with optional version.
        key_dependencies: Tracked dependencies with their ecosystem.
        databases: Databases in use.
        all_dependencies: Ecosystem name → direct/dev dependency lists.
    """

    model_config = ConfigDict(frozen=True)

    languages: list[LanguageUsage] = []
    frameworks: list[Framework] = []
    key_dependencies: list[KeyDependency] = []
    databases: list[DatabaseUsage] = []
    all_dependencies: dict[str, EcosystemDependencies] = {}

    def technology_names(self) -> set[str]:
        """Lower-cased names of everything in the stack, ecosystems included."""
        names: set[str] = set()
        names.update(lang.name.lower() for lang in self.languages)
        names.update(fw.name.lower() for fw in self.frameworks)
        names.update(dep.name.lower() for dep in self.key_dependencies)
        names.update(db.name.lower() for db in self.databases)
        names.update(eco.lower() for eco in self.all_dependencies)
        return names


# ── Health ────────────────────────────────────────────────────────────────────

class HealthComponent(BaseModel):
    """One component of the stack-health score."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0.0, le=1.0)
    trend: str = "stable"


class StackHealth(BaseModel):
    """Stack-health snapshot.

    Attributes:
        overall_score: Overall health in [0, 1]; higher means healthier.
        components: Component name (``security``, ``freshness``,
            ``maintainability``, ``performance``, ...) → sub-score.
    """

    model_config = ConfigDict(frozen=True)

    overall_score: float = Field(default=0.5, ge=0.0, le=1.0)
    components: dict[str, HealthComponent] = {}

    def component_score(self, name: str) -> Optional[float]:
        """Return a component sub-score, or ``None`` when it is not tracked."""
        component = self.components.get(name)
        return component.score if component is not None else None


# ── Manifest and findings ─────────────────────────────────────────────────────

class ProjectManifest(BaseModel):
    """Declared goals and constraints of the project."""

    model_config = ConfigDict(frozen=True)

    objectives: list[str] = []
    pain_points: list[str] = []
    constraints: list[str] = []


class Finding(BaseModel):
    """An unresolved finding from static code analysis.

    Only metadata is held here — never file contents.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    category: str
    severity: FindingSeverity
    pattern_id: str = ""
    description: str = ""
    files_affected: int = Field(default=0, ge=0)

    @property
    def searchable_text(self) -> str:
        return f"{self.pattern_id} {self.description}".lower()


# ── Scouting config and calibration ──────────────────────────────────────────

class ScoutingConfig(BaseModel):
    """Per-project scouting preferences.

    Attributes:
        focus_areas: Categories the project cares about.
        exclude_categories: Categories that are always rejected.
        max_recommendations: Hard cap on delivered recommendations (1–20).
        maturity_policy: Optional per-action minimum maturity overrides.
    """

    model_config = ConfigDict(frozen=True)

    focus_areas: list[str] = []
    exclude_categories: list[str] = []
    max_recommendations: int = Field(default=5, ge=1, le=20)
    maturity_policy: dict[RecommendationAction, Maturity] = {}

    @field_validator("maturity_policy")
    @classmethod
    def validate_policy_levels(
        cls, v: dict[RecommendationAction, Maturity]
    ) -> dict[RecommendationAction, Maturity]:
        for action, level in v.items():
            if level in (Maturity.DECLINING, Maturity.DEPRECATED):
                raise ValueError(
                    f"maturity_policy[{action}] must be experimental, growth or "
                    f"stable, got '{level}'."
                )
        return v


class CalibrationStats(BaseModel):
    """Historical accuracy of the team's effort estimates.

    Attributes:
        total_adoptions: Number of adopted recommendations with tracked effort.
        avg_accuracy_ratio: Mean ratio of actual to estimated days; above 1
            the team underestimates.
        bias: Direction of the historical estimation error.
    """

    model_config = ConfigDict(frozen=True)

    total_adoptions: int = Field(default=0, ge=0)
    avg_accuracy_ratio: float = Field(default=1.0, gt=0.0)
    bias: CalibrationBias = CalibrationBias.BALANCED


# ── Profile ───────────────────────────────────────────────────────────────────

class ProjectProfile(BaseModel):
    """Validated description of a project used as matching context."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    owner: Optional[str] = None
    phase: Optional[str] = None
    stack: ProjectStack = ProjectStack()
    stack_health: StackHealth = StackHealth()
    manifest: ProjectManifest = ProjectManifest()
    findings: list[Finding] = []
    scouting: ScoutingConfig = ScoutingConfig()
    calibration: Optional[CalibrationStats] = None

    @model_validator(mode="after")
    def validate_identity(self) -> "ProjectProfile":
        if not self.id.strip():
            raise ValueError("Project id must be non-empty.")
        if not self.name.strip():
            raise ValueError("Project name must be non-empty.")
        return self

    @property
    def health_score(self) -> float:
        return self.stack_health.overall_score
