"""
Build a validated ``ProjectProfile`` from persistence rows.

The persistence collaborator stores a project across several tables.  This
module takes one row (dict) per table and assembles the typed profile:

  project row     → id, name, owner, phase, scouting preferences
  stack row       → languages, frameworks, key dependencies, databases,
                    per-ecosystem dependency map
  health row      → overall score + component sub-scores
  manifest row    → objectives, pain points, constraints
  finding rows    → unresolved findings (``is_resolved`` rows are skipped)
  adoption rows   → effort-tracking history, aggregated into CalibrationStats

Every section is validated independently and every problem is collected, so
one ``ProfileValidationError`` reports all bad fields at once.

``all_dependencies`` accepts both storage shapes seen in practice::

    {"npm": ["react", "zod"]}                                 # bare list
    {"npm": {"direct": ["react"], "dev": ["vitest"]}}         # split lists
    {"npm": {"direct": 12, "dev": 4, "packages": ["react"]}}  # counts + names
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from pydantic import ValidationError

from techscout.errors import ProfileValidationError
from techscout.matching.calibration import AdoptionRecord, calibration_from_adoptions
from techscout.models.project import (
    CalibrationStats,
    EcosystemDependencies,
    Finding,
    ProjectManifest,
    ProjectProfile,
    ProjectStack,
    ScoutingConfig,
    StackHealth,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_project_profile(
    project_row: dict[str, Any],
    stack_row: Optional[dict[str, Any]] = None,
    health_row: Optional[dict[str, Any]] = None,
    manifest_row: Optional[dict[str, Any]] = None,
    finding_rows: Optional[list[dict[str, Any]]] = None,
    adoption_rows: Optional[list[dict[str, Any]]] = None,
) -> ProjectProfile:
    """Assemble a ``ProjectProfile`` from storage rows.

    Missing optional rows fall back to the model defaults (empty stack,
    neutral 0.5 health, empty manifest, no findings, no calibration).

    Args:
        project_row:   Row of the projects table.  Requires ``id`` and ``name``.
        stack_row:     Row of the project stack table.
        health_row:    Latest stack-health snapshot.
        manifest_row:  Row of the project manifest table.
        finding_rows:  Code-analysis findings; resolved ones are dropped.
        adoption_rows: Adopted recommendations with estimated/actual days.

    Returns:
        Fully validated ``ProjectProfile``.

    Raises:
        ProfileValidationError: If any section fails validation.
    """
    project_id = str(project_row.get("id") or "<missing id>")
    problems: list[str] = []

    stack = _section(problems, "stack", lambda: _build_stack(stack_row or {}))
    health = _section(
        problems, "stack_health", lambda: StackHealth.model_validate(_health_dict(health_row))
    )
    manifest = _section(
        problems, "manifest", lambda: ProjectManifest.model_validate(_manifest_dict(manifest_row))
    )
    scouting = _section(
        problems, "scouting", lambda: ScoutingConfig.model_validate(_scouting_dict(project_row))
    )

    findings: list[Finding] = []
    for i, row in enumerate(finding_rows or []):
        if row.get("is_resolved"):
            continue
        finding = _section(problems, f"findings[{i}]", lambda row=row: _build_finding(row))
        if finding is not None:
            findings.append(finding)

    calibration = _section(
        problems, "calibration", lambda: _build_calibration(adoption_rows)
    )

    if problems:
        logger.warning(
            "Profile rejected | project=%s | problems=%d", project_id, len(problems)
        )
        raise ProfileValidationError(project_id, problems)

    try:
        profile = ProjectProfile(
            id=project_id if project_row.get("id") else "",
            name=str(project_row.get("name") or ""),
            owner=project_row.get("owner_id") or project_row.get("owner"),
            phase=project_row.get("phase"),
            stack=stack,
            stack_health=health,
            manifest=manifest,
            findings=findings,
            scouting=scouting,
            calibration=calibration,
        )
    except ValidationError as exc:
        raise ProfileValidationError(project_id, _describe("project", exc)) from exc

    logger.debug(
        "Profile built | project=%s | findings=%d | pain_points=%d | health=%.2f",
        profile.id, len(profile.findings), len(profile.manifest.pain_points),
        profile.health_score,
    )
    return profile


# ── Private helpers ────────────────────────────────────────────────────────────

def _section(problems: list[str], name: str, build: Callable[[], T]) -> Optional[T]:
    """Run ``build``; on failure record the problems and return ``None``."""
    try:
        return build()
    except ValidationError as exc:
        problems.extend(_describe(name, exc))
    except (TypeError, ValueError) as exc:
        problems.append(f"{name}: {exc}")
    return None


def _describe(section: str, exc: ValidationError) -> list[str]:
    lines = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        where = f"{section}.{loc}" if loc else section
        lines.append(f"{where}: {err.get('msg', 'invalid value')}")
    return lines


def _ecosystem_deps(value: Any) -> EcosystemDependencies:
    if isinstance(value, list):
        return EcosystemDependencies(direct=[str(v) for v in value])
    if isinstance(value, dict):
        direct = value.get("direct")
        dev = value.get("dev")
        return EcosystemDependencies(
            direct=list(direct) if isinstance(direct, list) else list(value.get("packages") or []),
            dev=list(dev) if isinstance(dev, list) else [],
        )
    raise ValueError(f"unsupported dependency entry {value!r}")


def _build_stack(row: dict[str, Any]) -> ProjectStack:
    all_deps = row.get("all_dependencies") or {}
    if not isinstance(all_deps, dict):
        raise ValueError("all_dependencies must be a mapping of ecosystem to dependencies")
    return ProjectStack.model_validate(
        {
            "languages": row.get("languages") or [],
            "frameworks": row.get("frameworks") or [],
            "key_dependencies": row.get("key_dependencies") or [],
            "databases": row.get("databases") or [],
            "all_dependencies": {eco: _ecosystem_deps(v) for eco, v in all_deps.items()},
        }
    )


def _health_dict(row: Optional[dict[str, Any]]) -> dict[str, Any]:
    if not row:
        return {}
    out: dict[str, Any] = {}
    if row.get("overall_score") is not None:
        out["overall_score"] = row["overall_score"]
    components = row.get("components") or {}
    out["components"] = {
        name: comp if isinstance(comp, dict) else {"score": comp}
        for name, comp in components.items()
    }
    return out


def _manifest_dict(row: Optional[dict[str, Any]]) -> dict[str, Any]:
    if not row:
        return {}
    return {
        "objectives": row.get("objectives") or [],
        "pain_points": row.get("pain_points") or [],
        "constraints": row.get("constraints") or [],
    }


def _scouting_dict(row: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        "focus_areas": row.get("focus_areas") or [],
        "exclude_categories": row.get("exclude_categories") or [],
        "maturity_policy": row.get("maturity_policy") or {},
    }
    if row.get("max_recommendations") is not None:
        out["max_recommendations"] = row["max_recommendations"]
    return out


def _build_finding(row: dict[str, Any]) -> Finding:
    return Finding.model_validate(
        {
            "id": row.get("finding_id") or row.get("id"),
            "category": row.get("category"),
            "severity": str(row.get("severity", "")).lower(),
            "pattern_id": row.get("pattern_id") or "",
            "description": row.get("description") or "",
            "files_affected": row.get("files_affected") or 0,
        }
    )


def _build_calibration(rows: Optional[list[dict[str, Any]]]) -> Optional[CalibrationStats]:
    if not rows:
        return None
    records = [AdoptionRecord.model_validate(r) for r in rows]
    return calibration_from_adoptions(records)
