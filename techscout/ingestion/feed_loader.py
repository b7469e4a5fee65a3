"""
JSON file loaders for feed items, project profiles and adoption history.

Feed items file — either a bare list or ``{"items": [...]}``::

    [
      {"id": "hn-1", "title": "Zod 4 released", "technologies": ["zod"],
       "categories": ["backend"], "traction": {"hn_points": 320}}
    ]

Profile file — either a complete ``ProjectProfile`` document, or the storage
row layout consumed by ``build_project_profile``::

    {"project": {...}, "stack": {...}, "stack_health": {...},
     "manifest": {...}, "findings": [...], "adoptions": [...]}

Adoption history file — a list of ``AdoptionRecord`` dicts, or the profile
row layout (its ``adoptions`` list is used).

All items are validated before any are returned.  If any item fails, a
single ``ValueError`` lists the first 10 failures.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from techscout.errors import ProfileValidationError
from techscout.ingestion.profile_builder import build_project_profile
from techscout.matching.calibration import AdoptionRecord
from techscout.models.feed_item import FeedItem
from techscout.models.project import ProjectProfile

logger = logging.getLogger(__name__)

_MAX_SHOWN = 10


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path.name}: {exc}") from exc


def _raise_row_errors(errors: list[tuple[int, str]], what: str, path: Path) -> None:
    detail = "\n".join(f"  {what} {i}: {msg}" for i, msg in errors[:_MAX_SHOWN])
    suffix = (
        f"\n  … and {len(errors) - _MAX_SHOWN} more" if len(errors) > _MAX_SHOWN else ""
    )
    raise ValueError(
        f"{len(errors)} {what.lower()}(s) failed validation in {path.name}:\n{detail}{suffix}"
    )


def load_feed_items(path: Path) -> list[FeedItem]:
    """Load and validate feed items from a JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the JSON is invalid or any item fails validation.
    """
    path = Path(path)
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name}: expected a list of feed items.")

    items: list[FeedItem] = []
    errors: list[tuple[int, str]] = []
    for i, raw in enumerate(data):
        try:
            items.append(FeedItem.model_validate(raw))
        except ValidationError as exc:
            errors.append((i, str(exc)))

    if errors:
        _raise_row_errors(errors, "Item", path)

    logger.info("Loaded %d feed items from %s", len(items), path.name)
    return items


def _is_row_layout(data: dict[str, Any]) -> bool:
    return isinstance(data.get("project"), dict)


def load_project_profile(path: Path) -> ProjectProfile:
    """Load a project profile from a JSON file (either layout).

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the JSON is invalid or not an object.
        ProfileValidationError: If the profile fails validation.
    """
    path = Path(path)
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: expected a JSON object.")

    if _is_row_layout(data):
        profile = build_project_profile(
            data["project"],
            stack_row=data.get("stack"),
            health_row=data.get("stack_health"),
            manifest_row=data.get("manifest"),
            finding_rows=data.get("findings"),
            adoption_rows=data.get("adoptions"),
        )
    else:
        try:
            profile = ProjectProfile.model_validate(data)
        except ValidationError as exc:
            problems = [
                f"{'.'.join(str(p) for p in err['loc']) or 'profile'}: {err['msg']}"
                for err in exc.errors()
            ]
            raise ProfileValidationError(str(data.get("id", "<missing id>")), problems) from exc

    logger.info("Loaded profile '%s' from %s", profile.id, path.name)
    return profile


def load_adoption_records(path: Path) -> list[AdoptionRecord]:
    """Load adoption history, newest first.

    Records with ``adopted_at`` are sorted newest first; records without a
    date keep their file order after the dated ones.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the JSON is invalid or any record fails validation.
    """
    path = Path(path)
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("adoptions", [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name}: expected a list of adoption records.")

    records: list[AdoptionRecord] = []
    errors: list[tuple[int, str]] = []
    for i, raw in enumerate(data):
        try:
            records.append(AdoptionRecord.model_validate(raw))
        except ValidationError as exc:
            errors.append((i, str(exc)))

    if errors:
        _raise_row_errors(errors, "Record", path)

    dated = sorted(
        (r for r in records if r.adopted_at is not None),
        key=lambda r: r.adopted_at,
        reverse=True,
    )
    undated = [r for r in records if r.adopted_at is None]
    return dated + undated
