"""
Export helpers for run results.

All functions write to disk and return the written ``Path``.

``export_result_json()`` writes the full ``MatchingResult`` (the format
persistence and delivery collaborators consume).  ``flatten_recommendations()``
produces one flat row per recommendation for spreadsheet review: CSV
exports carry no nested dicts.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from techscout.pipeline.orchestrator import MatchingResult

FLAT_COLUMNS = [
    "project_id", "trace_id", "generated_at", "rank", "recommendation_id",
    "feed_item_id", "subject", "verdict", "action", "priority", "confidence",
    "cost_of_change", "cost_of_no_change", "delta", "effort_days",
    "title", "one_liner",
]


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file (parent dirs created)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def export_to_csv(
    records: list[dict[str, Any]],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    Row dicts.
        path:       Destination (parent dirs created if missing).
        fieldnames: Column order; keys of the first record when ``None``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_result_json(result: "MatchingResult", path: Path) -> Path:
    return export_to_json(result.to_dict(), path)


def flatten_recommendations(result: "MatchingResult") -> list[dict[str, Any]]:
    """One flat row per recommendation, in rank order."""
    rows: list[dict[str, Any]] = []
    for rank, rec in enumerate(result.recommendations, start=1):
        st = rec.stability
        rows.append(
            {
                "project_id":        result.project_id,
                "trace_id":          rec.trace_id,
                "generated_at":      rec.generated_at.isoformat(),
                "rank":              rank,
                "recommendation_id": rec.id,
                "feed_item_id":      rec.feed_item_id,
                "subject":           rec.subject.name,
                "verdict":           rec.verdict.value,
                "action":            rec.action.value,
                "priority":          rec.priority.value,
                "confidence":        rec.confidence,
                "cost_of_change":    st.cost_of_change_score,
                "cost_of_no_change": st.cost_of_no_change_score,
                "delta":             st.delta,
                "effort_days":       st.cost_of_change.effort_days,
                "title":             rec.human_friendly.title,
                "one_liner":         rec.human_friendly.one_liner,
            }
        )
    return rows


def export_recommendations_csv(result: "MatchingResult", path: Path) -> Path:
    return export_to_csv(flatten_recommendations(result), path, FLAT_COLUMNS)
