"""
Plain-text reports for the techscout commands.

Each function builds a multi-line string that the CLI hands to ``typer.echo()``.

Status banners
--------------
Every run summary starts with a status banner::

  [SUCCESS] 3 recommendation(s) delivered
  [PARTIAL] 2 recommendation(s) delivered, 1 error(s)  <- some items dropped
  [FAILED]  stage error, no recommendations
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from techscout.models.feed_item import FeedItem
from techscout.models.matching import PreFilterMatch

if TYPE_CHECKING:
    from techscout.matching.calibration import AccuracyReport
    from techscout.pipeline.orchestrator import MatchingResult


# ── Run summary ───────────────────────────────────────────────────────────────


def format_status_banner(status: str, delivered: int, n_errors: int) -> str:
    """Return a one-line status indicator for a matching run."""
    if status == "success":
        return f"  [SUCCESS] {delivered} recommendation(s) delivered"
    if status == "partial":
        return f"  [PARTIAL] {delivered} recommendation(s) delivered, {n_errors} error(s)"
    return "  [FAILED]  stage error, no recommendations"


def format_matching_result(result: "MatchingResult", show_errors: bool = True) -> str:
    """Format a run: banner, stage funnel, timing, recommendation table.

    Args:
        result:      Run result.
        show_errors: Append the error list when the run had errors.

    Returns:
        Multi-line string.
    """
    s = result.summary
    lines: list[str] = []
    lines.append("")
    lines.append("=== Matching Run ===")
    lines.append(f"  Project:  {result.project_id}")
    lines.append(f"  Trace id: {result.trace_id}")
    lines.append(f"  As of:    {result.as_of.isoformat()}")
    lines.append(format_status_banner(result.status, s.delivered, len(result.errors)))
    lines.append("")
    lines.append("  Funnel")
    for label, value in (
        ("evaluated", s.evaluated),
        ("passed prefilter", s.passed_prefilter),
        ("passed maturity", s.passed_maturity),
        ("analyzed", s.analyzed),
        ("recommended", s.recommended),
        ("delivered", s.delivered),
    ):
        lines.append(f"    {label:<18} {value:>5}")

    lines.append("")
    lines.append("  Timing (ms)")
    for key, ms in result.timing.items():
        lines.append(f"    {key.removesuffix('_ms'):<18} {ms:>7}")

    lines.append(format_recommendations_table(result))

    if show_errors and result.errors:
        lines.append("")
        lines.append(f"  Errors ({len(result.errors)})")
        for err in result.errors:
            lines.append(f"    - {err}")
    return "\n".join(lines)


def format_recommendations_table(result: "MatchingResult") -> str:
    """Ranked recommendations, one row each."""
    lines: list[str] = [""]
    if not result.recommendations:
        lines.append("  (no recommendations)")
        return "\n".join(lines)

    header = (
        f"  {'#':>2}  {'Subject':<24}  {'Verdict':<9}  {'Action':<16}  "
        f"{'Priority':<8}  {'Conf':>5}  {'Delta':>6}  {'Effort':>9}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for i, rec in enumerate(result.recommendations, start=1):
        st = rec.stability
        lines.append(
            f"  {i:>2}  {rec.subject.name[:24]:<24}  {rec.verdict.value:<9}  "
            f"{rec.action.value:<16}  {rec.priority.value:<8}  {rec.confidence:>5.2f}  "
            f"{st.delta:>+6.2f}  {st.cost_of_change.effort_days:>9}"
        )
    return "\n".join(lines)


# ── Prefilter ─────────────────────────────────────────────────────────────────


def format_prefilter_table(
    items: list[FeedItem],
    matches: list[PreFilterMatch],
) -> str:
    """Every scored item with its verdict and reasons, best score first."""
    titles = {item.id: item.title for item in items}
    lines: list[str] = []
    lines.append("")
    lines.append("=== Prefilter ===")
    passed = sum(1 for m in matches if m.passed)
    lines.append(f"  Evaluated: {len(matches)}   Passed: {passed}")
    lines.append("")

    header = f"  {'Item':<14}  {'Title':<32}  {'Score':>5}  {'Traction':>8}  {'Pass':<4}  Reasons"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for m in sorted(matches, key=lambda m: -m.score):
        title = titles.get(m.feed_item_id, "")[:32]
        lines.append(
            f"  {m.feed_item_id[:14]:<14}  {title:<32}  {m.score:>5.2f}  "
            f"{m.raw_traction:>8.1f}  {'yes' if m.passed else 'no':<4}  "
            f"{'; '.join(m.reasons)}"
        )
    return "\n".join(lines)


# ── Calibration ───────────────────────────────────────────────────────────────


def format_calibration_report(report: "AccuracyReport", project_id: str = "") -> str:
    """Format an effort-accuracy report."""
    c = report.calibration
    lines: list[str] = []
    lines.append("")
    lines.append("=== Effort Calibration ===")
    if project_id:
        lines.append(f"  Project:          {project_id}")
    lines.append(f"  Adoptions:        {c.total_adoptions}")
    lines.append(f"  Mean ratio:       {c.avg_accuracy_ratio:.2f}  (actual / estimated)")
    lines.append(f"  Bias:             {c.bias.value}")
    lines.append(f"  Recent trend:     {report.recent_trend}")

    if report.accuracy_by_size:
        lines.append("")
        lines.append("  By estimate size")
        for bucket, ratio in report.accuracy_by_size.items():
            lines.append(f"    {bucket:<12} {ratio:>5.2f}")

    if report.outliers:
        lines.append("")
        lines.append(f"  Outliers ({len(report.outliers)})")
        for r in report.outliers:
            lines.append(
                f"    {r.subject[:24]:<24}  est {r.estimated_days:>5.1f}d  "
                f"actual {r.actual_days:>5.1f}d  ratio {r.accuracy_ratio:.2f}"
            )
    return "\n".join(lines)
