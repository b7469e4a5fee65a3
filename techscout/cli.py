"""
Command line for techscout.

Every command loads ``AppConfig`` first, then sets up logging, then reads its
JSON inputs.  Reports are printed to stdout and log lines go to stderr, so
``techscout run-matching ... > report.txt`` keeps the two apart.

Examples::

    techscout validate-config --full
    techscout prefilter --items data/items.json --profile data/profile.json
    techscout run-matching --items data/items.json --profile data/profile.json -o run.json
    techscout show-calibration --adoptions data/adoptions.json
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="techscout",
    help="techscout — stability-biased technology scouting for software projects.",
    add_completion=False,
)

CONFIG_HELP = "TOML config file; defaults to config/default.toml plus config/local.toml."


# ── Helpers ───────────────────────────────────────────────────────────────────

def _fail(message: str) -> typer.Exit:
    typer.echo(f"[ERROR] {message}", err=True)
    return typer.Exit(code=1)


def _config_or_exit(config_path: Optional[str]):
    from techscout.config import load_config
    from techscout.errors import ConfigurationError

    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        raise _fail(str(exc))
    except (ConfigurationError, ValueError) as exc:
        raise _fail(f"Invalid configuration: {exc}")


def _start_logging(config) -> None:
    from techscout.utils.logging import configure_logging

    configure_logging(config.logging)


def _load_items_or_exit(items_file: str):
    from techscout.ingestion.feed_loader import load_feed_items

    try:
        return load_feed_items(Path(items_file))
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(f"Feed items: {exc}")


def _load_profile_or_exit(profile_file: str):
    from techscout.errors import ProfileValidationError
    from techscout.ingestion.feed_loader import load_project_profile

    try:
        return load_project_profile(Path(profile_file))
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(f"Profile: {exc}")
    except ProfileValidationError as exc:
        typer.echo(f"[ERROR] Profile '{exc.project_id}' failed validation:", err=True)
        for problem in exc.problems[:10]:
            typer.echo(f"  {problem}", err=True)
        if len(exc.problems) > 10:
            typer.echo(f"  ... and {len(exc.problems) - 10} more.", err=True)
        raise typer.Exit(code=1)


def _parse_as_of_or_exit(as_of: Optional[str]) -> Optional[datetime]:
    if not as_of:
        return None
    try:
        parsed = datetime.fromisoformat(as_of)
    except ValueError as exc:
        raise _fail(f"Invalid --as-of timestamp: {exc}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    show_full: bool = typer.Option(False, "--full", help="Also dump every field as JSON."),
) -> None:
    """Check that the configuration loads and summarise the settings a run uses.

    Exit code 1 means a value failed validation, for instance thresholds in
    the wrong order.
    """
    config = _config_or_exit(config_path)
    m, s, e = config.matching, config.stability, config.enrichment

    summary = [
        ("Enrichment", f"provider={e.provider} | model={e.model}"),
        ("Skip enrichment", m.skip_enrichment),
        ("Max enrichments", m.max_enrichment_items),
        ("Quick check", m.use_quick_check),
        ("Workers", f"enrichment={m.enrichment_workers} | profiles={m.profile_workers}"),
        ("Batch timeout", m.batch_timeout_seconds or "none"),
        ("Thresholds", f"recommend={s.recommend_threshold} | defer={s.defer_threshold}"),
        ("Log level", config.logging.level),
        ("Debug", config.debug),
    ]
    typer.echo("=== Configuration ===")
    for label, value in summary:
        typer.echo(f"  {label + ':':<18} {value}")

    if show_full:
        typer.echo("\n" + json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("\n[OK] Config valid.")


@app.command("prefilter")
def prefilter(
    items_file: str = typer.Option(..., "--items", help="Feed items JSON file."),
    profile_file: str = typer.Option(..., "--profile", help="Project profile JSON file."),
    config_path: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
) -> None:
    """Score feed items against a profile (stage 1 only, no enrichment).

    Prints every item with its score, raw traction, pass flag and reasons.
    """
    from techscout.matching.prefilter import config_from_profile, prefilter_batch
    from techscout.reporting.formatters import format_prefilter_table

    config = _config_or_exit(config_path)
    _start_logging(config)

    items = _load_items_or_exit(items_file)
    profile = _load_profile_or_exit(profile_file)

    pf_config = config_from_profile(profile)
    matches = prefilter_batch(items, profile, pf_config)

    typer.echo(format_prefilter_table(items, matches))
    typer.echo("")
    typer.echo(
        f"  Thresholds: min_score={pf_config.min_score:.2f} | "
        f"min_traction={pf_config.min_traction:.0f} | cap={pf_config.max_output_items}"
    )
    typer.echo("[OK] Prefilter complete.")


@app.command("run-matching")
def run_matching(
    items_file: str = typer.Option(..., "--items", help="Feed items JSON file."),
    profile_files: list[str] = typer.Option(
        ...,
        "--profile",
        help="Project profile JSON file. Repeatable; profiles run in parallel.",
    ),
    skip_enrichment: bool = typer.Option(
        False,
        "--skip-enrichment",
        help="Stop after the maturity gate (no enrichment calls, no recommendations).",
    ),
    max_enrichment_items: Optional[int] = typer.Option(
        None,
        "--max-enrichment-items",
        help="Override the per-run enrichment call cap.",
    ),
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        help="Enrichment provider override: auto, messages or offline.",
    ),
    as_of: Optional[str] = typer.Option(
        None,
        "--as-of",
        help="Run timestamp (ISO 8601). Defaults to now; fix it for reproducible runs.",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the full result JSON to this path.",
    ),
    csv_output: Optional[str] = typer.Option(
        None,
        "--csv",
        help="Write one flat CSV row per recommendation to this path.",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
) -> None:
    """Run the full matching pipeline.

    \b
    Stages:
      1. Prefilter   — relevance scoring and hard rejects.
      2. Maturity    — maturity gate, action downgrade, quick check.
      3. Enrichment  — per-item analysis (messages API or offline mode).
      4. Stability   — cost of change vs cost of no-change verdict.
      5. Ranking     — dedup, order, cap to the profile's maximum.

    With ANTHROPIC_API_KEY set (in the environment or .env) the ``auto``
    provider calls the messages API; without it enrichment runs offline
    from item metadata.
    Exits with code 1 if any run failed.
    """
    from techscout.enrichment.factory import create_enrichment_client
    from techscout.errors import ConfigurationError
    from techscout.pipeline.orchestrator import MatchingOrchestrator
    from techscout.reporting.export import export_recommendations_csv, export_to_json
    from techscout.reporting.formatters import format_matching_result

    config = _config_or_exit(config_path)

    matching_updates: dict = {}
    if skip_enrichment:
        matching_updates["skip_enrichment"] = True
    if max_enrichment_items is not None:
        matching_updates["max_enrichment_items"] = max_enrichment_items
    try:
        if matching_updates:
            config = config.model_copy(
                update={"matching": config.matching.model_validate(
                    {**config.matching.model_dump(), **matching_updates}
                )}
            )
        if provider:
            config = config.model_copy(
                update={"enrichment": config.enrichment.model_validate(
                    {**config.enrichment.model_dump(), "provider": provider}
                )}
            )
    except ValueError as exc:
        raise _fail(f"Invalid option: {exc}")

    _start_logging(config)
    run_as_of = _parse_as_of_or_exit(as_of)

    items = _load_items_or_exit(items_file)
    profiles = [_load_profile_or_exit(p) for p in profile_files]

    try:
        enricher = (
            None if config.matching.skip_enrichment
            else create_enrichment_client(config.enrichment)
        )
        orchestrator = MatchingOrchestrator(config, enricher=enricher)
    except ConfigurationError as exc:
        raise _fail(str(exc))

    typer.echo(
        f"run-matching | items={len(items)} | profiles={len(profiles)} | "
        f"enrichment={'skipped' if enricher is None else enricher.model_name}"
    )

    if len(profiles) == 1:
        results = {profiles[0].id: orchestrator.run(items, profiles[0], as_of=run_as_of)}
    else:
        results = orchestrator.run_many(items, profiles, as_of=run_as_of)

    for result in results.values():
        typer.echo(format_matching_result(result))

    if output:
        if len(results) == 1:
            payload = next(iter(results.values())).to_dict()
        else:
            payload = {pid: r.to_dict() for pid, r in results.items()}
        path = export_to_json(payload, Path(output))
        typer.echo(f"\n  Result JSON written to: {path}")

    if csv_output:
        for pid, result in results.items():
            target = Path(csv_output)
            if len(results) > 1:
                target = target.with_name(f"{target.stem}_{pid}{target.suffix}")
            path = export_recommendations_csv(result, target)
            typer.echo(f"  Recommendations CSV written to: {path}")

    typer.echo("")
    if any(r.status == "failed" for r in results.values()):
        typer.echo("[ERROR] At least one matching run failed; see errors above.", err=True)
        raise typer.Exit(code=1)
    typer.echo("[OK] Matching complete.")


@app.command("show-calibration")
def show_calibration(
    adoptions_file: str = typer.Option(
        ...,
        "--adoptions",
        help="Adoption history JSON (list of records, or a profile file with 'adoptions').",
    ),
    project_id: str = typer.Option("", "--project", help="Project id for the header."),
    config_path: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
) -> None:
    """Show the team's effort-estimation accuracy and the calibration it implies."""
    from techscout.ingestion.feed_loader import load_adoption_records
    from techscout.matching.calibration import (
        MIN_ADOPTIONS,
        accuracy_report,
        calibration_factor,
    )
    from techscout.reporting.formatters import format_calibration_report

    config = _config_or_exit(config_path)
    _start_logging(config)

    try:
        records = load_adoption_records(Path(adoptions_file))
    except (FileNotFoundError, ValueError) as exc:
        raise _fail(f"Adoption history: {exc}")

    report = accuracy_report(records)
    typer.echo(format_calibration_report(report, project_id))
    typer.echo("")
    if report.calibration.total_adoptions < MIN_ADOPTIONS:
        typer.echo(
            f"  Calibration inactive: needs at least {MIN_ADOPTIONS} adoptions."
        )
    else:
        typer.echo(
            f"  Effort factor applied to new estimates: "
            f"{calibration_factor(report.calibration):.2f}x"
        )
    typer.echo("[OK] Calibration report complete.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
