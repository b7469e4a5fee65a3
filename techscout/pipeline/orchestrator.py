"""
Matching orchestration for techscout.

The ``MatchingOrchestrator`` runs one batch of feed items against one project
profile in a fixed, deterministic sequence:

  Step 1 — Prefilter:    Score every item, keep the relevant ones (capped).
  Step 2 — Maturity:     Infer maturity, propose an action from the match
                         score, run the gate, downgrade the action, and
                         (optionally) drop items failing the quick check.
  Step 3 — Enrichment:   Ask the injected ``EnrichmentClient`` for an
                         analysis of each survivor (capped, best-effort).
  Step 4 — Stability:    Cost of change vs cost of no-change verdict per item.
  Step 5 — Ranking:      Assemble recommendations, dedup, order, cap.

Each stage finishes its whole item loop before the next one starts.

Failure isolation
-----------------
- Per-item enrichment failure (transport error, malformed response, any
  exception from the client): logged, appended to ``errors``, item dropped,
  batch continues.
- Enrichment budget exhausted (``batch_timeout_seconds``): remaining items
  are dropped and one error is recorded.  In parallel mode calls already in
  flight are abandoned, not joined (see ``_enrich_parallel``).
- Any other exception inside a stage: caught here, appended to ``errors``,
  and a well-formed result with no recommendations is returned.
- ``run()`` never raises.  Configuration problems are raised by the
  constructor instead, before any item is processed.

Status
------
  success — no errors.
  partial — some items were dropped, the run completed.
  failed  — a stage raised; no recommendations were produced.

Concurrency
-----------
Every ``run()`` owns a fresh ``MatchingContext``; nothing mutable is shared
between invocations.  ``run_many()`` runs one ``run()`` per profile in a
thread pool (``profile_workers``).  Inside a run, enrichment calls may use a
bounded pool (``enrichment_workers``); results are collected in submission
order, so output never depends on completion order.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from techscout.config import AppConfig
from techscout.enrichment.base import (
    EnrichmentClient,
    EnrichmentRequest,
    EnrichmentResult,
    build_enrichment_request,
)
from techscout.enrichment.parser import parse_enrichment_payload
from techscout.errors import ConfigurationError, EnrichmentError
from techscout.matching.maturity import (
    action_for_match_score,
    evaluate_maturity,
    infer_maturity,
    recommended_action,
)
from techscout.matching.prefilter import filter_items
from techscout.matching.ranker import RankerInput, build_recommendation, rank, summarize
from techscout.matching.stability import StabilityInput, evaluate_stability, quick_check
from techscout.models.claims import generate_trace_id
from techscout.models.feed_item import FeedItem
from techscout.models.matching import MaturityGateResult, PreFilterMatch
from techscout.models.project import ProjectProfile
from techscout.models.recommendation import Recommendation, StabilityAssessment
from techscout.taxonomy.maturity_taxonomy import RecommendationAction, StabilityVerdict
from techscout.utils.time_utils import elapsed_ms, utcnow

logger = logging.getLogger(__name__)

STAGES = ("prefilter", "maturity", "enrichment", "stability", "ranking")


# ── Context and result types ──────────────────────────────────────────────────

@dataclass
class MatchingContext:
    """Mutable state of one ``run()`` invocation; never shared.

    Attributes:
        trace_id: Run trace id (``IFX-YYYY-MMDD-RUN-XXXXXX``).
        as_of:    Timestamp every age calculation of the run is anchored to.
        stage:    Stage currently executing (for error messages).
        errors:   Accumulated error messages.
        timing:   Stage name → elapsed milliseconds.
    """

    trace_id: str
    as_of:    datetime
    stage:    str                = "setup"
    errors:   list[str]          = field(default_factory=list)
    timing:   dict[str, int]     = field(default_factory=dict)


@dataclass
class MatchingSummary:
    """Item counts after each stage."""

    evaluated:        int = 0
    passed_prefilter: int = 0
    passed_maturity:  int = 0
    analyzed:         int = 0
    recommended:      int = 0
    delivered:        int = 0


@dataclass
class MatchingResult:
    """Complete result of one matching run.

    Attributes:
        project_id:      Profile the run was evaluated against.
        trace_id:        Run trace id.
        as_of:           Run timestamp.
        recommendations: Ranked, capped recommendations.
        summary:         Per-stage item counts.
        timing:          ``<stage>_ms`` per stage plus ``total_ms``.
        errors:          Per-item and stage error messages.
        status:          ``"success"``, ``"partial"`` or ``"failed"``.
    """

    project_id:      str
    trace_id:        str
    as_of:           datetime
    recommendations: list[Recommendation] = field(default_factory=list)
    summary:         MatchingSummary      = field(default_factory=MatchingSummary)
    timing:          dict[str, int]       = field(default_factory=dict)
    errors:          list[str]            = field(default_factory=list)
    status:          str                  = "success"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation (recommendations via ``model_dump``)."""
        return {
            "project_id": self.project_id,
            "trace_id": self.trace_id,
            "as_of": self.as_of.isoformat(),
            "status": self.status,
            "summary": asdict(self.summary),
            "timing": dict(self.timing),
            "errors": list(self.errors),
            "recommendations": [r.model_dump(mode="json") for r in self.recommendations],
        }


# ── Per-item intermediates ────────────────────────────────────────────────────

@dataclass
class _Candidate:
    item:     FeedItem
    match:    PreFilterMatch
    maturity: MaturityGateResult
    action:   RecommendationAction


@dataclass
class _Analyzed:
    candidate:  _Candidate
    enrichment: EnrichmentResult


@dataclass
class _Assessed:
    analyzed:  _Analyzed
    stability: StabilityAssessment


# ── Orchestrator ──────────────────────────────────────────────────────────────

class MatchingOrchestrator:
    """Runs the five matching stages for one project at a time.

    Args:
        config:   AppConfig for this orchestrator.
        enricher: Enrichment client.  Required unless
            ``config.matching.skip_enrichment`` is set.

    Raises:
        ConfigurationError: If enrichment is enabled but no client was given.
    """

    def __init__(
        self,
        config: AppConfig,
        enricher: Optional[EnrichmentClient] = None,
    ) -> None:
        if enricher is None and not config.matching.skip_enrichment:
            raise ConfigurationError(
                "An enrichment client is required unless matching.skip_enrichment is set."
            )
        self.config   = config
        self.enricher = enricher

    @property
    def _verbose(self) -> bool:
        return self.config.matching.debug or self.config.debug

    def run(
        self,
        items: list[FeedItem],
        profile: ProjectProfile,
        as_of: Optional[datetime] = None,
    ) -> MatchingResult:
        """Run the full pipeline for one profile.

        Args:
            items:   Feed items (already deduplicated by ingestion).
            profile: Validated project profile.
            as_of:   Run timestamp; the current UTC time when ``None``.

        Returns:
            MatchingResult.  Never raises for item or stage failures.
        """
        as_of = as_of or utcnow()
        ctx = MatchingContext(trace_id=generate_trace_id(as_of, "RUN"), as_of=as_of)
        result = MatchingResult(project_id=profile.id, trace_id=ctx.trace_id, as_of=as_of)
        result.summary.evaluated = len(items)
        start = time.perf_counter()

        logger.info(
            "MatchingOrchestrator | trace_id=%s | project=%s | items=%d",
            ctx.trace_id, profile.id, len(items),
            extra={"trace_id": ctx.trace_id},
        )

        try:
            matches = self._timed(ctx, "prefilter", self._run_prefilter, items, profile)
            result.summary.passed_prefilter = len(matches)

            candidates = self._timed(
                ctx, "maturity", self._run_maturity, ctx, items, matches, profile
            )
            result.summary.passed_maturity = sum(1 for c in candidates if c.maturity.passed)

            analyzed = self._timed(
                ctx, "enrichment", self._run_enrichment, ctx, candidates, profile
            )
            result.summary.analyzed = len(analyzed)

            assessed = self._timed(ctx, "stability", self._run_stability, analyzed, profile)
            result.summary.recommended = sum(
                1 for a in assessed if a.stability.verdict == StabilityVerdict.RECOMMEND
            )

            result.recommendations = self._timed(
                ctx, "ranking", self._run_ranking, ctx, assessed, profile
            )
            result.summary.delivered = len(result.recommendations)
            result.status = "partial" if ctx.errors else "success"

        except Exception as exc:
            logger.error(
                "Stage '%s' failed | trace_id=%s | %s", ctx.stage, ctx.trace_id, exc,
                exc_info=self._verbose,
            )
            ctx.errors.append(f"Stage '{ctx.stage}' failed: {exc}")
            result.recommendations = []
            result.summary.delivered = 0
            result.status = "failed"

        result.errors = ctx.errors
        result.timing = {f"{s}_ms": ctx.timing.get(s, 0) for s in STAGES}
        result.timing["total_ms"] = elapsed_ms(start, time.perf_counter())

        logger.info(
            "MatchingOrchestrator finished | trace_id=%s | status=%s | delivered=%d | "
            "errors=%d | total_ms=%d",
            ctx.trace_id, result.status, result.summary.delivered,
            len(result.errors), result.timing["total_ms"],
            extra={"trace_id": ctx.trace_id},
        )
        return result

    def run_many(
        self,
        items: list[FeedItem],
        profiles: list[ProjectProfile],
        as_of: Optional[datetime] = None,
    ) -> dict[str, MatchingResult]:
        """Run the same item batch against several profiles in parallel.

        All runs share one ``as_of`` so their age calculations agree.

        Returns:
            Project id → MatchingResult, in ``profiles`` order.
        """
        if not profiles:
            return {}
        as_of = as_of or utcnow()
        workers = min(self.config.matching.profile_workers, len(profiles))

        logger.info(
            "Multi-project matching | projects=%d | items=%d | workers=%d",
            len(profiles), len(items), workers,
        )
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="profile") as pool:
            futures = [pool.submit(self.run, items, p, as_of) for p in profiles]
            results = {p.id: f.result() for p, f in zip(profiles, futures)}

        logger.info(
            "Multi-project matching finished | projects=%d | delivered=%d",
            len(results), sum(r.summary.delivered for r in results.values()),
        )
        return results

    # ── Stages ────────────────────────────────────────────────────────────────

    def _timed(self, ctx: MatchingContext, stage: str, fn, *args):
        ctx.stage = stage
        start = time.perf_counter()
        try:
            return fn(*args)
        finally:
            ctx.timing[stage] = elapsed_ms(start, time.perf_counter())

    def _run_prefilter(
        self, items: list[FeedItem], profile: ProjectProfile
    ) -> list[PreFilterMatch]:
        matches = filter_items(items, profile)
        logger.info("[1/5] Prefilter | evaluated=%d | passed=%d", len(items), len(matches))
        return matches

    def _run_maturity(
        self,
        ctx: MatchingContext,
        items: list[FeedItem],
        matches: list[PreFilterMatch],
        profile: ProjectProfile,
    ) -> list[_Candidate]:
        by_id: dict[str, FeedItem] = {}
        for item in items:
            by_id.setdefault(item.id, item)

        policy = profile.scouting.maturity_policy
        use_quick_check = self.config.matching.use_quick_check
        candidates: list[_Candidate] = []

        for match in matches:
            item = by_id[match.feed_item_id]
            inferred = infer_maturity(item.traction, ctx.as_of)
            preferred = action_for_match_score(match.score)

            gate = evaluate_maturity(inferred, preferred, item.traction, ctx.as_of, policy)
            action = recommended_action(gate.maturity, preferred, policy)
            if action != preferred:
                gate = evaluate_maturity(inferred, action, item.traction, ctx.as_of, policy)

            if use_quick_check:
                proceed, reason = quick_check(profile, gate, match.score)
                if not proceed:
                    if self._verbose:
                        logger.debug("Quick check rejected | item=%s | %s", item.id, reason)
                    continue

            if self._verbose and action != preferred:
                logger.debug(
                    "Action downgraded | item=%s | %s -> %s | maturity=%s",
                    item.id, preferred, action, gate.maturity,
                )
            candidates.append(_Candidate(item=item, match=match, maturity=gate, action=action))

        logger.info(
            "[2/5] Maturity gate | evaluated=%d | passed=%d | candidates=%d",
            len(matches), sum(1 for c in candidates if c.maturity.passed), len(candidates),
        )
        # Gate failures (quick check off) sort behind every passing item.
        return sorted(candidates, key=lambda c: not c.maturity.passed)

    def _run_enrichment(
        self,
        ctx: MatchingContext,
        candidates: list[_Candidate],
        profile: ProjectProfile,
    ) -> list[_Analyzed]:
        mc = self.config.matching
        if mc.skip_enrichment:
            logger.info("[3/5] Enrichment skipped (skip_enrichment=True).")
            return []

        to_analyze = candidates[: mc.max_enrichment_items]
        if len(to_analyze) < len(candidates):
            logger.info(
                "Enrichment capped | candidates=%d | cap=%d",
                len(candidates), mc.max_enrichment_items,
            )

        requests = [
            build_enrichment_request(c.item, profile, c.match, c.maturity, c.action)
            for c in to_analyze
        ]
        deadline = (
            time.perf_counter() + mc.batch_timeout_seconds
            if mc.batch_timeout_seconds is not None
            else None
        )

        if mc.enrichment_workers <= 1 or len(requests) <= 1:
            outcomes = self._enrich_sequential(ctx, to_analyze, requests, deadline)
        else:
            outcomes = self._enrich_parallel(ctx, to_analyze, requests, deadline)

        analyzed = [
            _Analyzed(candidate=c, enrichment=r)
            for c, r in zip(to_analyze, outcomes)
            if r is not None
        ]
        logger.info(
            "[3/5] Enrichment | attempted=%d | succeeded=%d", len(to_analyze), len(analyzed)
        )
        return analyzed

    def _enrich_one(
        self, trace_id: str, item: FeedItem, request: EnrichmentRequest
    ) -> tuple[Optional[EnrichmentResult], Optional[str]]:
        """Call the client for one item.  Returns ``(result, error)``; never raises.

        A decoded dict from the client goes through the response parser;
        anything else that is not an ``EnrichmentResult`` is an item error.
        """
        try:
            return self._checked(self.enricher.analyze(request), request), None
        except Exception as exc:
            logger.warning(
                "Enrichment failed | trace_id=%s | item=%s | %s", trace_id, item.id, exc
            )
            return None, f"Enrichment failed for {item.id}: {exc}"

    def _checked(self, raw: Any, request: EnrichmentRequest) -> EnrichmentResult:
        if isinstance(raw, EnrichmentResult):
            return raw
        if isinstance(raw, dict):
            return parse_enrichment_payload(raw, request, self.enricher.model_name)
        raise EnrichmentError(
            f"client returned {type(raw).__name__}, expected EnrichmentResult"
        )

    def _collect(
        self,
        ctx: MatchingContext,
        outcome: tuple[Optional[EnrichmentResult], Optional[str]],
    ) -> Optional[EnrichmentResult]:
        result, error = outcome
        if error is not None:
            ctx.errors.append(error)
        return result

    def _budget_exhausted(self, ctx: MatchingContext, skipped: int) -> None:
        msg = (
            f"Enrichment budget of {self.config.matching.batch_timeout_seconds}s "
            f"exhausted; {skipped} item(s) skipped"
        )
        logger.warning("%s | trace_id=%s", msg, ctx.trace_id)
        ctx.errors.append(msg)

    def _enrich_sequential(
        self,
        ctx: MatchingContext,
        candidates: list[_Candidate],
        requests: list[EnrichmentRequest],
        deadline: Optional[float],
    ) -> list[Optional[EnrichmentResult]]:
        outcomes: list[Optional[EnrichmentResult]] = []
        for i, (candidate, request) in enumerate(zip(candidates, requests)):
            if deadline is not None and time.perf_counter() >= deadline:
                self._budget_exhausted(ctx, len(requests) - i)
                outcomes.extend([None] * (len(requests) - i))
                break
            outcomes.append(
                self._collect(ctx, self._enrich_one(ctx.trace_id, candidate.item, request))
            )
        return outcomes

    def _enrich_parallel(
        self,
        ctx: MatchingContext,
        candidates: list[_Candidate],
        requests: list[EnrichmentRequest],
        deadline: Optional[float],
    ) -> list[Optional[EnrichmentResult]]:
        """Enrich on a bounded pool, collecting in submission order.

        When the budget runs out, queued calls are cancelled but calls already
        running cannot be interrupted: the pool is released without joining
        them and their late results are discarded.  ``run()`` therefore returns
        on time, while a slow client may keep one thread per worker busy until
        its own request timeout fires.
        """
        workers = min(self.config.matching.enrichment_workers, len(requests))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="enrich")
        outcomes: list[Optional[EnrichmentResult]] = []
        try:
            futures = [
                pool.submit(self._enrich_one, ctx.trace_id, c.item, r)
                for c, r in zip(candidates, requests)
            ]
            for i, future in enumerate(futures):
                timeout = None
                if deadline is not None:
                    timeout = max(0.0, deadline - time.perf_counter())
                try:
                    outcomes.append(self._collect(ctx, future.result(timeout=timeout)))
                except FutureTimeoutError:
                    self._budget_exhausted(ctx, len(futures) - i)
                    outcomes.extend([None] * (len(futures) - i))
                    break
        finally:
            pool.shutdown(wait=deadline is None, cancel_futures=True)
        return outcomes

    def _run_stability(
        self, analyzed: list[_Analyzed], profile: ProjectProfile
    ) -> list[_Assessed]:
        assessed: list[_Assessed] = []
        for a in analyzed:
            c = a.candidate
            stability = evaluate_stability(
                StabilityInput(
                    effort=a.enrichment.effort,
                    profile=profile,
                    maturity_result=c.maturity,
                    action=c.action,
                    technologies_matched=c.match.technologies_matched,
                    item_title=c.item.title,
                    item_description=c.item.description,
                ),
                self.config.stability,
            )
            if self._verbose:
                logger.debug(
                    "Stability | item=%s | delta=%+.2f | verdict=%s",
                    c.item.id, stability.delta, stability.verdict,
                )
            assessed.append(_Assessed(analyzed=a, stability=stability))

        counts = {v: 0 for v in StabilityVerdict}
        for a in assessed:
            counts[a.stability.verdict] += 1
        logger.info(
            "[4/5] Stability gate | evaluated=%d | recommend=%d | monitor=%d | defer=%d",
            len(assessed),
            counts[StabilityVerdict.RECOMMEND],
            counts[StabilityVerdict.MONITOR],
            counts[StabilityVerdict.DEFER],
        )
        return assessed

    def _run_ranking(
        self,
        ctx: MatchingContext,
        assessed: list[_Assessed],
        profile: ProjectProfile,
    ) -> list[Recommendation]:
        candidates = [
            build_recommendation(
                RankerInput(
                    item=a.analyzed.candidate.item,
                    profile=profile,
                    match=a.analyzed.candidate.match,
                    enrichment=a.analyzed.enrichment,
                    stability=a.stability,
                    action=a.analyzed.candidate.action,
                ),
                ctx.as_of,
            )
            for a in assessed
        ]
        final = rank(candidates, profile.scouting.max_recommendations)
        logger.info(
            "[5/5] Ranking | built=%d | delivered=%d | cap=%d | by_priority=%s",
            len(candidates), len(final), profile.scouting.max_recommendations,
            summarize(final)["by_priority"],
        )
        return final
