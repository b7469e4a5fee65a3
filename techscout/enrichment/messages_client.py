"""
HTTP enrichment client for a Messages-style LLM API.

Endpoint:  ``[enrichment] api_url`` (default https://api.anthropic.com/v1/messages)

Credential setup (.env, gitignored):
  ANTHROPIC_API_KEY=your_key_here      # name configurable via [enrichment] api_key_env

Request::

    POST {api_url}
      headers: x-api-key, anthropic-version, content-type: application/json
      body:    {"model", "max_tokens", "temperature", "system",
                "messages": [{"role": "user", "content": <prompt>}]}

The response's text blocks are concatenated, the JSON object extracted and
validated by ``techscout.enrichment.parser``.  No retries: a failed call
raises ``EnrichmentError`` and the orchestrator drops the item.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from techscout.enrichment.base import EnrichmentRequest, EnrichmentResult
from techscout.enrichment.parser import parse_enrichment_payload, parse_enrichment_text
from techscout.errors import EnrichmentError

if TYPE_CHECKING:
    import httpx

    from techscout.config import EnrichmentConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are the analysis engine of a technology-scouting service. You evaluate one
technology against one software project and return a structured analysis.

Rules:
1. You never see source code. Use only the dependency list, finding metadata,
   the project manifest (pain points, constraints) and the feed item.
2. Tag every claim:
   - FACT: verifiable without assumptions; give its source and reliability.
   - INFERENCE: derived from facts; list what it derives from and a 0-1 confidence.
   - ASSUMPTION: an explicit hypothesis that cannot be verified.
3. Bias toward stability: a change is only worth it when the cost of not
   changing exceeds the cost of changing. Prefer MONITOR for experimental tech.
4. Be conservative with effort estimates; overestimating is better.
5. Write the human-friendly section for non-technical readers: no jargon.
6. Reply with a single JSON object and nothing else."""

RESPONSE_SCHEMA_HINT = """\
{
  "subject": {"name": str, "type": "library|framework|platform|tool|service|pattern|practice",
              "url": str|null, "version": str|null, "ecosystem": str|null, "license": str|null},
  "technical": {
    "analysis": {
      "facts": [{"claim": str, "source": str, "source_reliability": "very_high|high|medium|low",
                 "source_url": str|null, "finding_id": str|null}],
      "inferences": [{"claim": str, "derived_from": [str], "confidence": 0-1}],
      "assumptions": [{"claim": str}]
    },
    "effort": {"raw_estimate_days": "e.g. 2-3", "complexity": "trivial|low|medium|high|very_high",
               "breaking_changes": bool, "reversibility": "easy|medium|hard|irreversible",
               "steps": [str]},
    "impact": {"security": {"score_change": str, "detail": str},
               "performance": {"score_change": str, "detail": str},
               "maintainability": {"score_change": str, "detail": str},
               "cost": {"score_change": str, "detail": str},
               "risk": {"level": "none|low|medium|high|critical", "detail": str}},
    "tradeoffs": {"gains": [str], "losses": [str]},
    "failure_modes": [{"mode": str, "probability": "low|medium|high", "mitigation": str}],
    "limitations": [str]
  },
  "human_friendly": {"title": str, "one_liner": str, "summary": str, "why_now": str,
                     "talking_points": [{"point": str, "answer": str}],
                     "impact_summary": {"security": str, "cost": str, "risk": str, "urgency": str}},
  "confidence": 0-1
}"""


def build_user_prompt(request: EnrichmentRequest) -> str:
    """Render the user prompt for one request."""
    return (
        "Analyze this technology for a possible recommendation to the project.\n\n"
        "## PROJECT CONTEXT\n"
        f"```json\n{request.project.model_dump_json(indent=2)}\n```\n\n"
        "## TECHNOLOGY (feed item)\n"
        f"```json\n{request.item.model_dump_json(indent=2)}\n```\n\n"
        "## MATCHING CONTEXT\n"
        f"```json\n{request.match.model_dump_json(indent=2)}\n```\n\n"
        "## MATURITY ASSESSMENT\n"
        f"```json\n{request.maturity.model_dump_json(indent=2)}\n```\n\n"
        f"## PROPOSED ACTION: {request.proposed_action}\n\n"
        "## REQUIRED OUTPUT FORMAT\n"
        f"```\n{RESPONSE_SCHEMA_HINT}\n```\n"
    )


class MessagesEnrichmentClient:
    """Enrichment over HTTP.

    Usage::

        from techscout.config import load_config
        cfg = load_config()
        client = MessagesEnrichmentClient(cfg.enrichment, api_key=os.environ["ANTHROPIC_API_KEY"])
        result = client.analyze(request)

    Tests pass ``http_client=httpx.Client(transport=httpx.MockTransport(...))``.
    """

    TEXT_BLOCK_TYPE: ClassVar[str] = "text"

    def __init__(
        self,
        config: "EnrichmentConfig",
        api_key: str,
        http_client: Optional["httpx.Client"] = None,
    ) -> None:
        """Initialise the client.

        Args:
            config:      Enrichment section of ``AppConfig``.
            api_key:     API key read from the environment.
            http_client: Optional pre-built ``httpx.Client``; a module-level
                ``httpx.post`` is used when ``None``.
        """
        if not api_key:
            raise EnrichmentError("An API key is required for the messages enrichment client.")
        self.config = config
        self.model_name = config.model
        self._api_key = api_key
        self._http = http_client

    def analyze(self, request: EnrichmentRequest) -> EnrichmentResult:
        """Call the API for one request and validate the reply.

        Raises:
            EnrichmentError: On transport errors, non-2xx responses, or
                malformed payloads.
        """
        import httpx

        body = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": build_user_prompt(request)}],
        }
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": self.config.api_version,
            "content-type": "application/json",
        }

        try:
            if self._http is not None:
                resp = self._http.post(
                    self.config.api_url,
                    json=body,
                    headers=headers,
                    timeout=self.config.timeout_seconds,
                )
            else:
                resp = httpx.post(
                    self.config.api_url,
                    json=body,
                    headers=headers,
                    timeout=self.config.timeout_seconds,
                )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            raise EnrichmentError(
                f"Enrichment call failed for item '{request.feed_item_id}': {exc}"
            ) from exc
        except ValueError as exc:
            raise EnrichmentError(
                f"Enrichment response for item '{request.feed_item_id}' is not JSON."
            ) from exc

        text = self._extract_text(data)
        usage = data.get("usage", {}) if isinstance(data, dict) else {}
        logger.debug(
            "Enrichment call | item=%s | model=%s | in=%s | out=%s",
            request.feed_item_id,
            self.config.model,
            usage.get("input_tokens"),
            usage.get("output_tokens"),
        )
        payload = parse_enrichment_text(text)
        return parse_enrichment_payload(payload, request, self.config.model)

    def _extract_text(self, data: Any) -> str:
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            raise EnrichmentError("Enrichment response has no content blocks.")
        text = "".join(
            b.get("text", "")
            for b in blocks
            if isinstance(b, dict) and b.get("type") == self.TEXT_BLOCK_TYPE
        )
        if not text.strip():
            raise EnrichmentError("Enrichment response contains no text.")
        return text
