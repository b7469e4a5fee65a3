"""
Enrichment layer — turns one surviving feed item into a structured analysis.

Submodules:
  base             — EnrichmentClient protocol, request/result models,
                     build_enrichment_request()
  parser           — response validation (parse_enrichment_text/payload)
  messages_client  — HTTP client for a Messages-style LLM API (httpx)
  offline_client   — deterministic metadata-only client, no network
  factory          — create_enrichment_client() from EnrichmentConfig

Credential placement (.env, gitignored):
  ANTHROPIC_API_KEY   — API key for the messages client
"""
