"""Build the enrichment client selected by ``[enrichment] provider``."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from techscout.enrichment.base import EnrichmentClient
from techscout.enrichment.messages_client import MessagesEnrichmentClient
from techscout.enrichment.offline_client import OfflineEnrichmentClient
from techscout.errors import ConfigurationError

if TYPE_CHECKING:
    from techscout.config import EnrichmentConfig

logger = logging.getLogger(__name__)


def create_enrichment_client(config: "EnrichmentConfig") -> EnrichmentClient:
    """Return the configured client.

    ``auto`` picks the messages client when the API key env var is set and
    falls back to the offline client otherwise.

    Raises:
        ConfigurationError: ``provider = "messages"`` without an API key.
    """
    api_key = os.environ.get(config.api_key_env, "")

    if config.provider == "offline":
        return OfflineEnrichmentClient()

    if config.provider == "messages":
        if not api_key:
            raise ConfigurationError(
                f"provider = 'messages' requires {config.api_key_env} in the environment or .env."
            )
        return MessagesEnrichmentClient(config, api_key=api_key)

    if api_key:
        return MessagesEnrichmentClient(config, api_key=api_key)
    logger.info("%s not set; using offline enrichment.", config.api_key_env)
    return OfflineEnrichmentClient()
