"""Backend selection for LLM clients."""

from __future__ import annotations

import logging

from cruxboard.config import DebateSettings, LLMBackend
from cruxboard.services.llm.llm_client import DeterministicLLMClient, LLMClient

logger = logging.getLogger(__name__)


def create_llm_client(settings: DebateSettings) -> LLMClient:
    """Build the client selected by CRUXBOARD_LLM_BACKEND.

    Raises:
        ConfigurationError: If the Anthropic backend is selected without an API key.
    """
    if settings.llm_backend is LLMBackend.ANTHROPIC:
        from cruxboard.services.llm.anthropic_client import AnthropicLLMClient

        logger.info(
            "Using Anthropic backend (sonnet=%s, haiku=%s)",
            settings.sonnet_model,
            settings.haiku_model,
        )
        return AnthropicLLMClient(
            sonnet_model=settings.sonnet_model,
            haiku_model=settings.haiku_model,
        )
    logger.info("Using deterministic LLM backend")
    return DeterministicLLMClient()
