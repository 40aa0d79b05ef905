"""Anthropic LLM client implementing the LLMClient protocol.

Uses the Anthropic Python SDK's async client. Callers only see
`LLMClient.complete()`.

Configuration via environment variables:
- ANTHROPIC_API_KEY: Required. Fail-closed if missing.
- CRUXBOARD_ANTHROPIC_MODEL_SONNET / CRUXBOARD_ANTHROPIC_MODEL_HAIKU: model
  ids for the two tiers (see cruxboard.config).

Retry policy: rate limits, 5xx (including 529 overloaded) and connection
errors are retried MAX_RETRIES times with linear backoff, then surface as
TransientCollaboratorError. Other 4xx errors are not retried.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable

import anthropic

from cruxboard.config import DEFAULT_HAIKU_MODEL, DEFAULT_SONNET_MODEL
from cruxboard.errors import CollaboratorError, ConfigurationError, TransientCollaboratorError
from cruxboard.services.llm.llm_client import ModelTier

logger = logging.getLogger(__name__)

MAX_RETRIES = 2
RETRY_BACKOFF_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 120
JSON_SYSTEM_INSTRUCTION = (
    "You MUST respond with valid JSON only. No markdown, no explanation, "
    "no code fences. Output raw JSON."
)


class AnthropicLLMClient:
    """Anthropic-backed async LLM client.

    Fail-closed: raises ConfigurationError if ANTHROPIC_API_KEY is not set.
    """

    def __init__(
        self,
        *,
        sonnet_model: str | None = None,
        haiku_model: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            sonnet_model: Model id for the "sonnet" tier.
            haiku_model: Model id for the "haiku" tier.
            sleep: Awaitable sleep used between retries (injectable for tests).

        Raises:
            ConfigurationError: If ANTHROPIC_API_KEY is not set.
        """
        api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        if not api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY environment variable is required "
                "when using the Anthropic backend. "
                "Set CRUXBOARD_LLM_BACKEND=deterministic to run without it."
            )

        self._models: dict[ModelTier, str] = {
            "sonnet": sonnet_model or DEFAULT_SONNET_MODEL,
            "haiku": haiku_model or DEFAULT_HAIKU_MODEL,
        }
        self._sleep = sleep
        self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=REQUEST_TIMEOUT_SECONDS)

    async def complete(
        self,
        prompt: str,
        *,
        system: str = "",
        tier: ModelTier = "sonnet",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Send one prompt and return the raw response text.

        Raises:
            TransientCollaboratorError: If every attempt hit a retryable error.
            CollaboratorError: On a non-retryable API error.
        """
        system_parts = [system] if system else []
        if json_mode:
            system_parts.append(JSON_SYSTEM_INSTRUCTION)
        system_text = "\n\n".join(system_parts)
        model = self._models[tier]

        last_error: Exception | None = None
        for attempt in range(MAX_RETRIES + 1):
            try:
                response = await self._client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_text,
                    messages=[{"role": "user", "content": prompt}],
                )
                return "".join(
                    block.text for block in response.content if getattr(block, "type", "") == "text"
                )

            except anthropic.RateLimitError as exc:
                last_error = exc
                logger.warning("Anthropic rate limit (attempt %d/%d)", attempt + 1, MAX_RETRIES + 1)

            except anthropic.APIStatusError as exc:
                if exc.status_code < 500:
                    raise CollaboratorError(
                        f"Anthropic API error (non-retryable): {exc.status_code}"
                    ) from exc
                last_error = exc
                logger.warning(
                    "Anthropic server error %d (attempt %d/%d)",
                    exc.status_code,
                    attempt + 1,
                    MAX_RETRIES + 1,
                )

            except anthropic.APIConnectionError as exc:
                last_error = exc
                logger.warning(
                    "Anthropic connection error (attempt %d/%d)", attempt + 1, MAX_RETRIES + 1
                )

            if attempt < MAX_RETRIES:
                await self._sleep(RETRY_BACKOFF_SECONDS * (attempt + 1))

        raise TransientCollaboratorError(
            f"Anthropic API call failed after {MAX_RETRIES + 1} attempts"
        ) from last_error
