"""Environment-driven settings for cruxboard.

Environment Variables:
    CRUXBOARD_LLM_BACKEND: "deterministic" (default) or "anthropic"
    CRUXBOARD_ANTHROPIC_MODEL_SONNET: Model for debate turns
    CRUXBOARD_ANTHROPIC_MODEL_HAIKU: Model for cheap checks (validation, detection)
    CRUXBOARD_SUMMARY_TOKEN_BUDGET: Blackboard summary budget in tokens (default: 800)
    CRUXBOARD_PERSONAS_FILE: YAML persona file (default: bundled personas)
    CRUXBOARD_LOG_LEVEL: Logging level for the CLI (default: INFO)

Per-run knobs (mode, caps, seed) live in `cruxboard.models.debate.DebateConfig`.
"""

from __future__ import annotations

import os
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from cruxboard.errors import ConfigurationError

DEFAULT_SONNET_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_HAIKU_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_SUMMARY_TOKEN_BUDGET = 800


class LLMBackend(str, Enum):
    DETERMINISTIC = "deterministic"
    ANTHROPIC = "anthropic"


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    return default


def get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default).strip() or default


def get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable.

    Raises:
        ConfigurationError: If the variable is set but not an integer.
    """
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from e


class DebateSettings(BaseModel):
    """Process-wide settings resolved from the environment."""

    model_config = ConfigDict(frozen=True)

    llm_backend: LLMBackend = LLMBackend.DETERMINISTIC
    sonnet_model: str = DEFAULT_SONNET_MODEL
    haiku_model: str = DEFAULT_HAIKU_MODEL
    summary_token_budget: int = Field(default=DEFAULT_SUMMARY_TOKEN_BUDGET, ge=1)
    personas_file: str | None = None
    log_level: str = "INFO"


def load_settings() -> DebateSettings:
    """Build settings from CRUXBOARD_* environment variables.

    Raises:
        ConfigurationError: On an unknown backend or a malformed number.
    """
    backend_raw = get_env_str("CRUXBOARD_LLM_BACKEND", LLMBackend.DETERMINISTIC.value).lower()
    try:
        backend = LLMBackend(backend_raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown CRUXBOARD_LLM_BACKEND {backend_raw!r}; "
            f"expected one of {[b.value for b in LLMBackend]}"
        ) from e

    budget = get_env_int("CRUXBOARD_SUMMARY_TOKEN_BUDGET", DEFAULT_SUMMARY_TOKEN_BUDGET)
    if budget < 1:
        raise ConfigurationError("CRUXBOARD_SUMMARY_TOKEN_BUDGET must be positive")

    return DebateSettings(
        llm_backend=backend,
        sonnet_model=get_env_str("CRUXBOARD_ANTHROPIC_MODEL_SONNET", DEFAULT_SONNET_MODEL),
        haiku_model=get_env_str("CRUXBOARD_ANTHROPIC_MODEL_HAIKU", DEFAULT_HAIKU_MODEL),
        summary_token_budget=budget,
        personas_file=get_env_str("CRUXBOARD_PERSONAS_FILE", "") or None,
        log_level=get_env_str("CRUXBOARD_LOG_LEVEL", "INFO").upper(),
    )
