"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from cruxboard.config import (
    DEFAULT_SONNET_MODEL,
    DEFAULT_SUMMARY_TOKEN_BUDGET,
    LLMBackend,
    get_env_bool,
    get_env_int,
    load_settings,
)
from cruxboard.errors import ConfigurationError


class TestEnvHelpers:
    @pytest.mark.parametrize("raw", ["1", "true", "YES", " yes "])
    def test_truthy_values(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv("CRUXBOARD_FLAG", raw)
        assert get_env_bool("CRUXBOARD_FLAG") is True

    def test_other_values_use_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRUXBOARD_FLAG", "0")
        assert get_env_bool("CRUXBOARD_FLAG", False) is False

    def test_int_parsing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert get_env_int("CRUXBOARD_MISSING", 7) == 7
        monkeypatch.setenv("CRUXBOARD_NUM", "12")
        assert get_env_int("CRUXBOARD_NUM", 7) == 12
        monkeypatch.setenv("CRUXBOARD_NUM", "twelve")
        with pytest.raises(ConfigurationError, match="CRUXBOARD_NUM"):
            get_env_int("CRUXBOARD_NUM", 7)


class TestLoadSettings:
    """Settings resolution and fail-closed validation."""

    def test_defaults(self) -> None:
        settings = load_settings()
        assert settings.llm_backend is LLMBackend.DETERMINISTIC
        assert settings.sonnet_model == DEFAULT_SONNET_MODEL
        assert settings.summary_token_budget == DEFAULT_SUMMARY_TOKEN_BUDGET
        assert settings.personas_file is None
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRUXBOARD_LLM_BACKEND", "Anthropic")
        monkeypatch.setenv("CRUXBOARD_ANTHROPIC_MODEL_HAIKU", "tiny")
        monkeypatch.setenv("CRUXBOARD_SUMMARY_TOKEN_BUDGET", "300")
        monkeypatch.setenv("CRUXBOARD_PERSONAS_FILE", "/tmp/personas.yaml")
        monkeypatch.setenv("CRUXBOARD_LOG_LEVEL", "debug")
        settings = load_settings()
        assert settings.llm_backend is LLMBackend.ANTHROPIC
        assert settings.haiku_model == "tiny"
        assert settings.summary_token_budget == 300
        assert settings.personas_file == "/tmp/personas.yaml"
        assert settings.log_level == "DEBUG"

    def test_unknown_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRUXBOARD_LLM_BACKEND", "openai")
        with pytest.raises(ConfigurationError, match="CRUXBOARD_LLM_BACKEND"):
            load_settings()

    def test_non_positive_budget(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRUXBOARD_SUMMARY_TOKEN_BUDGET", "0")
        with pytest.raises(ConfigurationError, match="positive"):
            load_settings()
