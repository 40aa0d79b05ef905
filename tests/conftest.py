"""Pytest configuration and fixtures for cruxboard tests."""

from __future__ import annotations

import pytest

from cruxboard.models.persona import Persona
from tests.fixtures.scripted import ScriptedCollaborator, make_personas

CRUXBOARD_ENV_VARS = (
    "CRUXBOARD_LLM_BACKEND",
    "CRUXBOARD_ANTHROPIC_MODEL_SONNET",
    "CRUXBOARD_ANTHROPIC_MODEL_HAIKU",
    "CRUXBOARD_SUMMARY_TOKEN_BUDGET",
    "CRUXBOARD_PERSONAS_FILE",
    "CRUXBOARD_LOG_LEVEL",
    "CRUXBOARD_OTEL_ENABLED",
    "CRUXBOARD_OTEL_TEST_CAPTURE",
    "CRUXBOARD_REQUIRE_OTEL",
    "CRUXBOARD_OTEL_SERVICE_NAME",
    "CRUXBOARD_OTEL_EXPORTER",
    "ANTHROPIC_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_cruxboard_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test against the default (deterministic, untraced) configuration.

    Tests that need a specific setting set it themselves.
    """
    for name in CRUXBOARD_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def personas() -> list[Persona]:
    """Three scripted personas: alice, bob, carol."""
    return make_personas("alice", "bob", "carol")


@pytest.fixture
def collaborator() -> ScriptedCollaborator:
    return ScriptedCollaborator()
