"""Scripted collaborator and personas for deterministic driver tests."""

from tests.fixtures.scripted.collaborator import (
    DEFAULT_CLAIMS,
    ScriptedCollaborator,
    make_persona,
    make_personas,
    stance_inputs,
)
from tests.fixtures.scripted.runs import event_types, of_type, run_debate_sync, run_events

__all__ = [
    "DEFAULT_CLAIMS",
    "ScriptedCollaborator",
    "event_types",
    "make_persona",
    "make_personas",
    "of_type",
    "run_debate_sync",
    "run_events",
    "stance_inputs",
]
