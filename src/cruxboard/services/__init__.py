"""Collaborator services: prompts, LLM clients and the debate collaborator."""

from cruxboard.services.collaborators import DebateCollaborator, LLMCollaborator

__all__ = ["DebateCollaborator", "LLMCollaborator"]
