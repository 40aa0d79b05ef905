"""Persona definitions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Persona(BaseModel):
    """A debate participant as seen by the engine.

    Aliases and domain keywords are matched case-insensitively by the
    reactive scheduler; the system prompt is passed to the collaborator
    verbatim.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    aliases: list[str] = Field(default_factory=list)
    domain_keywords: list[str] = Field(default_factory=list)
    system_prompt: str = ""
