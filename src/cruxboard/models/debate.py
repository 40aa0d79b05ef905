"""Per-run debate configuration."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DebateMode(str, Enum):
    """Debate drivers.

    BLITZ: parallel rounds, every agent speaks each round.
    CLASSICAL: one speaker per turn chosen by urgency.
    GRAPH: argument and attack generation resolved with Dung semantics.
    DIALOGUE: free-form reactive dialogue with crux rooms.
    """

    BLITZ = "blitz"
    CLASSICAL = "classical"
    GRAPH = "graph"
    DIALOGUE = "dialogue"


class DebateConfig(BaseModel):
    """Configuration for a single debate run."""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., min_length=1)
    persona_ids: list[str] = Field(..., min_length=2)
    mode: DebateMode = DebateMode.BLITZ
    debate_id: str = "debate-0"
    max_rounds: int = Field(default=5, ge=1, description="Blitz round cap")
    max_turns: int = Field(default=15, ge=1, description="Classical turn cap")
    max_graph_rounds: int = Field(default=3, ge=1, description="Graph attack round cap")
    max_messages: int = Field(default=50, ge=1, description="Dialogue message cap")
    max_duration_seconds: float = Field(default=300.0, gt=0)
    max_crux_turns: int = Field(default=20, ge=1)
    summary_token_budget: int = Field(default=800, ge=1)
    seed: int | None = Field(default=None, description="Seed for scheduler jitter")
