"""Turn scheduling models for the reactive and deliberative policies."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InterjectionReason(str, Enum):
    """Why a reactive candidate wants the floor."""

    OBJECTION = "OBJECTION"
    COUNTER = "COUNTER"
    EVIDENCE = "EVIDENCE"
    CHALLENGE = "CHALLENGE"


class TurnCandidate(BaseModel):
    """A scored candidate for the next reactive turn."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    reason: InterjectionReason
    score: float
    reply_to: str


class PlannedAction(str, Enum):
    SPEAK = "speak"
    INTERRUPT = "interrupt"
    LISTEN = "listen"


class ActionPlan(BaseModel):
    """An agent's proposal for the next deliberative turn."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    action: PlannedAction
    urgency: float = Field(default=0.0, ge=0.0, le=1.0)
    intent: str = ""
