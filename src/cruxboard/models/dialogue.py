"""Dialogue and crux room models.

Free-form dialogue messages, detected disagreements, candidate records
tracked by the disagreement registry, and the crux cards produced by
crux rooms.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class DialogueMessage(BaseModel):
    """One message in the free-form dialogue transcript."""

    model_config = ConfigDict(frozen=True)

    id: str
    persona_id: str
    content: str
    reply_to: str | None = None
    reason: str | None = None


class DisagreementDetection(BaseModel):
    """A disagreement flagged by the detection collaborator for one window."""

    model_config = ConfigDict(frozen=True)

    personas: tuple[str, str]
    topic: str
    short_label: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class CandidateRecord(BaseModel):
    """Registry entry for a persona pair that keeps disagreeing."""

    model_config = ConfigDict(frozen=True)

    pair: tuple[str, str] = Field(..., description="Sorted persona pair")
    topic: str
    short_label: str = ""
    consecutive_windows: int = Field(..., ge=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    first_seen_at: datetime
    last_seen_at: datetime


class CruxMessageKind(str, Enum):
    SYSTEM = "system"
    PERSONA = "persona"


class CruxMessage(BaseModel):
    """One message inside a crux room."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: CruxMessageKind
    content: str
    persona_id: str | None = None


class CardPosition(str, Enum):
    YES = "YES"
    NO = "NO"
    NUANCED = "NUANCED"


class DisagreementType(str, Enum):
    """Root cause of a disagreement surfaced in a crux room."""

    HORIZON = "horizon"
    EVIDENCE = "evidence"
    VALUES = "values"
    DEFINITION = "definition"
    CLAIM = "claim"
    PREMISE = "premise"


class PersonaPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: CardPosition
    reasoning: str = ""
    falsifier: str | None = None


class CruxCard(BaseModel):
    """Structured result of a crux room."""

    model_config = ConfigDict(frozen=True)

    id: str
    room_id: str
    question: str
    personas: dict[str, PersonaPosition]
    disagreement_type: DisagreementType
    diagnosis: str
    resolved: bool = False
    resolution: str | None = None
    source_messages: list[str] = Field(default_factory=list)
