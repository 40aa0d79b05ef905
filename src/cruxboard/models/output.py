"""Debate output models.

`DebateOutput` is the structured result of every debate mode. Graph mode
first produces a `GraphDebateOutput` from the Dung extensions and then
projects it into `DebateOutput`.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class OutputCrux(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    proposition: str
    weight: float = Field(..., ge=0.0, le=1.0)
    settling_question: str = ""


class FaultLine(BaseModel):
    """A values or assumption level source of disagreement."""

    model_config = ConfigDict(frozen=True)

    description: str
    persona_ids: list[str] = Field(default_factory=list)


class OutputFlipCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_id: str
    condition: str
    claim_id: str = ""


class EvidenceStatus(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EvidenceLedgerEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_id: str
    evidence: str
    status: EvidenceStatus
    reason: str = ""


class ResolutionPath(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str


class DebateOutput(BaseModel):
    """Final structured output of a debate."""

    model_config = ConfigDict(frozen=True)

    cruxes: list[OutputCrux] = Field(default_factory=list)
    fault_lines: list[FaultLine] = Field(default_factory=list)
    flip_conditions: list[OutputFlipCondition] = Field(default_factory=list)
    evidence_ledger: list[EvidenceLedgerEntry] = Field(default_factory=list)
    resolution_paths: list[ResolutionPath] = Field(default_factory=list)


class GraphCamp(BaseModel):
    """Arguments and speakers belonging to one preferred extension."""

    model_config = ConfigDict(frozen=True)

    extension_index: int
    argument_ids: list[str]
    speaker_ids: list[str]


class CruxAssumption(BaseModel):
    """An assumption that separates the first two camps."""

    model_config = ConfigDict(frozen=True)

    assumption: str
    dependent_argument_ids: list[str]
    centrality: int = Field(..., ge=0)
    settling_question: str


class GraphDebateOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    common_ground: list[str] = Field(default_factory=list)
    camps: list[GraphCamp] = Field(default_factory=list)
    crux_assumptions: list[CruxAssumption] = Field(default_factory=list)
    symmetric_difference: list[str] = Field(default_factory=list)
