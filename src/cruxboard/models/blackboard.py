"""Blackboard models.

The blackboard is the shared, versioned debate state. Stances are an
append-only log; disputes are derived; crux weights are recomputed on
every update.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Stance(str, Enum):
    """Position a persona holds on a claim."""

    PRO = "pro"
    CON = "con"
    UNCERTAIN = "uncertain"


class Claim(BaseModel):
    """A claim decomposed from the debate topic. Immutable."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    debate_id: str = ""


class StanceInput(BaseModel):
    """A stance as reported by one agent turn, before it is logged."""

    model_config = ConfigDict(frozen=True)

    claim_id: str
    stance: Stance
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class AgentStance(BaseModel):
    """One row of the append-only stance log."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    claim_id: str
    stance: Stance
    confidence: float = Field(..., ge=0.0, le=1.0)
    round: int = Field(..., ge=0)


class DisputeSide(BaseModel):
    model_config = ConfigDict(frozen=True)

    persona_id: str
    stance: Stance
    confidence: float


class Dispute(BaseModel):
    """A claim on which current stances disagree. Derived from the stance log."""

    model_config = ConfigDict(frozen=True)

    claim_id: str
    sides: list[DisputeSide]


class Crux(BaseModel):
    """A contested proposition. Identity is case-insensitive proposition text."""

    model_config = ConfigDict(frozen=True)

    id: str
    proposition: str
    weight: float = Field(default=0.5, ge=0.0, le=1.0)
    surfaced_by_tables: list[int] = Field(default_factory=lambda: [0])
    resolved: bool = False


class FlipCondition(BaseModel):
    """A stated condition under which a persona would change position."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    condition: str
    claim_id: str
    triggered: bool = False


class BlackboardState(BaseModel):
    """Shared debate state folded from agent turns."""

    model_config = ConfigDict(frozen=True)

    topic: str
    claims: list[Claim] = Field(default_factory=list)
    stances: list[AgentStance] = Field(default_factory=list)
    crux_candidates: list[Crux] = Field(default_factory=list)
    disputes: list[Dispute] = Field(default_factory=list)
    flip_conditions: list[FlipCondition] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)
    version: int = Field(default=0, ge=0, description="Bumped on every update")

    def current_stances(self, claim_id: str) -> dict[str, AgentStance]:
        """Latest-by-round stance per persona for one claim.

        On a round tie the earliest log entry is kept.
        """
        latest: dict[str, AgentStance] = {}
        for row in self.stances:
            if row.claim_id != claim_id:
                continue
            previous = latest.get(row.persona_id)
            if previous is None or row.round > previous.round:
                latest[row.persona_id] = row
        return latest

    def stances_of(self, persona_id: str) -> list[AgentStance]:
        """Latest-by-round stance per claim for one persona, in first-seen order."""
        latest: dict[str, AgentStance] = {}
        for row in self.stances:
            if row.persona_id != persona_id:
                continue
            previous = latest.get(row.claim_id)
            if previous is None or row.round > previous.round:
                latest[row.claim_id] = row
        return list(latest.values())

    def unresolved_cruxes(self) -> list[Crux]:
        return [c for c in self.crux_candidates if not c.resolved]


class TurnResult(BaseModel):
    """Structured result of one agent turn, ready to fold into the blackboard."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    round: int = Field(..., ge=0)
    response: str = ""
    stances: list[StanceInput] = Field(default_factory=list)
    new_cruxes: list[str] = Field(default_factory=list)
    flip_triggers: list[str] = Field(default_factory=list)


class TurnMessage(BaseModel):
    """One utterance in the blitz/classical transcript."""

    model_config = ConfigDict(frozen=True)

    persona_id: str
    round: int
    content: str


class TurnContext(BaseModel):
    """Everything one agent sees when asked for a turn or an action plan."""

    model_config = ConfigDict(frozen=True)

    topic: str
    round: int
    blackboard_summary: str
    local_neighborhood: str = ""
    claims: list[Claim] = Field(default_factory=list)
    current_stances: list[AgentStance] = Field(default_factory=list)


class InitialStances(BaseModel):
    """An agent's opening stances with one reasoning line per claim."""

    model_config = ConfigDict(frozen=True)

    stances: list[StanceInput] = Field(default_factory=list)
    reasonings: list[str] = Field(default_factory=list)
