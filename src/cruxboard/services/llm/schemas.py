"""Response schemas for collaborator calls.

Every LLM response is validated against one of these models before it
reaches the engine. Confidence-like numbers are accepted as plain floats
and clamped by the collaborator, so a slightly out-of-range value does not
discard an otherwise usable response.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from cruxboard.models.argumentation import AttackType, TargetComponent
from cruxboard.models.blackboard import Stance
from cruxboard.models.dialogue import DisagreementType, PersonaPosition
from cruxboard.models.scheduling import PlannedAction


class _Response(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ClaimDraft(_Response):
    id: str | None = None
    text: str = Field(..., min_length=1)


class ClaimsResponse(_Response):
    claims: list[ClaimDraft] = Field(..., min_length=1)


class StanceDraft(_Response):
    claim_id: str
    stance: Stance
    confidence: float = 0.5


class InitialStancesResponse(_Response):
    stances: list[StanceDraft]
    reasonings: list[str] = Field(default_factory=list)


class AgentTurnResponse(_Response):
    response: str = ""
    stances: list[StanceDraft] = Field(default_factory=list)
    new_cruxes: list[str] = Field(default_factory=list)
    flip_triggers: list[str] = Field(default_factory=list)


class ActionPlanResponse(_Response):
    action: PlannedAction
    urgency: float = 0.0
    intent: str = ""


class SummaryResponse(_Response):
    summary: str


class DetectionResponse(_Response):
    has_direct_opposition: bool
    has_specific_claim: bool
    topic_relevant: bool
    personas: list[str] = Field(default_factory=list)
    topic: str = ""
    short_label: str = ""
    confidence: float = 0.0


class ArgumentDraft(_Response):
    claim: str = Field(..., min_length=1)
    premises: list[str] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


class ArgumentsResponse(_Response):
    arguments: list[ArgumentDraft]


class AttackDraft(_Response):
    to_arg_id: str
    type: AttackType
    target_component: TargetComponent = TargetComponent.CLAIM
    target_index: int = Field(default=0, ge=0)
    counter_proposition: str = ""
    rationale: str = ""
    evidence: list[str] = Field(default_factory=list)
    confidence: float = 0.5
    counter_argument: ArgumentDraft | None = None


class AttacksResponse(_Response):
    attacks: list[AttackDraft] = Field(default_factory=list)


class ValidationDraft(_Response):
    attack_id: str
    valid: bool
    attack_strength: float = 0.5
    corrections: str | None = None


class ValidationsResponse(_Response):
    validations: list[ValidationDraft]


class ContentResponse(_Response):
    content: str = Field(..., min_length=1)


class ExitCheckResponse(_Response):
    crux_surfaced: bool
    reason: str = ""


class CardExtractionResponse(_Response):
    crux_statement: str = ""
    disagreement_type: DisagreementType = DisagreementType.CLAIM
    diagnosis: str = ""
    resolved: bool = False
    resolution: str | None = None
    personas: dict[str, PersonaPosition] = Field(default_factory=dict)
