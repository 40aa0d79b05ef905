"""Debate event stream models.

Every driver yields an ordered, append-only sequence of these events. The
stream is the persisted record of a debate: each event is self-contained
so that `cruxboard.debate.replay` can rebuild the final state from the
events alone.

Events are a pydantic discriminated union on `type`; use `parse_event`
and `dump_event` to move them across a wire.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from cruxboard.models.argumentation import Argument, Attack, Labelling, ValidationResult
from cruxboard.models.blackboard import Claim, TurnResult
from cruxboard.models.convergence import ConvergenceState
from cruxboard.models.dialogue import CruxCard, CruxMessage, DialogueMessage, DisagreementDetection
from cruxboard.models.output import DebateOutput, GraphDebateOutput
from cruxboard.models.scheduling import ActionPlan, TurnCandidate


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class StatusEvent(_Event):
    type: Literal["status"] = "status"
    phase: str
    message: str


class DebateStartEvent(_Event):
    type: Literal["debate_start"] = "debate_start"
    debate_id: str
    topic: str
    mode: str
    persona_ids: list[str]
    claims: list[Claim] = Field(default_factory=list)


class AgentsReadyEvent(_Event):
    type: Literal["agents_ready"] = "agents_ready"
    persona_ids: list[str]


class InitialStanceEvent(_Event):
    type: Literal["initial_stance"] = "initial_stance"
    turn: TurnResult
    reasonings: list[str] = Field(default_factory=list)


class AgentTurnEvent(_Event):
    type: Literal["agent_turn"] = "agent_turn"
    turn: TurnResult


class AgentSkippedEvent(_Event):
    """Diagnostic: one agent's call failed and it was skipped."""

    type: Literal["agent_skipped"] = "agent_skipped"
    persona_id: str
    operation: str
    round: int = 0
    error: str = ""


class SpeakerSelectedEvent(_Event):
    type: Literal["speaker_selected"] = "speaker_selected"
    turn: int
    plan: ActionPlan


class QueueUpdateEvent(_Event):
    type: Literal["queue_update"] = "queue_update"
    candidates: list[TurnCandidate]


class BlackboardUpdateEvent(_Event):
    type: Literal["blackboard_update"] = "blackboard_update"
    version: int
    summary: str


class ConvergenceUpdateEvent(_Event):
    type: Literal["convergence_update"] = "convergence_update"
    round: int
    metrics: ConvergenceState


class ArgumentsSubmittedEvent(_Event):
    type: Literal["arguments_submitted"] = "arguments_submitted"
    persona_id: str
    round: int
    arguments: list[Argument]


class AttacksGeneratedEvent(_Event):
    type: Literal["attacks_generated"] = "attacks_generated"
    round: int
    attacks: list[Attack]
    counter_arguments: list[Argument] = Field(default_factory=list)


class ValidationCompleteEvent(_Event):
    type: Literal["validation_complete"] = "validation_complete"
    round: int
    results: list[ValidationResult]
    fallback: bool = False


class GraphUpdateEvent(_Event):
    type: Literal["graph_update"] = "graph_update"
    round: int
    accepted_attack_ids: list[str]
    labelling: Labelling
    grounded_extension: list[str]
    preferred_extensions: list[list[str]]


class GraphConvergenceEvent(_Event):
    type: Literal["graph_convergence"] = "graph_convergence"
    round: int
    stable: bool
    new_edges: int


class MessagePostedEvent(_Event):
    type: Literal["message_posted"] = "message_posted"
    message: DialogueMessage


class DisagreementDetectedEvent(_Event):
    type: Literal["disagreement_detected"] = "disagreement_detected"
    detection: DisagreementDetection
    message_ids: list[str] = Field(default_factory=list)
    spawn_eligible: bool = False


class CruxRoomSpawningEvent(_Event):
    type: Literal["crux_room_spawning"] = "crux_room_spawning"
    room_id: str
    question: str
    short_label: str = ""
    personas: list[str]


class CruxMessageEvent(_Event):
    type: Literal["crux_message"] = "crux_message"
    room_id: str
    message: CruxMessage


class CruxCardPostedEvent(_Event):
    type: Literal["crux_card_posted"] = "crux_card_posted"
    card: CruxCard


class DebateCompleteEvent(_Event):
    type: Literal["debate_complete"] = "debate_complete"
    reason: str
    output: DebateOutput | None = None
    graph_output: GraphDebateOutput | None = None


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    message: str
    operation: str | None = None


DebateEvent = Annotated[
    StatusEvent
    | DebateStartEvent
    | AgentsReadyEvent
    | InitialStanceEvent
    | AgentTurnEvent
    | AgentSkippedEvent
    | SpeakerSelectedEvent
    | QueueUpdateEvent
    | BlackboardUpdateEvent
    | ConvergenceUpdateEvent
    | ArgumentsSubmittedEvent
    | AttacksGeneratedEvent
    | ValidationCompleteEvent
    | GraphUpdateEvent
    | GraphConvergenceEvent
    | MessagePostedEvent
    | DisagreementDetectedEvent
    | CruxRoomSpawningEvent
    | CruxMessageEvent
    | CruxCardPostedEvent
    | DebateCompleteEvent
    | ErrorEvent,
    Field(discriminator="type"),
]

TERMINAL_EVENT_TYPES: frozenset[str] = frozenset({"debate_complete", "error"})

_event_adapter: TypeAdapter[Any] = TypeAdapter(DebateEvent)


def parse_event(data: dict[str, Any] | str) -> Any:
    """Parse one event from a dict or a JSON string.

    Raises:
        pydantic.ValidationError: If the payload is not a known event.
    """
    if isinstance(data, str):
        return _event_adapter.validate_json(data)
    return _event_adapter.validate_python(data)


def dump_event(event: BaseModel) -> str:
    """Serialize one event as a single JSON line."""
    return event.model_dump_json()
