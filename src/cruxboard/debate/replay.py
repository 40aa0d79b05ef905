"""Rebuild debate state from a recorded event stream.

`replay_events` is a pure left fold over the events. Blackboard and
argumentation state are rebuilt with the same update functions the live
drivers use, so replaying a complete live stream yields exactly the state
the runner ended with.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cruxboard.argumentation.graph_state import (
    add_arguments,
    add_attacks,
    create_graph_state,
    recompute_semantics,
)
from cruxboard.debate.blackboard import create_blackboard, update_blackboard
from cruxboard.models.argumentation import ArgumentationState, Attack, ValidationResult
from cruxboard.models.blackboard import BlackboardState, TurnMessage
from cruxboard.models.convergence import ConvergenceState
from cruxboard.models.debate import DebateMode
from cruxboard.models.dialogue import CruxCard, CruxMessage, DialogueMessage
from cruxboard.models.events import (
    AgentTurnEvent,
    ArgumentsSubmittedEvent,
    AttacksGeneratedEvent,
    ConvergenceUpdateEvent,
    CruxCardPostedEvent,
    CruxMessageEvent,
    DebateCompleteEvent,
    DebateStartEvent,
    ErrorEvent,
    GraphUpdateEvent,
    InitialStanceEvent,
    MessagePostedEvent,
    ValidationCompleteEvent,
    parse_event,
)
from cruxboard.models.output import DebateOutput, GraphDebateOutput

logger = logging.getLogger(__name__)


class ReplayState(BaseModel):
    """Debate state rebuilt from events (or captured from a live runner)."""

    model_config = ConfigDict(frozen=True)

    debate_id: str | None = None
    topic: str | None = None
    mode: str | None = None
    persona_ids: list[str] = Field(default_factory=list)
    board: BlackboardState | None = None
    graph: ArgumentationState | None = None
    transcript: list[TurnMessage] = Field(default_factory=list)
    dialogue: list[DialogueMessage] = Field(default_factory=list)
    crux_messages: dict[str, list[CruxMessage]] = Field(default_factory=dict)
    cards: list[CruxCard] = Field(default_factory=list)
    convergence: ConvergenceState | None = None
    output: DebateOutput | None = None
    graph_output: GraphDebateOutput | None = None
    complete_reason: str | None = None
    error: str | None = None


def replay_events(events: Iterable[Any]) -> ReplayState:
    """Fold an event sequence into a ReplayState.

    Args:
        events: Event models, or dicts / JSON strings that parse as events.

    Returns:
        The rebuilt state. Events after a terminal event are ignored.

    Raises:
        pydantic.ValidationError: If a raw event is not a known event type.
    """
    state = ReplayState()
    pending_attacks: dict[str, Attack] = {}
    round_validations: list[ValidationResult] = []

    for raw in events:
        event = raw if isinstance(raw, BaseModel) else parse_event(raw)

        if state.complete_reason is not None or state.error is not None:
            logger.debug("Ignoring %s after terminal event", event.type)
            continue

        if isinstance(event, DebateStartEvent):
            state = state.model_copy(
                update={
                    "debate_id": event.debate_id,
                    "topic": event.topic,
                    "mode": event.mode,
                    "persona_ids": list(event.persona_ids),
                    "board": (
                        None
                        if event.mode == DebateMode.DIALOGUE.value
                        else create_blackboard(event.topic, event.claims)
                    ),
                    "graph": (
                        create_graph_state(event.topic)
                        if event.mode == DebateMode.GRAPH.value
                        else None
                    ),
                }
            )

        elif isinstance(event, InitialStanceEvent) and state.board is not None:
            state = state.model_copy(update={"board": update_blackboard(state.board, event.turn)})

        elif isinstance(event, AgentTurnEvent) and state.board is not None:
            turn = event.turn
            message = TurnMessage(
                persona_id=turn.persona_id, round=turn.round, content=turn.response
            )
            state = state.model_copy(
                update={
                    "board": update_blackboard(state.board, turn),
                    "transcript": [*state.transcript, message],
                }
            )

        elif isinstance(event, ConvergenceUpdateEvent):
            state = state.model_copy(update={"convergence": event.metrics})

        elif isinstance(event, ArgumentsSubmittedEvent) and state.graph is not None:
            state = state.model_copy(update={"graph": add_arguments(state.graph, event.arguments)})

        elif isinstance(event, AttacksGeneratedEvent) and state.graph is not None:
            pending_attacks = {a.id: a for a in event.attacks}
            round_validations = []
            state = state.model_copy(
                update={"graph": add_arguments(state.graph, event.counter_arguments)}
            )

        elif isinstance(event, ValidationCompleteEvent):
            round_validations = list(event.results)

        elif isinstance(event, GraphUpdateEvent) and state.graph is not None:
            accepted = [
                pending_attacks[a] for a in event.accepted_attack_ids if a in pending_attacks
            ]
            graph = add_attacks(state.graph, accepted, round_validations)
            graph = recompute_semantics(graph).model_copy(update={"round": event.round})
            pending_attacks = {}
            round_validations = []
            state = state.model_copy(update={"graph": graph})

        elif isinstance(event, MessagePostedEvent):
            state = state.model_copy(update={"dialogue": [*state.dialogue, event.message]})

        elif isinstance(event, CruxMessageEvent):
            rooms = dict(state.crux_messages)
            rooms[event.room_id] = [*rooms.get(event.room_id, []), event.message]
            state = state.model_copy(update={"crux_messages": rooms})

        elif isinstance(event, CruxCardPostedEvent):
            state = state.model_copy(update={"cards": [*state.cards, event.card]})

        elif isinstance(event, DebateCompleteEvent):
            state = state.model_copy(
                update={
                    "complete_reason": event.reason,
                    "output": event.output,
                    "graph_output": event.graph_output,
                }
            )

        elif isinstance(event, ErrorEvent):
            state = state.model_copy(update={"error": event.message})

    return state
