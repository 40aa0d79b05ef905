"""Crux room: a bounded two-persona sub-dialogue run as a LangGraph state machine.

Node graph:
START → enter → openings → exchange ⟲ → (exit_check) → extract_card → END

- enter: posts the room's entry system message.
- openings: each persona states its position once.
- exchange: one persona replies to the other; speakers alternate. A turn is
  skipped while the opponent has not spoken yet.
- exit_check: after turn 3 and every second turn thereafter, asks whether
  the crux has surfaced. Success posts a closing system message.
- extract_card: turns the transcript into a CruxCard, or a fallback card
  when extraction fails.

The exchange is capped at `max_turns`; the LangGraph recursion limit is
derived from the same cap so the room always terminates.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import AsyncIterator, Sequence
from typing import Annotated, Any

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field

from cruxboard.errors import CollaboratorError
from cruxboard.models.dialogue import (
    CardPosition,
    CruxCard,
    CruxMessage,
    CruxMessageKind,
    DisagreementType,
    PersonaPosition,
)
from cruxboard.models.events import CruxCardPostedEvent, CruxMessageEvent, DebateEvent
from cruxboard.models.output import (
    DebateOutput,
    FaultLine,
    OutputCrux,
    OutputFlipCondition,
    ResolutionPath,
)
from cruxboard.models.persona import Persona
from cruxboard.services.collaborators import DebateCollaborator

logger = logging.getLogger(__name__)

MAX_CRUX_TURNS = 20
EXIT_CHECK_FIRST_TURN = 3
FALLBACK_DIAGNOSIS = "See crux room transcript"
FALLBACK_REASONING = "See transcript"


class CruxRoomState(BaseModel):
    """State flowing through the crux room graph.

    `messages` is append-only: nodes return only the messages they add.
    """

    room_id: str
    question: str
    persona_ids: list[str]
    source_messages: list[str] = Field(default_factory=list)
    messages: Annotated[list[CruxMessage], operator.add] = Field(default_factory=list)
    turn: int = 0
    last_turn: int = -1
    surfaced: bool = False
    card: CruxCard | None = None


def fallback_card(
    room_id: str, question: str, persona_ids: Sequence[str], source_messages: list[str]
) -> CruxCard:
    """Card used when extraction fails: every persona NUANCED."""
    return CruxCard(
        id=f"card-{room_id}",
        room_id=room_id,
        question=question,
        personas={
            pid: PersonaPosition(position=CardPosition.NUANCED, reasoning=FALLBACK_REASONING)
            for pid in persona_ids
        },
        disagreement_type=DisagreementType.CLAIM,
        diagnosis=FALLBACK_DIAGNOSIS,
        source_messages=list(source_messages),
    )


class CruxRoom:
    """One crux room between two personas.

    Build with the collaborator and the two personas, then iterate
    `events()`; the card is available as `card` once the room has closed.
    """

    def __init__(
        self,
        collaborator: DebateCollaborator,
        room_id: str,
        question: str,
        personas: tuple[Persona, Persona],
        source_messages: list[str] | None = None,
        *,
        max_turns: int = MAX_CRUX_TURNS,
    ) -> None:
        self.collaborator = collaborator
        self.room_id = room_id
        self.question = question
        self.personas = personas
        self.source_messages = list(source_messages or [])
        self.max_turns = max_turns
        self.card: CruxCard | None = None
        self._graph: Any | None = None

    def build_graph(self) -> Any:
        """Build and compile the LangGraph state machine."""
        if self._graph is not None:
            return self._graph

        g = StateGraph(CruxRoomState)
        g.add_node("enter", self._node_enter)
        g.add_node("openings", self._node_openings)
        g.add_node("exchange", self._node_exchange)
        g.add_node("exit_check", self._node_exit_check)
        g.add_node("extract_card", self._node_extract_card)

        g.set_entry_point("enter")
        g.add_edge("enter", "openings")
        g.add_edge("openings", "exchange")
        g.add_conditional_edges(
            "exchange",
            self._route_after_exchange,
            {
                "exchange": "exchange",
                "exit_check": "exit_check",
                "extract_card": "extract_card",
            },
        )
        g.add_conditional_edges(
            "exit_check",
            self._route_after_exit_check,
            {"exchange": "exchange", "extract_card": "extract_card"},
        )
        g.add_edge("extract_card", END)

        self._graph = g.compile()
        return self._graph

    @property
    def recursion_limit(self) -> int:
        # enter + openings + (exchange + exit_check) per turn + extract_card, plus slack
        return 2 * self.max_turns + 10

    async def events(self) -> AsyncIterator[DebateEvent]:
        """Run the room, yielding one event per posted message and one for the card."""
        graph = self.build_graph()
        initial = CruxRoomState(
            room_id=self.room_id,
            question=self.question,
            persona_ids=[p.id for p in self.personas],
            source_messages=self.source_messages,
        )
        logger.info("Crux room %s opened: %s", self.room_id, self.question)

        async for chunk in graph.astream(
            initial.model_dump(),
            config={"recursion_limit": self.recursion_limit},
            stream_mode="updates",
        ):
            for update in chunk.values():
                if not update:
                    continue
                for message in update.get("messages", []):
                    yield CruxMessageEvent(room_id=self.room_id, message=message)
                card = update.get("card")
                if card is not None:
                    self.card = card
                    yield CruxCardPostedEvent(card=card)

        logger.info("Crux room %s closed", self.room_id)

    def _speaker_pair(self, index: int) -> tuple[Persona, Persona]:
        speaker = self.personas[index % 2]
        return speaker, self.personas[(index + 1) % 2]

    async def _node_enter(self, state: CruxRoomState) -> dict[str, Any]:
        entry = CruxMessage(
            id=f"{state.room_id}-sys-entry",
            kind=CruxMessageKind.SYSTEM,
            content=(
                f'You disagree on "{state.question}". Figure out why. '
                "You can leave when you both know what the real disagreement is."
            ),
        )
        return {"messages": [entry]}

    async def _node_openings(self, state: CruxRoomState) -> dict[str, Any]:
        openings = []
        for index in range(2):
            persona, opponent = self._speaker_pair(index)
            try:
                content = await self.collaborator.crux_opening(persona, state.question, opponent)
            except CollaboratorError as e:
                logger.warning("Crux opening failed for %s: %s", persona.id, e)
                continue
            openings.append(
                CruxMessage(
                    id=f"{state.room_id}-{persona.id}-opening",
                    kind=CruxMessageKind.PERSONA,
                    persona_id=persona.id,
                    content=content,
                )
            )
        return {"messages": openings}

    async def _node_exchange(self, state: CruxRoomState) -> dict[str, Any]:
        turn = state.turn
        speaker, opponent = self._speaker_pair(turn)
        update: dict[str, Any] = {"turn": turn + 1, "last_turn": turn, "messages": []}

        last_opponent = next(
            (
                m
                for m in reversed(state.messages)
                if m.kind is CruxMessageKind.PERSONA and m.persona_id == opponent.id
            ),
            None,
        )
        if last_opponent is None:
            logger.debug("Crux turn %d skipped: %s has not spoken", turn, opponent.id)
            return update

        try:
            content = await self.collaborator.crux_turn(
                speaker, state.question, opponent, state.messages, last_opponent
            )
        except CollaboratorError as e:
            logger.warning("Crux turn %d failed for %s: %s", turn, speaker.id, e)
            return update

        update["messages"] = [
            CruxMessage(
                id=f"{state.room_id}-{speaker.id}-t{turn}",
                kind=CruxMessageKind.PERSONA,
                persona_id=speaker.id,
                content=content,
            )
        ]
        return update

    async def _node_exit_check(self, state: CruxRoomState) -> dict[str, Any]:
        try:
            surfaced, reason = await self.collaborator.crux_exit_check(
                state.question, state.messages, self.personas
            )
        except CollaboratorError as e:
            logger.warning("Crux exit check failed in %s: %s", state.room_id, e)
            return {"surfaced": False}

        if not surfaced:
            return {"surfaced": False}
        done = CruxMessage(
            id=f"{state.room_id}-sys-done",
            kind=CruxMessageKind.SYSTEM,
            content=f"Crux identified. {reason}".rstrip(),
        )
        return {"surfaced": True, "messages": [done]}

    async def _node_extract_card(self, state: CruxRoomState) -> dict[str, Any]:
        try:
            card = await self.collaborator.crux_card(
                state.room_id,
                state.question,
                state.messages,
                self.personas,
                state.source_messages,
            )
        except CollaboratorError as e:
            logger.warning("Crux card extraction failed in %s: %s", state.room_id, e)
            card = fallback_card(
                state.room_id, state.question, state.persona_ids, state.source_messages
            )
        return {"card": card}

    def _route_after_exchange(self, state: CruxRoomState) -> str:
        if state.last_turn >= EXIT_CHECK_FIRST_TURN and state.last_turn % 2 == 1:
            return "exit_check"
        if state.turn >= self.max_turns:
            return "extract_card"
        return "exchange"

    def _route_after_exit_check(self, state: CruxRoomState) -> str:
        if state.surfaced or state.turn >= self.max_turns:
            return "extract_card"
        return "exchange"


def cards_to_output(cards: Sequence[CruxCard]) -> DebateOutput:
    """Summarize the crux cards of a dialogue as a DebateOutput."""
    cruxes = []
    fault_lines = []
    flip_conditions = []
    resolution_paths = []
    for card in cards:
        cruxes.append(
            OutputCrux(
                id=card.id,
                proposition=card.question,
                weight=0.0 if card.resolved else 1.0,
            )
        )
        fault_lines.append(
            FaultLine(
                description=f"{card.disagreement_type.value}: {card.diagnosis}",
                persona_ids=list(card.personas),
            )
        )
        for persona_id, position in card.personas.items():
            if position.falsifier:
                flip_conditions.append(
                    OutputFlipCondition(persona_id=persona_id, condition=position.falsifier)
                )
        if card.resolution:
            resolution_paths.append(ResolutionPath(description=card.resolution))
    return DebateOutput(
        cruxes=cruxes,
        fault_lines=fault_lines,
        flip_conditions=flip_conditions,
        resolution_paths=resolution_paths,
    )
