"""Tests for the crux room state machine and crux card summaries."""

from __future__ import annotations

import asyncio
from typing import Any

from cruxboard.debate.crux_room import (
    FALLBACK_DIAGNOSIS,
    CruxRoom,
    cards_to_output,
    fallback_card,
)
from cruxboard.models.dialogue import (
    CardPosition,
    CruxCard,
    CruxMessageKind,
    DisagreementType,
    PersonaPosition,
)
from tests.fixtures.scripted import ScriptedCollaborator, make_personas

ALICE, BOB = make_personas("alice", "bob")


def _run_room(collab: ScriptedCollaborator, **kwargs: Any) -> tuple[CruxRoom, list[Any]]:
    room = CruxRoom(collab, "room-1", "Will rents fall?", (ALICE, BOB), ["m4", "m5"], **kwargs)

    async def collect() -> list[Any]:
        return [event async for event in room.events()]

    return room, asyncio.run(collect())


def _messages(events: list[Any]) -> list[Any]:
    return [e.message for e in events if e.type == "crux_message"]


class TestCruxRoomFlow:
    """Entry, openings, alternating exchange, exit check and card."""

    def test_exit_after_crux_surfaces(self) -> None:
        collab = ScriptedCollaborator(exit_after=4)
        room, events = _run_room(collab)
        messages = _messages(events)
        assert [m.id for m in messages] == [
            "room-1-sys-entry",
            "room-1-alice-opening",
            "room-1-bob-opening",
            "room-1-alice-t0",
            "room-1-bob-t1",
            "room-1-alice-t2",
            "room-1-bob-t3",
            "room-1-sys-done",
        ]
        assert messages[-1].kind is CruxMessageKind.SYSTEM
        assert messages[-1].content == "Crux identified. They differ on the time horizon."
        assert len(collab.calls_to("crux_exit_check")) == 1
        assert events[-1].type == "crux_card_posted"
        assert room.card == events[-1].card
        assert room.card.source_messages == ["m4", "m5"]

    def test_turn_cap_closes_room_without_surfacing(self) -> None:
        collab = ScriptedCollaborator(exit_after=100)
        room, events = _run_room(collab, max_turns=6)
        messages = _messages(events)
        assert len(messages) == 1 + 2 + 6
        assert all(m.id != "room-1-sys-done" for m in messages)
        # exit checks after turns 3 and 5
        assert len(collab.calls_to("crux_exit_check")) == 2
        assert room.card is not None

    def test_default_cap_terminates_within_recursion_limit(self) -> None:
        collab = ScriptedCollaborator(exit_after=1000)
        room, events = _run_room(collab)
        assert len(_messages(events)) == 1 + 2 + 20
        assert room.card is not None

    def test_speakers_wait_for_an_opponent_message(self) -> None:
        collab = ScriptedCollaborator().fail_on("crux_opening", "bob")
        room, events = _run_room(collab, max_turns=4)
        speakers = [m.persona_id for m in _messages(events) if m.persona_id]
        # alice's first exchange turn is skipped: bob has not spoken yet
        assert speakers[:3] == ["alice", "bob", "alice"]
        assert collab.calls_to("crux_turn")[0] == "bob"
        assert room.card is not None

    def test_card_failure_uses_fallback(self) -> None:
        collab = ScriptedCollaborator().fail_on("crux_card")
        room, _ = _run_room(collab)
        assert room.card.diagnosis == FALLBACK_DIAGNOSIS
        assert {p.position for p in room.card.personas.values()} == {CardPosition.NUANCED}

    def test_exit_check_failure_keeps_talking(self) -> None:
        collab = ScriptedCollaborator().fail_on("crux_exit_check")
        _, events = _run_room(collab, max_turns=6)
        assert len(_messages(events)) == 1 + 2 + 6


class TestCardsToOutput:
    """Crux cards summarize into the shared output shape."""

    def test_fallback_card(self) -> None:
        card = fallback_card("room-1", "Q?", ["alice", "bob"], ["m1"])
        assert card.id == "card-room-1"
        assert card.disagreement_type is DisagreementType.CLAIM
        assert list(card.personas) == ["alice", "bob"]

    def test_output_from_cards(self) -> None:
        open_card = CruxCard(
            id="card-1",
            room_id="room-1",
            question="Will rents fall?",
            personas={
                "alice": PersonaPosition(position=CardPosition.YES, falsifier="vacancies drop"),
                "bob": PersonaPosition(position=CardPosition.NO),
            },
            disagreement_type=DisagreementType.HORIZON,
            diagnosis="Different horizons",
        )
        settled = open_card.model_copy(
            update={"id": "card-2", "resolved": True, "resolution": "Check 5-year data"}
        )
        output = cards_to_output([open_card, settled])
        assert [(c.id, c.weight) for c in output.cruxes] == [("card-1", 1.0), ("card-2", 0.0)]
        assert output.fault_lines[0].description == "horizon: Different horizons"
        assert output.fault_lines[0].persona_ids == ["alice", "bob"]
        assert [(f.persona_id, f.condition) for f in output.flip_conditions] == [
            ("alice", "vacancies drop"),
            ("alice", "vacancies drop"),
        ]
        assert [p.description for p in output.resolution_paths] == ["Check 5-year data"]

    def test_no_cards(self) -> None:
        output = cards_to_output([])
        assert output.cruxes == []
        assert output.fault_lines == []
