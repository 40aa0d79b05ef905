"""Tests for rebuilding debate state from recorded event streams."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from cruxboard.debate.replay import ReplayState, replay_events
from cruxboard.models.blackboard import Stance
from cruxboard.models.events import DebateCompleteEvent, StatusEvent, dump_event
from tests.fixtures.scripted import ScriptedCollaborator, make_personas, run_debate_sync
from tests.test_dialogue_debate import _always_flag
from tests.test_graph_debate import _rebut_first_other

PERSONAS = make_personas("alice", "bob", "carol")


def _split_stances() -> ScriptedCollaborator:
    return ScriptedCollaborator(initial={"alice": Stance.PRO, "bob": Stance.CON})


RUNS = {
    "blitz": lambda: run_debate_sync(_split_stances(), PERSONAS, mode="blitz", max_rounds=3),
    "classical": lambda: run_debate_sync(
        _split_stances(), PERSONAS, mode="classical", max_turns=4, seed=3
    ),
    "graph": lambda: run_debate_sync(
        ScriptedCollaborator(attacks=_rebut_first_other({1})), PERSONAS[:2], mode="graph"
    ),
    "dialogue": lambda: run_debate_sync(
        ScriptedCollaborator(detections=_always_flag),
        PERSONAS,
        mode="dialogue",
        max_messages=12,
    ),
    "error": lambda: run_debate_sync(
        ScriptedCollaborator().fail_on("extract_output"), PERSONAS, mode="blitz", max_rounds=1
    ),
}


class TestReplayMatchesLiveRun:
    """Folding a complete live stream gives the state the runner ended with."""

    @pytest.mark.parametrize("name", sorted(RUNS))
    def test_replay_equals_final_state(self, name: str) -> None:
        runner, events = RUNS[name]()
        assert replay_events(events) == runner.final_state()

    @pytest.mark.parametrize("name", sorted(RUNS))
    def test_replay_from_json_lines(self, name: str) -> None:
        runner, events = RUNS[name]()
        lines = [dump_event(event) for event in events]
        assert all("\n" not in line for line in lines)
        assert replay_events(lines) == runner.final_state()

    def test_replay_from_dicts(self) -> None:
        runner, events = RUNS["graph"]()
        dicts = [json.loads(dump_event(event)) for event in events]
        state = replay_events(dicts)
        assert state == runner.final_state()
        assert state.graph is not None
        assert state.graph_output is not None

    def test_dialogue_replay_rebuilds_rooms_and_cards(self) -> None:
        _, events = RUNS["dialogue"]()
        state = replay_events(events)
        assert state.board is None
        assert len(state.dialogue) == 12
        assert list(state.crux_messages) == ["crux-1-alice-bob"]
        assert [c.room_id for c in state.cards] == ["crux-1-alice-bob"]

    def test_error_stream_records_error(self) -> None:
        _, events = RUNS["error"]()
        state = replay_events(events)
        assert state.error == "scripted failure: extract_output"
        assert state.complete_reason is None
        assert state.output is None


class TestReplayEdgeCases:
    """Empty, truncated and invalid streams."""

    def test_empty_stream(self) -> None:
        assert replay_events([]) == ReplayState()

    def test_events_after_terminal_are_ignored(self) -> None:
        _, events = RUNS["blitz"]()
        extra = DebateCompleteEvent(reason="late")
        state = replay_events([*events, StatusEvent(phase="late", message="late"), extra])
        assert state.complete_reason == events[-1].reason

    def test_truncated_stream_has_no_terminal_state(self) -> None:
        _, events = RUNS["blitz"]()
        state = replay_events(events[:-1])
        assert state.complete_reason is None
        assert state.error is None
        assert state.board is not None

    def test_unknown_event_type_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            replay_events([json.dumps({"type": "not_an_event"})])
