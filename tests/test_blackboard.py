"""Tests for blackboard folding, disputes, crux weights and summaries."""

from __future__ import annotations

import asyncio

import pytest

from cruxboard.debate.blackboard import (
    create_blackboard,
    quick_summary,
    render_blackboard,
    summarize_blackboard,
    update_blackboard,
)
from cruxboard.models.blackboard import BlackboardState, Claim, Stance, StanceInput, TurnResult

CLAIMS = [Claim(id="c1", text="Rents fall"), Claim(id="c2", text="Wages rise")]


def _turn(
    persona_id: str,
    round_number: int,
    stance: Stance,
    *,
    confidence: float = 0.6,
    cruxes: list[str] | None = None,
    flips: list[str] | None = None,
    claims: list[Claim] = CLAIMS,
) -> TurnResult:
    return TurnResult(
        persona_id=persona_id,
        round=round_number,
        stances=[StanceInput(claim_id=c.id, stance=stance, confidence=confidence) for c in claims],
        new_cruxes=cruxes or [],
        flip_triggers=flips or [],
    )


def _fold(*turns: TurnResult) -> BlackboardState:
    state = create_blackboard("housing", CLAIMS)
    for turn in turns:
        state = update_blackboard(state, turn)
    return state


class RecordingSummarizer:
    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []

    async def summarize(self, board_text: str, *, token_budget: int, max_tokens: int) -> str:
        self.calls.append((token_budget, max_tokens))
        return "compressed"


class TestUpdateBlackboard:
    """Folding turns into the shared state."""

    def test_version_increments_and_input_is_unchanged(self) -> None:
        state = create_blackboard("housing", CLAIMS)
        updated = update_blackboard(state, _turn("alice", 0, Stance.PRO))
        assert state.version == 0
        assert state.stances == []
        assert updated.version == 1
        assert len(updated.stances) == 2

    def test_stance_log_is_append_only(self) -> None:
        state = _fold(_turn("alice", 0, Stance.PRO), _turn("alice", 1, Stance.CON))
        assert [s.stance for s in state.stances] == [Stance.PRO] * 2 + [Stance.CON] * 2
        assert state.current_stances("c1")["alice"].stance is Stance.CON

    def test_round_tie_keeps_earliest_entry(self) -> None:
        state = _fold(_turn("alice", 1, Stance.PRO), _turn("alice", 1, Stance.CON))
        assert state.current_stances("c1")["alice"].stance is Stance.PRO

    def test_disagreement_creates_dispute_per_claim(self) -> None:
        state = _fold(_turn("alice", 0, Stance.PRO), _turn("bob", 0, Stance.CON))
        assert [d.claim_id for d in state.disputes] == ["c1", "c2"]
        assert {s.persona_id for s in state.disputes[0].sides} == {"alice", "bob"}

    def test_agreement_clears_disputes(self) -> None:
        state = _fold(
            _turn("alice", 0, Stance.PRO),
            _turn("bob", 0, Stance.CON),
            _turn("bob", 1, Stance.PRO),
        )
        assert state.disputes == []

    def test_cruxes_deduplicate_case_insensitively(self) -> None:
        state = _fold(
            _turn("alice", 0, Stance.PRO, cruxes=["Supply is elastic"]),
            _turn("bob", 0, Stance.PRO, cruxes=["supply IS elastic", "Zoning binds"]),
        )
        assert [(c.id, c.proposition) for c in state.crux_candidates] == [
            ("crux-0", "Supply is elastic"),
            ("crux-1", "Zoning binds"),
        ]

    def test_crux_weights_reflect_disputes_and_order(self) -> None:
        calm = _fold(_turn("alice", 0, Stance.PRO, cruxes=["a", "b"]))
        assert [c.weight for c in calm.crux_candidates] == pytest.approx([0.3, 0.35])

        disputed = update_blackboard(calm, _turn("bob", 0, Stance.CON))
        assert [c.weight for c in disputed.crux_candidates] == pytest.approx([0.6, 0.65])

    def test_flip_triggers_upsert(self) -> None:
        state = _fold(
            _turn("alice", 0, Stance.PRO, flips=["rates rise"]),
            _turn("alice", 1, Stance.CON, flips=["rates rise", "vacancy jumps"]),
        )
        assert [(f.condition, f.claim_id, f.triggered) for f in state.flip_conditions] == [
            ("rates rise", "c1", True),
            ("vacancy jumps", "c1", True),
        ]

    def test_flip_trigger_without_stances_has_empty_claim(self) -> None:
        state = _fold(_turn("alice", 0, Stance.PRO, flips=["x"], claims=[]))
        assert state.flip_conditions[0].claim_id == ""

    def test_stances_of_returns_latest_per_claim(self) -> None:
        state = _fold(_turn("alice", 0, Stance.PRO), _turn("alice", 2, Stance.CON))
        assert [(s.claim_id, s.round) for s in state.stances_of("alice")] == [
            ("c1", 2),
            ("c2", 2),
        ]


class TestRendering:
    """Plain-text renderings used in prompts and events."""

    def test_render_lists_sections_present(self) -> None:
        state = _fold(
            _turn("alice", 0, Stance.PRO, cruxes=["Supply is elastic"], flips=["rates rise"]),
            _turn("bob", 0, Stance.CON),
        )
        text = render_blackboard(state)
        assert text.startswith("Topic: housing")
        for heading in (
            "Claims:",
            "Current Positions:",
            "Active Disputes:",
            "Open Cruxes:",
            "Triggered Flip Conditions:",
        ):
            assert heading in text
        assert "c1: alice:pro(0.6) vs bob:con(0.6)" in text

    def test_render_empty_board(self) -> None:
        text = render_blackboard(create_blackboard("housing", CLAIMS))
        assert "Current Positions:" not in text
        assert "Open Cruxes:" not in text

    def test_quick_summary(self) -> None:
        assert quick_summary(create_blackboard("t", CLAIMS)) == "No significant developments yet."
        state = _fold(
            _turn("alice", 0, Stance.PRO, cruxes=["Supply"]), _turn("bob", 0, Stance.CON)
        )
        assert quick_summary(state) == "2 active dispute(s). 1 open crux(es): Supply."


class TestSummarizeBlackboard:
    """Small boards are rendered; large ones are delegated."""

    def test_small_board_is_rendered_without_collaborator(self) -> None:
        summarizer = RecordingSummarizer()
        state = create_blackboard("housing", CLAIMS)
        text = asyncio.run(summarize_blackboard(state, 1000, summarizer))
        assert text == render_blackboard(state)
        assert summarizer.calls == []

    def test_large_board_is_delegated_with_allowance(self) -> None:
        summarizer = RecordingSummarizer()
        state = _fold(_turn("alice", 0, Stance.PRO), _turn("bob", 0, Stance.CON))
        text = asyncio.run(summarize_blackboard(state, 10, summarizer))
        assert text == "compressed"
        assert summarizer.calls == [(10, 12)]
