"""Cruxboard Blackboard.

The blackboard is folded from one agent turn at a time. `update_blackboard`
is pure: it builds the next state field by field from the previous one and
never edits the previous state. Updates are not commutative (crux dedup,
flip-condition upsert and weight recomputation depend on order), so callers
must fold turns in a stable order.
"""

from __future__ import annotations

import logging
import math
from typing import Protocol

from cruxboard.models.blackboard import (
    AgentStance,
    BlackboardState,
    Claim,
    Crux,
    Dispute,
    DisputeSide,
    FlipCondition,
    TurnResult,
)

logger = logging.getLogger(__name__)

NEW_CRUX_WEIGHT = 0.5
BASE_CRUX_WEIGHT = 0.3
DISPUTE_CRUX_BONUS = 0.3
CRUX_INDEX_STEP = 0.05
MAX_CRUX_INDEX_BONUS = 0.3
CHARS_PER_TOKEN = 4
SUMMARY_MAX_TOKENS_FACTOR = 1.2


class Summarizer(Protocol):
    """Collaborator that compresses a rendered blackboard to a token budget."""

    async def summarize(self, board_text: str, *, token_budget: int, max_tokens: int) -> str: ...


def create_blackboard(topic: str, claims: list[Claim]) -> BlackboardState:
    """Return an empty blackboard holding the given claims."""
    return BlackboardState(topic=topic, claims=list(claims))


def update_blackboard(state: BlackboardState, turn: TurnResult) -> BlackboardState:
    """Fold one agent turn into the blackboard.

    Steps, in order:
    1. Append the turn's stances to the stance log.
    2. Add proposed cruxes not already present (case-insensitive match).
    3. Upsert the persona's flip triggers as triggered flip conditions.
    4. Rebuild disputes from the latest stance per persona per claim.
    5. Recompute every crux weight.

    Args:
        state: Current blackboard.
        turn: The acting persona's structured turn result.

    Returns:
        A new BlackboardState with `version` incremented.
    """
    stances = [
        *state.stances,
        *(
            AgentStance(
                persona_id=turn.persona_id,
                claim_id=s.claim_id,
                stance=s.stance,
                confidence=s.confidence,
                round=turn.round,
            )
            for s in turn.stances
        ),
    ]

    cruxes = list(state.crux_candidates)
    for text in turn.new_cruxes:
        key = text.lower()
        if any(c.proposition.lower() == key for c in cruxes):
            continue
        cruxes.append(Crux(id=f"crux-{len(cruxes)}", proposition=text, weight=NEW_CRUX_WEIGHT))

    flip_conditions = _upsert_flip_conditions(state.flip_conditions, turn)

    next_state = state.model_copy(
        update={
            "stances": stances,
            "flip_conditions": flip_conditions,
        }
    )
    disputes = build_disputes(next_state)

    return next_state.model_copy(
        update={
            "disputes": disputes,
            "crux_candidates": recompute_crux_weights(cruxes, has_disputes=bool(disputes)),
            "version": state.version + 1,
        }
    )


def _upsert_flip_conditions(
    existing: list[FlipCondition], turn: TurnResult
) -> list[FlipCondition]:
    conditions = list(existing)
    fallback_claim_id = turn.stances[0].claim_id if turn.stances else ""
    for trigger in turn.flip_triggers:
        for i, condition in enumerate(conditions):
            if condition.persona_id == turn.persona_id and condition.condition == trigger:
                conditions[i] = condition.model_copy(update={"triggered": True})
                break
        else:
            conditions.append(
                FlipCondition(
                    persona_id=turn.persona_id,
                    condition=trigger,
                    claim_id=fallback_claim_id,
                    triggered=True,
                )
            )
    return conditions


def build_disputes(state: BlackboardState) -> list[Dispute]:
    """A claim is disputed when its current stances hold more than one value."""
    disputes = []
    for claim in state.claims:
        latest = state.current_stances(claim.id)
        if len({s.stance for s in latest.values()}) > 1:
            disputes.append(
                Dispute(
                    claim_id=claim.id,
                    sides=[
                        DisputeSide(
                            persona_id=s.persona_id, stance=s.stance, confidence=s.confidence
                        )
                        for s in latest.values()
                    ],
                )
            )
    return disputes


def recompute_crux_weights(cruxes: list[Crux], *, has_disputes: bool) -> list[Crux]:
    """Resolved cruxes weigh 0; open ones get base + dispute bonus + creation-order bonus."""
    weighted = []
    for index, crux in enumerate(cruxes):
        if crux.resolved:
            weight = 0.0
        else:
            weight = BASE_CRUX_WEIGHT
            if has_disputes:
                weight += DISPUTE_CRUX_BONUS
            weight += min(MAX_CRUX_INDEX_BONUS, index * CRUX_INDEX_STEP)
        weighted.append(crux.model_copy(update={"weight": max(0.0, min(1.0, weight))}))
    return weighted


def render_blackboard(state: BlackboardState) -> str:
    """Plain-text rendering of the blackboard used for prompts and summaries."""
    parts = [f"Topic: {state.topic}", "", "Claims:"]
    parts.extend(f"  - [{c.id}] {c.text}" for c in state.claims)

    latest = [
        stance
        for claim in state.claims
        for stance in state.current_stances(claim.id).values()
    ]
    if latest:
        parts += ["", "Current Positions:"]
        parts.extend(
            f"  - {s.persona_id} on {s.claim_id}: {s.stance.value} ({s.confidence})" for s in latest
        )

    if state.disputes:
        parts += ["", "Active Disputes:"]
        for dispute in state.disputes:
            sides = " vs ".join(
                f"{s.persona_id}:{s.stance.value}({s.confidence})" for s in dispute.sides
            )
            parts.append(f"  - {dispute.claim_id}: {sides}")

    open_cruxes = state.unresolved_cruxes()
    if open_cruxes:
        parts += ["", "Open Cruxes:"]
        parts.extend(f"  - [{c.id}] {c.proposition} (weight: {c.weight:.2f})" for c in open_cruxes)

    triggered = [fc for fc in state.flip_conditions if fc.triggered]
    if triggered:
        parts += ["", "Triggered Flip Conditions:"]
        parts.extend(f"  - {fc.persona_id}: {fc.condition}" for fc in triggered)

    return "\n".join(parts)


async def summarize_blackboard(
    state: BlackboardState,
    token_budget: int,
    summarizer: Summarizer,
) -> str:
    """Summarize the blackboard within roughly `token_budget` tokens.

    The plain rendering is returned directly when it fits the budget
    (about four characters per token). Larger boards are delegated to the
    summarizer with a 20% token allowance.
    """
    text = render_blackboard(state)
    if len(text) / CHARS_PER_TOKEN <= token_budget:
        return text

    logger.debug(
        "Blackboard rendering exceeds budget (%d chars, budget=%d tokens); delegating",
        len(text),
        token_budget,
    )
    return await summarizer.summarize(
        text,
        token_budget=token_budget,
        max_tokens=math.ceil(token_budget * SUMMARY_MAX_TOKENS_FACTOR),
    )


def quick_summary(state: BlackboardState) -> str:
    """One-line digest used in blackboard_update events."""
    parts = []
    if state.disputes:
        parts.append(f"{len(state.disputes)} active dispute(s).")
    open_cruxes = state.unresolved_cruxes()
    if open_cruxes:
        names = "; ".join(c.proposition for c in open_cruxes)
        parts.append(f"{len(open_cruxes)} open crux(es): {names}.")
    triggered = [fc for fc in state.flip_conditions if fc.triggered]
    if triggered:
        flips = ", ".join(f"{fc.persona_id} ({fc.condition})" for fc in triggered)
        parts.append(f"Flip conditions triggered: {flips}.")
    return " ".join(parts) or "No significant developments yet."
