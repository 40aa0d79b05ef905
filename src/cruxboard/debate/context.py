"""Per-turn context assembly.

An agent sees three things when asked for a turn or an action plan: the
blackboard summary, the local neighborhood (recent transcript of the last
two rounds) and its own current stances.
"""

from __future__ import annotations

from collections.abc import Sequence

from cruxboard.config import DEFAULT_SUMMARY_TOKEN_BUDGET
from cruxboard.debate.blackboard import Summarizer, summarize_blackboard
from cruxboard.models.blackboard import BlackboardState, TurnContext, TurnMessage

NEIGHBORHOOD_ROUNDS = 2
NEIGHBORHOOD_MAX_MESSAGES = 10


def local_neighborhood(messages: Sequence[TurnMessage], round_number: int) -> str:
    """Last messages from the previous two rounds, one block per message."""
    recent = [m for m in messages if m.round >= round_number - NEIGHBORHOOD_ROUNDS]
    recent = recent[-NEIGHBORHOOD_MAX_MESSAGES:]
    return "\n\n".join(f"[Round {m.round}] {m.persona_id}: {m.content}" for m in recent)


async def assemble_context(
    persona_id: str,
    board: BlackboardState,
    messages: Sequence[TurnMessage],
    round_number: int,
    summarizer: Summarizer,
    token_budget: int = DEFAULT_SUMMARY_TOKEN_BUDGET,
) -> TurnContext:
    """Build the context one agent sees for `round_number`."""
    summary = await summarize_blackboard(board, token_budget, summarizer)
    return TurnContext(
        topic=board.topic,
        round=round_number,
        blackboard_summary=summary,
        local_neighborhood=local_neighborhood(messages, round_number),
        claims=list(board.claims),
        current_stances=board.stances_of(persona_id),
    )
