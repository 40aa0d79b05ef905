"""Cruxboard Turn Scheduling.

Two interchangeable policies decide who speaks next.

Reactive priority scoring (dialogue mode), additive per candidate:
    +10  last message mentions one of the candidate's aliases
    +7   last message matches one of the candidate's domain keywords
    +3   last message ends with a question mark
    -5   per appearance of the candidate in the last 3 messages
    +min(8, 2 * turns since the candidate last spoke)
    +uniform jitter in [0, 3)

The reason label starts as COUNTER and is overwritten at most once, in the
fixed order address -> OBJECTION, domain -> EVIDENCE, question -> CHALLENGE,
while the score always sums every applicable bonus.

Deliberative urgency scoring (classical mode): among the agents proposing
speak or interrupt, the highest urgency wins and interrupt beats speak on
a tie. SilenceRule ends the debate after MAX_CONSECUTIVE_SILENCE turns in
which nobody wanted the floor.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from cruxboard.models.persona import Persona
from cruxboard.models.scheduling import (
    ActionPlan,
    InterjectionReason,
    PlannedAction,
    TurnCandidate,
)

logger = logging.getLogger(__name__)

ADDRESS_BONUS = 10.0
DOMAIN_BONUS = 7.0
QUESTION_BONUS = 3.0
RECENCY_PENALTY = 5.0
RECENCY_WINDOW = 3
SILENCE_BONUS_PER_TURN = 2.0
MAX_SILENCE_BONUS = 8.0
JITTER_RANGE = 3.0
MAX_CONSECUTIVE_SILENCE = 3


def mentions(text: str, persona: Persona) -> bool:
    lower = text.lower()
    return any(alias.lower() in lower for alias in persona.aliases)


def in_domain(text: str, persona: Persona) -> bool:
    lower = text.lower()
    return any(keyword.lower() in lower for keyword in persona.domain_keywords)


def turns_since_spoke(speaker_history: Sequence[str], persona_id: str) -> int:
    """Number of messages since `persona_id` last spoke (all of them if never)."""
    count = 0
    for speaker in reversed(speaker_history):
        if speaker == persona_id:
            break
        count += 1
    return count


def score_candidates(
    last_speaker: str,
    last_text: str,
    speaker_history: Sequence[str],
    personas: Sequence[Persona],
    rng: random.Random,
) -> list[TurnCandidate]:
    """Score every persona except the last speaker for the next reactive turn.

    Args:
        last_speaker: Persona id of the message being reacted to.
        last_text: Content of that message.
        speaker_history: Persona id of every message so far, oldest first.
        personas: Participants in scheduling order.
        rng: Source of tie-breaking jitter. Inject a seeded instance for
            reproducible schedules.

    Returns:
        Candidates sorted by score, highest first. Python's stable sort keeps
        persona order among exact ties.
    """
    recent = list(speaker_history[-RECENCY_WINDOW:])
    asks_question = last_text.rstrip().endswith("?")
    candidates = []

    for persona in personas:
        if persona.id == last_speaker:
            continue

        score = 0.0
        reason = InterjectionReason.COUNTER

        if mentions(last_text, persona):
            score += ADDRESS_BONUS
            reason = InterjectionReason.OBJECTION

        if in_domain(last_text, persona):
            score += DOMAIN_BONUS
            if reason is InterjectionReason.COUNTER:
                reason = InterjectionReason.EVIDENCE

        if asks_question:
            score += QUESTION_BONUS
            if reason is InterjectionReason.COUNTER:
                reason = InterjectionReason.CHALLENGE

        score -= RECENCY_PENALTY * recent.count(persona.id)
        score += min(
            MAX_SILENCE_BONUS,
            SILENCE_BONUS_PER_TURN * turns_since_spoke(speaker_history, persona.id),
        )
        score += rng.random() * JITTER_RANGE

        candidates.append(
            TurnCandidate(persona_id=persona.id, reason=reason, score=score, reply_to=last_speaker)
        )

    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates


def select_speaker(plans: Sequence[ActionPlan]) -> ActionPlan | None:
    """Pick the deliberative speaker: max urgency, interrupt wins ties.

    Returns None when nobody proposes to speak or interrupt. Among equal
    (urgency, action) pairs the earliest plan wins.
    """
    best: ActionPlan | None = None
    for plan in plans:
        if plan.action is PlannedAction.LISTEN:
            continue
        if best is None or _plan_rank(plan) > _plan_rank(best):
            best = plan
    return best


def _plan_rank(plan: ActionPlan) -> tuple[float, int]:
    return plan.urgency, 1 if plan.action is PlannedAction.INTERRUPT else 0


class SilenceRule:
    """Counts consecutive turns without a speaker."""

    def __init__(self, max_consecutive: int = MAX_CONSECUTIVE_SILENCE) -> None:
        self.max_consecutive = max_consecutive
        self.consecutive = 0

    def record(self, speaker: ActionPlan | None) -> bool:
        """Record one turn's outcome. Returns True when the debate should end."""
        if speaker is None:
            self.consecutive += 1
            logger.debug("Silent turn %d/%d", self.consecutive, self.max_consecutive)
        else:
            self.consecutive = 0
        return self.consecutive >= self.max_consecutive
