"""Classical debate driver.

One speaker per turn. Each turn every agent proposes an action plan in
parallel; the highest-urgency speak/interrupt plan wins the floor and only
that agent is asked for a turn. Three consecutive turns in which nobody
wants the floor end the debate.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from cruxboard.debate.blackboard import quick_summary
from cruxboard.debate.blitz import BlitzRunner
from cruxboard.debate.context import assemble_context
from cruxboard.debate.convergence import ConvergenceTracker
from cruxboard.debate.scheduler import SilenceRule, select_speaker
from cruxboard.errors import CollaboratorError
from cruxboard.models.blackboard import BlackboardState
from cruxboard.models.debate import DebateMode
from cruxboard.models.events import (
    BlackboardUpdateEvent,
    ConvergenceUpdateEvent,
    DebateEvent,
    SpeakerSelectedEvent,
    StatusEvent,
)
from cruxboard.models.persona import Persona
from cruxboard.models.scheduling import ActionPlan

logger = logging.getLogger(__name__)


class ClassicalRunner(BlitzRunner):
    """Urgency-scheduled sequential turns, capped at `max_turns`."""

    mode = DebateMode.CLASSICAL

    async def _action_plan(
        self, persona: Persona, board: BlackboardState, turn_number: int
    ) -> ActionPlan:
        context = await assemble_context(
            persona.id,
            board,
            self.transcript,
            turn_number,
            self.collaborator,
            self.config.summary_token_budget,
        )
        return await self.collaborator.action_plan(persona, context)

    async def _run(self) -> AsyncIterator[DebateEvent]:
        async for event in self._setup():
            yield event
        assert self.board is not None

        yield StatusEvent(phase="debate", message="Starting classical debate...")
        tracker = ConvergenceTracker()
        silence = SilenceRule()
        event_count = 0
        reason = "max_turns"

        for turn_number in range(1, self.config.max_turns + 1):
            snapshot = self.board
            outcomes = await self._fan_out(
                "action_plan", lambda p: self._action_plan(p, snapshot, turn_number)
            )
            plans: list[ActionPlan] = []
            for persona, result in outcomes:
                if isinstance(result, CollaboratorError):
                    yield self._skipped(persona, "action_plan", turn_number, result)
                    continue
                plans.append(result)

            speaker = select_speaker(plans)
            if silence.record(speaker):
                yield StatusEvent(
                    phase="silence_break",
                    message="Debate ended: extended silence, no agent wants to speak.",
                )
                reason = "silence"
                break
            if speaker is None:
                yield StatusEvent(
                    phase="silence",
                    message=(
                        f"Turn {turn_number}: all agents listening "
                        f"(silence {silence.consecutive}/{silence.max_consecutive})"
                    ),
                )
                continue

            logger.debug(
                "Turn %d: %s takes the floor (urgency=%.2f, %s)",
                turn_number,
                speaker.persona_id,
                speaker.urgency,
                speaker.action.value,
            )
            yield SpeakerSelectedEvent(turn=turn_number, plan=speaker)

            persona = self.persona(speaker.persona_id)
            try:
                turn = await self._agent_turn(persona, self.board, turn_number, speaker.intent)
            except CollaboratorError as e:
                logger.warning("agent_turn failed for %s: %s", persona.id, e)
                yield self._skipped(persona, "agent_turn", turn_number, e)
                continue

            yield self._fold_turn(turn)
            event_count += 1
            yield BlackboardUpdateEvent(
                version=self.board.version, summary=quick_summary(self.board)
            )

            tracker, metrics = tracker.observe(self.board, event_count, turn_number)
            self.convergence = metrics
            yield ConvergenceUpdateEvent(round=turn_number, metrics=metrics)

            if metrics.converged:
                reason = "converged"
                break
            if metrics.diverged:
                reason = "diverged"
                break

        async for event in self._finish(reason):
            yield event
