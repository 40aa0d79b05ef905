"""Blitz debate driver.

Every agent speaks every round. A round fans out one agent-turn call per
persona against the blackboard snapshot taken before the round, then folds
the results into the blackboard sequentially in persona order.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from cruxboard.debate.blackboard import create_blackboard, quick_summary, update_blackboard
from cruxboard.debate.context import assemble_context
from cruxboard.debate.convergence import ConvergenceTracker
from cruxboard.debate.orchestrator import DebateRunner
from cruxboard.errors import CollaboratorError
from cruxboard.models.blackboard import (
    BlackboardState,
    Claim,
    InitialStances,
    TurnMessage,
    TurnResult,
)
from cruxboard.models.debate import DebateMode
from cruxboard.models.events import (
    AgentsReadyEvent,
    AgentTurnEvent,
    BlackboardUpdateEvent,
    ConvergenceUpdateEvent,
    DebateCompleteEvent,
    DebateEvent,
    DebateStartEvent,
    InitialStanceEvent,
    StatusEvent,
)
from cruxboard.models.persona import Persona

logger = logging.getLogger(__name__)


class BlitzRunner(DebateRunner):
    """Parallel rounds until convergence, divergence or `max_rounds`."""

    mode = DebateMode.BLITZ

    async def _setup(self) -> AsyncIterator[DebateEvent]:
        """Decompose claims and collect initial stances (shared with classical mode)."""
        config = self.config
        yield StatusEvent(phase="claims", message="Decomposing topic into testable claims...")
        claims = await self.collaborator.decompose_claims(config.topic, config.debate_id)
        self.board = create_blackboard(config.topic, claims)
        yield DebateStartEvent(
            debate_id=config.debate_id,
            topic=config.topic,
            mode=self.mode.value,
            persona_ids=self.persona_ids,
            claims=claims,
        )
        yield AgentsReadyEvent(persona_ids=self.persona_ids)

        yield StatusEvent(phase="stances", message="Generating initial stances...")
        outcomes = await self._fan_out(
            "initial_stances", lambda p: self._initial_stances(p, claims)
        )
        for persona, result in outcomes:
            if isinstance(result, CollaboratorError):
                yield self._skipped(persona, "initial_stances", 0, result)
                continue
            turn = TurnResult(persona_id=persona.id, round=0, stances=result.stances)
            self.board = update_blackboard(self.board, turn)
            yield InitialStanceEvent(turn=turn, reasonings=result.reasonings)

    async def _initial_stances(self, persona: Persona, claims: list[Claim]) -> InitialStances:
        return await self.collaborator.initial_stances(persona, claims)

    async def _agent_turn(
        self,
        persona: Persona,
        board: BlackboardState,
        round_number: int,
        intent: str | None = None,
    ) -> TurnResult:
        context = await assemble_context(
            persona.id,
            board,
            self.transcript,
            round_number,
            self.collaborator,
            self.config.summary_token_budget,
        )
        return await self.collaborator.agent_turn(persona, context, intent)

    def _fold_turn(self, turn: TurnResult) -> AgentTurnEvent:
        assert self.board is not None
        self.board = update_blackboard(self.board, turn)
        self.transcript.append(
            TurnMessage(persona_id=turn.persona_id, round=turn.round, content=turn.response)
        )
        return AgentTurnEvent(turn=turn)

    async def _finish(self, reason: str) -> AsyncIterator[DebateEvent]:
        assert self.board is not None
        yield StatusEvent(phase="output", message="Extracting debate output...")
        self.output = await self.collaborator.extract_output(self.board)
        self.complete_reason = reason
        yield DebateCompleteEvent(reason=reason, output=self.output)

    async def _run(self) -> AsyncIterator[DebateEvent]:
        async for event in self._setup():
            yield event
        assert self.board is not None

        tracker = ConvergenceTracker()
        event_count = 0
        reason = "max_rounds"

        for round_number in range(1, self.config.max_rounds + 1):
            yield StatusEvent(phase="round", message=f"Round {round_number}")
            snapshot = self.board
            outcomes = await self._fan_out(
                "agent_turn", lambda p: self._agent_turn(p, snapshot, round_number)
            )
            for persona, result in outcomes:
                if isinstance(result, CollaboratorError):
                    yield self._skipped(persona, "agent_turn", round_number, result)
                    continue
                yield self._fold_turn(result)
                event_count += 1

            yield BlackboardUpdateEvent(
                version=self.board.version, summary=quick_summary(self.board)
            )

            tracker, metrics = tracker.observe(self.board, event_count, round_number)
            self.convergence = metrics
            yield ConvergenceUpdateEvent(round=round_number, metrics=metrics)

            if metrics.converged:
                reason = "converged"
                break
            if metrics.diverged:
                reason = "diverged"
                break

        async for event in self._finish(reason):
            yield event
