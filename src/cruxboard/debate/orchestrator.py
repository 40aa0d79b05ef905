"""Cruxboard Debate Orchestrator.

`DebateRunner` is the shared base of the four debate drivers. A runner is
single-use: `events()` yields the ordered event stream of one debate and
the runner keeps the resulting state so it can be compared with a replay.

Stream contract:
- every stream ends with exactly one `debate_complete` or one `error` event;
- a failure outside per-agent calls (claim decomposition, output
  extraction) becomes the terminal `error` event;
- a failed per-agent call is logged, reported as `agent_skipped` and the
  agent sits the step out.

Cancellation is cooperative: when the consumer stops iterating, the driver
generator is closed at its current `yield` and issues no further calls.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from datetime import datetime
from typing import ClassVar, TypeVar

from cruxboard.debate.replay import ReplayState
from cruxboard.errors import CollaboratorError, ConfigurationError
from cruxboard.models.argumentation import ArgumentationState
from cruxboard.models.blackboard import BlackboardState, TurnMessage
from cruxboard.models.convergence import ConvergenceState
from cruxboard.models.debate import DebateConfig, DebateMode
from cruxboard.models.dialogue import CruxCard, CruxMessage, DialogueMessage
from cruxboard.models.events import AgentSkippedEvent, DebateEvent, ErrorEvent
from cruxboard.models.output import DebateOutput, GraphDebateOutput
from cruxboard.models.persona import Persona
from cruxboard.services.collaborators import DebateCollaborator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DebateRunner:
    """Base class for debate drivers.

    Subclasses implement `_run()` as an async generator of events and keep
    the debate state in the attributes below as they go.
    """

    mode: ClassVar[DebateMode]

    def __init__(
        self,
        config: DebateConfig,
        collaborator: DebateCollaborator,
        personas: Sequence[Persona],
        *,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Per-run configuration.
            collaborator: Source of all generated content.
            personas: Available personas; `config.persona_ids` are resolved
                against them in order.
            clock: Wall clock, injectable for tests.
            rng: Random source for scheduling jitter. Defaults to one seeded
                from `config.seed`.

        Raises:
            ConfigurationError: If a persona id is unknown or repeated.
        """
        by_id = {p.id: p for p in personas}
        unknown = [pid for pid in config.persona_ids if pid not in by_id]
        if unknown:
            raise ConfigurationError(f"Unknown persona id(s): {', '.join(unknown)}")
        if len(set(config.persona_ids)) != len(config.persona_ids):
            raise ConfigurationError("Persona ids must be unique")

        self.config = config
        self.collaborator = collaborator
        self.personas: list[Persona] = [by_id[pid] for pid in config.persona_ids]
        self.clock = clock
        self.rng = rng or random.Random(config.seed)

        self.board: BlackboardState | None = None
        self.graph: ArgumentationState | None = None
        self.transcript: list[TurnMessage] = []
        self.dialogue: list[DialogueMessage] = []
        self.crux_messages: dict[str, list[CruxMessage]] = {}
        self.cards: list[CruxCard] = []
        self.convergence: ConvergenceState | None = None
        self.output: DebateOutput | None = None
        self.graph_output: GraphDebateOutput | None = None
        self.complete_reason: str | None = None
        self.error: str | None = None
        self._started = False

    @property
    def persona_ids(self) -> list[str]:
        return [p.id for p in self.personas]

    def persona(self, persona_id: str) -> Persona:
        for persona in self.personas:
            if persona.id == persona_id:
                return persona
        raise KeyError(persona_id)

    async def events(self) -> AsyncIterator[DebateEvent]:
        """Run the debate, yielding its events in order.

        Raises:
            RuntimeError: If the runner was already started.
        """
        if self._started:
            raise RuntimeError("DebateRunner instances are single-use")
        self._started = True

        logger.info(
            "Debate %s started: mode=%s personas=%s",
            self.config.debate_id,
            self.mode.value,
            ",".join(self.persona_ids),
        )
        try:
            async for event in self._run():
                yield event
        except Exception as e:
            logger.exception("Debate %s failed", self.config.debate_id)
            self.error = str(e) or type(e).__name__
            yield ErrorEvent(message=self.error, operation=getattr(e, "operation", None))
            return
        logger.info("Debate %s complete: %s", self.config.debate_id, self.complete_reason)

    def _run(self) -> AsyncIterator[DebateEvent]:
        raise NotImplementedError

    async def _fan_out(
        self,
        operation: str,
        call: Callable[[Persona], Awaitable[T]],
        personas: Sequence[Persona] | None = None,
    ) -> list[tuple[Persona, T | CollaboratorError]]:
        """Issue one call per persona concurrently; results come back in persona order.

        Collaborator failures are returned in place of the result; any other
        exception propagates.
        """
        targets = list(self.personas if personas is None else personas)
        results = await asyncio.gather(*(call(p) for p in targets), return_exceptions=True)
        outcomes: list[tuple[Persona, T | CollaboratorError]] = []
        for persona, result in zip(targets, results, strict=True):
            if isinstance(result, CollaboratorError):
                logger.warning("%s failed for %s: %s", operation, persona.id, result)
            elif isinstance(result, BaseException):
                raise result
            outcomes.append((persona, result))
        return outcomes

    @staticmethod
    def _skipped(
        persona: Persona, operation: str, round_number: int, error: Exception
    ) -> AgentSkippedEvent:
        return AgentSkippedEvent(
            persona_id=persona.id,
            operation=operation,
            round=round_number,
            error=str(error),
        )

    def final_state(self) -> ReplayState:
        """Snapshot of the runner's state in replay form."""
        return ReplayState(
            debate_id=self.config.debate_id,
            topic=self.config.topic,
            mode=self.mode.value,
            persona_ids=self.persona_ids,
            board=self.board,
            graph=self.graph,
            transcript=list(self.transcript),
            dialogue=list(self.dialogue),
            crux_messages={room: list(msgs) for room, msgs in self.crux_messages.items()},
            cards=list(self.cards),
            convergence=self.convergence,
            output=self.output,
            graph_output=self.graph_output,
            complete_reason=self.complete_reason,
            error=self.error,
        )


def build_runner(
    config: DebateConfig,
    collaborator: DebateCollaborator,
    personas: Sequence[Persona],
    *,
    clock: Callable[[], datetime] | None = None,
    rng: random.Random | None = None,
) -> DebateRunner:
    """Create the driver for `config.mode`.

    Raises:
        ConfigurationError: If a persona id is unknown.
    """
    from cruxboard.debate.blitz import BlitzRunner
    from cruxboard.debate.classical import ClassicalRunner
    from cruxboard.debate.dialogue import DialogueRunner
    from cruxboard.debate.graph_debate import GraphRunner

    runners: dict[DebateMode, type[DebateRunner]] = {
        DebateMode.BLITZ: BlitzRunner,
        DebateMode.CLASSICAL: ClassicalRunner,
        DebateMode.GRAPH: GraphRunner,
        DebateMode.DIALOGUE: DialogueRunner,
    }
    return runners[config.mode](config, collaborator, personas, clock=clock, rng=rng)


async def run_debate(
    config: DebateConfig,
    collaborator: DebateCollaborator,
    personas: Sequence[Persona],
) -> list[DebateEvent]:
    """Run a debate to completion and return every event."""
    runner = build_runner(config, collaborator, personas)
    return [event async for event in runner.events()]
