"""Graph debate driver.

Agents argue in structured arguments and attacks instead of free text:

1. Round 0: every agent submits initial arguments (parallel).
2. Rounds 1..max_graph_rounds: every agent attacks other speakers'
   arguments (parallel). Each attack brings a counter-argument node. The
   round's attacks are validated in one batch call, deduplicated, added to
   the graph and the Dung semantics are recomputed.
3. The debate stops when a round produces no attacks, no valid edges, or
   leaves the labelling unchanged.

The output is computed from the extensions; no collaborator call is made
after the last round.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from cruxboard.argumentation.crux_extractor import extract_graph_output, map_to_debate_output
from cruxboard.argumentation.graph_state import (
    add_arguments,
    add_attacks,
    count_labels,
    create_graph_state,
    deduplicate_attacks,
    labelling_snapshot,
    recompute_semantics,
)
from cruxboard.debate.blackboard import create_blackboard, update_blackboard
from cruxboard.debate.orchestrator import DebateRunner
from cruxboard.errors import CollaboratorError
from cruxboard.models.argumentation import (
    Argument,
    ArgumentationState,
    Attack,
    AttackTarget,
    Label,
    ValidationResult,
)
from cruxboard.models.blackboard import Stance, StanceInput, TurnResult
from cruxboard.models.convergence import ConvergenceState
from cruxboard.models.debate import DebateMode
from cruxboard.models.events import (
    AgentsReadyEvent,
    ArgumentsSubmittedEvent,
    AttacksGeneratedEvent,
    BlackboardUpdateEvent,
    ConvergenceUpdateEvent,
    DebateCompleteEvent,
    DebateEvent,
    DebateStartEvent,
    GraphConvergenceEvent,
    GraphUpdateEvent,
    InitialStanceEvent,
    StatusEvent,
    ValidationCompleteEvent,
)
from cruxboard.models.persona import Persona
from cruxboard.services.llm.schemas import AttackDraft

logger = logging.getLogger(__name__)

FALLBACK_ATTACK_STRENGTH = 0.5
UNSTABLE_DISTANCE = 0.5


class GraphRunner(DebateRunner):
    """Argument/attack rounds resolved with Dung semantics."""

    mode = DebateMode.GRAPH

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._arg_counter = 0
        self._attack_counter = 0

    def _next_argument_id(self) -> str:
        arg_id = f"arg-{self._arg_counter}"
        self._arg_counter += 1
        return arg_id

    def _next_attack_id(self) -> str:
        attack_id = f"atk-{self._attack_counter}"
        self._attack_counter += 1
        return attack_id

    def _graph_update(self, round_number: int, accepted_ids: list[str]) -> GraphUpdateEvent:
        assert self.graph is not None
        return GraphUpdateEvent(
            round=round_number,
            accepted_attack_ids=accepted_ids,
            labelling=self.graph.labelling,
            grounded_extension=list(self.graph.grounded_extension),
            preferred_extensions=[list(ext) for ext in self.graph.preferred_extensions],
        )

    async def _run(self) -> AsyncIterator[DebateEvent]:
        config = self.config
        yield StatusEvent(phase="claims", message="Decomposing topic into testable claims...")
        claims = await self.collaborator.decompose_claims(config.topic, config.debate_id)
        self.board = create_blackboard(config.topic, claims)
        self.graph = create_graph_state(config.topic)
        yield DebateStartEvent(
            debate_id=config.debate_id,
            topic=config.topic,
            mode=self.mode.value,
            persona_ids=self.persona_ids,
            claims=claims,
        )
        yield AgentsReadyEvent(persona_ids=self.persona_ids)

        yield StatusEvent(phase="arguments", message="Generating initial arguments...")
        outcomes = await self._fan_out(
            "initial_arguments",
            lambda p: self.collaborator.initial_arguments(p, config.topic, claims),
        )
        for persona, result in outcomes:
            if isinstance(result, CollaboratorError):
                yield self._skipped(persona, "initial_arguments", 0, result)
                continue
            arguments = [
                Argument(
                    id=self._next_argument_id(),
                    speaker_id=persona.id,
                    claim=draft.claim,
                    premises=list(draft.premises),
                    assumptions=list(draft.assumptions),
                    evidence=list(draft.evidence),
                    round=0,
                )
                for draft in result
            ]
            self.graph = add_arguments(self.graph, arguments)
            yield ArgumentsSubmittedEvent(persona_id=persona.id, round=0, arguments=arguments)

            # Arguments carry no stance; everyone starts uncertain on every claim.
            turn = TurnResult(
                persona_id=persona.id,
                round=0,
                stances=[
                    StanceInput(claim_id=c.id, stance=Stance.UNCERTAIN, confidence=0.5)
                    for c in claims
                ],
            )
            self.board = update_blackboard(self.board, turn)
            yield InitialStanceEvent(turn=turn, reasonings=[a.claim for a in arguments])

        self.graph = recompute_semantics(self.graph).model_copy(update={"round": 0})
        yield self._graph_update(0, [])

        previous_snapshot = labelling_snapshot(self.graph)
        reason = "max_rounds"

        for round_number in range(1, config.max_graph_rounds + 1):
            yield StatusEvent(
                phase="attacks", message=f"Round {round_number}: Generating attacks..."
            )
            graph = self.graph
            own_ids = {
                p.id: {a.id for a in graph.arguments if a.speaker_id == p.id} for p in self.personas
            }
            outcomes = await self._fan_out(
                "generate_attacks",
                lambda p: self.collaborator.generate_attacks(
                    p, graph.arguments, own_ids[p.id], config.topic, graph.labelling
                ),
            )

            round_attacks: list[Attack] = []
            counter_arguments: list[Argument] = []
            for persona, result in outcomes:
                if isinstance(result, CollaboratorError):
                    yield self._skipped(persona, "generate_attacks", round_number, result)
                    continue
                for draft in result:
                    built = self._build_attack(
                        persona, draft, graph, own_ids[persona.id], round_number
                    )
                    if built is None:
                        continue
                    counter, attack = built
                    counter_arguments.append(counter)
                    round_attacks.append(attack)

            self.graph = add_arguments(self.graph, counter_arguments)
            yield AttacksGeneratedEvent(
                round=round_number, attacks=round_attacks, counter_arguments=counter_arguments
            )

            if not round_attacks:
                yield GraphConvergenceEvent(round=round_number, stable=True, new_edges=0)
                metrics = ConvergenceState(
                    entropy=0.0,
                    confidence_weighted_distance=0.0,
                    unresolved_crux_count=0,
                    converged=True,
                    diverged=False,
                    event_count=round_number,
                    max_events=config.max_graph_rounds,
                )
                self.convergence = metrics
                yield ConvergenceUpdateEvent(round=round_number, metrics=metrics)
                reason = "stable"
                break

            yield StatusEvent(
                phase="validation",
                message=f"Round {round_number}: Validating {len(round_attacks)} attacks...",
            )
            validations, fallback = await self._validate(round_attacks)
            yield ValidationCompleteEvent(
                round=round_number, results=validations, fallback=fallback
            )

            deduped = deduplicate_attacks(round_attacks)
            self.graph = add_attacks(self.graph, deduped, validations)
            self.graph = recompute_semantics(self.graph).model_copy(update={"round": round_number})
            yield self._graph_update(round_number, [a.id for a in deduped])

            valid_ids = {v.attack_id for v in validations if v.valid}
            valid_edges = sum(1 for a in deduped if a.id in valid_ids)
            snapshot = labelling_snapshot(self.graph)
            stable = snapshot == previous_snapshot or valid_edges == 0
            previous_snapshot = snapshot
            yield GraphConvergenceEvent(round=round_number, stable=stable, new_edges=valid_edges)

            counts = count_labels(self.graph)
            undecided = counts[Label.UNDEC]
            metrics = ConvergenceState(
                entropy=undecided / max(1, len(self.graph.arguments)),
                confidence_weighted_distance=0.0 if stable else UNSTABLE_DISTANCE,
                unresolved_crux_count=undecided,
                converged=stable,
                diverged=False,
                event_count=round_number,
                max_events=config.max_graph_rounds,
            )
            self.convergence = metrics
            yield ConvergenceUpdateEvent(round=round_number, metrics=metrics)
            yield BlackboardUpdateEvent(
                version=self.board.version,
                summary=(
                    f"Graph: {len(self.graph.arguments)} args, {counts[Label.IN]} IN / "
                    f"{counts[Label.OUT]} OUT / {undecided} UNDEC. "
                    f"{len(self.graph.preferred_extensions)} preferred extension(s)."
                ),
            )

            if stable:
                reason = "stable"
                break

        yield StatusEvent(phase="output", message="Computing debate results from graph...")
        self.graph_output = extract_graph_output(self.graph)
        self.output = map_to_debate_output(self.graph_output, self.graph, self.persona_ids)
        self.complete_reason = reason
        yield DebateCompleteEvent(reason=reason, output=self.output, graph_output=self.graph_output)

    def _build_attack(
        self,
        persona: Persona,
        draft: AttackDraft,
        graph: ArgumentationState,
        own_ids: set[str],
        round_number: int,
    ) -> tuple[Argument, Attack] | None:
        """Turn an attack draft into a counter-argument node plus an attack edge.

        Drafts aimed at unknown arguments or at the persona's own arguments
        are dropped.
        """
        if graph.argument_by_id(draft.to_arg_id) is None:
            logger.debug("%s attacked unknown argument %s", persona.id, draft.to_arg_id)
            return None
        if draft.to_arg_id in own_ids:
            logger.debug("%s attacked its own argument %s", persona.id, draft.to_arg_id)
            return None

        counter_draft = draft.counter_argument
        counter = Argument(
            id=self._next_argument_id(),
            speaker_id=persona.id,
            claim=counter_draft.claim if counter_draft else draft.counter_proposition,
            premises=list(counter_draft.premises) if counter_draft else [],
            assumptions=list(counter_draft.assumptions) if counter_draft else [],
            evidence=list(counter_draft.evidence) if counter_draft else list(draft.evidence),
            round=round_number,
        )
        attack = Attack(
            id=self._next_attack_id(),
            from_arg_id=counter.id,
            to_arg_id=draft.to_arg_id,
            type=draft.type,
            target=AttackTarget(component=draft.target_component, index=draft.target_index),
            counter_proposition=draft.counter_proposition,
            rationale=draft.rationale,
            evidence=list(draft.evidence),
            confidence=draft.confidence,
            speaker_id=persona.id,
            round=round_number,
        )
        return counter, attack

    async def _validate(self, attacks: list[Attack]) -> tuple[list[ValidationResult], bool]:
        """Batch-validate a round; on failure accept every attack at medium strength."""
        assert self.graph is not None
        try:
            return await self.collaborator.validate_attacks(attacks, self.graph.arguments), False
        except CollaboratorError as e:
            logger.warning(
                "Attack validation failed, accepting all %d attacks: %s", len(attacks), e
            )
            return [
                ValidationResult(
                    attack_id=a.id, valid=True, attack_strength=FALLBACK_ATTACK_STRENGTH
                )
                for a in attacks
            ], True
