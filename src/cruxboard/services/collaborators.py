"""Debate collaborators.

`DebateCollaborator` is the only seam through which the engine talks to
text generation. `LLMCollaborator` implements it on top of any `LLMClient`:
it frames the prompt, decodes the response through a pydantic schema, clamps
numeric fields into range and maps the result onto engine models.

Fail-closed: a response that cannot be decoded raises MalformedResponseError;
the drivers decide whether that skips an agent or degrades a step.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from cruxboard.models.argumentation import Argument, Attack, Labelling, ValidationResult
from cruxboard.models.blackboard import (
    BlackboardState,
    Claim,
    InitialStances,
    StanceInput,
    TurnContext,
    TurnResult,
)
from cruxboard.models.dialogue import (
    CardPosition,
    CruxCard,
    CruxMessage,
    DialogueMessage,
    DisagreementDetection,
    PersonaPosition,
)
from cruxboard.models.output import DebateOutput
from cruxboard.models.persona import Persona
from cruxboard.models.scheduling import ActionPlan, InterjectionReason
from cruxboard.observability.tracing import collaborator_span
from cruxboard.services.llm.decoding import ModelT, decode_response
from cruxboard.services.llm.llm_client import LLMClient, ModelTier
from cruxboard.services.llm.schemas import (
    ActionPlanResponse,
    AgentTurnResponse,
    ArgumentDraft,
    ArgumentsResponse,
    AttackDraft,
    AttacksResponse,
    CardExtractionResponse,
    ClaimsResponse,
    ContentResponse,
    DetectionResponse,
    ExitCheckResponse,
    InitialStancesResponse,
    StanceDraft,
    SummaryResponse,
    ValidationsResponse,
)
from cruxboard.services.prompts import Task, build_prompt

logger = logging.getLogger(__name__)

DETECTION_SYSTEM_PROMPT = (
    "You detect substantive disagreements in conversations. Be conservative: "
    "only flag clear, committed opposing positions."
)
EXIT_CHECK_SYSTEM_PROMPT = (
    "You analyze debate conversations to determine if the core disagreement has been surfaced."
)
CARD_SYSTEM_PROMPT = (
    "You extract crux cards from debate transcripts. Be precise and faithful to what was said."
)
SHORT_LABEL_WORDS = 4


def clamp_unit(value: float) -> float:
    """Clamp a model-reported number into [0, 1]."""
    return max(0.0, min(1.0, value))


def _persona_ref(persona: Persona) -> dict[str, str]:
    return {"id": persona.id, "name": persona.name}


class DebateCollaborator(Protocol):
    """Everything the debate drivers ask of the outside world."""

    async def decompose_claims(self, topic: str, debate_id: str) -> list[Claim]: ...

    async def initial_stances(self, persona: Persona, claims: list[Claim]) -> InitialStances: ...

    async def agent_turn(
        self, persona: Persona, context: TurnContext, intent: str | None = None
    ) -> TurnResult: ...

    async def action_plan(self, persona: Persona, context: TurnContext) -> ActionPlan: ...

    async def summarize(self, board_text: str, *, token_budget: int, max_tokens: int) -> str: ...

    async def extract_output(self, board: BlackboardState) -> DebateOutput: ...

    async def detect_disagreement(
        self,
        messages: Sequence[DialogueMessage],
        personas: Sequence[Persona],
        topic: str,
    ) -> DisagreementDetection | None: ...

    async def initial_arguments(
        self, persona: Persona, topic: str, claims: list[Claim]
    ) -> list[ArgumentDraft]: ...

    async def generate_attacks(
        self,
        persona: Persona,
        arguments: list[Argument],
        own_ids: set[str],
        topic: str,
        labelling: Labelling,
    ) -> list[AttackDraft]: ...

    async def validate_attacks(
        self, attacks: list[Attack], arguments: list[Argument]
    ) -> list[ValidationResult]: ...

    async def micro_turn(
        self,
        persona: Persona,
        reply_to: DialogueMessage | None,
        reason: InterjectionReason | None,
        recent: Sequence[DialogueMessage],
        personas: Sequence[Persona],
        topic: str,
    ) -> str: ...

    async def crux_opening(self, persona: Persona, question: str, opponent: Persona) -> str: ...

    async def crux_turn(
        self,
        persona: Persona,
        question: str,
        opponent: Persona,
        history: Sequence[CruxMessage],
        last_opponent_message: CruxMessage,
    ) -> str: ...

    async def crux_exit_check(
        self, question: str, history: Sequence[CruxMessage], personas: Sequence[Persona]
    ) -> tuple[bool, str]: ...

    async def crux_card(
        self,
        room_id: str,
        question: str,
        history: Sequence[CruxMessage],
        personas: Sequence[Persona],
        source_messages: list[str],
    ) -> CruxCard: ...


class LLMCollaborator:
    """DebateCollaborator backed by an LLMClient.

    Persona records are passed per call; the collaborator keeps no debate
    state, so one instance can serve concurrent debates.
    """

    def __init__(self, llm_client: LLMClient) -> None:
        self._llm = llm_client

    async def _call(
        self,
        task: Task,
        payload: dict[str, Any],
        model: type[ModelT],
        *,
        system: str = "",
        tier: ModelTier = "sonnet",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        persona_id: str | None = None,
    ) -> ModelT:
        with collaborator_span(task.value, persona_id=persona_id, tier=tier):
            raw = await self._llm.complete(
                build_prompt(task, payload),
                system=system,
                tier=tier,
                max_tokens=max_tokens,
                temperature=temperature,
                json_mode=True,
            )
            return decode_response(raw, model, operation=task.value, persona_id=persona_id)

    async def decompose_claims(self, topic: str, debate_id: str) -> list[Claim]:
        result = await self._call(
            Task.DECOMPOSE_CLAIMS,
            {"topic": topic, "debate_id": debate_id},
            ClaimsResponse,
            temperature=0.3,
        )
        return [
            Claim(id=draft.id or f"claim-{i + 1}", text=draft.text, debate_id=debate_id)
            for i, draft in enumerate(result.claims)
        ]

    async def initial_stances(self, persona: Persona, claims: list[Claim]) -> InitialStances:
        result = await self._call(
            Task.INITIAL_STANCES,
            {
                "persona": _persona_ref(persona),
                "claims": [{"id": c.id, "text": c.text} for c in claims],
            },
            InitialStancesResponse,
            system=persona.system_prompt,
            persona_id=persona.id,
        )
        return InitialStances(
            stances=_known_stances(result.stances, claims),
            reasonings=list(result.reasonings),
        )

    async def agent_turn(
        self, persona: Persona, context: TurnContext, intent: str | None = None
    ) -> TurnResult:
        """Ask one agent for its turn; stances on unknown claims are dropped."""
        result = await self._call(
            Task.AGENT_TURN,
            {
                "persona": _persona_ref(persona),
                "context": context.model_dump(mode="json"),
                "intent": intent,
            },
            AgentTurnResponse,
            system=persona.system_prompt,
            max_tokens=1500,
            persona_id=persona.id,
        )
        return TurnResult(
            persona_id=persona.id,
            round=context.round,
            response=result.response,
            stances=_known_stances(result.stances, context.claims),
            new_cruxes=[c for c in result.new_cruxes if c.strip()],
            flip_triggers=[t for t in result.flip_triggers if t.strip()],
        )

    async def action_plan(self, persona: Persona, context: TurnContext) -> ActionPlan:
        result = await self._call(
            Task.ACTION_PLAN,
            {"persona": _persona_ref(persona), "context": context.model_dump(mode="json")},
            ActionPlanResponse,
            system=persona.system_prompt,
            tier="haiku",
            max_tokens=200,
            temperature=0.5,
            persona_id=persona.id,
        )
        return ActionPlan(
            persona_id=persona.id,
            action=result.action,
            urgency=clamp_unit(result.urgency),
            intent=result.intent,
        )

    async def summarize(self, board_text: str, *, token_budget: int, max_tokens: int) -> str:
        result = await self._call(
            Task.SUMMARIZE,
            {"board_text": board_text, "token_budget": token_budget},
            SummaryResponse,
            tier="haiku",
            max_tokens=max_tokens,
            temperature=0.2,
        )
        return result.summary

    async def extract_output(self, board: BlackboardState) -> DebateOutput:
        return await self._call(
            Task.EXTRACT_OUTPUT,
            {"board": board.model_dump(mode="json")},
            DebateOutput,
            max_tokens=2048,
            temperature=0.3,
        )

    async def detect_disagreement(
        self,
        messages: Sequence[DialogueMessage],
        personas: Sequence[Persona],
        topic: str,
    ) -> DisagreementDetection | None:
        """Flag a disagreement in a message window.

        Returns None unless all three checks pass and two distinct known
        personas are named. Names are mapped back to persona ids.
        """
        names = {p.id: p.name for p in personas}
        result = await self._call(
            Task.DETECT_DISAGREEMENT,
            {
                "messages": [
                    {
                        "persona_id": m.persona_id,
                        "name": names.get(m.persona_id, m.persona_id),
                        "content": m.content,
                    }
                    for m in messages
                ],
                "personas": [_persona_ref(p) for p in personas],
                "topic": topic,
            },
            DetectionResponse,
            system=DETECTION_SYSTEM_PROMPT,
            tier="haiku",
            max_tokens=200,
            temperature=0.2,
        )
        checks = (result.has_direct_opposition, result.has_specific_claim, result.topic_relevant)
        if not all(checks):
            return None

        ids: list[str] = []
        for name in result.personas:
            persona_id = _resolve_persona(name, personas)
            if persona_id is not None and persona_id not in ids:
                ids.append(persona_id)
        if len(ids) < 2:
            logger.debug("Detection named unknown personas: %s", result.personas)
            return None

        short_label = result.short_label or " ".join(result.topic.split()[:SHORT_LABEL_WORDS])
        return DisagreementDetection(
            personas=(ids[0], ids[1]),
            topic=result.topic,
            short_label=short_label,
            confidence=clamp_unit(result.confidence),
        )

    async def initial_arguments(
        self, persona: Persona, topic: str, claims: list[Claim]
    ) -> list[ArgumentDraft]:
        result = await self._call(
            Task.INITIAL_ARGUMENTS,
            {
                "persona": _persona_ref(persona),
                "topic": topic,
                "claims": [{"id": c.id, "text": c.text} for c in claims],
            },
            ArgumentsResponse,
            system=persona.system_prompt,
            max_tokens=2048,
            persona_id=persona.id,
        )
        return list(result.arguments)

    async def generate_attacks(
        self,
        persona: Persona,
        arguments: list[Argument],
        own_ids: set[str],
        topic: str,
        labelling: Labelling,
    ) -> list[AttackDraft]:
        result = await self._call(
            Task.GENERATE_ATTACKS,
            {
                "persona": _persona_ref(persona),
                "topic": topic,
                "arguments": [
                    {
                        "id": a.id,
                        "speaker_id": a.speaker_id,
                        "claim": a.claim,
                        "premises": a.premises,
                        "assumptions": a.assumptions,
                        "label": labelling.label_of(a.id).value,
                    }
                    for a in arguments
                ],
                "own_argument_ids": sorted(own_ids),
            },
            AttacksResponse,
            system=persona.system_prompt,
            max_tokens=2048,
            persona_id=persona.id,
        )
        return [
            draft.model_copy(update={"confidence": clamp_unit(draft.confidence)})
            for draft in result.attacks
        ]

    async def validate_attacks(
        self, attacks: list[Attack], arguments: list[Argument]
    ) -> list[ValidationResult]:
        """Batch-validate one round of attacks; results for unknown ids are dropped."""
        result = await self._call(
            Task.VALIDATE_ATTACKS,
            {
                "attacks": [
                    {
                        "id": a.id,
                        "from_arg_id": a.from_arg_id,
                        "to_arg_id": a.to_arg_id,
                        "type": a.type.value,
                        "target": a.target.model_dump(mode="json"),
                        "counter_proposition": a.counter_proposition,
                        "rationale": a.rationale,
                    }
                    for a in attacks
                ],
                "arguments": [
                    {
                        "id": a.id,
                        "claim": a.claim,
                        "premises": a.premises,
                        "assumptions": a.assumptions,
                    }
                    for a in arguments
                ],
            },
            ValidationsResponse,
            tier="haiku",
            max_tokens=2048,
            temperature=0.3,
        )
        known = {a.id for a in attacks}
        return [
            ValidationResult(
                attack_id=v.attack_id,
                valid=v.valid,
                attack_strength=clamp_unit(v.attack_strength),
                corrections=v.corrections,
            )
            for v in result.validations
            if v.attack_id in known
        ]

    async def micro_turn(
        self,
        persona: Persona,
        reply_to: DialogueMessage | None,
        reason: InterjectionReason | None,
        recent: Sequence[DialogueMessage],
        personas: Sequence[Persona],
        topic: str,
    ) -> str:
        names = {p.id: p.name for p in personas}

        def ref(message: DialogueMessage) -> dict[str, str]:
            return {
                "id": message.id,
                "persona_id": message.persona_id,
                "name": names.get(message.persona_id, message.persona_id),
                "content": message.content,
            }

        result = await self._call(
            Task.MICRO_TURN,
            {
                "persona": _persona_ref(persona),
                "topic": topic,
                "reply_to": ref(reply_to) if reply_to is not None else None,
                "reason": reason.value if reason is not None else None,
                "recent": [ref(m) for m in recent],
            },
            ContentResponse,
            system=persona.system_prompt,
            max_tokens=300,
            temperature=0.9,
            persona_id=persona.id,
        )
        return result.content

    async def crux_opening(self, persona: Persona, question: str, opponent: Persona) -> str:
        result = await self._call(
            Task.CRUX_OPENING,
            {
                "persona": _persona_ref(persona),
                "question": question,
                "opponent": _persona_ref(opponent),
            },
            ContentResponse,
            system=persona.system_prompt,
            max_tokens=250,
            temperature=0.9,
            persona_id=persona.id,
        )
        return result.content

    async def crux_turn(
        self,
        persona: Persona,
        question: str,
        opponent: Persona,
        history: Sequence[CruxMessage],
        last_opponent_message: CruxMessage,
    ) -> str:
        result = await self._call(
            Task.CRUX_TURN,
            {
                "persona": _persona_ref(persona),
                "question": question,
                "opponent": _persona_ref(opponent),
                "history": _transcript(history, [persona, opponent]),
                "last_opponent_message": last_opponent_message.content,
            },
            ContentResponse,
            system=persona.system_prompt,
            max_tokens=300,
            temperature=0.9,
            persona_id=persona.id,
        )
        return result.content

    async def crux_exit_check(
        self, question: str, history: Sequence[CruxMessage], personas: Sequence[Persona]
    ) -> tuple[bool, str]:
        result = await self._call(
            Task.CRUX_EXIT_CHECK,
            {"question": question, "history": _transcript(history, personas)},
            ExitCheckResponse,
            system=EXIT_CHECK_SYSTEM_PROMPT,
            tier="haiku",
            max_tokens=100,
            temperature=0.2,
        )
        return result.crux_surfaced, result.reason

    async def crux_card(
        self,
        room_id: str,
        question: str,
        history: Sequence[CruxMessage],
        personas: Sequence[Persona],
        source_messages: list[str],
    ) -> CruxCard:
        """Extract the crux card; positions keyed by name are mapped to ids."""
        result = await self._call(
            Task.CRUX_CARD,
            {
                "question": question,
                "history": _transcript(history, personas),
                "personas": [_persona_ref(p) for p in personas],
            },
            CardExtractionResponse,
            system=CARD_SYSTEM_PROMPT,
            max_tokens=600,
            temperature=0.3,
        )
        positions: dict[str, PersonaPosition] = {}
        for key, position in result.personas.items():
            persona_id = _resolve_persona(key, personas)
            if persona_id is not None:
                positions[persona_id] = position
        for persona in personas:
            positions.setdefault(
                persona.id,
                PersonaPosition(position=CardPosition.NUANCED, reasoning="See transcript"),
            )

        return CruxCard(
            id=f"card-{room_id}",
            room_id=room_id,
            question=result.crux_statement or question,
            personas={p.id: positions[p.id] for p in personas},
            disagreement_type=result.disagreement_type,
            diagnosis=result.diagnosis,
            resolved=result.resolved,
            resolution=result.resolution,
            source_messages=list(source_messages),
        )


def _known_stances(drafts: Sequence[StanceDraft], claims: Sequence[Claim]) -> list[StanceInput]:
    known = {c.id for c in claims}
    stances = []
    for draft in drafts:
        if draft.claim_id not in known:
            logger.debug("Dropping stance on unknown claim %s", draft.claim_id)
            continue
        stances.append(
            StanceInput(
                claim_id=draft.claim_id,
                stance=draft.stance,
                confidence=clamp_unit(draft.confidence),
            )
        )
    return stances


def _resolve_persona(name_or_id: str, personas: Sequence[Persona]) -> str | None:
    """Map a display name (exact, then case-insensitive) or an id to a persona id."""
    for persona in personas:
        if persona.name == name_or_id or persona.id == name_or_id:
            return persona.id
    lowered = name_or_id.strip().lower()
    for persona in personas:
        if persona.name.lower() == lowered:
            return persona.id
    return None


def _transcript(
    history: Sequence[CruxMessage], personas: Sequence[Persona]
) -> list[dict[str, Any]]:
    names = {p.id: p.name for p in personas}
    return [
        {
            "persona_id": m.persona_id,
            "name": names.get(m.persona_id or "", m.persona_id),
            "content": m.content,
        }
        for m in history
        if m.persona_id is not None
    ]
