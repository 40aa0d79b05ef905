"""Provider-agnostic LLM client interface + deterministic backend.

LLMClient: Protocol for async LLM calls.
DeterministicLLMClient: Answers every framed prompt with valid JSON computed
    from its CONTEXT PAYLOAD. No network calls; used by the CLI and API when
    CRUXBOARD_LLM_BACKEND=deterministic, and by tests.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Literal, Protocol

from cruxboard.services.prompts import Task, parse_prompt

logger = logging.getLogger(__name__)

ModelTier = Literal["sonnet", "haiku"]


class LLMClient(Protocol):
    """Provider-agnostic interface for LLM calls."""

    async def complete(
        self,
        prompt: str,
        *,
        system: str = "",
        tier: ModelTier = "sonnet",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Send one prompt and return the raw response text."""
        ...


def _stable_fraction(*parts: Any) -> float:
    """Deterministic pseudo-random number in [0, 1) derived from `parts`."""
    digest = hashlib.sha256("|".join(str(p) for p in parts).encode("utf-8")).hexdigest()
    return int(digest[:8], 16) / 0x100000000


class DeterministicLLMClient:
    """Deterministic LLM client - builds plausible JSON from the prompt payload.

    Behavior per task:
    - agents start split across pro/con/uncertain and drift towards pro as
      rounds advance, so blitz and classical debates converge;
    - every agent attacks the first argument it does not own, and all
      attacks validate;
    - disagreement detection flags the last two distinct speakers, which
      spawns a crux room after two windows;
    - crux rooms surface their crux after four persona messages.
    """

    def __init__(self) -> None:
        self.calls: list[Task] = []

    async def complete(
        self,
        prompt: str,
        *,
        system: str = "",
        tier: ModelTier = "sonnet",
        max_tokens: int = 1024,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Return deterministic JSON for a framed prompt.

        Raises:
            ValueError: If the prompt is not framed (fail-closed).
        """
        task, payload = parse_prompt(prompt)
        self.calls.append(task)
        handler = getattr(self, f"_handle_{task.value}")
        result = handler(payload)
        return json.dumps(result, sort_keys=True)

    def _handle_decompose_claims(self, payload: dict[str, Any]) -> dict[str, Any]:
        topic = payload["topic"]
        return {
            "claims": [
                {"id": "claim-1", "text": topic},
                {
                    "id": "claim-2",
                    "text": f"The benefits of acting on '{topic}' outweigh the costs",
                },
            ]
        }

    def _handle_initial_stances(self, payload: dict[str, Any]) -> dict[str, Any]:
        persona_id = payload["persona"]["id"]
        stances = []
        reasonings = []
        for claim in payload["claims"]:
            roll = _stable_fraction(persona_id, claim["id"], "initial")
            stance = "pro" if roll < 0.4 else "con" if roll < 0.8 else "uncertain"
            stances.append({"claim_id": claim["id"], "stance": stance, "confidence": 0.6})
            reasonings.append(f"{persona_id} starts {stance} on {claim['id']}.")
        return {"stances": stances, "reasonings": reasonings}

    def _handle_agent_turn(self, payload: dict[str, Any]) -> dict[str, Any]:
        persona_id = payload["persona"]["id"]
        context = payload["context"]
        round_number = context["round"]
        confidence = min(0.95, 0.6 + 0.15 * round_number)
        stances = [
            {"claim_id": claim["id"], "stance": "pro", "confidence": confidence}
            for claim in context["claims"]
        ]
        return {
            "response": f"{persona_id} (round {round_number}) moves towards agreement.",
            "stances": stances,
            "new_cruxes": [],
            "flip_triggers": [],
        }

    def _handle_action_plan(self, payload: dict[str, Any]) -> dict[str, Any]:
        persona_id = payload["persona"]["id"]
        round_number = payload["context"]["round"]
        urgency = round(_stable_fraction(persona_id, round_number, "urgency"), 3)
        return {
            "action": "speak",
            "urgency": urgency,
            "intent": f"{persona_id} wants to respond in turn {round_number}.",
        }

    def _handle_summarize(self, payload: dict[str, Any]) -> dict[str, Any]:
        budget_chars = int(payload["token_budget"]) * 4
        return {"summary": payload["board_text"][:budget_chars]}

    def _handle_extract_output(self, payload: dict[str, Any]) -> dict[str, Any]:
        board = payload["board"]
        return {
            "cruxes": [
                {"id": c["id"], "proposition": c["proposition"], "weight": c["weight"]}
                for c in board.get("crux_candidates", [])
                if not c.get("resolved")
            ],
            "fault_lines": [],
            "flip_conditions": [
                {
                    "persona_id": fc["persona_id"],
                    "condition": fc["condition"],
                    "claim_id": fc["claim_id"],
                }
                for fc in board.get("flip_conditions", [])
            ],
            "evidence_ledger": [],
            "resolution_paths": [],
        }

    def _handle_detect_disagreement(self, payload: dict[str, Any]) -> dict[str, Any]:
        names = {p["id"]: p["name"] for p in payload["personas"]}
        speakers: list[str] = []
        for message in reversed(payload["messages"]):
            if message["persona_id"] not in speakers:
                speakers.append(message["persona_id"])
            if len(speakers) == 2:
                break
        if len(speakers) < 2:
            return {
                "has_direct_opposition": False,
                "has_specific_claim": False,
                "topic_relevant": False,
            }
        pair = sorted(speakers)
        return {
            "has_direct_opposition": True,
            "has_specific_claim": True,
            "topic_relevant": True,
            "personas": [names[p] for p in pair],
            "topic": f"Whether {payload['topic']} holds",
            "short_label": "core dispute",
            "confidence": 0.85,
        }

    def _handle_initial_arguments(self, payload: dict[str, Any]) -> dict[str, Any]:
        persona_id = payload["persona"]["id"]
        topic = payload["topic"]
        return {
            "arguments": [
                {
                    "claim": f"{persona_id} holds a position on {topic}",
                    "premises": [f"{persona_id} has examined {topic}"],
                    "assumptions": [f"that {topic} can be assessed on evidence"],
                    "evidence": [f"{persona_id} field notes"],
                }
            ]
        }

    def _handle_generate_attacks(self, payload: dict[str, Any]) -> dict[str, Any]:
        own = set(payload["own_argument_ids"])
        persona_id = payload["persona"]["id"]
        target = next((a for a in payload["arguments"] if a["id"] not in own), None)
        if target is None:
            return {"attacks": []}
        return {
            "attacks": [
                {
                    "to_arg_id": target["id"],
                    "type": "rebut",
                    "target_component": "claim",
                    "target_index": 0,
                    "counter_proposition": f"{persona_id} disputes {target['id']}",
                    "rationale": "The claim does not follow from its premises.",
                    "evidence": [],
                    "confidence": 0.7,
                    "counter_argument": {
                        "claim": f"{persona_id} rejects {target['id']}",
                        "premises": [],
                        "assumptions": [f"that {target['id']} overreaches"],
                        "evidence": [],
                    },
                }
            ]
        }

    def _handle_validate_attacks(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "validations": [
                {"attack_id": a["id"], "valid": True, "attack_strength": 0.6, "corrections": None}
                for a in payload["attacks"]
            ]
        }

    def _handle_micro_turn(self, payload: dict[str, Any]) -> dict[str, Any]:
        name = payload["persona"]["name"]
        reply_to = payload.get("reply_to")
        if reply_to is None:
            return {"content": f"{name} opens: {payload['topic']} deserves scrutiny."}
        return {"content": f"{name} answers {reply_to['name']} ({payload.get('reason')})."}

    def _handle_crux_opening(self, payload: dict[str, Any]) -> dict[str, Any]:
        name = payload["persona"]["name"]
        return {"content": f"{name}'s position on '{payload['question']}'."}

    def _handle_crux_turn(self, payload: dict[str, Any]) -> dict[str, Any]:
        name = payload["persona"]["name"]
        turn = len(payload["history"])
        return {"content": f"{name} probes the disagreement (message {turn + 1})."}

    def _handle_crux_exit_check(self, payload: dict[str, Any]) -> dict[str, Any]:
        surfaced = len(payload["history"]) >= 4
        return {
            "crux_surfaced": surfaced,
            "reason": "Both sides named the assumption they differ on." if surfaced else "",
        }

    def _handle_crux_card(self, payload: dict[str, Any]) -> dict[str, Any]:
        personas = payload["personas"]
        positions = ["YES", "NO"]
        return {
            "crux_statement": payload["question"],
            "disagreement_type": "premise",
            "diagnosis": "They weigh the same evidence differently.",
            "resolved": False,
            "resolution": None,
            "personas": {
                p["id"]: {
                    "position": positions[i % 2],
                    "reasoning": f"{p['name']} holds this view.",
                    "falsifier": None,
                }
                for i, p in enumerate(personas)
            },
        }
