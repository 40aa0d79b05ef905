"""Prompt builders for collaborator calls.

Every prompt has the same machine-readable frame so that any backend,
including the deterministic one, can recover the task and its inputs:

    TASK: <task name>

    <instructions>

    CONTEXT PAYLOAD:
    <JSON object>

    OUTPUT FORMAT CONSTRAINT:
    <expected JSON shape>

Wording is deliberately plain; the engine only depends on the frame and
the response schemas in `cruxboard.services.llm.schemas`.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

TASK_PREFIX = "TASK: "
CONTEXT_MARKER = "CONTEXT PAYLOAD:\n"
CONSTRAINT_MARKER = "\n\nOUTPUT FORMAT CONSTRAINT:"


class Task(str, Enum):
    DECOMPOSE_CLAIMS = "decompose_claims"
    INITIAL_STANCES = "initial_stances"
    AGENT_TURN = "agent_turn"
    ACTION_PLAN = "action_plan"
    SUMMARIZE = "summarize"
    EXTRACT_OUTPUT = "extract_output"
    DETECT_DISAGREEMENT = "detect_disagreement"
    INITIAL_ARGUMENTS = "initial_arguments"
    GENERATE_ATTACKS = "generate_attacks"
    VALIDATE_ATTACKS = "validate_attacks"
    MICRO_TURN = "micro_turn"
    CRUX_OPENING = "crux_opening"
    CRUX_TURN = "crux_turn"
    CRUX_EXIT_CHECK = "crux_exit_check"
    CRUX_CARD = "crux_card"


_INSTRUCTIONS: dict[Task, str] = {
    Task.DECOMPOSE_CLAIMS: (
        "Decompose the debate topic into 2-4 specific, testable claims."
    ),
    Task.INITIAL_STANCES: (
        "State your initial stance (pro, con or uncertain) and confidence on each claim, "
        "with one sentence of reasoning per claim."
    ),
    Task.AGENT_TURN: (
        "Respond to the debate so far. Update your stance on any claim, propose new cruxes "
        "(propositions whose resolution would change minds) and list any of your flip "
        "conditions that have been met."
    ),
    Task.ACTION_PLAN: (
        "Decide whether you want to speak, interrupt or listen next, how urgent it is "
        "(0 to 1), and your intent in one sentence."
    ),
    Task.SUMMARIZE: "Compress the blackboard below to fit the token budget. Keep ids.",
    Task.EXTRACT_OUTPUT: (
        "Extract the final debate output: cruxes, fault lines, flip conditions, "
        "evidence ledger and resolution paths."
    ),
    Task.DETECT_DISAGREEMENT: (
        "Analyze the conversation for a substantive disagreement. Answer each check "
        "independently. Only flag clear, committed opposing positions between two personas."
    ),
    Task.INITIAL_ARGUMENTS: (
        "Put forward 1-3 structured arguments on the topic: a claim, its premises, the "
        "assumptions it relies on, and supporting evidence."
    ),
    Task.GENERATE_ATTACKS: (
        "Attack arguments made by other speakers. Never attack your own arguments. For each "
        "attack give the target, the attack type, a counter-proposition, a rationale and a "
        "counter-argument."
    ),
    Task.VALIDATE_ATTACKS: (
        "Judge each attack: is it a valid attack on the targeted component, and how strong is it?"
    ),
    Task.MICRO_TURN: "Reply in one or two sentences, in character.",
    Task.CRUX_OPENING: "State your position on the question clearly in 2-3 sentences.",
    Task.CRUX_TURN: (
        "Continue the crux room conversation. Dig into why you disagree rather than "
        "restating your position."
    ),
    Task.CRUX_EXIT_CHECK: (
        "Has the core disagreement been surfaced, such that both sides know what the real "
        "disagreement is?"
    ),
    Task.CRUX_CARD: (
        "Extract a crux card from the transcript. Be precise and faithful to what was said."
    ),
}

_OUTPUT_FORMATS: dict[Task, str] = {
    Task.DECOMPOSE_CLAIMS: '{"claims": [{"id": "claim-1", "text": "..."}]}',
    Task.INITIAL_STANCES: (
        '{"stances": [{"claim_id": "...", "stance": "pro|con|uncertain", "confidence": 0.0}], '
        '"reasonings": ["..."]}'
    ),
    Task.AGENT_TURN: (
        '{"response": "...", "stances": [{"claim_id": "...", "stance": "pro|con|uncertain", '
        '"confidence": 0.0}], "new_cruxes": ["..."], "flip_triggers": ["..."]}'
    ),
    Task.ACTION_PLAN: '{"action": "speak|interrupt|listen", "urgency": 0.0, "intent": "..."}',
    Task.SUMMARIZE: '{"summary": "..."}',
    Task.EXTRACT_OUTPUT: (
        '{"cruxes": [{"id": "...", "proposition": "...", "weight": 0.0}], '
        '"fault_lines": [{"description": "...", "persona_ids": []}], '
        '"flip_conditions": [{"persona_id": "...", "condition": "...", "claim_id": "..."}], '
        '"evidence_ledger": [{"persona_id": "...", "evidence": "...", '
        '"status": "accepted|rejected", "reason": "..."}], '
        '"resolution_paths": [{"description": "..."}]}'
    ),
    Task.DETECT_DISAGREEMENT: (
        '{"has_direct_opposition": true, "has_specific_claim": true, "topic_relevant": true, '
        '"personas": ["name1", "name2"], "topic": "...", "short_label": "2-4 words", '
        '"confidence": 0.0}'
    ),
    Task.INITIAL_ARGUMENTS: (
        '{"arguments": [{"claim": "...", "premises": [], "assumptions": [], "evidence": []}]}'
    ),
    Task.GENERATE_ATTACKS: (
        '{"attacks": [{"to_arg_id": "...", "type": "rebut|undermine|undercut", '
        '"target_component": "claim|premise|assumption", "target_index": 0, '
        '"counter_proposition": "...", "rationale": "...", "evidence": [], "confidence": 0.0, '
        '"counter_argument": {"claim": "...", "premises": [], "assumptions": [], '
        '"evidence": []}}]}'
    ),
    Task.VALIDATE_ATTACKS: (
        '{"validations": [{"attack_id": "...", "valid": true, "attack_strength": 0.0, '
        '"corrections": null}]}'
    ),
    Task.MICRO_TURN: '{"content": "..."}',
    Task.CRUX_OPENING: '{"content": "..."}',
    Task.CRUX_TURN: '{"content": "..."}',
    Task.CRUX_EXIT_CHECK: '{"crux_surfaced": false, "reason": "..."}',
    Task.CRUX_CARD: (
        '{"crux_statement": "...", "disagreement_type": '
        '"horizon|evidence|values|definition|claim|premise", "diagnosis": "...", '
        '"resolved": false, "resolution": null, "personas": {"<persona id>": '
        '{"position": "YES|NO|NUANCED", "reasoning": "...", "falsifier": "..."}}}'
    ),
}


def build_prompt(task: Task, payload: dict[str, Any]) -> str:
    """Render the framed prompt for one task."""
    body = json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False)
    return (
        f"{TASK_PREFIX}{task.value}\n\n"
        f"{_INSTRUCTIONS[task]}\n\n"
        f"{CONTEXT_MARKER}{body}"
        f"{CONSTRAINT_MARKER}\n{_OUTPUT_FORMATS[task]}"
    )


def parse_prompt(prompt: str) -> tuple[Task, dict[str, Any]]:
    """Recover the task and payload from a framed prompt.

    Raises:
        ValueError: If the prompt does not carry the expected frame.
    """
    first_line = prompt.split("\n", 1)[0]
    if not first_line.startswith(TASK_PREFIX):
        raise ValueError("Prompt has no TASK line")
    task = Task(first_line[len(TASK_PREFIX) :].strip())

    start = prompt.find(CONTEXT_MARKER)
    if start == -1:
        raise ValueError("Prompt has no CONTEXT PAYLOAD block")
    start += len(CONTEXT_MARKER)
    end = prompt.find(CONSTRAINT_MARKER, start)
    raw = prompt[start:] if end == -1 else prompt[start:end]
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid CONTEXT PAYLOAD JSON: {e}") from e
    return task, payload
