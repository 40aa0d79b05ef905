"""Crux extraction from argumentation extensions.

Derives common ground, rival camps and ranked crux assumptions from a
recomputed `ArgumentationState`, then projects the result into the
`DebateOutput` shape shared by every debate mode. No collaborator calls.
"""

from __future__ import annotations

import re
from collections import Counter

from cruxboard.models.argumentation import Argument, ArgumentationState, Attack, Label
from cruxboard.models.output import (
    CruxAssumption,
    DebateOutput,
    EvidenceLedgerEntry,
    EvidenceStatus,
    FaultLine,
    GraphCamp,
    GraphDebateOutput,
    OutputCrux,
    OutputFlipCondition,
    ResolutionPath,
)

MAX_CRUX_ASSUMPTIONS = 3
MAX_FLIP_CONDITIONS = 4
DEFEATED_REASON = "Argument defeated in graph"

_LEADING_THAT = re.compile(r"^that\s+", re.IGNORECASE)


def settling_question(assumption: str) -> str:
    """Template a question whose answer would settle an assumption."""
    cleaned = _LEADING_THAT.sub("", assumption)
    if cleaned.endswith("."):
        cleaned = cleaned[:-1]
    return f"What evidence would confirm or refute that {cleaned}?"


def _normalize(text: str) -> str:
    return text.lower().strip()


def _attack_degrees(state: ArgumentationState) -> Counter[str]:
    degree: Counter[str] = Counter()
    for attack in state.valid_attacks():
        degree[attack.from_arg_id] += 1
        degree[attack.to_arg_id] += 1
    return degree


def extract_graph_output(state: ArgumentationState) -> GraphDebateOutput:
    """Compute common ground, camps and crux assumptions.

    The symmetric difference and therefore the crux assumptions are only
    computed between the first two preferred extensions.
    """
    by_id = {a.id: a for a in state.arguments}

    common_ground = [arg_id for arg_id in state.grounded_extension if arg_id in by_id]

    camps: list[GraphCamp] = []
    for index, extension in enumerate(state.preferred_extensions):
        speakers: list[str] = []
        for arg_id in extension:
            argument = by_id.get(arg_id)
            if argument is not None and argument.speaker_id not in speakers:
                speakers.append(argument.speaker_id)
        camps.append(
            GraphCamp(extension_index=index, argument_ids=list(extension), speaker_ids=speakers)
        )

    symmetric_difference: list[str] = []
    if len(state.preferred_extensions) >= 2:
        first = state.preferred_extensions[0]
        second = state.preferred_extensions[1]
        first_set, second_set = set(first), set(second)
        symmetric_difference = [a for a in first if a not in second_set and a in by_id]
        symmetric_difference += [a for a in second if a not in first_set and a in by_id]

    return GraphDebateOutput(
        common_ground=common_ground,
        camps=camps,
        crux_assumptions=_rank_assumptions(state, by_id, symmetric_difference),
        symmetric_difference=symmetric_difference,
    )


def _rank_assumptions(
    state: ArgumentationState,
    by_id: dict[str, Argument],
    disputed_ids: list[str],
) -> list[CruxAssumption]:
    dependents: dict[str, list[str]] = {}
    for arg_id in disputed_ids:
        for assumption in by_id[arg_id].assumptions:
            dependents.setdefault(_normalize(assumption), []).append(arg_id)

    disputed = set(disputed_ids)
    for argument in state.arguments:
        if argument.id in disputed:
            continue
        for assumption in argument.assumptions:
            key = _normalize(assumption)
            if key in dependents:
                dependents[key].append(argument.id)

    degree = _attack_degrees(state)
    ranked = []
    for assumption, arg_ids in dependents.items():
        unique_ids = list(dict.fromkeys(arg_ids))
        ranked.append(
            CruxAssumption(
                assumption=assumption,
                dependent_argument_ids=unique_ids,
                centrality=sum(degree[a] for a in unique_ids),
                settling_question=settling_question(assumption),
            )
        )

    ranked.sort(key=lambda c: (-len(c.dependent_argument_ids), -c.centrality))
    return ranked[:MAX_CRUX_ASSUMPTIONS]


def _defeating_attack(state: ArgumentationState, arg_id: str) -> Attack | None:
    for attack in state.valid_attacks():
        if attack.to_arg_id == arg_id:
            return attack
    return None


def map_to_debate_output(
    graph_output: GraphDebateOutput,
    state: ArgumentationState,
    persona_ids: list[str],
) -> DebateOutput:
    """Project graph results into the common debate output schema."""
    by_id = {a.id: a for a in state.arguments}

    cruxes = [
        OutputCrux(
            id=f"crux-{i + 1}",
            proposition=ca.assumption,
            weight=min(1.0, ca.centrality / 10),
            settling_question=ca.settling_question,
        )
        for i, ca in enumerate(graph_output.crux_assumptions)
    ]

    fault_lines: list[FaultLine] = []
    if len(graph_output.camps) >= 2:
        for i, camp in enumerate(graph_output.camps[:2]):
            lead = next((by_id[a] for a in camp.argument_ids if a in by_id), None)
            top_claim = lead.claim if lead is not None else "Unknown position"
            speakers = ", ".join(camp.speaker_ids)
            fault_lines.append(
                FaultLine(
                    description=f"Camp {i + 1} ({speakers}): {top_claim}",
                    persona_ids=list(camp.speaker_ids),
                )
            )

    defeated = [a for a in state.arguments if state.labelling.label_of(a.id) is Label.OUT]
    flip_conditions = []
    for argument in defeated[:MAX_FLIP_CONDITIONS]:
        attack = _defeating_attack(state, argument.id)
        if attack is not None:
            condition = f'If "{attack.counter_proposition}" were disproven'
        else:
            condition = f'If "{argument.claim}" were re-established'
        flip_conditions.append(
            OutputFlipCondition(persona_id=argument.speaker_id, condition=condition)
        )

    ledger: list[EvidenceLedgerEntry] = []
    for persona_id in persona_ids:
        for argument in state.arguments:
            if argument.speaker_id != persona_id:
                continue
            label = state.labelling.label_of(argument.id)
            if label is Label.IN:
                ledger.extend(
                    EvidenceLedgerEntry(
                        persona_id=persona_id, evidence=e, status=EvidenceStatus.ACCEPTED
                    )
                    for e in argument.evidence
                )
            elif label is Label.OUT:
                ledger.extend(
                    EvidenceLedgerEntry(
                        persona_id=persona_id,
                        evidence=e,
                        status=EvidenceStatus.REJECTED,
                        reason=DEFEATED_REASON,
                    )
                    for e in argument.evidence
                )

    resolution_paths = [
        ResolutionPath(description=ca.settling_question)
        for ca in graph_output.crux_assumptions
        if ca.settling_question
    ]

    return DebateOutput(
        cruxes=cruxes,
        fault_lines=fault_lines,
        flip_conditions=flip_conditions,
        evidence_ledger=ledger,
        resolution_paths=resolution_paths,
    )
