"""Copy-on-write argumentation graph state.

Each helper returns a new `ArgumentationState`; nothing is mutated.
"""

from __future__ import annotations

from collections.abc import Iterable

from cruxboard.argumentation.dung import (
    build_framework,
    compute_grounded_extension,
    compute_labelling,
    compute_preferred_extensions,
    order_ids,
)
from cruxboard.models.argumentation import (
    Argument,
    ArgumentationState,
    Attack,
    Label,
    ValidationResult,
)


def create_graph_state(topic: str) -> ArgumentationState:
    return ArgumentationState(topic=topic)


def add_arguments(state: ArgumentationState, arguments: Iterable[Argument]) -> ArgumentationState:
    return state.model_copy(update={"arguments": [*state.arguments, *arguments]})


def add_attacks(
    state: ArgumentationState,
    attacks: Iterable[Attack],
    validations: Iterable[ValidationResult],
) -> ArgumentationState:
    return state.model_copy(
        update={
            "attacks": [*state.attacks, *attacks],
            "validations": [*state.validations, *validations],
        }
    )


def deduplicate_attacks(attacks: Iterable[Attack]) -> list[Attack]:
    """Keep one attack per (target argument, component, index, type).

    The highest-confidence attack wins; on a tie the first one seen is kept.
    Output preserves the order in which each key was first seen.
    """
    best: dict[tuple[str, str, int, str], Attack] = {}
    for attack in attacks:
        key = (
            attack.to_arg_id,
            attack.target.component.value,
            attack.target.index,
            attack.type.value,
        )
        existing = best.get(key)
        if existing is None or attack.confidence > existing.confidence:
            best[key] = attack
    return list(best.values())


def recompute_semantics(state: ArgumentationState) -> ArgumentationState:
    """Rebuild the framework and recompute grounded, preferred and labelling."""
    fw = build_framework(
        (a.id for a in state.arguments),
        state.attacks,
        state.validations,
    )
    grounded = compute_grounded_extension(fw)
    preferred = compute_preferred_extensions(fw)
    return state.model_copy(
        update={
            "labelling": compute_labelling(fw),
            "grounded_extension": order_ids(grounded, fw),
            "preferred_extensions": [order_ids(ext, fw) for ext in preferred],
        }
    )


def labelling_snapshot(state: ArgumentationState) -> str:
    """Order-independent string form of the labelling, used for stability checks."""
    return ",".join(
        f"{arg_id}:{label.value}" for arg_id, label in sorted(state.labelling.labels.items())
    )


def count_labels(state: ArgumentationState) -> dict[Label, int]:
    counts = {label: 0 for label in Label}
    for label in state.labelling.labels.values():
        counts[label] += 1
    return counts
