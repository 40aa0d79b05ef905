"""Dung abstract argumentation semantics.

Builds a framework from validated attacks and computes:

- the grounded extension (least fixed point of the characteristic function),
- the grounded labelling (IN/OUT/UNDEC), used directly as "the" labelling,
- preferred extensions (maximal admissible sets) by enumerating subsets of
  the UNDEC arguments on top of the grounded extension.

Preferred enumeration is brute force and capped at MAX_PREFERRED_CANDIDATES
candidate subsets. Beyond 16 UNDEC arguments only subsets of the first 16
are considered.

All functions are pure. Argument order is preserved from the input so that
results are deterministic and serialize stably.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from cruxboard.models.argumentation import Attack, Label, Labelling, ValidationResult

MAX_PREFERRED_CANDIDATES = 1 << 16
"""Hard cap on candidate subsets examined for preferred extensions."""


@dataclass(frozen=True)
class DungFramework:
    """Arguments plus the live (validated) attack relation."""

    arguments: tuple[str, ...]
    attacks: dict[str, frozenset[str]] = field(default_factory=dict)
    attacked_by: dict[str, frozenset[str]] = field(default_factory=dict)

    def attackers_of(self, arg_id: str) -> frozenset[str]:
        return self.attacked_by.get(arg_id, frozenset())

    def targets_of(self, arg_id: str) -> frozenset[str]:
        return self.attacks.get(arg_id, frozenset())


def build_framework(
    argument_ids: Iterable[str],
    attacks: Iterable[Attack],
    validations: Iterable[ValidationResult],
) -> DungFramework:
    """Build a framework from the attacks that passed validation.

    Attacks without a valid validation result are not live. Attacks that
    reference an unknown argument id are dropped silently.

    Args:
        argument_ids: Argument ids in insertion order. Duplicates are ignored.
        attacks: Candidate attacks.
        validations: Validation results; only `valid=True` entries count.

    Returns:
        DungFramework with adjacency maps for every argument.
    """
    ordered = tuple(dict.fromkeys(argument_ids))
    known = set(ordered)
    valid_attack_ids = {v.attack_id for v in validations if v.valid}

    outgoing: dict[str, set[str]] = {arg_id: set() for arg_id in ordered}
    incoming: dict[str, set[str]] = {arg_id: set() for arg_id in ordered}

    for attack in attacks:
        if attack.id not in valid_attack_ids:
            continue
        if attack.from_arg_id not in known or attack.to_arg_id not in known:
            continue
        outgoing[attack.from_arg_id].add(attack.to_arg_id)
        incoming[attack.to_arg_id].add(attack.from_arg_id)

    return DungFramework(
        arguments=ordered,
        attacks={k: frozenset(v) for k, v in outgoing.items()},
        attacked_by={k: frozenset(v) for k, v in incoming.items()},
    )


def _grounded_labels(fw: DungFramework) -> dict[str, Label]:
    """Run the grounded fixpoint.

    Labels only move UNDEC -> IN/OUT, so the loop makes at most
    len(fw.arguments) productive passes.
    """
    labels = {arg_id: Label.UNDEC for arg_id in fw.arguments}

    changed = True
    while changed:
        changed = False
        for arg_id in fw.arguments:
            if labels[arg_id] is not Label.UNDEC:
                continue
            if all(labels[attacker] is Label.OUT for attacker in fw.attackers_of(arg_id)):
                labels[arg_id] = Label.IN
                changed = True
                for target in fw.targets_of(arg_id):
                    if labels[target] is Label.UNDEC:
                        labels[target] = Label.OUT

    return labels


def compute_grounded_extension(fw: DungFramework) -> frozenset[str]:
    """Return the grounded extension (the IN set of the grounded labelling)."""
    labels = _grounded_labels(fw)
    return frozenset(arg_id for arg_id, label in labels.items() if label is Label.IN)


def compute_labelling(fw: DungFramework) -> Labelling:
    """Return the grounded labelling.

    Complete and stable labellings are not enumerated separately.
    """
    return Labelling(labels=_grounded_labels(fw))


def is_conflict_free(fw: DungFramework, candidate: frozenset[str]) -> bool:
    return not any(fw.targets_of(member) & candidate for member in candidate)


def is_admissible(fw: DungFramework, candidate: frozenset[str]) -> bool:
    """Conflict-free and defends every member against all of its attackers."""
    if not is_conflict_free(fw, candidate):
        return False

    for member in candidate:
        for attacker in fw.attackers_of(member):
            if not any(attacker in fw.targets_of(defender) for defender in candidate):
                return False
    return True


def compute_preferred_extensions(fw: DungFramework) -> list[frozenset[str]]:
    """Return the maximal admissible sets that extend the grounded extension.

    With no UNDEC arguments the grounded extension is the only preferred
    extension. A framework with zero arguments yields a single empty
    extension. If enumeration finds nothing admissible the grounded
    extension is returned alone.
    """
    labels = _grounded_labels(fw)
    grounded = frozenset(a for a, label in labels.items() if label is Label.IN)
    undecided = [a for a, label in labels.items() if label is Label.UNDEC]

    if not undecided:
        return [grounded]

    limit = min(1 << len(undecided), MAX_PREFERRED_CANDIDATES)
    admissible: list[frozenset[str]] = []
    for mask in range(limit):
        members = {undecided[i] for i in range(len(undecided)) if mask & (1 << i)}
        candidate = grounded | members
        if is_admissible(fw, candidate):
            admissible.append(candidate)

    preferred = [
        candidate
        for candidate in admissible
        if not any(candidate < other for other in admissible)
    ]
    return preferred or [grounded]


def order_ids(ids: Iterable[str], fw: DungFramework) -> list[str]:
    """Sort a set of argument ids by framework insertion order."""
    wanted = set(ids)
    return [arg_id for arg_id in fw.arguments if arg_id in wanted]
