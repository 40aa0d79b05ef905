"""Tests for Dung semantics: grounded extension, labelling, preferred extensions."""

from __future__ import annotations

import random

from cruxboard.argumentation.dung import (
    build_framework,
    compute_grounded_extension,
    compute_labelling,
    compute_preferred_extensions,
    is_admissible,
    is_conflict_free,
)
from cruxboard.models.argumentation import (
    Attack,
    AttackTarget,
    AttackType,
    Label,
    TargetComponent,
    ValidationResult,
)


def _attack(attack_id: str, source: str, target: str) -> Attack:
    return Attack(
        id=attack_id,
        from_arg_id=source,
        to_arg_id=target,
        type=AttackType.REBUT,
        target=AttackTarget(component=TargetComponent.CLAIM),
    )


def _framework(
    args: list[str],
    edges: list[tuple[str, str]],
    invalid: frozenset[int] = frozenset(),
):
    attacks = [_attack(f"atk-{i}", s, t) for i, (s, t) in enumerate(edges)]
    validations = [
        ValidationResult(attack_id=a.id, valid=i not in invalid) for i, a in enumerate(attacks)
    ]
    return build_framework(args, attacks, validations)


def _random_framework(rng: random.Random, size: int, density: float):
    args = [f"a{i}" for i in range(size)]
    edges = [(s, t) for s in args for t in args if rng.random() < density]
    return _framework(args, edges)


class TestBuildFramework:
    """Only validated attacks between known arguments are live."""

    def test_invalid_attacks_are_not_live(self) -> None:
        fw = _framework(["a", "b"], [("a", "b")], invalid=frozenset({0}))
        assert fw.attackers_of("b") == frozenset()

    def test_attack_without_validation_is_not_live(self) -> None:
        fw = build_framework(["a", "b"], [_attack("x", "a", "b")], [])
        assert fw.targets_of("a") == frozenset()

    def test_unknown_endpoints_are_dropped(self) -> None:
        fw = _framework(["a"], [("a", "ghost"), ("ghost", "a")])
        assert fw.attackers_of("a") == frozenset()
        assert fw.targets_of("a") == frozenset()

    def test_duplicate_argument_ids_are_collapsed(self) -> None:
        fw = _framework(["a", "b", "a"], [])
        assert fw.arguments == ("a", "b")


class TestGroundedSemantics:
    """Grounded extension and labelling on hand-built graphs."""

    def test_empty_framework(self) -> None:
        fw = _framework([], [])
        assert compute_grounded_extension(fw) == frozenset()
        assert compute_labelling(fw).labels == {}

    def test_simple_chain(self) -> None:
        """a -> b -> c: a and c IN, b OUT."""
        fw = _framework(["a", "b", "c"], [("a", "b"), ("b", "c")])
        labelling = compute_labelling(fw)
        assert labelling.labels == {"a": Label.IN, "b": Label.OUT, "c": Label.IN}
        assert compute_grounded_extension(fw) == frozenset({"a", "c"})

    def test_mutual_attack_is_undecided(self) -> None:
        fw = _framework(["a", "b"], [("a", "b"), ("b", "a")])
        labelling = compute_labelling(fw)
        assert labelling.label_of("a") is Label.UNDEC
        assert labelling.label_of("b") is Label.UNDEC
        assert compute_grounded_extension(fw) == frozenset()

    def test_self_attack_is_undecided(self) -> None:
        fw = _framework(["a", "b"], [("a", "a"), ("a", "b")])
        labelling = compute_labelling(fw)
        assert labelling.label_of("a") is Label.UNDEC
        assert labelling.label_of("b") is Label.UNDEC

    def test_odd_cycle_is_undecided(self) -> None:
        fw = _framework(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
        assert set(compute_labelling(fw).labels.values()) == {Label.UNDEC}

    def test_unknown_argument_defaults_to_undecided(self) -> None:
        fw = _framework(["a"], [])
        assert compute_labelling(fw).label_of("missing") is Label.UNDEC


class TestPreferredExtensions:
    """Maximal admissible sets."""

    def test_mutual_attack_has_two_preferred(self) -> None:
        fw = _framework(["a", "b"], [("a", "b"), ("b", "a")])
        preferred = compute_preferred_extensions(fw)
        assert sorted(sorted(ext) for ext in preferred) == [["a"], ["b"]]

    def test_no_undecided_returns_grounded(self) -> None:
        fw = _framework(["a", "b"], [("a", "b")])
        assert compute_preferred_extensions(fw) == [frozenset({"a"})]

    def test_empty_framework_has_single_empty_extension(self) -> None:
        assert compute_preferred_extensions(_framework([], [])) == [frozenset()]

    def test_odd_cycle_falls_back_to_grounded(self) -> None:
        """Only the empty set is admissible in a 3-cycle."""
        fw = _framework(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])
        assert compute_preferred_extensions(fw) == [frozenset()]

    def test_admissibility_helpers(self) -> None:
        fw = _framework(["a", "b", "c"], [("a", "b"), ("b", "c")])
        assert is_conflict_free(fw, frozenset({"a", "c"}))
        assert not is_conflict_free(fw, frozenset({"a", "b"}))
        assert is_admissible(fw, frozenset({"a", "c"}))
        assert not is_admissible(fw, frozenset({"c"}))


class TestRandomGraphProperties:
    """Properties that must hold on every framework."""

    def test_grounded_is_subset_of_every_preferred(self) -> None:
        rng = random.Random(7)
        for _ in range(60):
            fw = _random_framework(rng, rng.randint(1, 8), rng.choice([0.1, 0.2, 0.35]))
            grounded = compute_grounded_extension(fw)
            for extension in compute_preferred_extensions(fw):
                assert grounded <= extension

    def test_unattacked_arguments_are_in(self) -> None:
        rng = random.Random(11)
        for _ in range(60):
            fw = _random_framework(rng, rng.randint(1, 8), 0.2)
            labelling = compute_labelling(fw)
            for arg_id in fw.arguments:
                if not fw.attackers_of(arg_id):
                    assert labelling.label_of(arg_id) is Label.IN

    def test_labelling_is_idempotent(self) -> None:
        rng = random.Random(13)
        for _ in range(30):
            fw = _random_framework(rng, rng.randint(1, 8), 0.25)
            assert compute_labelling(fw) == compute_labelling(fw)

    def test_preferred_extensions_are_admissible_and_maximal(self) -> None:
        rng = random.Random(17)
        for _ in range(40):
            fw = _random_framework(rng, rng.randint(1, 7), 0.25)
            preferred = compute_preferred_extensions(fw)
            for extension in preferred:
                assert is_admissible(fw, extension)
                assert not any(extension < other for other in preferred)

    def test_in_arguments_are_only_attacked_by_out_arguments(self) -> None:
        rng = random.Random(19)
        for _ in range(40):
            fw = _random_framework(rng, rng.randint(1, 8), 0.3)
            labelling = compute_labelling(fw)
            for arg_id in labelling.ids_with(Label.IN):
                for attacker in fw.attackers_of(arg_id):
                    assert labelling.label_of(attacker) is Label.OUT
