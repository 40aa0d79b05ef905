"""Tests for the graph (Dung argumentation) debate driver."""

from __future__ import annotations

from cruxboard.models.argumentation import Argument, AttackType, Label, ValidationResult
from cruxboard.models.output import EvidenceStatus
from cruxboard.services.llm.schemas import AttackDraft
from tests.fixtures.scripted import (
    ScriptedCollaborator,
    event_types,
    make_personas,
    of_type,
    run_debate_sync,
)

PERSONAS = make_personas("alice", "bob")


def _rebut_first_other(rounds: set[int]):
    """Each persona rebuts the first argument it does not own, in the given rounds."""

    def attacks(
        pid: str, round_number: int, arguments: list[Argument], own_ids: set[str]
    ) -> list[AttackDraft]:
        if round_number not in rounds:
            return []
        target = next(a for a in arguments if a.id not in own_ids)
        return [
            AttackDraft(
                to_arg_id=target.id,
                type=AttackType.REBUT,
                counter_proposition=f"{pid} disagrees",
                confidence=0.8,
            )
        ]

    return attacks


class TestGraphDebate:
    """Rounds of arguments and attacks resolved with Dung semantics."""

    def test_no_attacks_is_stable_immediately(self) -> None:
        collab = ScriptedCollaborator()
        runner, events = run_debate_sync(collab, PERSONAS, mode="graph")
        assert runner.complete_reason == "stable"
        assert of_type(events, "graph_convergence")[0].stable
        assert collab.calls_to("validate_attacks") == []
        labels = runner.graph.labelling.labels
        assert labels == {"arg-0": Label.IN, "arg-1": Label.IN}
        assert runner.graph_output.common_ground == ["arg-0", "arg-1"]
        ledger = runner.output.evidence_ledger
        assert {(e.persona_id, e.status) for e in ledger} == {
            ("alice", EvidenceStatus.ACCEPTED),
            ("bob", EvidenceStatus.ACCEPTED),
        }
        assert events[-1].graph_output == runner.graph_output

    def test_mutual_rebuttals_defeat_initial_arguments(self) -> None:
        collab = ScriptedCollaborator(attacks=_rebut_first_other({1}))
        runner, events = run_debate_sync(collab, PERSONAS, mode="graph", max_graph_rounds=3)
        generated = of_type(events, "attacks_generated")[0]
        assert [(a.from_arg_id, a.to_arg_id) for a in generated.attacks] == [
            ("arg-2", "arg-1"),
            ("arg-3", "arg-0"),
        ]
        assert [c.speaker_id for c in generated.counter_arguments] == ["alice", "bob"]

        graph = runner.graph
        assert graph.labelling.ids_with(Label.OUT) == ["arg-0", "arg-1"]
        assert graph.grounded_extension == ["arg-2", "arg-3"]
        assert runner.complete_reason == "stable"
        assert [e.round for e in of_type(events, "graph_convergence")] == [1, 2]

        conditions = {(f.persona_id, f.condition) for f in runner.output.flip_conditions}
        assert conditions == {
            ("alice", 'If "bob disagrees" were disproven'),
            ("bob", 'If "alice disagrees" were disproven'),
        }
        rejected = [e for e in runner.output.evidence_ledger if e.status is EvidenceStatus.REJECTED]
        assert {e.persona_id for e in rejected} == {"alice", "bob"}

    def test_round_cap_when_labelling_keeps_changing(self) -> None:
        collab = ScriptedCollaborator(attacks=_rebut_first_other({1, 2}))
        runner, events = run_debate_sync(collab, PERSONAS, mode="graph", max_graph_rounds=2)
        assert runner.complete_reason == "max_rounds"
        assert [e.stable for e in of_type(events, "graph_convergence")] == [False, False]

    def test_invalid_attacks_leave_graph_stable(self) -> None:
        collab = ScriptedCollaborator(
            attacks=_rebut_first_other({1}),
            validations=lambda attacks: [
                ValidationResult(attack_id=a.id, valid=False) for a in attacks
            ],
        )
        runner, events = run_debate_sync(collab, PERSONAS, mode="graph")
        assert runner.complete_reason == "stable"
        assert of_type(events, "graph_convergence")[0].new_edges == 0
        assert runner.graph.labelling.ids_with(Label.OUT) == []

    def test_attacks_on_own_or_unknown_arguments_are_dropped(self) -> None:
        def attacks(pid, round_number, arguments, own_ids):
            own = next(iter(sorted(own_ids)))
            return [
                AttackDraft(to_arg_id=own, type=AttackType.REBUT),
                AttackDraft(to_arg_id="arg-404", type=AttackType.UNDERCUT),
            ]

        runner, events = run_debate_sync(
            ScriptedCollaborator(attacks=attacks), PERSONAS, mode="graph"
        )
        assert of_type(events, "attacks_generated")[0].attacks == []
        assert runner.complete_reason == "stable"


class TestGraphDebateFailures:
    """Validation falls back; per-agent failures skip."""

    def test_validation_failure_accepts_all_at_medium_strength(self) -> None:
        collab = ScriptedCollaborator(attacks=_rebut_first_other({1})).fail_on("validate_attacks")
        runner, events = run_debate_sync(collab, PERSONAS, mode="graph")
        validation = of_type(events, "validation_complete")[0]
        assert validation.fallback is True
        assert {(v.valid, v.attack_strength) for v in validation.results} == {(True, 0.5)}
        assert runner.graph.labelling.ids_with(Label.OUT) == ["arg-0", "arg-1"]

    def test_failed_initial_arguments_skip_persona(self) -> None:
        collab = ScriptedCollaborator().fail_on("initial_arguments", "bob")
        runner, events = run_debate_sync(collab, PERSONAS, mode="graph")
        assert [e.persona_id for e in of_type(events, "agent_skipped")] == ["bob"]
        assert [a.speaker_id for a in runner.graph.arguments] == ["alice"]
        assert event_types(events)[-1] == "debate_complete"

    def test_failed_attack_generation_skips_persona(self) -> None:
        collab = ScriptedCollaborator(attacks=_rebut_first_other({1})).fail_on(
            "generate_attacks", "alice"
        )
        _, events = run_debate_sync(collab, PERSONAS, mode="graph")
        generated = of_type(events, "attacks_generated")[0]
        assert [a.speaker_id for a in generated.attacks] == ["bob"]
