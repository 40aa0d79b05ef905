"""Argumentation models.

Arguments, attacks and validation outcomes for one debate's Dung framework.
All models are frozen; a labelling is recomputed, never edited in place.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AttackType(str, Enum):
    """How an attack engages its target argument."""

    REBUT = "rebut"
    UNDERMINE = "undermine"
    UNDERCUT = "undercut"


class TargetComponent(str, Enum):
    """Component of an argument an attack is aimed at."""

    CLAIM = "claim"
    PREMISE = "premise"
    ASSUMPTION = "assumption"


class Label(str, Enum):
    """Argument acceptance label."""

    IN = "IN"
    OUT = "OUT"
    UNDEC = "UNDEC"


class Argument(BaseModel):
    """A structured argument put forward by one speaker."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique argument identifier")
    speaker_id: str = Field(..., description="Persona that made the argument")
    claim: str = Field(..., description="Conclusion of the argument")
    premises: list[str] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)
    round: int = Field(default=0, ge=0, description="Round the argument was introduced")


class AttackTarget(BaseModel):
    """Pointer to the attacked component of an argument."""

    model_config = ConfigDict(frozen=True)

    component: TargetComponent
    index: int = Field(default=0, ge=0)


class Attack(BaseModel):
    """A directed attack from one argument onto another."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique attack identifier")
    from_arg_id: str = Field(..., description="Attacking argument")
    to_arg_id: str = Field(..., description="Attacked argument")
    type: AttackType
    target: AttackTarget
    counter_proposition: str = ""
    rationale: str = ""
    evidence: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    speaker_id: str = ""
    round: int = Field(default=0, ge=0)


class ValidationResult(BaseModel):
    """Outcome of validating one attack. Only valid attacks are live."""

    model_config = ConfigDict(frozen=True)

    attack_id: str
    valid: bool
    attack_strength: float = Field(default=0.5, ge=0.0, le=1.0)
    corrections: str | None = None


class Labelling(BaseModel):
    """IN/OUT/UNDEC assignment for every argument in a framework."""

    model_config = ConfigDict(frozen=True)

    labels: dict[str, Label] = Field(default_factory=dict)

    def label_of(self, arg_id: str) -> Label:
        """Return the label of an argument, UNDEC when unknown."""
        return self.labels.get(arg_id, Label.UNDEC)

    def ids_with(self, label: Label) -> list[str]:
        """Return argument ids carrying the given label, in insertion order."""
        return [arg_id for arg_id, value in self.labels.items() if value == label]


class ArgumentationState(BaseModel):
    """Argumentation graph state for one debate.

    Grounded and preferred extensions are stored as sorted id lists so the
    state serializes deterministically.
    """

    model_config = ConfigDict(frozen=True)

    topic: str
    arguments: list[Argument] = Field(default_factory=list)
    attacks: list[Attack] = Field(default_factory=list)
    validations: list[ValidationResult] = Field(default_factory=list)
    labelling: Labelling = Field(default_factory=Labelling)
    grounded_extension: list[str] = Field(default_factory=list)
    preferred_extensions: list[list[str]] = Field(default_factory=list)
    round: int = 0

    def argument_by_id(self, arg_id: str) -> Argument | None:
        for argument in self.arguments:
            if argument.id == arg_id:
                return argument
        return None

    def valid_attacks(self) -> list[Attack]:
        """Attacks whose validation marked them valid."""
        valid_ids = {v.attack_id for v in self.validations if v.valid}
        return [a for a in self.attacks if a.id in valid_ids]
