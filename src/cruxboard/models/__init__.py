"""Cruxboard domain models: frozen pydantic models shared by every layer."""

from cruxboard.models.argumentation import (
    Argument,
    ArgumentationState,
    Attack,
    AttackTarget,
    AttackType,
    Label,
    Labelling,
    TargetComponent,
    ValidationResult,
)
from cruxboard.models.blackboard import (
    AgentStance,
    BlackboardState,
    Claim,
    Crux,
    Dispute,
    DisputeSide,
    FlipCondition,
    InitialStances,
    Stance,
    StanceInput,
    TurnContext,
    TurnMessage,
    TurnResult,
)
from cruxboard.models.convergence import ConvergenceState
from cruxboard.models.debate import DebateConfig, DebateMode
from cruxboard.models.dialogue import (
    CandidateRecord,
    CardPosition,
    CruxCard,
    CruxMessage,
    CruxMessageKind,
    DialogueMessage,
    DisagreementDetection,
    DisagreementType,
    PersonaPosition,
)
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
from cruxboard.models.persona import Persona
from cruxboard.models.scheduling import (
    ActionPlan,
    InterjectionReason,
    PlannedAction,
    TurnCandidate,
)

__all__ = [
    "ActionPlan",
    "AgentStance",
    "Argument",
    "ArgumentationState",
    "Attack",
    "AttackTarget",
    "AttackType",
    "BlackboardState",
    "CandidateRecord",
    "CardPosition",
    "Claim",
    "ConvergenceState",
    "Crux",
    "CruxAssumption",
    "CruxCard",
    "CruxMessage",
    "CruxMessageKind",
    "DebateConfig",
    "DebateMode",
    "DebateOutput",
    "DialogueMessage",
    "DisagreementDetection",
    "DisagreementType",
    "Dispute",
    "DisputeSide",
    "EvidenceLedgerEntry",
    "EvidenceStatus",
    "FaultLine",
    "FlipCondition",
    "GraphCamp",
    "GraphDebateOutput",
    "InitialStances",
    "InterjectionReason",
    "Label",
    "Labelling",
    "OutputCrux",
    "OutputFlipCondition",
    "Persona",
    "PersonaPosition",
    "PlannedAction",
    "ResolutionPath",
    "Stance",
    "StanceInput",
    "TargetComponent",
    "TurnCandidate",
    "TurnContext",
    "TurnMessage",
    "TurnResult",
    "ValidationResult",
]
