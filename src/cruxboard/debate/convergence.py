"""Cruxboard Convergence Tracking.

Per-round convergence metrics computed from the blackboard:

- entropy: mean over claims of the normalized Shannon entropy of the
  confidence mass across pro/con/uncertain (latest stance per persona).
- confidence-weighted distance: mean over claims of the average absolute
  pairwise difference of stance value (pro=1, uncertain=0.5, con=0)
  multiplied by confidence.

Stop conditions:
- converged: no unresolved cruxes and every claim has at least 80% of its
  confidence mass on one side (pro or con), or the event counter has
  reached MAX_EVENTS.
- diverged: the last DIVERGENCE_WINDOW entropies all exceed 0.95 and no
  new crux appeared within that window.

The tracker is immutable; `observe` returns the next tracker together with
the round's ConvergenceState.
"""

from __future__ import annotations

import math
from itertools import combinations

from pydantic import BaseModel, ConfigDict, Field

from cruxboard.models.blackboard import AgentStance, BlackboardState, Stance
from cruxboard.models.convergence import ConvergenceState

CONVERGENCE_MASS_THRESHOLD = 0.8
DIVERGENCE_ENTROPY_THRESHOLD = 0.95
DIVERGENCE_WINDOW = 2
MAX_EVENTS = 15

_STANCE_VALUES: dict[Stance, float] = {
    Stance.PRO: 1.0,
    Stance.UNCERTAIN: 0.5,
    Stance.CON: 0.0,
}


def _mass(stances: list[AgentStance]) -> dict[Stance, float]:
    mass = {stance: 0.0 for stance in Stance}
    for row in stances:
        mass[row.stance] += row.confidence
    return mass


def claim_entropy(stances: list[AgentStance]) -> float:
    """Normalized entropy of one claim's current stances, in [0, 1].

    A claim with no stances (or zero confidence mass) has entropy 1.
    """
    if not stances:
        return 1.0
    mass = _mass(stances)
    total = sum(mass.values())
    if total == 0:
        return 1.0

    entropy = 0.0
    for value in mass.values():
        p = value / total
        if p > 0:
            entropy -= p * math.log(p)
    return min(1.0, max(0.0, entropy / math.log(3)))


def claim_confidence_distance(stances: list[AgentStance]) -> float:
    """Average pairwise confidence-weighted stance distance; 0 with fewer than two stances."""
    if len(stances) < 2:
        return 0.0
    values = [_STANCE_VALUES[s.stance] * s.confidence for s in stances]
    pairs = list(combinations(values, 2))
    return sum(abs(a - b) for a, b in pairs) / len(pairs)


def one_sided_mass(stances: list[AgentStance]) -> float:
    """max(pro mass, con mass) / total mass; 0 when there is no mass."""
    mass = _mass(stances)
    total = sum(mass.values())
    if total == 0:
        return 0.0
    return max(mass[Stance.PRO], mass[Stance.CON]) / total


def check_converged(board: BlackboardState) -> bool:
    """Metric convergence, ignoring the event cap."""
    if board.unresolved_cruxes() or not board.claims:
        return False
    for claim in board.claims:
        latest = list(board.current_stances(claim.id).values())
        if not latest:
            return False
        if one_sided_mass(latest) < CONVERGENCE_MASS_THRESHOLD:
            return False
    return True


class ConvergenceTracker(BaseModel):
    """Cross-round convergence memory.

    Attributes:
        entropy_history: Mean entropy of every observed round, oldest first.
        last_new_crux_round: Most recent round in which the crux count grew.
        known_crux_count: Crux count at the previous observation.
    """

    model_config = ConfigDict(frozen=True)

    entropy_history: list[float] = Field(default_factory=list)
    last_new_crux_round: int = 0
    known_crux_count: int = 0
    max_events: int = MAX_EVENTS

    def observe(
        self,
        board: BlackboardState,
        event_count: int,
        current_round: int,
    ) -> tuple[ConvergenceTracker, ConvergenceState]:
        """Compute this round's metrics and return the advanced tracker."""
        entropies = []
        distances = []
        for claim in board.claims:
            latest = list(board.current_stances(claim.id).values())
            entropies.append(claim_entropy(latest))
            distances.append(claim_confidence_distance(latest))

        entropy = sum(entropies) / len(entropies) if entropies else 0.0
        distance = sum(distances) / len(distances) if distances else 0.0

        crux_count = len(board.crux_candidates)
        last_new_crux_round = self.last_new_crux_round
        if crux_count > self.known_crux_count:
            last_new_crux_round = current_round

        tracker = self.model_copy(
            update={
                "entropy_history": [*self.entropy_history, entropy],
                "last_new_crux_round": last_new_crux_round,
                "known_crux_count": crux_count,
            }
        )

        state = ConvergenceState(
            entropy=entropy,
            confidence_weighted_distance=min(1.0, distance),
            unresolved_crux_count=len(board.unresolved_cruxes()),
            converged=check_converged(board) or event_count >= self.max_events,
            diverged=tracker.is_diverged(current_round),
            event_count=event_count,
            max_events=self.max_events,
        )
        return tracker, state

    def is_diverged(self, current_round: int) -> bool:
        if len(self.entropy_history) < DIVERGENCE_WINDOW:
            return False
        recent = self.entropy_history[-DIVERGENCE_WINDOW:]
        stuck = all(e > DIVERGENCE_ENTROPY_THRESHOLD for e in recent)
        no_new_cruxes = current_round - self.last_new_crux_round >= DIVERGENCE_WINDOW
        return stuck and no_new_cruxes
