"""Convergence models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConvergenceState(BaseModel):
    """Convergence metrics for one round. Derived, never mutated."""

    model_config = ConfigDict(frozen=True)

    entropy: float = Field(..., ge=0.0, le=1.0, description="Mean normalized stance entropy")
    confidence_weighted_distance: float = Field(..., ge=0.0, le=1.0)
    unresolved_crux_count: int = Field(..., ge=0)
    converged: bool
    diverged: bool
    event_count: int = Field(..., ge=0)
    max_events: int = Field(..., ge=1)
