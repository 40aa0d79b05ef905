"""Debate routes.

POST /v1/debates streams a debate's events as NDJSON, one event per line.
POST /v1/debates/replay folds a posted event list into the final state.

Persona ids are resolved before the stream starts, so an unknown id is a
400 response rather than an error event.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from cruxboard.debate.orchestrator import DebateRunner, build_runner
from cruxboard.debate.replay import ReplayState, replay_events
from cruxboard.models.debate import DebateConfig, DebateMode
from cruxboard.models.events import DebateEvent, dump_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Debates"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class StartDebateRequest(BaseModel):
    """Request body for POST /v1/debates. Unset caps fall back to DebateConfig defaults."""

    topic: str = Field(..., min_length=1)
    persona_ids: list[str] = Field(..., min_length=2)
    mode: DebateMode = DebateMode.BLITZ
    debate_id: str | None = None
    max_rounds: int | None = Field(default=None, ge=1)
    max_turns: int | None = Field(default=None, ge=1)
    max_graph_rounds: int | None = Field(default=None, ge=1)
    max_messages: int | None = Field(default=None, ge=1)
    seed: int | None = None


class ReplayRequest(BaseModel):
    events: list[DebateEvent]


def _build_config(body: StartDebateRequest, summary_token_budget: int) -> DebateConfig:
    caps = body.model_dump(
        include={"max_rounds", "max_turns", "max_graph_rounds", "max_messages"},
        exclude_none=True,
    )
    return DebateConfig(
        topic=body.topic,
        persona_ids=body.persona_ids,
        mode=body.mode,
        debate_id=body.debate_id or f"debate-{uuid.uuid4().hex[:12]}",
        summary_token_budget=summary_token_budget,
        seed=body.seed,
        **caps,
    )


async def _ndjson(runner: DebateRunner) -> AsyncIterator[str]:
    async for event in runner.events():
        yield dump_event(event) + "\n"


@router.post("/debates")
async def start_debate(body: StartDebateRequest, request: Request) -> StreamingResponse:
    """Run a debate and stream its events.

    Raises:
        ConfigurationError: On an unknown or repeated persona id (mapped to 400).
    """
    state = request.app.state
    personas = state.personas.resolve(body.persona_ids)
    config = _build_config(body, state.settings.summary_token_budget)
    runner = build_runner(config, state.collaborator, personas)
    logger.info("Streaming debate %s (%s)", config.debate_id, config.mode.value)
    return StreamingResponse(_ndjson(runner), media_type=NDJSON_MEDIA_TYPE)


@router.post("/debates/replay", response_model=ReplayState)
def replay_debate(body: ReplayRequest) -> ReplayState:
    """Fold a recorded event stream into its final state."""
    return replay_events(body.events)
