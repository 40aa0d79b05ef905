"""Tests for the Cruxboard HTTP API: health, streamed debates and replay."""

from __future__ import annotations

import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from cruxboard import __version__
from cruxboard.api.main import create_app
from cruxboard.config import DebateSettings
from cruxboard.personas import PersonaRegistry
from tests.fixtures.scripted import ScriptedCollaborator, make_personas


@pytest.fixture
def collab() -> ScriptedCollaborator:
    return ScriptedCollaborator()


@pytest.fixture
def client(collab: ScriptedCollaborator) -> TestClient:
    """Test client wired to a scripted collaborator and three personas."""
    app = create_app(
        settings=DebateSettings(),
        collaborator=collab,
        personas=PersonaRegistry(make_personas("alice", "bob", "carol")),
    )
    return TestClient(app)


def _ndjson(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.strip()]


class TestHealth:
    """GET /health."""

    def test_health_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__
        datetime.fromisoformat(data["time"])


class TestStartDebate:
    """POST /v1/debates streams NDJSON events."""

    def test_streams_events_to_completion(self, client: TestClient) -> None:
        response = client.post(
            "/v1/debates",
            json={"topic": "Remote work", "persona_ids": ["alice", "bob"], "max_rounds": 1},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")
        events = _ndjson(response.text)
        assert events[0]["type"] == "status"
        assert events[1]["type"] == "debate_start"
        assert events[1]["mode"] == "blitz"
        assert events[1]["persona_ids"] == ["alice", "bob"]
        assert events[1]["debate_id"].startswith("debate-")
        assert events[-1]["type"] == "debate_complete"

    def test_mode_and_debate_id_are_honoured(
        self, client: TestClient, collab: ScriptedCollaborator
    ) -> None:
        response = client.post(
            "/v1/debates",
            json={
                "topic": "Remote work",
                "persona_ids": ["alice", "bob", "carol"],
                "mode": "dialogue",
                "debate_id": "d-1",
                "max_messages": 5,
            },
        )
        events = _ndjson(response.text)
        start = next(e for e in events if e["type"] == "debate_start")
        assert start["debate_id"] == "d-1"
        assert start["mode"] == "dialogue"
        assert len([e for e in events if e["type"] == "message_posted"]) == 5
        assert events[-1]["reason"] == "max_messages"
        assert len(collab.calls_to("micro_turn")) == 5

    def test_collaborator_error_becomes_error_event(
        self, client: TestClient, collab: ScriptedCollaborator
    ) -> None:
        collab.fail_on("decompose_claims")
        response = client.post(
            "/v1/debates", json={"topic": "Remote work", "persona_ids": ["alice", "bob"]}
        )
        assert response.status_code == 200
        events = _ndjson(response.text)
        assert events[-1] == {
            "type": "error",
            "message": "scripted failure: decompose_claims",
            "operation": "decompose_claims",
        }

    def test_unknown_persona_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/v1/debates",
            json={"topic": "Remote work", "persona_ids": ["alice", "mallory"]},
            headers={"X-Request-Id": "req-42"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "CONFIGURATION_ERROR"
        assert "mallory" in body["message"]
        assert body["request_id"] == "req-42"
        assert response.headers["X-Request-Id"] == "req-42"

    @pytest.mark.parametrize(
        "payload",
        [
            {"topic": "", "persona_ids": ["alice", "bob"]},
            {"topic": "Remote work", "persona_ids": ["alice"]},
            {"topic": "Remote work", "persona_ids": ["alice", "bob"], "mode": "chess"},
            {"topic": "Remote work", "persona_ids": ["alice", "bob"], "max_rounds": 0},
        ],
    )
    def test_invalid_body_is_422(self, client: TestClient, payload: dict) -> None:
        response = client.post("/v1/debates", json=payload)
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "REQUEST_VALIDATION_FAILED"
        assert body["details"]["errors"]


class TestReplayRoute:
    """POST /v1/debates/replay folds posted events."""

    def test_replay_of_streamed_debate(self, client: TestClient) -> None:
        streamed = client.post(
            "/v1/debates",
            json={
                "topic": "Remote work",
                "persona_ids": ["alice", "bob"],
                "debate_id": "d-2",
                "max_rounds": 1,
            },
        )
        events = _ndjson(streamed.text)

        response = client.post("/v1/debates/replay", json={"events": events})
        assert response.status_code == 200
        state = response.json()
        assert state["debate_id"] == "d-2"
        assert state["mode"] == "blitz"
        assert state["complete_reason"] == events[-1]["reason"]
        assert [c["id"] for c in state["board"]["claims"]] == ["c1", "c2"]

    def test_replay_rejects_unknown_event(self, client: TestClient) -> None:
        response = client.post("/v1/debates/replay", json={"events": [{"type": "nope"}]})
        assert response.status_code == 422
