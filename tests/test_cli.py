"""Tests for the cruxboard CLI (deterministic backend, bundled personas)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cruxboard.cli import create_parser, main


def _run_args(*extra: str) -> list[str]:
    return ["run", "--topic", "Should cities ban cars?", "--personas", "builder,steward", *extra]


class TestCliRun:
    """`cruxboard run`."""

    def test_run_writes_ndjson_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        out = tmp_path / "events.ndjson"
        exit_code = main(_run_args("--max-rounds", "1", "--out", str(out)))

        assert exit_code == 0
        events = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
        assert events[1]["type"] == "debate_start"
        assert events[1]["persona_ids"] == ["builder", "steward"]
        assert events[-1]["type"] == "debate_complete"
        assert "Events written to" in capsys.readouterr().err

    def test_run_to_stdout(self, capsys: pytest.CaptureFixture) -> None:
        exit_code = main(_run_args("--mode", "graph", "--max-graph-rounds", "1"))

        assert exit_code == 0
        lines = capsys.readouterr().out.splitlines()
        events = [json.loads(line) for line in lines]
        assert events[1]["mode"] == "graph"
        assert events[-1]["type"] == "debate_complete"

    def test_unknown_persona_fails(self, capsys: pytest.CaptureFixture) -> None:
        exit_code = main(
            ["run", "--topic", "Cars", "--personas", "builder,nobody", "--max-rounds", "1"]
        )
        assert exit_code == 1
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["code"] == "CONFIGURATION_ERROR"
        assert "nobody" in error["message"]

    def test_single_persona_is_a_configuration_error(self, capsys: pytest.CaptureFixture) -> None:
        exit_code = main(["run", "--topic", "Cars", "--personas", "builder"])
        assert exit_code == 1
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["code"] == "CONFIGURATION_ERROR"

    def test_anthropic_backend_without_key_fails(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        monkeypatch.setenv("CRUXBOARD_LLM_BACKEND", "anthropic")
        exit_code = main(_run_args("--max-rounds", "1"))
        assert exit_code == 1
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["code"] == "CONFIGURATION_ERROR"
        assert "ANTHROPIC_API_KEY" in error["message"]

    def test_missing_topic_is_a_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["run", "--personas", "builder,steward"])
        assert exc_info.value.code == 2


class TestCliReplay:
    """`cruxboard replay`."""

    def test_replay_of_recorded_run(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        out = tmp_path / "events.ndjson"
        assert main(_run_args("--max-rounds", "1", "--debate-id", "cli-1", "--out", str(out))) == 0
        capsys.readouterr()

        assert main(["replay", str(out)]) == 0
        state = json.loads(capsys.readouterr().out)
        assert state["debate_id"] == "cli-1"
        assert state["persona_ids"] == ["builder", "steward"]
        assert state["complete_reason"] is not None
        assert state["error"] is None

    def test_replay_of_error_stream_exits_1(
        self, tmp_path: Path, capsys: pytest.CaptureFixture
    ) -> None:
        path = tmp_path / "error.ndjson"
        path.write_text(
            json.dumps({"type": "error", "message": "boom", "operation": None}) + "\n",
            encoding="utf-8",
        )
        assert main(["replay", str(path)]) == 1
        assert json.loads(capsys.readouterr().out)["error"] == "boom"

    def test_replay_missing_file(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["replay", str(tmp_path / "missing.ndjson")]) == 1
        assert json.loads(capsys.readouterr().err)["code"] == "READ_FAILED"

    def test_replay_invalid_event(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        path = tmp_path / "bad.ndjson"
        path.write_text('{"type": "bogus"}\n', encoding="utf-8")
        assert main(["replay", str(path)]) == 1
        assert json.loads(capsys.readouterr().err)["code"] == "INVALID_EVENT"


class TestCliPersonas:
    """`cruxboard personas`."""

    def test_lists_bundled_personas(self, capsys: pytest.CaptureFixture) -> None:
        assert main(["personas"]) == 0
        ids = [line.split("\t")[0] for line in capsys.readouterr().out.splitlines()]
        assert ids == ["builder", "steward", "economist", "skeptic"]

    def test_custom_personas_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        path = tmp_path / "personas.yaml"
        path.write_text(
            "personas:\n"
            "  - id: one\n"
            "    name: One\n"
            "    system_prompt: You are one.\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("CRUXBOARD_PERSONAS_FILE", str(path))
        assert main(["personas"]) == 0
        assert capsys.readouterr().out == "one\tOne\n"

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture) -> None:
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()
