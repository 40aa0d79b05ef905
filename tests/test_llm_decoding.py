"""Tests for decoding untrusted model output."""

from __future__ import annotations

import pytest

from cruxboard.errors import CollaboratorError, MalformedResponseError
from cruxboard.services.llm.decoding import decode_response, extract_json_object, strip_code_fences
from cruxboard.services.llm.schemas import ActionPlanResponse, ContentResponse


class TestExtractJsonObject:
    """JSON recovery tolerates fences and surrounding prose."""

    def test_plain_json(self) -> None:
        assert extract_json_object('{"content": "hi"}') == {"content": "hi"}

    def test_fenced_json(self) -> None:
        raw = '```json\n{"content": "hi"}\n```'
        assert strip_code_fences(raw) == '{"content": "hi"}'
        assert extract_json_object(raw) == {"content": "hi"}

    def test_bare_fence(self) -> None:
        assert extract_json_object('```\n{"a": 1}\n```') == {"a": 1}

    def test_surrounding_prose(self) -> None:
        raw = 'Sure! Here you go: {"a": {"b": 2}} Hope that helps.'
        assert extract_json_object(raw) == {"a": {"b": 2}}

    def test_no_object(self) -> None:
        with pytest.raises(ValueError, match="No JSON object"):
            extract_json_object("no json at all")

    def test_broken_object(self) -> None:
        with pytest.raises(ValueError, match="Invalid JSON"):
            extract_json_object("prefix {not: valid} suffix")


class TestDecodeResponse:
    """Schema validation at the collaborator boundary."""

    def test_valid_response(self) -> None:
        plan = decode_response('{"action": "interrupt", "urgency": 0.4}', ActionPlanResponse)
        assert plan.action.value == "interrupt"
        assert plan.urgency == 0.4

    def test_extra_fields_are_ignored(self) -> None:
        result = decode_response('{"content": "hi", "mood": "calm"}', ContentResponse)
        assert result.content == "hi"

    def test_non_json_raises_malformed_with_context(self) -> None:
        with pytest.raises(MalformedResponseError) as exc_info:
            decode_response("nope", ContentResponse, operation="micro_turn", persona_id="alice")
        error = exc_info.value
        assert error.raw == "nope"
        assert error.operation == "micro_turn"
        assert error.persona_id == "alice"
        assert isinstance(error, CollaboratorError)

    def test_schema_mismatch_raises_malformed(self) -> None:
        with pytest.raises(MalformedResponseError, match="schema mismatch for ContentResponse"):
            decode_response('{"content": ""}', ContentResponse)

    def test_invalid_enum_raises_malformed(self) -> None:
        with pytest.raises(MalformedResponseError):
            decode_response('{"action": "shout"}', ActionPlanResponse)
