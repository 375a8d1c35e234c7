from __future__ import annotations

import pytest

from src.modelforge.domain.errors import DecisionParseFailure, MalformedCompletion, ProviderFailure
from src.modelforge.domain.models import NeedsCodeDecision, NoCodeDecision
from src.modelforge.services.decision import DecisionStage, parse_decision, strip_code_fence
from tests.utils import ScriptedClient, decision_json, turns


def test_needs_code_payload_becomes_needs_code_decision():
    decision = parse_decision(decision_json(True, "I'll add retries", "Wrap the fetch in a retry loop"))
    assert isinstance(decision, NeedsCodeDecision)
    assert decision.needs_code is True
    assert decision.code_instructions == "Wrap the fetch in a retry loop"


def test_no_code_payload_ignores_stray_instructions():
    decision = parse_decision(decision_json(False, "Here's why...", "ignored"))
    assert isinstance(decision, NoCodeDecision)
    assert decision.user_response == "Here's why..."


@pytest.mark.parametrize(
    "raw",
    [
        "```json\n" + decision_json(False, "fenced") + "\n```",
        "```\n" + decision_json(False, "fenced") + "\n```",
        "  " + decision_json(False, "fenced") + "\n",
    ],
)
def test_code_fences_are_stripped(raw):
    assert parse_decision(raw) == NoCodeDecision(user_response="fenced")


def test_strip_code_fence_passthrough():
    assert strip_code_fence('{"a": 1}') == '{"a": 1}'


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "[]",
        '{"userResponse": "missing flag"}',
        '{"needsCode": "true", "userResponse": "string flag", "codeInstructions": "x"}',
        '{"needsCode": false, "userResponse": 42}',
        decision_json(True, "I'll change it"),
        decision_json(True, "I'll change it", "   "),
    ],
)
def test_invalid_payloads_raise_parse_failure(raw):
    with pytest.raises(DecisionParseFailure):
        parse_decision(raw)


def test_stage_prompt_uses_context_and_last_turn_only():
    client = ScriptedClient(decision_json(False, "Let me explain"))
    stage = DecisionStage(client)

    decision = stage.decide("Track crypto prices", "print('hi')", turns("first ask", "reply", "latest ask"))

    assert decision == NoCodeDecision(user_response="Let me explain")
    assert len(client.calls) == 1
    system, user = client.calls[0]
    assert system["role"] == "system" and '"needsCode"' in system["content"]
    assert user["content"] == "Business Case: Track crypto prices\nExisting Code:\nprint('hi')\nLatest Message: latest ask"
    assert "first ask" not in user["content"]


def test_stage_does_not_retry_on_parse_failure():
    client = ScriptedClient("oops", decision_json(False, "never used"))
    with pytest.raises(DecisionParseFailure):
        DecisionStage(client).decide("case", "", turns("hi"))
    assert len(client.calls) == 1


def test_stage_maps_malformed_completion_to_parse_failure():
    client = ScriptedClient(MalformedCompletion("no content"))
    with pytest.raises(DecisionParseFailure):
        DecisionStage(client).decide("case", "", turns("hi"))


def test_stage_propagates_provider_failure():
    client = ScriptedClient(ProviderFailure("HTTP 500", status_code=500))
    with pytest.raises(ProviderFailure):
        DecisionStage(client).decide("case", "", turns("hi"))


def test_stage_requires_a_turn():
    client = ScriptedClient()
    with pytest.raises(ValueError):
        DecisionStage(client).decide("case", "", [])
    assert client.calls == []
