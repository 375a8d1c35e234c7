from __future__ import annotations

import pytest
import requests

from src.modelforge.domain.errors import MalformedCompletion, ProviderFailure
from src.modelforge.services.completion_client import CompletionClient, extract_text
from tests.utils import FakeResponse, FakeSession, SleepRecorder, completion_body


def _client(session, sleep, retries=2):
    return CompletionClient(
        base_url="https://llm.example/v1/",
        model="gpt-4o-mini",
        api_key="sk-test",
        retries=retries,
        backoff_seconds=1.0,
        session=session,
        sleep=sleep,
    )


def test_complete_returns_body_on_first_success():
    session = FakeSession([FakeResponse(200, completion_body("hi"))])
    sleep = SleepRecorder()
    client = _client(session, sleep)

    assert client.chat([{"role": "user", "content": "hello"}]) == "hi"
    assert sleep.delays == []

    sent = session.requests[0]
    assert sent["url"] == "https://llm.example/v1/chat/completions"
    assert sent["headers"]["Authorization"] == "Bearer sk-test"
    assert sent["json"]["model"] == "gpt-4o-mini"
    assert sent["json"]["messages"] == [{"role": "user", "content": "hello"}]


def test_non_success_is_retried_with_linear_backoff():
    session = FakeSession(
        [
            FakeResponse(500, text="boom"),
            FakeResponse(502, text="bad gateway"),
            FakeResponse(200, completion_body("third time")),
        ]
    )
    sleep = SleepRecorder()
    client = _client(session, sleep, retries=3)

    assert client.chat([{"role": "user", "content": "x"}]) == "third time"
    assert sleep.delays == [1.0, 2.0]


def test_exhausted_status_raises_provider_failure():
    session = FakeSession([FakeResponse(429, text="slow down"), FakeResponse(503, text="unavailable")])
    sleep = SleepRecorder()
    client = _client(session, sleep)

    with pytest.raises(ProviderFailure) as excinfo:
        client.complete({"model": "m", "messages": []})

    assert excinfo.value.status_code == 503
    assert "unavailable" in excinfo.value.body
    # no sleep after the final attempt
    assert sleep.delays == [1.0]
    assert len(session.requests) == 2


def test_transport_error_on_last_attempt_propagates_unchanged():
    last = requests.ConnectionError("connection reset")
    session = FakeSession([requests.Timeout("slow"), last])
    sleep = SleepRecorder()
    client = _client(session, sleep)

    with pytest.raises(requests.ConnectionError) as excinfo:
        client.complete({"model": "m", "messages": []})

    assert excinfo.value is last
    assert sleep.delays == [1.0]


def test_transport_error_then_success_recovers():
    session = FakeSession([requests.ConnectionError("reset"), FakeResponse(200, completion_body("ok"))])
    client = _client(session, SleepRecorder())
    assert client.chat([]) == "ok"


def test_malformed_success_is_not_retried():
    session = FakeSession([FakeResponse(200, payload=None, text="<html>"), FakeResponse(200, completion_body("never"))])
    client = _client(session, SleepRecorder())

    with pytest.raises(MalformedCompletion):
        client.complete({"model": "m", "messages": []})
    assert len(session.requests) == 1


def test_extract_text_rejects_missing_choices():
    with pytest.raises(MalformedCompletion):
        extract_text({"choices": []})
    with pytest.raises(MalformedCompletion):
        extract_text({"choices": [{"message": {"content": None}}]})
    assert extract_text(completion_body("fine")) == "fine"


def test_retries_must_be_positive():
    with pytest.raises(ValueError):
        CompletionClient(base_url="http://x", model="m", retries=0)


def test_empty_retry_budget_raises_provider_failure():
    session = FakeSession([])
    client = _client(session, SleepRecorder())
    client.retries = 0

    with pytest.raises(ProviderFailure):
        client.complete({"model": "gpt-4o-mini", "messages": []})
    assert session.requests == []
