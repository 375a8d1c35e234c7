from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from src.modelforge.domain.models import ConversationTurn


def completion_body(text: str) -> Dict[str, Any]:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}]}


def decision_json(needs_code: bool, user_response: str, instructions: Optional[str] = None) -> str:
    payload: Dict[str, Any] = {"needsCode": needs_code, "userResponse": user_response}
    if instructions is not None:
        payload["codeInstructions"] = instructions
    return json.dumps(payload)


def turns(*contents: str) -> List[ConversationTurn]:
    """Alternate user/assistant turns, starting and ending with the user when odd."""
    out = []
    for idx, content in enumerate(contents):
        out.append(ConversationTurn(role="user" if idx % 2 == 0 else "assistant", content=content))
    return out


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text or (json.dumps(payload) if payload is not None else "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Replays scripted responses (or raises scripted exceptions) for each POST."""

    def __init__(self, outcomes: List[Union[FakeResponse, Exception]]) -> None:
        self._outcomes = list(outcomes)
        self.requests: List[Dict[str, Any]] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class ScriptedClient:
    """Stands in for CompletionClient.chat with canned replies or errors."""

    def __init__(self, *replies: Union[str, Exception]) -> None:
        self._replies = list(replies)
        self.calls: List[List[Dict[str, str]]] = []

    def chat(self, messages: List[Dict[str, str]]) -> str:
        self.calls.append(messages)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
