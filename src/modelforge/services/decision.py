"""Classification stage: does this turn require a code change?

The provider is asked for a bare JSON object. Whatever comes back is checked
against :class:`DecisionPayload` before it is turned into a
:class:`NoCodeDecision` or :class:`NeedsCodeDecision`; anything else raises
:class:`DecisionParseFailure`.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError, model_validator

from ..domain.errors import DecisionParseFailure, MalformedCompletion
from ..domain.models import ConversationTurn, Decision, NeedsCodeDecision, NoCodeDecision
from .completion_client import CompletionClient


LOG = logging.getLogger("modelforge.llm")

SYSTEM_PROMPT = """You are an AI assistant helping to develop Python code. You must ALWAYS respond with a JSON object in this exact format:

{
  "needsCode": boolean,
  "userResponse": string (your response to the user's request),
  "codeInstructions": string (only if needsCode is true)
}

DO NOT include any other text or markdown formatting. ONLY return the JSON object.

Guidelines for your responses in userResponse:
- Start with phrases like "I'll help you..." or "Let me explain..."
- For code changes: "I'll modify/update/change the code to..."
- For explanations: "The code works by..." or "This part of the code..."
- Keep it focused on what YOU will do or explain

Example responses:
{
  "needsCode": true,
  "userResponse": "I'll update the code to add error handling for the API calls",
  "codeInstructions": "Add try-except blocks around API calls"
}

{
  "needsCode": false,
  "userResponse": "Let me explain how the data processing works. The process_data function takes raw data and..."
}"""

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?(?P<body>.*?)\n?\s*```\s*$", re.DOTALL)


class DecisionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    needs_code: StrictBool = Field(alias="needsCode")
    user_response: StrictStr = Field(alias="userResponse")
    code_instructions: Optional[StrictStr] = Field(default=None, alias="codeInstructions")

    @model_validator(mode="after")
    def _instructions_when_code_needed(self) -> "DecisionPayload":
        if self.needs_code and not (self.code_instructions or "").strip():
            raise ValueError("codeInstructions is required when needsCode is true")
        return self

    def to_decision(self) -> Decision:
        if self.needs_code:
            return NeedsCodeDecision(user_response=self.user_response, code_instructions=self.code_instructions or "")
        return NoCodeDecision(user_response=self.user_response)


def strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    if match:
        return match.group("body").strip()
    return text.strip()


def parse_decision(raw: str) -> Decision:
    body = strip_code_fence(raw)
    try:
        payload = DecisionPayload.model_validate_json(body)
    except ValidationError as exc:
        raise DecisionParseFailure(f"Invalid decision payload: {exc.errors()[0].get('msg', 'invalid')}") from exc
    return payload.to_decision()


def build_decision_messages(business_case: str, current_content: str, latest_message: str) -> List[Dict[str, str]]:
    user = f"Business Case: {business_case}\nExisting Code:\n{current_content}\nLatest Message: {latest_message}"
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


class DecisionStage:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def decide(self, business_case: str, current_content: str, turns: Sequence[ConversationTurn]) -> Decision:
        if not turns:
            raise ValueError("at least one conversation turn is required")
        LOG.info(
            "decision_request",
            extra={"turns": len(turns), "has_current_content": bool(current_content)},
        )
        messages = build_decision_messages(business_case, current_content, turns[-1].content)
        try:
            raw = self._client.chat(messages)
        except MalformedCompletion as exc:
            raise DecisionParseFailure(str(exc)) from exc
        LOG.debug("decision_raw_response: %s", raw)
        decision = parse_decision(raw)
        LOG.info("decision_parsed", extra={"needs_code": decision.needs_code})
        return decision
