from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from ..domain.errors import MalformedCompletion, ProviderFailure
from ..domain.models import ConversationTurn
from .completion_client import CompletionClient


LOG = logging.getLogger("modelforge.llm")


def build_sparring_messages(business_case: str, turns: Sequence[ConversationTurn]) -> List[Dict[str, str]]:
    system = (
        "You are a business coach helping brainstorm and refine ideas.\n\n"
        f"The business case is: {business_case}\n\n"
        "Format your responses as follows:\n"
        "- Use bullet points for lists\n"
        "- Use '**bold**' markdown for important concepts\n"
        "- Break paragraphs into easily readable chunks\n"
        "- Use clear headings with '###' when organizing different topics\n"
        "- Keep responses concise and focused\n"
        "- Use '>' for quotes or highlighting key insights\n\n"
        "Provide constructive feedback, ask thought-provoking questions, and help develop the idea further."
    )
    msgs = [{"role": "system", "content": system}]
    msgs.extend({"role": t.role, "content": t.content} for t in turns)
    return msgs


class SparringCoach:
    """Brainstorming partner used before any code exists. Nothing is persisted."""

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def reply(self, business_case: str, turns: Sequence[ConversationTurn]) -> str:
        try:
            text = self._client.chat(build_sparring_messages(business_case, turns))
        except MalformedCompletion as exc:
            raise ProviderFailure("Invalid response from provider") from exc
        if not text.strip():
            raise ProviderFailure("Invalid response from provider")
        LOG.info("sparring_reply", extra={"turns": len(turns), "reply_length": len(text)})
        return text
