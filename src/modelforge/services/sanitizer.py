from __future__ import annotations

from typing import Iterable, List

from ..domain.models import ConversationTurn


def sanitize_content(content: str) -> str:
    return content.replace("\n", " ").strip()


def sanitize_messages(turns: Iterable[ConversationTurn]) -> List[ConversationTurn]:
    """Flatten each turn onto one line so it embeds cleanly in a prompt."""
    return [ConversationTurn(role=t.role, content=sanitize_content(t.content)) for t in turns]
