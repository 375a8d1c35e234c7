from __future__ import annotations

import logging
from typing import Dict, List

import requests

from ..domain.errors import GenerationFailure, ModelForgeError
from .completion_client import CompletionClient


LOG = logging.getLogger("modelforge.llm")

_STYLE_GUIDE = """Your coding style is:
- Following PEP 8 guidelines
- Writing clean, concise, efficient, and modular code and extract common functionality into functions
- Use common and understandable naming conventions
- Write modular code"""


def build_generation_messages(instructions: str, current_content: str, path: str = "main.py") -> List[Dict[str, str]]:
    system = (
        f"You are an expert Python developer. Generate or modify the {path} file.\n\n"
        f"Current file content:\n{current_content or 'No existing code'}\n\n"
        f"{_STYLE_GUIDE}\n\n"
        "Return ONLY the complete Python code, no explanations or markdown."
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": instructions},
    ]


class GenerationStage:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def generate(self, instructions: str, current_content: str, path: str = "main.py") -> str:
        LOG.info(
            "generation_request",
            extra={"instructions_length": len(instructions), "has_current_content": bool(current_content)},
        )
        messages = build_generation_messages(instructions, current_content, path)
        try:
            code = self._client.chat(messages).strip()
        except (ModelForgeError, requests.RequestException) as exc:
            raise GenerationFailure(f"Code generation failed: {exc}") from exc
        LOG.info("generation_complete", extra={"code_length": len(code)})
        return code
