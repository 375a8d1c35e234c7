from __future__ import annotations

import pytest
import requests

from src.modelforge.domain.errors import GenerationFailure, ProviderFailure
from src.modelforge.services.generation import GenerationStage


class _Recorder:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def chat(self, messages):
        self.calls.append(messages)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def test_generated_code_is_trimmed():
    client = _Recorder("\n\nimport os\nprint(os.getcwd())\n  ")
    code = GenerationStage(client).generate("print the cwd", "")
    assert code == "import os\nprint(os.getcwd())"


def test_prompt_embeds_existing_content_and_instructions():
    client = _Recorder("x = 2")
    GenerationStage(client).generate("set x to 2", "x = 1")

    system, user = client.calls[0]
    assert "Current file content:\nx = 1" in system["content"]
    assert "Return ONLY the complete Python code" in system["content"]
    assert user == {"role": "user", "content": "set x to 2"}


def test_prompt_marks_fresh_file():
    client = _Recorder("x = 1")
    GenerationStage(client).generate("start", "")
    assert "No existing code" in client.calls[0][0]["content"]


@pytest.mark.parametrize(
    "error",
    [ProviderFailure("HTTP 503", status_code=503), requests.ConnectionError("reset")],
)
def test_provider_errors_become_generation_failure(error):
    with pytest.raises(GenerationFailure) as excinfo:
        GenerationStage(_Recorder(error)).generate("anything", "")
    assert excinfo.value.__cause__ is error
