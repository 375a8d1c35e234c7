from __future__ import annotations

from typing import Optional


class ModelForgeError(RuntimeError):
    """Base class for failures surfaced by the orchestration pipeline."""


class ProviderFailure(ModelForgeError):
    """The completion provider kept answering with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedCompletion(ModelForgeError):
    """A 200 response whose body does not carry a completion message."""


class DecisionParseFailure(ModelForgeError):
    """The decision payload was not valid JSON of the expected shape."""


class GenerationFailure(ModelForgeError):
    """The code generation call failed; nothing was persisted."""


class StoreFailure(ModelForgeError):
    """The artifact store rejected a read or write."""
