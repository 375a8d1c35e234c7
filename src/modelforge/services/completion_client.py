from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from ..config import Settings, load_settings
from ..domain.errors import MalformedCompletion, ProviderFailure
from ..observability.metrics import COMPLETION_ATTEMPTS
from .model_router import ModelRouter


LOG = logging.getLogger("modelforge.llm")

_ERROR_BODY_LIMIT = 400


def _build_session() -> requests.Session:
    # Retries are driven by CompletionClient so backoff stays observable.
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0, pool_connections=10, pool_maxsize=10)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def extract_text(response: Dict[str, Any]) -> str:
    """Return ``choices[0].message.content`` from a chat-completions body."""
    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedCompletion("Completion response has no message content") from exc
    if not isinstance(content, str):
        raise MalformedCompletion("Completion message content is not text")
    return content


class CompletionClient:
    """Bounded-retry client for an OpenAI-compatible chat-completions endpoint.

    Non-success statuses and transport errors are retried up to ``retries``
    attempts in total, sleeping ``attempt * backoff_seconds`` between attempts.
    Once exhausted, a non-success status raises :class:`ProviderFailure` and a
    transport error is re-raised unchanged. A 200 with an unusable body is
    never retried.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        *,
        retries: int = 2,
        backoff_seconds: float = 1.0,
        timeout: float = 60.0,
        temperature: float = 0.2,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self.timeout = timeout
        self.temperature = temperature
        self._api_key = api_key
        self._session = session or _build_session()
        self._sleep = sleep

    @classmethod
    def from_environment(
        cls,
        purpose: str = "decision",
        settings: Optional[Settings] = None,
        router: Optional[ModelRouter] = None,
    ) -> "CompletionClient":
        settings = settings or load_settings()
        router = router or ModelRouter()
        selection = router.select_provider(purpose)
        LOG.info(
            "Using completion provider name=%s model=%s base_url=%s",
            selection.name,
            selection.model,
            selection.base_url,
        )
        return cls(
            base_url=selection.base_url,
            model=selection.model,
            api_key=router.api_key_for(selection),
            retries=settings.llm_retries,
            backoff_seconds=settings.llm_backoff_seconds,
            timeout=settings.llm_timeout,
            temperature=settings.llm_temperature,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/chat/completions"
        failure: Optional[ProviderFailure] = None
        for attempt in range(1, self.retries + 1):
            LOG.debug("completion_request", extra={"attempt": attempt, "retries": self.retries, "model": payload.get("model")})
            try:
                resp = self._session.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
            except requests.RequestException as exc:
                COMPLETION_ATTEMPTS.labels(result="transport_error").inc()
                LOG.warning(
                    "completion_transport_error attempt=%d/%d: %s",
                    attempt,
                    self.retries,
                    exc,
                )
                if attempt == self.retries:
                    raise
                self._sleep(self.backoff_seconds * attempt)
                continue

            if not resp.ok:
                COMPLETION_ATTEMPTS.labels(result="http_error").inc()
                body = (resp.text or "")[:_ERROR_BODY_LIMIT]
                LOG.error(
                    "completion_http_error attempt=%d/%d status=%s body=%s",
                    attempt,
                    self.retries,
                    resp.status_code,
                    body,
                )
                failure = ProviderFailure(
                    f"Completion provider returned HTTP {resp.status_code}",
                    status_code=resp.status_code,
                    body=body,
                )
                if attempt < self.retries:
                    self._sleep(self.backoff_seconds * attempt)
                continue

            COMPLETION_ATTEMPTS.labels(result="ok").inc()
            try:
                return resp.json()
            except ValueError as exc:
                raise MalformedCompletion("Completion provider returned a non-JSON body") from exc

        if failure is None:
            raise ProviderFailure("Completion provider was never called: retries must be at least 1")
        raise failure

    def chat(self, messages: List[Dict[str, str]]) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        return extract_text(self.complete(payload))
