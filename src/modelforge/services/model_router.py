"""Routing helpers for selecting the completion provider.

The router does not couple to an SDK; it resolves which OpenAI-compatible
endpoint, model and credential the :class:`CompletionClient` should use for a
given pipeline purpose. Selection depends only on the supplied environment
mapping, which keeps the policy unit-testable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple


@dataclass(frozen=True)
class ProviderSelection:
    """Returned details about the provider that should handle a task."""

    name: str
    model: str
    base_url: str
    api_key_env: Optional[str]
    requires_api_key: bool = True


class ModelRouter:
    """Policy-based router across OpenAI-compatible providers."""

    PROVIDER_CONFIG: Dict[str, Dict[str, Optional[str] | bool]] = {
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "base_url_env": "OPENAI_BASE_URL",
            "model_env": "OPENAI_MODEL",
            "default_model": "gpt-4o-mini",
            "default_base_url": "https://api.openai.com/v1",
        },
        "gemini": {
            "api_key_env": "GEMINI_API_KEY",
            "base_url_env": "GEMINI_BASE_URL",
            "model_env": "GEMINI_MODEL",
            "default_model": "gemini-2.5-flash",
            "default_base_url": "https://generativelanguage.googleapis.com/v1beta/openai",
        },
        "xai": {
            "api_key_env": "XAI_API_KEY",
            "base_url_env": "XAI_BASE_URL",
            "model_env": "XAI_MODEL",
            "default_model": "grok-2-latest",
            "default_base_url": "https://api.x.ai/v1",
        },
        "local": {
            "api_key_env": "LOCAL_API_KEY",
            "base_url_env": "LOCAL_BASE_URL",
            "model_env": "LOCAL_MODEL",
            "default_model": "qwen2.5-coder:7b",
            "default_base_url": "http://127.0.0.1:11434/v1",
            "requires_api_key": False,
        },
    }

    ROUTING_POLICY: Dict[str, Tuple[str, ...]] = {
        # Classification replies are short; any hosted model will do.
        "decision": ("openai", "gemini", "xai", "local"),
        "generation": ("openai", "xai", "gemini", "local"),
        "sparring": ("openai", "gemini", "xai", "local"),
    }

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        allowed_providers: Optional[Iterable[str]] = None,
    ) -> None:
        self._env = env if env is not None else os.environ
        self._allowed: Optional[Set[str]] = set(allowed_providers) if allowed_providers else None
        preferred = (self._env.get("MODELFORGE_MODEL_PROVIDER") or "").strip().lower()
        self._preferred_provider = preferred if preferred in self.PROVIDER_CONFIG else None

    # ------------------------------------------------------------------
    # Provider resolution helpers
    # ------------------------------------------------------------------
    def provider_available(self, provider: str) -> bool:
        cfg = self.PROVIDER_CONFIG.get(provider)
        if not cfg:
            return False
        if self._allowed is not None and provider not in self._allowed:
            return False
        if bool(cfg.get("requires_api_key", True)):
            api_key_env = cfg.get("api_key_env")
            return bool(api_key_env and self._env.get(str(api_key_env)))
        # Keyless providers are opt-in so a missing local host is never picked silently.
        return (self._env.get("MODELFORGE_ENABLE_LOCAL_PROVIDER") or "").strip() == "1"

    def resolve_provider(self, provider: str) -> ProviderSelection:
        cfg = self.PROVIDER_CONFIG[provider]
        model_env = str(cfg.get("model_env") or "")
        base_url_env = str(cfg.get("base_url_env") or "")
        model = self._env.get(model_env) or str(cfg.get("default_model") or "")
        base_url = self._env.get(base_url_env) or str(cfg.get("default_base_url") or "")
        api_key_env = cfg.get("api_key_env")
        return ProviderSelection(
            name=provider,
            model=model,
            base_url=base_url.rstrip("/"),
            api_key_env=str(api_key_env) if api_key_env else None,
            requires_api_key=bool(cfg.get("requires_api_key", True)),
        )

    def api_key_for(self, selection: ProviderSelection) -> Optional[str]:
        if not selection.api_key_env:
            return None
        return self._env.get(selection.api_key_env) or None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def select_provider(self, purpose: str) -> ProviderSelection:
        """Return the provider selected for the supplied purpose.

        Raises
        ------
        RuntimeError
            If no provider configured for the purpose has credentials.
        """

        priority = list(self.ROUTING_POLICY.get(purpose, self.ROUTING_POLICY["decision"]))
        if self._preferred_provider:
            priority = [self._preferred_provider] + [p for p in priority if p != self._preferred_provider]
        for provider in priority:
            if self.provider_available(provider):
                return self.resolve_provider(provider)
        raise RuntimeError("No active model provider available for this task.")

    def maybe_select_provider(self, purpose: str) -> Optional[ProviderSelection]:
        """Like :meth:`select_provider` but returns ``None`` on failure."""

        try:
            return self.select_provider(purpose)
        except RuntimeError:
            return None
