"""Environment-driven settings for the ModelForge backend.

Settings are read once per call to :func:`load_settings`; pass an explicit
mapping (tests do) to avoid touching ``os.environ``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple


_TRUTHY = ("1", "true", "yes")


def _flag(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    raw = (env.get(key) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(env.get(key, default))
    except (TypeError, ValueError):
        return default


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(env.get(key, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    llm_retries: int = 2
    llm_backoff_seconds: float = 1.0
    llm_timeout: float = 60.0
    llm_temperature: float = 0.2
    artifact_store: str = "memory"
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "modelforge"
    require_mongo: bool = False
    default_file_path: str = "main.py"
    cors_origins: Tuple[str, ...] = field(default=("http://localhost:5173", "http://127.0.0.1:5173"))


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = env if env is not None else os.environ
    cors_raw = env.get("MODELFORGE_CORS_ORIGINS") or ""
    cors = tuple(o.strip() for o in cors_raw.split(",") if o.strip())
    return Settings(
        # A retry budget below one attempt would never call the provider.
        llm_retries=max(1, _int(env, "MODELFORGE_LLM_RETRIES", 2)),
        llm_backoff_seconds=max(0.0, _float(env, "MODELFORGE_LLM_BACKOFF_SECONDS", 1.0)),
        llm_timeout=_float(env, "MODELFORGE_LLM_TIMEOUT", 60.0),
        llm_temperature=_float(env, "MODELFORGE_LLM_TEMPERATURE", 0.2),
        artifact_store=(env.get("MODELFORGE_ARTIFACT_STORE") or "memory").strip().lower(),
        mongo_url=env.get("MONGO_URL") or "mongodb://localhost:27017",
        mongo_db=env.get("MONGO_DB") or "modelforge",
        require_mongo=_flag(env, "MODELFORGE_REQUIRE_MONGO"),
        default_file_path=(env.get("MODELFORGE_DEFAULT_FILE_PATH") or "main.py").strip(),
        cors_origins=cors or Settings().cors_origins,
    )
