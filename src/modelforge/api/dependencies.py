from __future__ import annotations

from typing import Optional

from ..config import Settings, load_settings
from ..domain.errors import ProviderFailure
from ..infrastructure.artifact_store import ArtifactStore, get_artifact_store
from ..services.completion_client import CompletionClient
from ..services.decision import DecisionStage
from ..services.generation import GenerationStage
from ..services.orchestrator import Orchestrator
from ..services.sparring import SparringCoach


_settings: Optional[Settings] = None
_orchestrator: Optional[Orchestrator] = None
_sparring: Optional[SparringCoach] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_store() -> ArtifactStore:
    return get_artifact_store(get_settings())


def _client_for(purpose: str) -> CompletionClient:
    try:
        return CompletionClient.from_environment(purpose, settings=get_settings())
    except RuntimeError as exc:
        raise ProviderFailure(str(exc)) from exc


def get_orchestrator() -> Orchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator(
            store=get_store(),
            decision_stage=DecisionStage(_client_for("decision")),
            generation_stage=GenerationStage(_client_for("generation")),
        )
    return _orchestrator


def get_sparring_coach() -> SparringCoach:
    global _sparring
    if _sparring is None:
        _sparring = SparringCoach(_client_for("sparring"))
    return _sparring


def reset_dependencies() -> None:
    global _settings, _orchestrator, _sparring
    _settings = None
    _orchestrator = None
    _sparring = None
