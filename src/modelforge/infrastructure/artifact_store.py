from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from threading import RLock
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from ..config import Settings, load_settings
from ..domain.models import ArtifactVersion, CodeFile, Repository


LOG = logging.getLogger("modelforge.store")


class ArtifactStore(Protocol):
    def ensure_repository(self, project_id: str) -> Repository: ...
    def latest_content(self, project_id: str, path: str) -> Optional[str]: ...
    def record_version(self, project_id: str, path: str, content: str, prompt: str, decision_message: str) -> str: ...
    def list_latest_files(self, project_id: str) -> List[CodeFile]: ...
    def list_versions(self, project_id: str, path: str) -> List[ArtifactVersion]: ...


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_utc(value: datetime) -> str:
    return _ensure_utc(value).isoformat().replace("+00:00", "Z")


def latest_of(versions: List[ArtifactVersion]) -> Optional[ArtifactVersion]:
    """Latest by creation time; equal timestamps resolve to the higher sequence number."""
    if not versions:
        return None
    return max(versions, key=lambda v: (_ensure_utc(v.created_at), v.version))


class InMemoryArtifactStore:
    """Append-only artifact versions kept in process memory.

    Versions are grouped per project repository and file path. Nothing is ever
    updated in place; ``record_version`` always appends.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now) -> None:
        self._repositories: Dict[str, Repository] = {}
        self._versions: Dict[Tuple[str, str], List[ArtifactVersion]] = {}
        self._clock = clock
        self._lock = RLock()

    def ensure_repository(self, project_id: str) -> Repository:
        with self._lock:
            existing = self._repositories.get(project_id)
            if existing is not None:
                return existing
            repo = Repository(repository_id=uuid.uuid4().hex, project_id=project_id, created_at=self._clock())
            self._repositories[project_id] = repo
            LOG.info("repository_created", extra={"project_id": project_id, "repository_id": repo.repository_id})
            return repo

    def latest_content(self, project_id: str, path: str) -> Optional[str]:
        with self._lock:
            latest = latest_of(self._versions.get((project_id, path), []))
            return latest.content if latest else None

    def record_version(self, project_id: str, path: str, content: str, prompt: str, decision_message: str) -> str:
        with self._lock:
            repo = self.ensure_repository(project_id)
            versions = self._versions.setdefault((project_id, path), [])
            version = ArtifactVersion(
                version=len(versions) + 1,
                repository_id=repo.repository_id,
                project_id=project_id,
                path=path,
                content=content,
                created_at=self._clock(),
                prompt=prompt,
                decision_message=decision_message,
            )
            versions.append(version)
            return version.version_id

    def list_latest_files(self, project_id: str) -> List[CodeFile]:
        with self._lock:
            out: List[CodeFile] = []
            for (pid, path), versions in sorted(self._versions.items()):
                if pid != project_id:
                    continue
                latest = latest_of(versions)
                if latest is not None:
                    out.append(CodeFile(path=path, code=latest.content))
            return out

    def list_versions(self, project_id: str, path: str) -> List[ArtifactVersion]:
        with self._lock:
            return list(self._versions.get((project_id, path), []))


_store_singleton: ArtifactStore | None = None


def get_artifact_store(settings: Optional[Settings] = None) -> ArtifactStore:
    global _store_singleton
    if _store_singleton is not None:
        return _store_singleton
    settings = settings or load_settings()
    if settings.artifact_store == "mongo":
        from .artifact_store_mongo import MongoArtifactStore  # local import keeps pymongo optional at import time

        _store_singleton = MongoArtifactStore.from_settings(settings)
        return _store_singleton
    _store_singleton = InMemoryArtifactStore()
    return _store_singleton


def reset_artifact_store() -> None:
    global _store_singleton
    _store_singleton = None
