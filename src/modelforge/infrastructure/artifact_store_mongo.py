from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import Settings
from ..domain.errors import StoreFailure
from ..domain.models import ArtifactVersion, CodeFile, Repository
from .artifact_store import ArtifactStore, InMemoryArtifactStore, _ensure_utc, _utc_now


LOG = logging.getLogger("modelforge.store")

_MAX_APPEND_ATTEMPTS = 3


class MongoArtifactStore:
    """Artifact versions persisted in MongoDB.

    ``repositories`` holds one record per project (unique on ``project_id``);
    ``artifact_versions`` holds immutable rows, unique on
    ``(repository_id, path, version)`` so two writers can never share a
    sequence number.
    """

    def __init__(self, db: Any, clock: Callable = _utc_now) -> None:
        self._repositories = db["repositories"]
        self._versions = db["artifact_versions"]
        self._clock = clock
        try:
            self._repositories.create_index([("project_id", ASCENDING)], unique=True)
            self._versions.create_index(
                [("repository_id", ASCENDING), ("path", ASCENDING), ("version", ASCENDING)],
                unique=True,
            )
        except PyMongoError as exc:
            raise StoreFailure(f"Could not prepare artifact collections: {exc}") from exc

    @classmethod
    def from_settings(cls, settings: Settings) -> ArtifactStore:
        try:
            client: MongoClient = MongoClient(settings.mongo_url, serverSelectionTimeoutMS=500)
            client.server_info()
        except PyMongoError as exc:
            if settings.require_mongo:
                raise StoreFailure("Mongo artifact store required but not available") from exc
            LOG.warning("mongo_unavailable_using_memory_store", extra={"mongo_url": settings.mongo_url, "err": str(exc)})
            return InMemoryArtifactStore()
        return cls(client[settings.mongo_db])

    # ------------------------------------------------------------------
    # Repository records
    # ------------------------------------------------------------------
    def _find_repository(self, project_id: str) -> Optional[Repository]:
        try:
            doc = self._repositories.find_one({"project_id": project_id})
        except PyMongoError as exc:
            raise StoreFailure(f"Repository lookup failed: {exc}") from exc
        if not doc:
            return None
        return Repository(
            repository_id=str(doc["repository_id"]),
            project_id=str(doc["project_id"]),
            created_at=_ensure_utc(doc["created_at"]),
        )

    def ensure_repository(self, project_id: str) -> Repository:
        existing = self._find_repository(project_id)
        if existing is not None:
            return existing
        doc = {
            "repository_id": uuid.uuid4().hex,
            "project_id": project_id,
            "created_at": self._clock(),
        }
        try:
            self._repositories.insert_one(doc)
        except DuplicateKeyError:
            # Another writer created it first; reuse theirs.
            raced = self._find_repository(project_id)
            if raced is None:
                raise StoreFailure(f"Repository for {project_id} vanished after duplicate insert")
            return raced
        except PyMongoError as exc:
            raise StoreFailure(f"Repository insert failed: {exc}") from exc
        LOG.info("repository_created", extra={"project_id": project_id, "repository_id": doc["repository_id"]})
        return Repository(repository_id=doc["repository_id"], project_id=project_id, created_at=_ensure_utc(doc["created_at"]))

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------
    @staticmethod
    def _to_version(doc: Dict[str, Any]) -> ArtifactVersion:
        return ArtifactVersion(
            version=int(doc["version"]),
            repository_id=str(doc["repository_id"]),
            project_id=str(doc["project_id"]),
            path=str(doc["path"]),
            content=str(doc.get("content") or ""),
            created_at=_ensure_utc(doc["created_at"]),
            prompt=str(doc.get("prompt") or ""),
            decision_message=str(doc.get("decision_message") or ""),
        )

    def _query(self, query: Dict[str, Any], sort: List, limit: int = 0) -> List[Dict[str, Any]]:
        try:
            cursor = self._versions.find(query).sort(sort)
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)
        except PyMongoError as exc:
            raise StoreFailure(f"Artifact version query failed: {exc}") from exc

    def latest_content(self, project_id: str, path: str) -> Optional[str]:
        repo = self._find_repository(project_id)
        if repo is None:
            return None
        docs = self._query(
            {"repository_id": repo.repository_id, "path": path},
            [("created_at", DESCENDING), ("version", DESCENDING)],
            limit=1,
        )
        if not docs:
            return None
        return str(docs[0].get("content") or "")

    def record_version(self, project_id: str, path: str, content: str, prompt: str, decision_message: str) -> str:
        repo = self.ensure_repository(project_id)
        for _ in range(_MAX_APPEND_ATTEMPTS):
            last = self._query(
                {"repository_id": repo.repository_id, "path": path},
                [("version", DESCENDING)],
                limit=1,
            )
            version = int(last[0]["version"]) + 1 if last else 1
            doc = {
                "repository_id": repo.repository_id,
                "project_id": project_id,
                "path": path,
                "version": version,
                "content": content,
                "prompt": prompt,
                "decision_message": decision_message,
                "created_at": self._clock(),
            }
            try:
                self._versions.insert_one(doc)
            except DuplicateKeyError:
                LOG.info("artifact_version_conflict_retrying", extra={"project_id": project_id, "path": path, "version": version})
                continue
            except PyMongoError as exc:
                raise StoreFailure(f"Artifact version insert failed: {exc}") from exc
            return f"{repo.repository_id}:{path}:{version}"
        raise StoreFailure(f"Could not allocate a version for {path} after {_MAX_APPEND_ATTEMPTS} attempts")

    def list_latest_files(self, project_id: str) -> List[CodeFile]:
        repo = self._find_repository(project_id)
        if repo is None:
            return []
        docs = self._query(
            {"repository_id": repo.repository_id},
            [("path", ASCENDING), ("created_at", DESCENDING), ("version", DESCENDING)],
        )
        files: List[CodeFile] = []
        seen = set()
        for doc in docs:
            path = str(doc["path"])
            if path in seen:
                continue
            seen.add(path)
            files.append(CodeFile(path=path, code=str(doc.get("content") or "")))
        return files

    def list_versions(self, project_id: str, path: str) -> List[ArtifactVersion]:
        repo = self._find_repository(project_id)
        if repo is None:
            return []
        docs = self._query({"repository_id": repo.repository_id, "path": path}, [("version", ASCENDING)])
        return [self._to_version(d) for d in docs]
