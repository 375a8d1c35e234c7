from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from ...config import Settings
from ...domain.models import ArtifactVersionInfo, CodeFile
from ...infrastructure.artifact_store import ArtifactStore, isoformat_utc
from ..dependencies import get_settings, get_store


router = APIRouter(prefix="/projects", tags=["files"])


@router.get("/{project_id}/files", response_model=List[CodeFile])
def list_files(project_id: str, store: ArtifactStore = Depends(get_store)) -> List[CodeFile]:
    """Latest content of every file path generated for the project."""
    return store.list_latest_files(project_id)


@router.get("/{project_id}/files/versions", response_model=List[ArtifactVersionInfo])
def list_file_versions(
    project_id: str,
    path: str | None = Query(default=None),
    store: ArtifactStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> List[ArtifactVersionInfo]:
    target = (path or "").strip() or settings.default_file_path
    return [
        ArtifactVersionInfo(
            version=v.version,
            path=v.path,
            created_at=isoformat_utc(v.created_at),
            prompt=v.prompt,
            decision_message=v.decision_message,
        )
        for v in store.list_versions(project_id, target)
    ]
