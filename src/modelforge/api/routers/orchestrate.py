from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ...config import Settings
from ...domain.models import ErrorResponse, OrchestrateRequest, OrchestrateResponse
from ...services.orchestrator import Orchestrator
from ..dependencies import get_orchestrator, get_settings


LOG = logging.getLogger("modelforge.orchestrator")

router = APIRouter(tags=["orchestration"])


@router.post(
    "/orchestrate-response",
    response_model=OrchestrateResponse,
    responses={500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def orchestrate_response(
    req: OrchestrateRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> OrchestrateResponse:
    path = (req.current_file_path or "").strip() or settings.default_file_path
    LOG.info(
        "orchestrate_request",
        extra={
            "project_id": req.project_id,
            "path": path,
            "messages": len(req.messages),
            "business_case_length": len(req.business_case),
        },
    )
    outcome = orchestrator.run(req.business_case, req.messages, req.project_id, path)
    return outcome.to_response()
