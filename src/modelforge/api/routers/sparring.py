from __future__ import annotations

from fastapi import APIRouter, Depends

from ...domain.models import ErrorResponse, SparringRequest, SparringResponse
from ...services.sparring import SparringCoach
from ..dependencies import get_sparring_coach


router = APIRouter(tags=["sparring"])


@router.post(
    "/generate-sparring-response",
    response_model=SparringResponse,
    responses={502: {"model": ErrorResponse}},
)
def generate_sparring_response(
    req: SparringRequest,
    coach: SparringCoach = Depends(get_sparring_coach),
) -> SparringResponse:
    return SparringResponse(message=coach.reply(req.business_case, req.messages))
