"""Revenue claim check endpoint."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ...domain.models.claim import ClaimCheckRequest
from ...domain.services.claim_check_service import ClaimCheckService
from ...infrastructure.dependencies import get_claim_check_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/claims", tags=["claims"])


@router.post("/check")
async def check_claim(
    request: ClaimCheckRequest,
    service: ClaimCheckService = Depends(get_claim_check_service),
) -> Dict[str, Any]:
    """Check a claimed monthly revenue figure for an app.

    Returns the resolved product, the recorded claim, its assessment and the
    metrics the assessment was based on.
    """
    logger.info(f"Claim check request: {request.model_dump(exclude_none=True)}")
    result = await service.check_claim(request)
    return result.to_dict()
