"""Site lookup and rescan endpoints."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...domain.models.check_result import RiskScore
from ...domain.models.site import RiskLevel, SignalDraft
from ...domain.services.site_risk_service import SiteRiskService
from ...infrastructure.dependencies import get_site_risk_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sites", tags=["sites"])


class ScanRequest(BaseModel):
    """Findings of an external page scan."""

    signals: List[SignalDraft] = Field(default_factory=list, description="System signals found by the scanner")


class ScoreResponse(BaseModel):
    """Score and level of a site."""

    site_id: str
    score: int
    level: RiskLevel


@router.get("/{domain}")
async def get_site(
    domain: str,
    service: SiteRiskService = Depends(get_site_risk_service),
) -> Dict[str, Any]:
    """Look up a domain, creating it on first sight, with its signals and recent reports."""
    view = await service.lookup_site(domain)
    return view.to_dict()


@router.post("/{domain}/scan")
async def scan_site(
    domain: str,
    request: ScanRequest,
    service: SiteRiskService = Depends(get_site_risk_service),
) -> Dict[str, Any]:
    """Replace a domain's system signals with fresh scan findings."""
    view = await service.rescan_site(domain, request.signals)
    return view.to_dict()


@router.get("/id/{site_id}/score", response_model=ScoreResponse)
async def get_score(
    site_id: str,
    service: SiteRiskService = Depends(get_site_risk_service),
) -> ScoreResponse:
    """Score computed from the site's current signals."""
    risk: RiskScore = await service.current_score(site_id)
    return ScoreResponse(site_id=site_id, score=risk.score, level=risk.level)
