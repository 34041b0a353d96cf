"""User report and report review endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...domain.models.site import ReportDraft, ReportStatus, UserReport
from ...domain.services.site_risk_service import SiteRiskService
from ...infrastructure.dependencies import get_site_risk_service

router = APIRouter(tags=["reports"])


class ReportRequest(ReportDraft):
    """A report filed against a site."""

    site_id: str = Field(..., description="Reported site")


class ReviewRequest(BaseModel):
    """New review status for a report."""

    status: ReportStatus


@router.post("/reports", response_model=UserReport, status_code=201)
async def submit_report(
    request: ReportRequest,
    service: SiteRiskService = Depends(get_site_risk_service),
) -> UserReport:
    """File a user report and rescore the site."""
    draft = ReportDraft(**request.model_dump(exclude={"site_id"}))
    return await service.submit_report(request.site_id, draft)


@router.get("/admin/reports", response_model=List[UserReport])
async def list_reports(
    service: SiteRiskService = Depends(get_site_risk_service),
) -> List[UserReport]:
    """Reports that are new or confirmed, newest first."""
    return await service.list_open_reports()


@router.patch("/admin/reports/{report_id}", response_model=UserReport)
async def review_report(
    report_id: str,
    request: ReviewRequest,
    service: SiteRiskService = Depends(get_site_risk_service),
) -> UserReport:
    """Move a report to a new review status."""
    return await service.review_report(report_id, request.status)
