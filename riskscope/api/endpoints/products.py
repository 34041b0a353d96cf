"""Product metric ingestion endpoint."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ...domain.models.verification import MetricDraft, VerificationMetric
from ...domain.services.claim_check_service import ClaimCheckService
from ...infrastructure.dependencies import get_claim_check_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


class MetricsRequest(BaseModel):
    """Metric readings collected by an enrichment job."""

    metrics: List[MetricDraft] = Field(..., description="App store or payment readings")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "metrics": [
                    {"source": "android_store", "metric_name": "downloads_lifetime", "metric_value": 10000},
                    {"source": "android_store", "metric_name": "price_usd", "metric_value": 4.99},
                    {
                        "source": "stripe_verified",
                        "metric_name": "revenue_30d_verified",
                        "metric_value": 1250,
                        "is_verified": True,
                    },
                ]
            }
        }
    )


@router.post("/{product_id}/metrics", response_model=List[VerificationMetric], status_code=201)
async def record_metrics(
    product_id: str,
    request: MetricsRequest,
    service: ClaimCheckService = Depends(get_claim_check_service),
) -> List[VerificationMetric]:
    """Append metric readings to a product."""
    logger.info(f"Metrics for product {product_id}: {len(request.metrics)} readings")
    return await service.record_metrics(product_id, request.metrics)
