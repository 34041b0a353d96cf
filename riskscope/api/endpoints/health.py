"""Health check endpoints."""

from typing import Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    stores: Dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report service health and which stores are active."""
    container = request.app.state.container
    stores = container.factory.available_stores
    return HealthResponse(
        status="healthy" if any(stores.values()) else "degraded",
        version=request.app.version,
        stores=stores,
    )
