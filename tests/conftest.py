"""Test configuration and common fixtures."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import pytest
import pytest_asyncio

from riskscope.domain.models.site import SignalDraft, SignalSource
from riskscope.domain.models.verification import VerificationMetric
from riskscope.domain.services.claim_check_service import ClaimCheckService
from riskscope.domain.services.site_risk_service import SiteRiskService
from riskscope.infrastructure.memory.memory_store import InMemoryStore


def make_signal(severity: int, source: SignalSource = SignalSource.SYSTEM, type: str = "test_signal") -> SignalDraft:
    """Build a signal draft with the given severity."""
    return SignalDraft(type=type, dimension="identity", severity=severity, source=source)


def make_metric(
    source: str,
    metric_name: str,
    value: float,
    is_verified: bool = False,
    captured_at: Optional[datetime] = None,
    product_id: str = "product-1",
) -> VerificationMetric:
    """Build a stored metric reading."""
    return VerificationMetric(
        id=str(uuid4()),
        product_id=product_id,
        source=source,
        metric_name=metric_name,
        metric_value=value,
        is_verified=is_verified,
        captured_at=captured_at or datetime.now(timezone.utc),
    )


@pytest_asyncio.fixture
async def memory_store() -> InMemoryStore:
    """Provide an initialized in-memory store."""
    store = InMemoryStore()
    await store.initialize()
    yield store
    await store.shutdown()


@pytest.fixture
def site_service(memory_store: InMemoryStore) -> SiteRiskService:
    """Provide a site risk service over the in-memory store."""
    return SiteRiskService(memory_store)


@pytest.fixture
def claim_service(memory_store: InMemoryStore) -> ClaimCheckService:
    """Provide a claim check service over the in-memory store."""
    return ClaimCheckService(memory_store)
