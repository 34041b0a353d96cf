"""In-memory implementation of the signal and claim store ports.

Used for local runs and tests. Uniqueness constraints mirror the database
schema: one site per normalized domain and one product per iOS id, Android
package or primary URL. Every operation yields to the event loop once before
taking the lock, so concurrent callers interleave the way they would against a
remote store.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from ...domain.errors import DuplicateRecordError, NotFoundError
from ...domain.models.claim import Claim, ClaimDraft, ClaimStatus, Product, ProductDraft
from ...domain.models.site import (
    ReportDraft,
    ReportStatus,
    RiskSignal,
    SignalDraft,
    SignalSource,
    Site,
    UserReport,
    utcnow,
)
from ...domain.models.verification import (
    AssessmentResult,
    ClaimAssessment,
    MetricDraft,
    VerificationMetric,
)

logger = logging.getLogger(__name__)

_PRODUCT_KEYS = ("ios_app_id", "android_package", "primary_url")


def _new_id() -> str:
    return str(uuid4())


class InMemoryStore:
    """Signal store and claim store backed by dictionaries."""

    def __init__(self, latency: float = 0.0, provider_name: str = "memory"):
        """Initialize the store.

        Args:
            latency: Seconds to sleep before every operation
            provider_name: Name reported by the store factory
        """
        self._latency = latency
        self._name = provider_name
        self._lock = asyncio.Lock()
        self._initialized = False

        self.sites: Dict[str, Site] = {}
        self.signals: Dict[str, List[RiskSignal]] = {}
        self.reports: Dict[str, UserReport] = {}
        self.products: Dict[str, Product] = {}
        self.metrics: Dict[str, List[VerificationMetric]] = {}
        self.claims: Dict[str, Claim] = {}
        self.assessments: Dict[str, List[ClaimAssessment]] = {}

    async def initialize(self) -> None:
        """Mark the store ready."""
        self._initialized = True

    async def shutdown(self) -> None:
        """Mark the store stopped. Data is kept."""
        self._initialized = False

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def is_available(self) -> bool:
        return self._initialized

    async def _yield(self) -> None:
        await asyncio.sleep(self._latency)

    # Sites

    async def get_site(self, site_id: str) -> Optional[Site]:
        await self._yield()
        return self.sites.get(site_id)

    async def find_site_by_domain(self, normalized_domain: str) -> Optional[Site]:
        await self._yield()
        return next(
            (s for s in self.sites.values() if s.normalized_domain == normalized_domain), None
        )

    async def create_site(self, domain: str, normalized_domain: str) -> Site:
        await self._yield()
        async with self._lock:
            if any(s.normalized_domain == normalized_domain for s in self.sites.values()):
                raise DuplicateRecordError("site", normalized_domain)
            site = Site(id=_new_id(), domain=domain, normalized_domain=normalized_domain)
            self.sites[site.id] = site
            self.signals[site.id] = []
            return site

    async def update_site(self, site_id: str, changes: Dict[str, Any]) -> Site:
        await self._yield()
        async with self._lock:
            site = self.sites.get(site_id)
            if site is None:
                raise NotFoundError("site", site_id)
            updated = site.model_copy(update=changes)
            self.sites[site_id] = updated
            return updated

    # Signals

    async def fetch_signals(self, site_id: str) -> List[RiskSignal]:
        await self._yield()
        async with self._lock:
            return sorted(self.signals.get(site_id, []), key=lambda s: s.created_at, reverse=True)

    def _materialize(self, site_id: str, drafts: Sequence[SignalDraft]) -> List[RiskSignal]:
        return [
            RiskSignal(id=_new_id(), site_id=site_id, **draft.model_dump())
            for draft in drafts
        ]

    async def append_signals(self, site_id: str, signals: Sequence[SignalDraft]) -> List[RiskSignal]:
        await self._yield()
        async with self._lock:
            if site_id not in self.sites:
                raise NotFoundError("site", site_id)
            stored = self._materialize(site_id, signals)
            self.signals[site_id].extend(stored)
            return stored

    async def replace_system_signals(
        self, site_id: str, signals: Sequence[SignalDraft]
    ) -> List[RiskSignal]:
        await self._yield()
        async with self._lock:
            if site_id not in self.sites:
                raise NotFoundError("site", site_id)
            kept = [s for s in self.signals[site_id] if s.source != SignalSource.SYSTEM]
            stored = self._materialize(site_id, signals)
            self.signals[site_id] = kept + stored
            return stored

    # Reports

    async def create_report(self, site_id: str, report: ReportDraft) -> UserReport:
        await self._yield()
        async with self._lock:
            if site_id not in self.sites:
                raise NotFoundError("site", site_id)
            stored = UserReport(id=_new_id(), site_id=site_id, **report.model_dump())
            self.reports[stored.id] = stored
            return stored

    async def get_report(self, report_id: str) -> Optional[UserReport]:
        await self._yield()
        return self.reports.get(report_id)

    async def set_report_status(self, report_id: str, status: ReportStatus) -> UserReport:
        await self._yield()
        async with self._lock:
            report = self.reports.get(report_id)
            if report is None:
                raise NotFoundError("report", report_id)
            updated = report.model_copy(update={"status": status})
            self.reports[report_id] = updated
            return updated

    async def list_reports(
        self,
        site_id: Optional[str] = None,
        statuses: Optional[Sequence[ReportStatus]] = None,
        limit: Optional[int] = None,
    ) -> List[UserReport]:
        await self._yield()
        reports = [
            r for r in self.reports.values()
            if (site_id is None or r.site_id == site_id)
            and (statuses is None or r.status in statuses)
        ]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports[:limit] if limit is not None else reports

    # Products

    async def _find_product(self, field: str, value: str) -> Optional[Product]:
        await self._yield()
        return next((p for p in self.products.values() if getattr(p, field) == value), None)

    async def find_product_by_ios_id(self, ios_app_id: str) -> Optional[Product]:
        return await self._find_product("ios_app_id", ios_app_id)

    async def find_product_by_android_package(self, android_package: str) -> Optional[Product]:
        return await self._find_product("android_package", android_package)

    async def find_product_by_url(self, primary_url: str) -> Optional[Product]:
        return await self._find_product("primary_url", primary_url)

    async def get_product(self, product_id: str) -> Optional[Product]:
        await self._yield()
        return self.products.get(product_id)

    async def create_product(self, product: ProductDraft) -> Product:
        await self._yield()
        async with self._lock:
            for key in _PRODUCT_KEYS:
                value = getattr(product, key)
                if value and any(getattr(p, key) == value for p in self.products.values()):
                    raise DuplicateRecordError("product", f"{key}={value}")
            stored = Product(id=_new_id(), **product.model_dump())
            self.products[stored.id] = stored
            self.metrics[stored.id] = []
            return stored

    # Metrics

    async def fetch_metrics(self, product_id: str) -> List[VerificationMetric]:
        await self._yield()
        async with self._lock:
            return list(self.metrics.get(product_id, []))

    async def append_metrics(
        self, product_id: str, metrics: Sequence[MetricDraft]
    ) -> List[VerificationMetric]:
        await self._yield()
        async with self._lock:
            if product_id not in self.products:
                raise NotFoundError("product", product_id)
            stored = [
                VerificationMetric(id=_new_id(), product_id=product_id, **m.model_dump())
                for m in metrics
            ]
            self.metrics[product_id].extend(stored)
            return stored

    # Claims

    async def create_claim(self, product_id: str, claim: ClaimDraft) -> Claim:
        await self._yield()
        async with self._lock:
            if product_id not in self.products:
                raise NotFoundError("product", product_id)
            stored = Claim(id=_new_id(), product_id=product_id, **claim.model_dump())
            self.claims[stored.id] = stored
            self.assessments[stored.id] = []
            return stored

    async def set_claim_status(self, claim_id: str, status: ClaimStatus) -> Claim:
        await self._yield()
        async with self._lock:
            claim = self.claims.get(claim_id)
            if claim is None:
                raise NotFoundError("claim", claim_id)
            updated = claim.model_copy(update={"status": status})
            self.claims[claim_id] = updated
            return updated

    async def list_claims(self, product_id: str) -> List[Claim]:
        await self._yield()
        claims = [c for c in self.claims.values() if c.product_id == product_id]
        return sorted(claims, key=lambda c: c.created_at)

    async def create_assessment(self, claim_id: str, result: AssessmentResult) -> ClaimAssessment:
        await self._yield()
        async with self._lock:
            if claim_id not in self.claims:
                raise NotFoundError("claim", claim_id)
            stored = ClaimAssessment(id=_new_id(), claim_id=claim_id, **result.model_dump())
            self.assessments[claim_id].append(stored)
            return stored

    async def list_assessments(self, claim_id: str) -> List[ClaimAssessment]:
        await self._yield()
        return list(self.assessments.get(claim_id, []))

    def clear(self) -> None:
        """Drop all data."""
        for table in (
            self.sites, self.signals, self.reports, self.products,
            self.metrics, self.claims, self.assessments,
        ):
            table.clear()
        logger.debug("🧹 In-memory store cleared")
