"""PostgREST (Supabase) implementation of the signal and claim store ports."""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, Field

from ...domain.errors import DependencyError, DuplicateRecordError, NotFoundError
from ...domain.models.claim import Claim, ClaimDraft, ClaimStatus, Product, ProductDraft
from ...domain.models.site import ReportDraft, ReportStatus, RiskSignal, SignalDraft, Site, UserReport
from ...domain.models.verification import (
    AssessmentResult,
    ClaimAssessment,
    MetricDraft,
    VerificationMetric,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# PostgreSQL unique_violation, reported by PostgREST as a 409. Other 409s
# (foreign key violations, exclusion constraints) are store failures.
_CONFLICT_STATUS = 409
_UNIQUE_VIOLATION = "23505"


def _error_code(response: httpx.Response) -> Optional[str]:
    """PostgreSQL error code from a PostgREST error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("code") if isinstance(body, dict) else None


class PostgRESTConfig(BaseModel):
    """Configuration for the PostgREST adapter."""

    base_url: str = Field(..., description="REST endpoint, e.g. https://<project>.supabase.co/rest/v1")
    api_key: str = Field(default="", description="Service role key sent as apikey and bearer token")
    timeout: float = Field(default=10.0, description="Request timeout in seconds")


def _jsonable(values: Dict[str, Any]) -> Dict[str, Any]:
    encoded = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        encoded[key] = value
    return encoded


class PostgRESTStore:
    """Signal store and claim store over the PostgREST HTTP API.

    Uniqueness is enforced by the database (see ``sql/schema.sql``); a 409
    answer becomes ``DuplicateRecordError``. The system-signal swap runs as a
    single database function call so it is atomic for readers.
    """

    def __init__(
        self,
        config: Optional[PostgRESTConfig] = None,
        provider_name: str = "postgrest",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the adapter.

        Args:
            config: Connection settings
            provider_name: Name reported by the store factory
            transport: Optional httpx transport, used by tests
        """
        self._config = config or PostgRESTConfig(base_url="http://localhost:3000")
        self._name = provider_name
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Create the HTTP client and verify the API answers."""
        try:
            if self._client is None:
                headers = {"Content-Type": "application/json"}
                if self._config.api_key:
                    headers["apikey"] = self._config.api_key
                    headers["Authorization"] = f"Bearer {self._config.api_key}"
                self._client = httpx.AsyncClient(
                    base_url=self._config.base_url,
                    timeout=self._config.timeout,
                    headers=headers,
                    transport=self._transport,
                )

            response = await self._client.get("/sites", params={"select": "id", "limit": "1"})
            response.raise_for_status()
            self._initialized = True
        except Exception as e:
            self._initialized = False
            if self._client:
                await self._client.aclose()
                self._client = None
            raise ConnectionError(f"Failed to initialize PostgREST store: {e}")

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._initialized = False

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def is_available(self) -> bool:
        return self._initialized

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        entity: str = "record",
    ) -> List[Dict[str, Any]]:
        if not self._client:
            raise DependencyError("PostgREST store not initialized")

        headers = {"Prefer": "return=representation"} if method in ("POST", "PATCH") else None
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ PostgREST {method} {path} failed: {e}")
            raise DependencyError(f"Store request {method} {path} failed: {e}") from e

        if response.status_code == _CONFLICT_STATUS and _error_code(response) == _UNIQUE_VIOLATION:
            raise DuplicateRecordError(entity, response.text)
        if response.status_code >= 400:
            logger.error(f"❌ PostgREST {method} {path} -> {response.status_code}: {response.text[:200]}")
            raise DependencyError(f"Store request {method} {path} returned {response.status_code}")

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    async def _select_one(self, table: str, model: Type[ModelT], **filters: str) -> Optional[ModelT]:
        params = {column: f"eq.{value}" for column, value in filters.items()}
        params.update(select="*", limit="1")
        rows = await self._request("GET", f"/{table}", params=params)
        return model.model_validate(rows[0]) if rows else None

    async def _insert(self, table: str, model: Type[ModelT], payload: Any, entity: str) -> List[ModelT]:
        rows = await self._request("POST", f"/{table}", json=payload, entity=entity)
        return [model.model_validate(row) for row in rows]

    async def _patch_one(
        self, table: str, model: Type[ModelT], row_id: str, changes: Dict[str, Any], entity: str
    ) -> ModelT:
        rows = await self._request(
            "PATCH", f"/{table}", params={"id": f"eq.{row_id}"}, json=_jsonable(changes), entity=entity
        )
        if not rows:
            raise NotFoundError(entity, row_id)
        return model.model_validate(rows[0])

    # Sites

    async def get_site(self, site_id: str) -> Optional[Site]:
        return await self._select_one("sites", Site, id=site_id)

    async def find_site_by_domain(self, normalized_domain: str) -> Optional[Site]:
        return await self._select_one("sites", Site, normalized_domain=normalized_domain)

    async def create_site(self, domain: str, normalized_domain: str) -> Site:
        payload = {
            "domain": domain,
            "normalized_domain": normalized_domain,
            "risk_score": 0,
            "risk_level": "low",
            "total_signals": 0,
            "total_reports": 0,
        }
        return (await self._insert("sites", Site, payload, entity="site"))[0]

    async def update_site(self, site_id: str, changes: Dict[str, Any]) -> Site:
        return await self._patch_one("sites", Site, site_id, changes, entity="site")

    # Signals

    async def fetch_signals(self, site_id: str) -> List[RiskSignal]:
        rows = await self._request(
            "GET",
            "/risk_signals",
            params={"site_id": f"eq.{site_id}", "select": "*", "order": "created_at.desc"},
        )
        return [RiskSignal.model_validate(row) for row in rows]

    async def append_signals(self, site_id: str, signals: Sequence[SignalDraft]) -> List[RiskSignal]:
        if not signals:
            return []
        payload = [{**s.model_dump(mode="json"), "site_id": site_id} for s in signals]
        return await self._insert("risk_signals", RiskSignal, payload, entity="risk_signal")

    async def replace_system_signals(
        self, site_id: str, signals: Sequence[SignalDraft]
    ) -> List[RiskSignal]:
        rows = await self._request(
            "POST",
            "/rpc/replace_system_signals",
            json={
                "p_site_id": site_id,
                "p_signals": [s.model_dump(mode="json") for s in signals],
            },
            entity="risk_signal",
        )
        return [RiskSignal.model_validate(row) for row in rows]

    # Reports

    async def create_report(self, site_id: str, report: ReportDraft) -> UserReport:
        payload = {**report.model_dump(mode="json"), "site_id": site_id, "status": ReportStatus.NEW.value}
        return (await self._insert("user_reports", UserReport, payload, entity="report"))[0]

    async def get_report(self, report_id: str) -> Optional[UserReport]:
        return await self._select_one("user_reports", UserReport, id=report_id)

    async def set_report_status(self, report_id: str, status: ReportStatus) -> UserReport:
        return await self._patch_one("user_reports", UserReport, report_id, {"status": status}, entity="report")

    async def list_reports(
        self,
        site_id: Optional[str] = None,
        statuses: Optional[Sequence[ReportStatus]] = None,
        limit: Optional[int] = None,
    ) -> List[UserReport]:
        params = {"select": "*", "order": "created_at.desc"}
        if site_id is not None:
            params["site_id"] = f"eq.{site_id}"
        if statuses is not None:
            params["status"] = f"in.({','.join(s.value for s in statuses)})"
        if limit is not None:
            params["limit"] = str(limit)
        rows = await self._request("GET", "/user_reports", params=params)
        return [UserReport.model_validate(row) for row in rows]

    # Products

    async def find_product_by_ios_id(self, ios_app_id: str) -> Optional[Product]:
        return await self._select_one("products", Product, ios_app_id=ios_app_id)

    async def find_product_by_android_package(self, android_package: str) -> Optional[Product]:
        return await self._select_one("products", Product, android_package=android_package)

    async def find_product_by_url(self, primary_url: str) -> Optional[Product]:
        return await self._select_one("products", Product, primary_url=primary_url)

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self._select_one("products", Product, id=product_id)

    async def create_product(self, product: ProductDraft) -> Product:
        return (await self._insert("products", Product, product.model_dump(mode="json"), entity="product"))[0]

    # Metrics

    async def fetch_metrics(self, product_id: str) -> List[VerificationMetric]:
        rows = await self._request(
            "GET",
            "/verification_metrics",
            params={"product_id": f"eq.{product_id}", "select": "*", "order": "captured_at.asc"},
        )
        return [VerificationMetric.model_validate(row) for row in rows]

    async def append_metrics(
        self, product_id: str, metrics: Sequence[MetricDraft]
    ) -> List[VerificationMetric]:
        if not metrics:
            return []
        payload = [{**m.model_dump(mode="json"), "product_id": product_id} for m in metrics]
        return await self._insert("verification_metrics", VerificationMetric, payload, entity="metric")

    # Claims

    async def create_claim(self, product_id: str, claim: ClaimDraft) -> Claim:
        payload = {**claim.model_dump(mode="json"), "product_id": product_id, "status": ClaimStatus.NEW.value}
        return (await self._insert("claims", Claim, payload, entity="claim"))[0]

    async def set_claim_status(self, claim_id: str, status: ClaimStatus) -> Claim:
        return await self._patch_one("claims", Claim, claim_id, {"status": status}, entity="claim")

    async def list_claims(self, product_id: str) -> List[Claim]:
        rows = await self._request(
            "GET",
            "/claims",
            params={"product_id": f"eq.{product_id}", "select": "*", "order": "created_at.asc"},
        )
        return [Claim.model_validate(row) for row in rows]

    async def create_assessment(self, claim_id: str, result: AssessmentResult) -> ClaimAssessment:
        payload = {
            **result.model_dump(mode="json"),
            "claim_id": claim_id,
            "assessment_type": "plausibility",
        }
        return (await self._insert("claim_assessments", ClaimAssessment, payload, entity="assessment"))[0]

    async def list_assessments(self, claim_id: str) -> List[ClaimAssessment]:
        rows = await self._request(
            "GET",
            "/claim_assessments",
            params={"claim_id": f"eq.{claim_id}", "select": "*", "order": "created_at.asc"},
        )
        return [ClaimAssessment.model_validate(row) for row in rows]
