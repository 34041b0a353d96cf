"""Service coordinating a revenue claim check end to end."""

import logging
import math
from typing import Awaitable, Callable, List, Optional, Sequence

from ..errors import DependencyError, DuplicateRecordError, NotFoundError, ValidationError
from ..models.check_result import ClaimCheckResult, VerificationSummary
from ..models.claim import Claim, ClaimCheckRequest, ClaimDraft, ClaimStatus, Product, ProductDraft
from ..models.verification import ClaimAssessment, MetricDraft, VerificationMetric
from ..ports.claim_store import ClaimStore
from .claim_assessor import (
    AssessmentSettings,
    DOWNLOADS_METRIC,
    PRICE_METRIC,
    assess_claim,
    find_verified_revenue,
    validate_claimed_value,
)

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ClaimCheckService:
    """Runs a claim check against a claim store.

    The steps run strictly in order:
    validate -> resolve product -> fetch metrics -> create claim (new)
    -> assess -> persist assessment -> mark claim analyzed.

    Metrics are fetched before the claim row is written, so a metric store
    failure leaves no trace. A failure after the claim row exists leaves the
    claim in ``new`` and is reported as ``DependencyError`` with its id.
    """

    def __init__(self, store: ClaimStore, settings: Optional[AssessmentSettings] = None):
        """Initialize the service.

        Args:
            store: Claim store port implementation
            settings: Store-proxy tunables for the assessor
        """
        self._store = store
        self._settings = settings or AssessmentSettings()

    async def check_claim(self, request: ClaimCheckRequest) -> ClaimCheckResult:
        """Check a claimed revenue figure and record the outcome.

        Args:
            request: Product identity and claimed figure

        Returns:
            The product, the new claim, the new assessment and the metrics used

        Raises:
            ValidationError: Bad claimed value or no identifying attribute
            DependencyError: The claim store failed
        """
        claimed_value = validate_claimed_value(request.claimed_value)
        draft = self._product_draft(request)
        logger.info(f"🔍 Checking {request.claim_type.value} claim of {claimed_value} {request.currency} for {draft.name}")

        product = await self.resolve_product(draft)

        metrics = await self._step(
            "fetch metrics", lambda: self._store.fetch_metrics(product.id)
        )
        logger.info(f"📊 Loaded {len(metrics)} metrics for product {product.id}")

        claim = await self._step(
            "create claim",
            lambda: self._store.create_claim(
                product.id,
                ClaimDraft(
                    claim_type=request.claim_type,
                    claimed_value=claimed_value,
                    currency=request.currency,
                    timeframe_text=_clean(request.timeframe_text),
                    source_url=_clean(request.source_url),
                ),
            ),
        )

        result = assess_claim(claimed_value, metrics, self._settings)

        assessment: ClaimAssessment = await self._step(
            "store assessment",
            lambda: self._store.create_assessment(claim.id, result),
            claim_id=claim.id,
        )
        claim = await self._step(
            "mark claim analyzed",
            lambda: self._store.set_claim_status(claim.id, ClaimStatus.ANALYZED),
            claim_id=claim.id,
        )

        logger.info(f"✅ Claim {claim.id}: {assessment.verdict.value} (confidence {assessment.confidence:.2f})")
        return ClaimCheckResult(
            product=product,
            claim=claim,
            assessment=assessment,
            metrics=list(metrics),
            verification=summarize_metrics(metrics),
        )

    async def record_metrics(
        self, product_id: str, metrics: Sequence[MetricDraft]
    ) -> List[VerificationMetric]:
        """Store new metric readings collected by an enrichment job.

        Readings accumulate; later checks use the most recent one per
        ``(source, metric_name)``.

        Args:
            product_id: Product the readings belong to
            metrics: Readings from app stores or payment data

        Returns:
            The stored readings

        Raises:
            ValidationError: A reading is not a finite number
            NotFoundError: The product does not exist
            DependencyError: The claim store failed
        """
        for metric in metrics:
            if not math.isfinite(metric.metric_value):
                raise ValidationError(
                    f"{metric.source}/{metric.metric_name} must be a finite number", field="metric_value"
                )

        product = await self._step("get product", lambda: self._store.get_product(product_id))
        if product is None:
            raise NotFoundError("product", product_id)

        stored = await self._step(
            "append metrics", lambda: self._store.append_metrics(product.id, list(metrics))
        )
        logger.info(f"📥 Recorded {len(stored)} metrics for product {product.id}")
        return stored

    async def resolve_product(self, draft: ProductDraft) -> Product:
        """Find the product matching the draft's identifiers, or create it.

        Lookup order is iOS id, Android package, then primary URL. When the
        create loses a race against a concurrent request, the store rejects it
        as a duplicate and the winner is looked up instead.
        """
        product = await self._find_product(draft)
        if product is not None:
            return product

        try:
            product = await self._step("create product", lambda: self._store.create_product(draft))
            logger.info(f"🆕 Created product {product.id} ({product.name})")
            return product
        except DuplicateRecordError as e:
            logger.info(f"🔁 Product created concurrently ({e}), re-fetching")

        product = await self._find_product(draft)
        if product is None:
            raise DependencyError(f"Product {draft.name} reported as duplicate but cannot be found")
        return product

    async def _find_product(self, draft: ProductDraft) -> Optional[Product]:
        lookups: List[Callable[[], Awaitable[Optional[Product]]]] = []
        if draft.ios_app_id:
            lookups.append(lambda: self._store.find_product_by_ios_id(draft.ios_app_id))
        if draft.android_package:
            lookups.append(lambda: self._store.find_product_by_android_package(draft.android_package))
        if draft.primary_url:
            lookups.append(lambda: self._store.find_product_by_url(draft.primary_url))

        for lookup in lookups:
            product = await self._step("find product", lookup)
            if product is not None:
                return product
        return None

    @staticmethod
    def _product_draft(request: ClaimCheckRequest) -> ProductDraft:
        app_name = _clean(request.app_name)
        ios_app_id = _clean(request.ios_app_id)
        android_package = _clean(request.android_package)
        primary_url = _clean(request.primary_url)

        name = app_name or ios_app_id or android_package or primary_url
        if name is None:
            raise ValidationError(
                "Provide an app name, iOS app id, Android package or primary URL",
                field="product",
            )
        return ProductDraft(
            name=name,
            primary_url=primary_url,
            ios_app_id=ios_app_id,
            android_package=android_package,
        )

    async def _step(self, name: str, call: Callable[[], Awaitable], claim_id: Optional[str] = None):
        """Run one store call, turning unexpected failures into DependencyError."""
        try:
            return await call()
        except (DuplicateRecordError, NotFoundError):
            raise
        except DependencyError as e:
            if claim_id is None or e.claim_id is not None:
                raise
            raise DependencyError(str(e), claim_id=claim_id) from e
        except Exception as e:
            logger.error(f"❌ Claim check step '{name}' failed: {e}")
            raise DependencyError(f"Claim store failed during {name}: {e}", claim_id=claim_id) from e


def summarize_metrics(metrics: List[VerificationMetric]) -> VerificationSummary:
    """Describe which kinds of evidence the metric set contains."""
    verified = find_verified_revenue(metrics)
    has_verified = verified is not None and verified > 0
    has_store = any(
        not m.is_verified or m.metric_name in (DOWNLOADS_METRIC, PRICE_METRIC)
        for m in metrics
    )
    return VerificationSummary(
        has_verified_revenue=has_verified,
        has_store_metrics=has_store,
        verified_revenue=verified if has_verified else None,
    )
