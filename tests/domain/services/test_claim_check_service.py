"""Tests for the claim check service."""

import asyncio
import math
from unittest.mock import AsyncMock

import pytest

from conftest import make_metric
from riskscope.domain.errors import DependencyError, DuplicateRecordError, NotFoundError, ValidationError
from riskscope.domain.models.claim import ClaimCheckRequest, ClaimStatus, ProductDraft
from riskscope.domain.models.verification import MetricDraft, Verdict
from riskscope.domain.services.claim_assessor import AssessmentSettings
from riskscope.domain.services.claim_check_service import ClaimCheckService, summarize_metrics
from riskscope.infrastructure.memory.memory_store import InMemoryStore


def request(claimed_value=1000, **kwargs) -> ClaimCheckRequest:
    fields = {"app_name": "Habit Tracker Pro", "ios_app_id": "1234567890"}
    fields.update(kwargs)
    return ClaimCheckRequest(claimed_value=claimed_value, **fields)


async def seed_product(store: InMemoryStore, metrics=(), **kwargs):
    fields = {"name": "Habit Tracker Pro", "ios_app_id": "1234567890"}
    fields.update(kwargs)
    product = await store.create_product(ProductDraft(**fields))
    if metrics:
        await store.append_metrics(product.id, list(metrics))
    return product


class RacingStore(InMemoryStore):
    """Store where another request always creates the product first."""

    async def create_product(self, product: ProductDraft):
        await super().create_product(product)
        raise DuplicateRecordError("product", "ios_app_id")


class TestCheckClaim:
    """Happy paths."""

    @pytest.mark.asyncio
    async def test_new_product_without_metrics(self, claim_service, memory_store):
        result = await claim_service.check_claim(request(5000, timeframe_text=" last month "))

        assert result.product.name == "Habit Tracker Pro"
        assert result.product.ios_app_id == "1234567890"
        assert result.product.type == "mobile_app"
        assert result.claim.status == ClaimStatus.ANALYZED
        assert result.claim.claimed_value == 5000
        assert result.claim.timeframe_text == "last month"
        assert result.claim.product_id == result.product.id
        assert result.assessment.verdict == Verdict.NO_EVIDENCE
        assert result.assessment.max_plausible_estimate is None
        assert result.assessment.claim_id == result.claim.id
        assert result.metrics == []
        assert not result.verification.has_verified_revenue
        assert not result.verification.has_store_metrics

        assert memory_store.claims[result.claim.id].status == ClaimStatus.ANALYZED
        assert len(memory_store.assessments[result.claim.id]) == 1

    @pytest.mark.asyncio
    async def test_verified_revenue_is_used(self, claim_service, memory_store):
        await seed_product(
            memory_store,
            [MetricDraft(source="stripe_verified", metric_name="revenue_30d_verified", metric_value=1000, is_verified=True)],
        )

        result = await claim_service.check_claim(request(1300))

        assert result.assessment.verdict == Verdict.UNLIKELY
        assert result.assessment.confidence == pytest.approx(0.9)
        assert result.assessment.max_plausible_estimate == 1000
        assert result.verification.has_verified_revenue
        assert result.verification.verified_revenue == 1000
        assert len(result.metrics) == 1

    @pytest.mark.asyncio
    async def test_store_proxy_is_used(self, claim_service, memory_store):
        await seed_product(
            memory_store,
            [
                MetricDraft(source="android_store", metric_name="downloads_lifetime", metric_value=10000),
                MetricDraft(source="android_store", metric_name="price_usd", metric_value=5),
            ],
            ios_app_id=None,
            android_package="com.example.habits",
        )

        result = await claim_service.check_claim(
            request(300, ios_app_id=None, android_package="com.example.habits")
        )

        assert result.assessment.verdict == Verdict.PLAUSIBLE
        assert result.assessment.confidence == pytest.approx(0.7)
        assert result.verification.has_store_metrics
        assert not result.verification.has_verified_revenue

    @pytest.mark.asyncio
    async def test_settings_reach_the_assessor(self, memory_store):
        await seed_product(
            memory_store,
            [
                MetricDraft(source="ios_store", metric_name="downloads_lifetime", metric_value=10000),
                MetricDraft(source="ios_store", metric_name="price_usd", metric_value=5),
            ],
        )
        service = ClaimCheckService(memory_store, AssessmentSettings(conversion_rate=0.1, revenue_window_months=1))

        result = await service.check_claim(request(300))

        assert result.assessment.max_plausible_estimate == pytest.approx(5000)

    @pytest.mark.asyncio
    async def test_rerun_adds_new_claim_and_assessment(self, claim_service, memory_store):
        first = await claim_service.check_claim(request(1000))
        second = await claim_service.check_claim(request(1000))

        assert first.product.id == second.product.id
        assert first.claim.id != second.claim.id
        assert len(memory_store.products) == 1
        assert len(memory_store.claims) == 2
        assert sum(len(a) for a in memory_store.assessments.values()) == 2

    @pytest.mark.asyncio
    async def test_check_never_writes_metrics(self, claim_service, memory_store):
        product = await seed_product(
            memory_store, [MetricDraft(source="ios_store", metric_name="price_usd", metric_value=3)]
        )
        before = list(memory_store.metrics[product.id])

        await claim_service.check_claim(request(1000))

        assert memory_store.metrics[product.id] == before


class TestProductResolution:
    """Matching requests to existing products."""

    @pytest.mark.asyncio
    async def test_ios_id_takes_priority(self, claim_service, memory_store):
        by_ios = await seed_product(memory_store, name="iOS app", ios_app_id="111")
        await seed_product(memory_store, name="Android app", ios_app_id=None, android_package="com.example")

        result = await claim_service.check_claim(
            request(ios_app_id="111", android_package="com.example", app_name=None)
        )

        assert result.product.id == by_ios.id

    @pytest.mark.asyncio
    async def test_falls_back_to_url(self, claim_service, memory_store):
        by_url = await seed_product(
            memory_store, name="Web app", ios_app_id=None, primary_url="https://habits.example.com"
        )

        result = await claim_service.check_claim(
            request(ios_app_id="999", primary_url="https://habits.example.com")
        )

        assert result.product.id == by_url.id
        assert len(memory_store.products) == 1

    @pytest.mark.asyncio
    async def test_name_falls_back_to_first_identifier(self, claim_service):
        result = await claim_service.check_claim(request(app_name=None, ios_app_id=None, android_package="com.example.x"))
        assert result.product.name == "com.example.x"

    @pytest.mark.asyncio
    async def test_concurrent_checks_create_one_product(self, claim_service, memory_store):
        results = await asyncio.gather(*[claim_service.check_claim(request(100 + i)) for i in range(5)])

        assert len({r.product.id for r in results}) == 1
        assert len(memory_store.products) == 1
        assert len(memory_store.claims) == 5

    @pytest.mark.asyncio
    async def test_duplicate_on_create_refetches(self):
        store = RacingStore()
        await store.initialize()
        service = ClaimCheckService(store)

        result = await service.check_claim(request(1000))

        assert len(store.products) == 1
        assert result.product.id in store.products
        assert result.claim.status == ClaimStatus.ANALYZED

    @pytest.mark.asyncio
    async def test_duplicate_without_match_is_a_dependency_error(self, memory_store):
        memory_store.create_product = AsyncMock(side_effect=DuplicateRecordError("product", "ios_app_id=1"))
        service = ClaimCheckService(memory_store)

        with pytest.raises(DependencyError):
            await service.check_claim(request(1000))
        assert memory_store.claims == {}


class TestValidation:
    """Bad input is rejected before any write."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("claimed", [0, -5, math.nan, math.inf])
    async def test_bad_claimed_value(self, claim_service, memory_store, claimed):
        with pytest.raises(ValidationError):
            await claim_service.check_claim(request(claimed))
        assert memory_store.products == {}
        assert memory_store.claims == {}

    @pytest.mark.asyncio
    async def test_no_identifier(self, claim_service, memory_store):
        with pytest.raises(ValidationError) as exc_info:
            await claim_service.check_claim(
                request(app_name="  ", ios_app_id=None, android_package="", primary_url=None)
            )
        assert exc_info.value.field == "product"
        assert memory_store.products == {}

    @pytest.mark.asyncio
    async def test_name_alone_identifies_a_new_product(self, claim_service, memory_store):
        result = await claim_service.check_claim(request(app_name="Just a name", ios_app_id=None))

        assert result.product.name == "Just a name"
        assert result.product.ios_app_id is None
        assert len(memory_store.products) == 1


class TestStoreFailures:
    """Store failures surface as DependencyError."""

    @pytest.mark.asyncio
    async def test_metric_fetch_failure_writes_no_claim(self, claim_service, memory_store):
        memory_store.fetch_metrics = AsyncMock(side_effect=RuntimeError("metrics down"))

        with pytest.raises(DependencyError) as exc_info:
            await claim_service.check_claim(request(1000))

        assert exc_info.value.claim_id is None
        assert memory_store.claims == {}

    @pytest.mark.asyncio
    async def test_assessment_failure_leaves_claim_new(self, claim_service, memory_store):
        memory_store.create_assessment = AsyncMock(side_effect=ConnectionError("write timeout"))

        with pytest.raises(DependencyError) as exc_info:
            await claim_service.check_claim(request(1000))

        claim_id = exc_info.value.claim_id
        assert claim_id in memory_store.claims
        assert memory_store.claims[claim_id].status == ClaimStatus.NEW
        assert memory_store.assessments[claim_id] == []

    @pytest.mark.asyncio
    async def test_status_update_failure_reports_claim(self, claim_service, memory_store):
        memory_store.set_claim_status = AsyncMock(side_effect=DependencyError("status update failed"))

        with pytest.raises(DependencyError) as exc_info:
            await claim_service.check_claim(request(1000))

        claim_id = exc_info.value.claim_id
        assert memory_store.claims[claim_id].status == ClaimStatus.NEW
        assert len(memory_store.assessments[claim_id]) == 1

    @pytest.mark.asyncio
    async def test_product_lookup_failure(self, claim_service, memory_store):
        memory_store.find_product_by_ios_id = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(DependencyError):
            await claim_service.check_claim(request(1000))
        assert memory_store.products == {}


class TestRecordMetrics:
    """Metric ingestion from enrichment jobs."""

    @pytest.mark.asyncio
    async def test_readings_are_stored(self, claim_service, memory_store):
        product = await seed_product(memory_store)

        stored = await claim_service.record_metrics(
            product.id,
            [
                MetricDraft(source="ios_store", metric_name="downloads_lifetime", metric_value=10000),
                MetricDraft(source="ios_store", metric_name="price_usd", metric_value=2.99),
            ],
        )

        assert [m.metric_name for m in stored] == ["downloads_lifetime", "price_usd"]
        assert all(m.product_id == product.id for m in stored)
        assert memory_store.metrics[product.id] == stored

    @pytest.mark.asyncio
    async def test_recorded_revenue_changes_the_next_verdict(self, claim_service, memory_store):
        first = await claim_service.check_claim(request(1000))
        assert first.assessment.verdict == Verdict.NO_EVIDENCE

        await claim_service.record_metrics(
            first.product.id,
            [MetricDraft(source="stripe_verified", metric_name="revenue_30d_verified", metric_value=1000, is_verified=True)],
        )
        second = await claim_service.check_claim(request(1000))

        assert second.product.id == first.product.id
        assert second.assessment.verdict == Verdict.VERIFIED

    @pytest.mark.asyncio
    async def test_unknown_product(self, claim_service, memory_store):
        with pytest.raises(NotFoundError):
            await claim_service.record_metrics(
                "missing", [MetricDraft(source="ios_store", metric_name="price_usd", metric_value=1)]
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    async def test_non_finite_value_writes_nothing(self, claim_service, memory_store, value):
        product = await seed_product(memory_store)

        with pytest.raises(ValidationError) as exc_info:
            await claim_service.record_metrics(
                product.id,
                [
                    MetricDraft(source="ios_store", metric_name="price_usd", metric_value=1),
                    MetricDraft(source="ios_store", metric_name="downloads_lifetime", metric_value=value),
                ],
            )

        assert exc_info.value.field == "metric_value"
        assert memory_store.metrics[product.id] == []

    @pytest.mark.asyncio
    async def test_store_failure(self, claim_service, memory_store):
        product = await seed_product(memory_store)
        memory_store.append_metrics = AsyncMock(side_effect=RuntimeError("insert failed"))

        with pytest.raises(DependencyError) as exc_info:
            await claim_service.record_metrics(
                product.id, [MetricDraft(source="ios_store", metric_name="price_usd", metric_value=1)]
            )

        assert "append metrics" in str(exc_info.value)


def test_summarize_metrics():
    """Summary flags reflect the kinds of metrics present."""
    empty = summarize_metrics([])
    assert not empty.has_verified_revenue
    assert not empty.has_store_metrics
    assert empty.verified_revenue is None

    mixed = summarize_metrics(
        [
            make_metric("stripe_verified", "revenue_30d_verified", 2500, is_verified=True),
            make_metric("ios_store", "downloads_lifetime", 100),
        ]
    )
    assert mixed.has_verified_revenue
    assert mixed.has_store_metrics
    assert mixed.verified_revenue == 2500
