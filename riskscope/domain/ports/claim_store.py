"""Port for the store holding products, metrics, claims and assessments."""

from typing import List, Optional, Protocol, Sequence

from ..models.claim import Claim, ClaimDraft, ClaimStatus, Product, ProductDraft
from ..models.verification import AssessmentResult, ClaimAssessment, MetricDraft, VerificationMetric


class ClaimStore(Protocol):
    """Protocol for product/claim persistence and metric retrieval.

    ``create_product`` must enforce at most one product per iOS id and per
    Android package, raising ``DuplicateRecordError`` on conflict.
    Store failures surface as ``DependencyError``.
    """

    async def initialize(self) -> None:
        """Open connections and verify the store is reachable."""
        ...

    async def shutdown(self) -> None:
        """Release resources."""
        ...

    async def find_product_by_ios_id(self, ios_app_id: str) -> Optional[Product]:
        ...

    async def find_product_by_android_package(self, android_package: str) -> Optional[Product]:
        ...

    async def find_product_by_url(self, primary_url: str) -> Optional[Product]:
        ...

    async def get_product(self, product_id: str) -> Optional[Product]:
        ...

    async def create_product(self, product: ProductDraft) -> Product:
        """Create a product."""
        ...

    async def fetch_metrics(self, product_id: str) -> List[VerificationMetric]:
        """Get every metric reading of a product."""
        ...

    async def append_metrics(
        self, product_id: str, metrics: Sequence[MetricDraft]
    ) -> List[VerificationMetric]:
        """Store new metric readings."""
        ...

    async def create_claim(self, product_id: str, claim: ClaimDraft) -> Claim:
        """Store a claim with status ``new``."""
        ...

    async def set_claim_status(self, claim_id: str, status: ClaimStatus) -> Claim:
        """Record a claim status transition."""
        ...

    async def list_claims(self, product_id: str) -> List[Claim]:
        """List a product's claims, oldest first."""
        ...

    async def create_assessment(self, claim_id: str, result: AssessmentResult) -> ClaimAssessment:
        """Store an assessment of a claim."""
        ...

    async def list_assessments(self, claim_id: str) -> List[ClaimAssessment]:
        """List a claim's assessments, oldest first."""
        ...
