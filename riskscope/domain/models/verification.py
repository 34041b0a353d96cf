"""Domain models for verification metrics and claim assessments."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .site import utcnow


class Verdict(str, Enum):
    """Possible outcomes of a plausibility check."""

    VERIFIED = "verified"  # Matches authoritative payment data
    PLAUSIBLE = "plausible"  # Consistent with available evidence
    UNLIKELY = "unlikely"  # Contradicted by available evidence
    NO_EVIDENCE = "no_evidence"  # Not enough data to judge


class MetricDraft(BaseModel):
    """A metric reading before it is stored."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="ios_store, android_store, stripe_verified, ...")
    metric_name: str = Field(..., description="downloads_lifetime, price_usd, revenue_30d_verified, ...")
    metric_value: float = Field(..., description="Numeric reading")
    is_verified: bool = Field(default=False, description="True for authoritative payment data")


class VerificationMetric(MetricDraft):
    """A stored metric reading. Readings accumulate; none is ever replaced."""

    id: str
    product_id: str
    captured_at: datetime = Field(default_factory=utcnow)


class AssessmentResult(BaseModel):
    """Output of the plausibility assessor."""

    model_config = ConfigDict(frozen=True)

    verdict: Verdict
    confidence: float = Field(..., ge=0.0, le=1.0)
    max_plausible_estimate: Optional[float] = Field(
        None, description="Upper bound for believable monthly revenue"
    )
    notes: str = Field(..., min_length=1, description="User-facing explanation of the verdict")


class ClaimAssessment(AssessmentResult):
    """A stored assessment. Re-running a check adds a new one."""

    id: str
    claim_id: str
    assessment_type: str = "plausibility"
    created_at: datetime = Field(default_factory=utcnow)
