"""Composed results returned by the site and claim workflows."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .claim import Claim, Product
from .site import RiskLevel, RiskSignal, Site, UserReport
from .verification import ClaimAssessment, VerificationMetric


@dataclass(frozen=True)
class RiskScore:
    """Score and level computed from a signal set."""

    score: int
    level: RiskLevel

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError("Risk score must be between 0 and 100")


@dataclass(frozen=True)
class SiteRiskView:
    """A site together with the evidence behind its score."""

    site: Site
    signals: List[RiskSignal]
    reports: List[UserReport] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "site": self.site.model_dump(mode="json"),
            "signals": [s.model_dump(mode="json") for s in self.signals],
            "reports": [r.model_dump(mode="json") for r in self.reports],
        }


@dataclass(frozen=True)
class VerificationSummary:
    """What kind of evidence backed an assessment."""

    has_verified_revenue: bool
    has_store_metrics: bool
    verified_revenue: Optional[float] = None


@dataclass(frozen=True)
class ClaimCheckResult:
    """Everything a claim check produced."""

    product: Product
    claim: Claim
    assessment: ClaimAssessment
    metrics: List[VerificationMetric]
    verification: VerificationSummary

    def to_dict(self) -> Dict[str, Any]:
        """Convert ClaimCheckResult to dictionary format for API responses."""
        return {
            "product": self.product.model_dump(mode="json"),
            "claim": self.claim.model_dump(mode="json"),
            "assessment": self.assessment.model_dump(mode="json"),
            "metrics": [m.model_dump(mode="json") for m in self.metrics],
            "verification": {
                "has_verified_revenue": self.verification.has_verified_revenue,
                "has_store_metrics": self.verification.has_store_metrics,
                "verified_revenue": self.verification.verified_revenue,
            },
        }
