"""Domain models for sites, risk signals and user reports."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time used for all record timestamps."""
    return datetime.now(timezone.utc)


class RiskLevel(str, Enum):
    """Categorical risk bucket derived from a site's score."""

    LOW = "low"  # 0-20
    MEDIUM = "medium"  # 21-40
    HIGH = "high"  # 41-70
    CRITICAL = "critical"  # 71-100


class SignalSource(str, Enum):
    """Who produced a risk signal."""

    SYSTEM = "system"  # Automated page scan, replaced on every rescan
    USER = "user"  # Synthesized from a user report
    ADMIN = "admin"  # Synthesized from an admin action


class ReportStatus(str, Enum):
    """Review state of a user report."""

    NEW = "new"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"
    CONFIRMED = "confirmed"


class Site(BaseModel):
    """A web domain tracked by the engine, identified by its normalized domain."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Store-assigned identifier")
    domain: str = Field(..., description="Display domain")
    normalized_domain: str = Field(..., description="Canonical domain used as identity")
    risk_score: int = Field(default=0, ge=0, le=100, description="Score over the full signal set")
    risk_level: RiskLevel = Field(default=RiskLevel.LOW, description="Bucket derived from risk_score")
    total_signals: int = Field(default=0, ge=0, description="Number of signals currently attached")
    total_reports: int = Field(default=0, ge=0, description="Number of user reports ever filed")
    first_seen_at: datetime = Field(default_factory=utcnow, description="When the site was first created")
    last_checked_at: Optional[datetime] = Field(None, description="When the score was last recomputed")


class SignalDraft(BaseModel):
    """A risk signal that has not been stored yet."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "type": "no_refund_policy",
                "dimension": "offer",
                "severity": 4,
                "source": "system",
                "description": "No refund/returns policy detected in page text.",
            }
        },
    )

    type: str = Field(..., min_length=1, description="Free-form signal tag")
    dimension: str = Field(..., min_length=1, description="identity, offer, technical, reputation, ...")
    severity: int = Field(..., ge=0, le=10, description="Contribution to the risk score")
    source: SignalSource = Field(default=SignalSource.SYSTEM, description="Producer of the signal")
    description: Optional[str] = Field(None, description="Human-readable explanation")


class RiskSignal(SignalDraft):
    """A stored, immutable piece of evidence about a site's trustworthiness."""

    id: str = Field(..., description="Store-assigned identifier")
    site_id: str = Field(..., description="Owning site")
    created_at: datetime = Field(default_factory=utcnow, description="When the signal was recorded")


class ReportDraft(BaseModel):
    """A user report as submitted, before it is stored."""

    model_config = ConfigDict(frozen=True)

    report_type: str = Field(..., min_length=1, description="non_delivery, fraud, refund_refused, ...")
    description: str = Field(..., min_length=1, description="Free-text account of what happened")
    country: Optional[str] = None
    order_value_band: Optional[str] = None
    contact_email: Optional[str] = None
    has_evidence: bool = False


class UserReport(ReportDraft):
    """A stored user report."""

    id: str
    site_id: str
    status: ReportStatus = ReportStatus.NEW
    created_at: datetime = Field(default_factory=utcnow)
