"""Domain models for products and revenue claims."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .site import utcnow


class ClaimType(str, Enum):
    """Kind of revenue figure being claimed."""

    MRR = "mrr"
    MONTHLY_INCOME = "monthly_income"


class ClaimStatus(str, Enum):
    """Lifecycle of a claim row."""

    NEW = "new"
    ANALYZED = "analyzed"


class ProductDraft(BaseModel):
    """Attributes used to create a product."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Human-readable product name")
    type: str = Field(default="mobile_app", description="Product kind")
    primary_url: Optional[str] = Field(None, description="Landing page or store URL")
    ios_app_id: Optional[str] = Field(None, description="App Store identifier")
    android_package: Optional[str] = Field(None, description="Google Play package name")


class Product(ProductDraft):
    """A product whose revenue claims are checked."""

    id: str
    created_at: datetime = Field(default_factory=utcnow)


class ClaimDraft(BaseModel):
    """Payload of a claim before it is stored."""

    model_config = ConfigDict(frozen=True)

    claim_type: ClaimType = ClaimType.MRR
    claimed_value: float = Field(..., gt=0, description="Claimed monthly revenue")
    currency: str = "USD"
    timeframe_text: Optional[str] = None
    source_url: Optional[str] = None


class Claim(ClaimDraft):
    """A stored claim. Only ``status`` ever changes, by producing a new version."""

    id: str
    product_id: str
    status: ClaimStatus = ClaimStatus.NEW
    created_at: datetime = Field(default_factory=utcnow)


class ClaimCheckRequest(BaseModel):
    """Input of a claim check: product identity plus the claimed figure."""

    app_name: Optional[str] = Field(None, description="Name used when a new product is created")
    primary_url: Optional[str] = None
    ios_app_id: Optional[str] = None
    android_package: Optional[str] = None
    claimed_value: float = Field(..., description="Claimed monthly revenue, validated by the service")
    currency: str = "USD"
    claim_type: ClaimType = ClaimType.MRR
    timeframe_text: Optional[str] = None
    source_url: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "app_name": "Habit Tracker Pro",
                "ios_app_id": "1234567890",
                "claimed_value": 12000,
                "currency": "USD",
                "claim_type": "mrr",
                "timeframe_text": "last month",
                "source_url": "https://x.com/founder/status/1",
            }
        }
    )
