"""Application settings read from the environment."""

import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..domain.services.claim_assessor import (
    CONVERSION_RATE,
    REVENUE_WINDOW_MONTHS,
    AssessmentSettings,
)
from ..domain.services.site_risk_service import ADMIN_CONFIRMED_SEVERITY, RiskSettings
from .postgrest.postgrest_adapter import PostgRESTConfig

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Top-level configuration of the service."""

    store: str = "memory"
    postgrest: Optional[PostgRESTConfig] = None
    assessment: AssessmentSettings = AssessmentSettings()
    risk: RiskSettings = RiskSettings()

    @classmethod
    def from_env(cls) -> "Settings":
        """Create configuration from environment variables."""
        store = os.getenv("RISKSCOPE_STORE", "memory").lower()

        postgrest = None
        postgrest_url = os.getenv("POSTGREST_URL")
        if postgrest_url:
            postgrest = PostgRESTConfig(
                base_url=postgrest_url,
                api_key=os.getenv("POSTGREST_API_KEY", ""),
                timeout=float(os.getenv("POSTGREST_TIMEOUT", "10.0")),
            )
        if store == "postgrest" and postgrest is None:
            logger.warning("⚠️ RISKSCOPE_STORE=postgrest but POSTGREST_URL is not set")

        assessment = AssessmentSettings(
            conversion_rate=float(os.getenv("RISKSCOPE_CONVERSION_RATE", CONVERSION_RATE)),
            revenue_window_months=float(
                os.getenv("RISKSCOPE_REVENUE_WINDOW_MONTHS", REVENUE_WINDOW_MONTHS)
            ),
        )
        risk = RiskSettings(
            admin_confirmed_severity=int(
                os.getenv("RISKSCOPE_ADMIN_CONFIRMED_SEVERITY", ADMIN_CONFIRMED_SEVERITY)
            ),
        )

        logger.info(
            f"⚙️ Store={store}, conversion_rate={assessment.conversion_rate}, "
            f"revenue_window_months={assessment.revenue_window_months}"
        )
        return cls(store=store, postgrest=postgrest, assessment=assessment, risk=risk)

    def store_config(self) -> Dict[str, Any]:
        """Keyword arguments for ``StoreFactory.create_store``."""
        if self.store == "postgrest":
            return {"config": self.postgrest}
        return {}
