"""Dependency injection configuration for hexagonal architecture."""

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Request

from ..domain.services.claim_check_service import ClaimCheckService
from ..domain.services.site_risk_service import SiteRiskService
from .config import Settings
from .factory import StoreFactory

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Service container for dependency injection."""

    def __init__(self, settings: Optional[Settings] = None, factory: Optional[StoreFactory] = None):
        """Initialize service container.

        Args:
            settings: Application settings, read from the environment when omitted
            factory: Store factory, a fresh one when omitted
        """
        self.settings = settings or Settings.from_env()
        self.factory = factory or StoreFactory()
        self._services: Dict[str, Any] = {}

    async def startup(self) -> None:
        """Create the configured store and the services using it."""
        if self._services:
            return

        logger.info(f"🔧 Setting up service container with {self.settings.store} store...")
        store = self.factory.get_store(self.settings.store)
        if store is None:
            store = await self.factory.create_store(self.settings.store, **self.settings.store_config())

        self._services = {
            "store": store,
            "site_risk_service": SiteRiskService(store, self.settings.risk),
            "claim_check_service": ClaimCheckService(store, self.settings.assessment),
        }
        logger.info("✅ Service container setup completed")

    async def shutdown(self) -> None:
        """Shut down every store and forget the services."""
        await self.factory.shutdown_all()
        self._services = {}

    def get(self, service_name: str) -> Any:
        """Get a service by name.

        Raises:
            KeyError: If service not found
            RuntimeError: If the container has not been started
        """
        if not self._services:
            raise RuntimeError("Service container not started")
        if service_name not in self._services:
            raise KeyError(f"Service '{service_name}' not found")
        return self._services[service_name]

    def get_site_risk_service(self) -> SiteRiskService:
        """Get site risk service."""
        return self.get("site_risk_service")

    def get_claim_check_service(self) -> ClaimCheckService:
        """Get claim check service."""
        return self.get("claim_check_service")


# Global service container instance
@lru_cache()
def get_service_container() -> ServiceContainer:
    """Get global service container instance."""
    return ServiceContainer()


# Convenience functions for FastAPI dependency injection
def _container(request: Request) -> ServiceContainer:
    return getattr(request.app.state, "container", None) or get_service_container()


def get_site_risk_service(request: Request) -> SiteRiskService:
    """FastAPI dependency for site risk service."""
    return _container(request).get_site_risk_service()


def get_claim_check_service(request: Request) -> ClaimCheckService:
    """FastAPI dependency for claim check service."""
    return _container(request).get_claim_check_service()
