"""Factory for creating and managing store adapters."""

import logging
from typing import Any, Callable, Dict, Optional

from .memory.memory_store import InMemoryStore
from .postgrest.postgrest_adapter import PostgRESTStore

logger = logging.getLogger(__name__)


class StoreFactory:
    """Factory for creating and managing store adapters.

    This factory maintains a registry of available store adapters
    and handles their lifecycle (initialization, shutdown). Every adapter
    implements both the signal store and the claim store port.
    """

    def __init__(self):
        """Initialize the factory."""
        self._store_registry: Dict[str, Callable[..., Any]] = {}
        self._active_stores: Dict[str, Any] = {}

        # Register default stores
        self.register_store("memory", InMemoryStore)
        self.register_store("postgrest", PostgRESTStore)

    def register_store(self, name: str, store_class: Callable[..., Any]) -> None:
        """Register a new store class.

        Args:
            name: Unique identifier for the store
            store_class: The store class (or callable) to register
        """
        if name in self._store_registry:
            raise ValueError(f"Store {name} already registered")
        self._store_registry[name] = store_class

    async def create_store(self, name: str, **config: Any) -> Any:
        """Create and initialize a new store instance.

        Args:
            name: Name of the store to create
            **config: Store-specific configuration

        Returns:
            Initialized store instance

        Raises:
            ValueError: If store not found
            RuntimeError: If initialization fails
        """
        if name not in self._store_registry:
            raise ValueError(f"Store {name} not registered")

        store = self._store_registry[name](**config)
        try:
            await store.initialize()
        except Exception as e:
            raise RuntimeError(f"Failed to initialize store {name}: {e}")

        self._active_stores[name] = store
        logger.info(f"✅ Store {name} ready")
        return store

    def get_store(self, name: str) -> Optional[Any]:
        """Get an active store instance by name."""
        return self._active_stores.get(name)

    async def shutdown_store(self, name: str) -> None:
        """Shutdown a specific store."""
        store = self._active_stores.pop(name, None)
        if store:
            await store.shutdown()

    async def shutdown_all(self) -> None:
        """Shutdown all active stores."""
        for name in list(self._active_stores.keys()):
            await self.shutdown_store(name)

    @property
    def available_stores(self) -> Dict[str, bool]:
        """Registered stores and whether each one is active."""
        return {
            name: bool(self.get_store(name))
            for name in self._store_registry
        }
