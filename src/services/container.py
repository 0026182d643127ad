"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    The persistence collaborator (store) is injected.
    """

    # Infrastructure dependencies (injected)
    store: object  # MemoryStore or any store with the same async interface

    # Services (lazy-loaded via properties)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from src.services.progression_service import ProgressionService
            self._progression_service = ProgressionService(self.store)
            logger.debug("ProgressionService instantiated")
        return self._progression_service


# Global container instance (initialized at startup)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() at startup before using services."
        )
    return _container


def init_container(store: Optional[object] = None) -> ServiceContainer:
    """
    Initialize the global service container.

    Should be called once at startup after configuration is validated.

    Args:
        store: Persistence collaborator; defaults to a fresh MemoryStore

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    if store is None:
        from src.gamification.memory_store import MemoryStore
        store = MemoryStore()

    _container = ServiceContainer(store=store)

    logger.info("Service container initialized")
    return _container
