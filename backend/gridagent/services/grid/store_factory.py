"""Factory for the configured grid store."""
import logging

from gridagent.core.config import settings
from gridagent.services.grid.memory_store import MemoryGridStore
from gridagent.services.grid.store import GridStore

logger = logging.getLogger(__name__)


def create_grid_store(backend: str = None) -> GridStore:
    """Create the grid store for the given backend name ("memory" or "redis").

    Args:
        backend: Backend name (defaults to settings.GRID_STORE_BACKEND)
    """
    backend = (backend or settings.GRID_STORE_BACKEND).lower()
    if backend == "redis":
        from gridagent.services.grid.redis_store import RedisGridStore, create_redis_client_with_retry
        logger.info(f"Using Redis grid store at {settings.REDIS_URL}")
        return RedisGridStore(create_redis_client_with_retry())
    if backend != "memory":
        raise ValueError(f"Unknown grid store backend: {backend}")
    logger.info("Using in-memory grid store")
    return MemoryGridStore()
