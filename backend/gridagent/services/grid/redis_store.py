"""Redis-backed grid store."""
import logging
import time
from typing import List, Optional

import redis
from redis.connection import ConnectionPool
from redis.exceptions import ConnectionError, TimeoutError, WatchError

from gridagent.core.config import settings
from gridagent.models.grid import Grid, GridSummary
from gridagent.services.grid.store import StaleGridError

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
RETRY_DELAY = 1  # seconds


def create_redis_client_with_retry(url: Optional[str] = None) -> redis.Redis:
    """Create Redis client with retry logic for connection failures."""
    url = url or settings.REDIS_URL
    retries = 0
    while retries < MAX_RETRIES:
        try:
            pool = ConnectionPool.from_url(
                url,
                max_connections=settings.REDIS_POOL_SIZE,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                decode_responses=True,
            )
            client = redis.Redis(connection_pool=pool)
            client.ping()
            return client
        except (ConnectionError, TimeoutError) as e:
            retries += 1
            if retries >= MAX_RETRIES:
                raise ConnectionError(
                    f"Failed to connect to Redis after {MAX_RETRIES} retries: {e}"
                )
            time.sleep(RETRY_DELAY * retries)
    raise ConnectionError("Failed to create Redis client")


class RedisGridStore:
    """One JSON string per grid under `<prefix><id>`, plus a set of known ids."""

    def __init__(self, client: redis.Redis, key_prefix: Optional[str] = None):
        self.client = client
        self.key_prefix = key_prefix if key_prefix is not None else settings.REDIS_KEY_PREFIX
        self.index_key = f"{self.key_prefix}index"

    def _key(self, grid_id: str) -> str:
        return f"{self.key_prefix}{grid_id}"

    def load_grid(self, grid_id: str) -> Optional[Grid]:
        raw = self.client.get(self._key(grid_id))
        return Grid.model_validate_json(raw) if raw else None

    def save_grid(self, grid: Grid) -> None:
        key = self._key(grid.id)
        with self.client.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                stored = Grid.model_validate_json(raw).version if raw else 0
                if stored != grid.version:
                    raise StaleGridError(grid.id, grid.version, stored)
                record = grid.model_copy(update={"version": stored + 1})
                pipe.multi()
                pipe.set(key, record.model_dump_json())
                pipe.sadd(self.index_key, grid.id)
                pipe.execute()
            except WatchError:
                # Another writer saved between WATCH and EXEC
                raise StaleGridError(grid.id, grid.version, -1)
        grid.version = stored + 1

    def list_grids(self) -> List[GridSummary]:
        ids = sorted(self.client.smembers(self.index_key))
        if not ids:
            return []
        summaries = []
        for grid_id, raw in zip(ids, self.client.mget([self._key(i) for i in ids])):
            if not raw:
                # Index entry without a record
                logger.warning(f"Grid {grid_id} is indexed but missing; removing from index")
                self.client.srem(self.index_key, grid_id)
                continue
            summaries.append(GridSummary.from_grid(Grid.model_validate_json(raw)))
        return sorted(summaries, key=lambda s: s.created_at, reverse=True)

    def delete_grid(self, grid_id: str) -> None:
        pipe = self.client.pipeline()
        pipe.delete(self._key(grid_id))
        pipe.srem(self.index_key, grid_id)
        pipe.execute()

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception:
            return False
