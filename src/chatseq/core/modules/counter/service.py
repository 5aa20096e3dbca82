from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from redis.exceptions import RedisError

from chatseq.core.core import Service
from chatseq.core.modules.counter.store import CounterStore, RedisCounterStore

logger = structlog.get_logger(__name__)


class CounterService(Service):
    """Owns the fast counter store backed by the core Redis client."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._store: CounterStore | None = None

    @property
    def store(self) -> CounterStore:
        if self._store is None:
            self._store = RedisCounterStore(self.core.redis)
        return self._store

    async def on_start(self) -> None:
        """Check that Redis is reachable; allocation cannot work without it."""
        try:
            await self.core.redis.ping()
        except RedisError:
            logger.exception("counter_store_unreachable", redis_url=self.core.config.redis_url)
            raise
        logger.debug("counter_service_started")
