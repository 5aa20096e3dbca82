"""Fast counter store: the primary source of candidate sequence numbers.

The store is a disposable cache of "last number handed out" per scope. Losing
it is survivable because the durable store enforces uniqueness and the
reconciler rebuilds counters from durable maxima.
"""

from abc import ABC, abstractmethod

from redis.asyncio import Redis
from redis.exceptions import RedisError

from chatseq.core.modules.sequence.models import Scope
from chatseq.errors import CounterStoreError


class CounterStore(ABC):
    """Atomic per-scope counters."""

    @abstractmethod
    async def increment(self, scope: Scope) -> int:
        """Atomically increment and return the new value. The first call for a scope returns 1."""

    @abstractmethod
    async def set(self, scope: Scope, value: int) -> None:
        """Overwrite the counter. Used only for reconciliation."""

    @abstractmethod
    async def raise_to(self, scope: Scope, value: int) -> int:
        """Set the counter to `value` only if it is currently lower, atomically. Returns the resulting value."""

    @abstractmethod
    async def get(self, scope: Scope) -> int | None:
        """Current value, or None if the scope has never been counted (or the store lost it)."""


class RedisCounterStore(CounterStore):
    """Counters kept as Redis string keys, incremented with INCR."""

    # Compare and set in one round trip so a counter raced past `value` is left alone
    RAISE_TO_SCRIPT = """
local current = tonumber(redis.call("GET", KEYS[1]) or "0")
local target = tonumber(ARGV[1])
if current < target then
    redis.call("SET", KEYS[1], target)
    return target
end
return current
"""

    def __init__(self, redis: Redis, prefix: str = "seq") -> None:
        self._redis = redis
        self._prefix = prefix

    def key(self, scope: Scope) -> str:
        return f"{self._prefix}:{scope.key}"

    async def increment(self, scope: Scope) -> int:
        try:
            value = await self._redis.incr(self.key(scope))
        except RedisError as e:
            raise CounterStoreError(f"Failed to increment counter for '{scope.key}'") from e
        return int(value)

    async def set(self, scope: Scope, value: int) -> None:
        try:
            await self._redis.set(self.key(scope), value)
        except RedisError as e:
            raise CounterStoreError(f"Failed to set counter for '{scope.key}'") from e

    async def raise_to(self, scope: Scope, value: int) -> int:
        try:
            result = await self._redis.eval(self.RAISE_TO_SCRIPT, 1, self.key(scope), value)
        except RedisError as e:
            raise CounterStoreError(f"Failed to raise counter for '{scope.key}'") from e
        return int(result)

    async def get(self, scope: Scope) -> int | None:
        try:
            raw = await self._redis.get(self.key(scope))
        except RedisError as e:
            raise CounterStoreError(f"Failed to read counter for '{scope.key}'") from e
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as e:
            raise CounterStoreError(f"Counter for '{scope.key}' holds a non-integer value: {raw!r}") from e
