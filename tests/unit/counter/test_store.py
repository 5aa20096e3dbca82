"""Tests for the Redis-backed counter store."""

from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from chatseq.core.modules.counter.store import RedisCounterStore
from chatseq.core.modules.sequence.models import Scope
from chatseq.errors import CounterStoreError

APP_ID = UUID("12345678-1234-5678-1234-567812345678")


@pytest.fixture
def redis():
    client = MagicMock()
    client.incr = AsyncMock(return_value=1)
    client.set = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    return client


@pytest.fixture
def store(redis):
    return RedisCounterStore(redis)


def test_key_is_prefixed_scope_key(store):
    assert store.key(Scope.chats(APP_ID)) == f"seq:chats:{APP_ID}"


@pytest.mark.asyncio
async def test_increment_uses_incr_and_returns_int(store, redis):
    redis.incr.return_value = 42

    assert await store.increment(Scope.chats(APP_ID)) == 42
    redis.incr.assert_awaited_once_with(f"seq:chats:{APP_ID}")


@pytest.mark.asyncio
async def test_set_overwrites_value(store, redis):
    await store.set(Scope.messages(APP_ID), 17)

    redis.set.assert_awaited_once_with(f"seq:messages:{APP_ID}", 17)


@pytest.mark.asyncio
async def test_get_returns_none_for_absent_key(store):
    assert await store.get(Scope.chats(APP_ID)) is None


@pytest.mark.asyncio
async def test_get_parses_stored_string(store, redis):
    redis.get.return_value = "9"

    assert await store.get(Scope.chats(APP_ID)) == 9


@pytest.mark.asyncio
async def test_get_rejects_non_integer_value(store, redis):
    redis.get.return_value = "garbage"

    with pytest.raises(CounterStoreError, match="non-integer"):
        await store.get(Scope.chats(APP_ID))


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["increment", "get"])
async def test_redis_errors_become_counter_store_errors(store, redis, method):
    redis.incr.side_effect = RedisConnectionError("refused")
    redis.get.side_effect = RedisConnectionError("refused")

    with pytest.raises(CounterStoreError):
        await getattr(store, method)(Scope.chats(APP_ID))


@pytest.mark.asyncio
async def test_set_wraps_redis_errors(store, redis):
    redis.set.side_effect = RedisConnectionError("refused")

    with pytest.raises(CounterStoreError):
        await store.set(Scope.chats(APP_ID), 3)


@pytest.mark.asyncio
async def test_raise_to_runs_compare_and_set_script(store, redis):
    redis.eval = AsyncMock(return_value=12)

    assert await store.raise_to(Scope.chats(APP_ID), 8) == 12
    redis.eval.assert_awaited_once_with(RedisCounterStore.RAISE_TO_SCRIPT, 1, f"seq:chats:{APP_ID}", 8)
    redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_raise_to_wraps_redis_errors(store, redis):
    redis.eval = AsyncMock(side_effect=RedisConnectionError("refused"))

    with pytest.raises(CounterStoreError):
        await store.raise_to(Scope.chats(APP_ID), 3)
