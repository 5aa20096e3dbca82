"""Two-tier sequence allocation: fast counter proposes, durable store arbitrates."""

import asyncio
from collections.abc import Callable
from typing import Any
from uuid import UUID, uuid4

import structlog

from chatseq.core.db import SequencedModel
from chatseq.core.modules.counter.store import CounterStore
from chatseq.core.modules.sequence.durable import DurableStore
from chatseq.core.modules.sequence.models import Scope
from chatseq.errors import (
    AllocationExhaustedError,
    AmbiguousCommitError,
    DuplicateEntityError,
    DuplicateNumberError,
    PersistenceError,
    ScopeNotFoundError,
)

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 5

ExhaustionHook = Callable[[Scope], None]


class SequenceAllocator:
    """Assigns the next number in a scope and persists the entity that carries it.

    Each attempt takes a candidate from the counter store and tries to insert
    it. A uniqueness collision means the counter has fallen behind the durable
    maximum; the candidate is discarded and the next increment is tried. Gaps
    in the sequence are allowed, duplicates are not.

    The entity id is generated once per allocation and reused across attempts,
    so an insert that timed out but did commit is found again instead of being
    persisted a second time under another number.
    """

    def __init__(
        self,
        counters: CounterStore,
        durable: DurableStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float | None = None,
        on_exhausted: ExhaustionHook | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._counters = counters
        self._durable = durable
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._on_exhausted = on_exhausted

    async def allocate(
        self, scope: Scope, payload: dict[str, Any] | None = None, timeout: float | None = None
    ) -> SequencedModel:
        """Persist a new entity in `scope` under a fresh number and return it.

        Args:
            scope: Numbering domain; its parent record must already exist
            payload: Domain fields of the new entity (everything except id, parent and number)
            timeout: Seconds allowed for each store call, defaults to the allocator's timeout

        Raises:
            ScopeNotFoundError: The scope's parent record does not exist
            PersistenceError: The durable store failed for a reason other than a number collision
            CounterStoreError: The counter store failed
            AmbiguousCommitError: An insert timed out and its outcome could not be read back
            AllocationExhaustedError: Every attempt collided with an already persisted number or timed out
        """
        timeout = self._timeout if timeout is None else timeout
        payload = payload or {}

        if not await self._scope_exists(scope, timeout):
            raise ScopeNotFoundError(f"Scope '{scope.key}' not found")

        entity_id = uuid4()
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with asyncio.timeout(timeout):
                    number = await self._counters.increment(scope)
            except TimeoutError:
                # No insert was attempted, so nothing needs settling
                logger.warning("sequence_increment_timeout", scope=scope.key, attempt=attempt)
                continue

            try:
                async with asyncio.timeout(timeout):
                    entity = await self._durable.insert_with_number(scope, number, entity_id, payload)
            except DuplicateNumberError:
                logger.warning("sequence_collision", scope=scope.key, number=number, attempt=attempt)
                continue
            except DuplicateEntityError:
                # An earlier attempt of this allocation committed after all
                committed = await self._settle(scope, entity_id, number, timeout)
                if committed is None:
                    raise AmbiguousCommitError(scope.key, number) from None
                return committed
            except TimeoutError:
                logger.warning("sequence_insert_timeout", scope=scope.key, number=number, attempt=attempt)
                committed = await self._settle(scope, entity_id, number, timeout)
                if committed is not None:
                    return committed
                continue

            if attempt > 1:
                logger.info("sequence_allocated_after_retry", scope=scope.key, number=number, attempts=attempt)
            return entity

        logger.error("sequence_allocation_exhausted", scope=scope.key, attempts=self._max_attempts)
        if self._on_exhausted is not None:
            self._on_exhausted(scope)
        raise AllocationExhaustedError(scope.key, self._max_attempts)

    async def _scope_exists(self, scope: Scope, timeout: float | None) -> bool:
        try:
            async with asyncio.timeout(timeout):
                return await self._durable.scope_exists(scope)
        except TimeoutError as e:
            raise PersistenceError(f"Timed out looking up '{scope.key}'") from e

    async def _settle(
        self, scope: Scope, entity_id: UUID, number: int, timeout: float | None
    ) -> SequencedModel | None:
        """Read back the outcome of an insert that may or may not have committed."""
        try:
            async with asyncio.timeout(timeout):
                entity = await self._durable.find_entity(scope, entity_id)
        except (TimeoutError, PersistenceError) as e:
            logger.error("sequence_commit_unknown", scope=scope.key, number=number, entity_id=entity_id)
            raise AmbiguousCommitError(scope.key, number) from e

        if entity is not None:
            logger.info("sequence_commit_recovered", scope=scope.key, number=entity.number, entity_id=entity_id)
        return entity
