"""Shared pytest fixtures: in-memory doubles of the counter and durable stores."""

import asyncio
from typing import Any
from uuid import UUID, uuid4

import pytest

from chatseq.core.db import SequencedModel
from chatseq.core.modules.counter.store import CounterStore
from chatseq.core.modules.sequence.durable import SCOPE_COLLECTIONS, DurableStore
from chatseq.core.modules.sequence.models import Scope, ScopeKind
from chatseq.errors import DuplicateEntityError, DuplicateNumberError, PersistenceError


class FakeCounterStore(CounterStore):
    """Dict-backed counters. Increment has no await between read and write, so it is atomic."""

    def __init__(self) -> None:
        self.values: dict[str, int] = {}
        self.increments = 0
        self.writes = 0
        self.hang_increments = 0  # Number of upcoming increments that stall without counting

    async def increment(self, scope: Scope) -> int:
        await asyncio.sleep(0)
        if self.hang_increments:
            self.hang_increments -= 1
            await asyncio.sleep(10)
        self.increments += 1
        self.values[scope.key] = self.values.get(scope.key, 0) + 1
        return self.values[scope.key]

    async def set(self, scope: Scope, value: int) -> None:
        self.writes += 1
        self.values[scope.key] = value

    async def raise_to(self, scope: Scope, value: int) -> int:
        current = self.values.get(scope.key, 0)
        if current >= value:
            return current
        self.writes += 1
        self.values[scope.key] = value
        return value

    async def get(self, scope: Scope) -> int | None:
        return self.values.get(scope.key)

    def crash(self) -> None:
        """Lose all state, as a restart without persistence would."""
        self.values.clear()


class FakeDurableStore(DurableStore):
    """Entities per scope with a (scope, number) uniqueness check at insert time."""

    def __init__(self) -> None:
        self.parents: dict[ScopeKind, list[UUID]] = {kind: [] for kind in ScopeKind}
        self.entities: dict[str, dict[int, SequencedModel]] = {}
        self.by_id: dict[UUID, SequencedModel] = {}
        self.failing_scopes: set[str] = set()
        self.insert_errors: list[Exception] = []
        self.hang_before_commit = 0  # Number of upcoming inserts that stall without committing
        self.hang_after_commit = 0  # Number of upcoming inserts that commit, then stall
        self.fail_find = False
        self.fail_sampling = False
        self.inserts = 0

    def add_scope(self, kind: ScopeKind = ScopeKind.CHATS) -> Scope:
        parent_id = uuid4()
        self.parents[kind].insert(0, parent_id)
        self.entities[Scope(kind=kind, parent_id=parent_id).key] = {}
        return Scope(kind=kind, parent_id=parent_id)

    def seed(self, scope: Scope, numbers: list[int]) -> None:
        for number in numbers:
            self._store(scope, number, uuid4(), _payload(scope))

    def numbers(self, scope: Scope) -> list[int]:
        return sorted(self.entities.get(scope.key, {}))

    def snapshot(self) -> dict[str, list[int]]:
        return {key: sorted(numbers) for key, numbers in self.entities.items()}

    async def scope_exists(self, scope: Scope) -> bool:
        return scope.parent_id in self.parents[scope.kind]

    async def insert_with_number(
        self, scope: Scope, number: int, entity_id: UUID, payload: dict[str, Any]
    ) -> SequencedModel:
        await asyncio.sleep(0)
        self.inserts += 1
        if self.insert_errors:
            raise self.insert_errors.pop(0)
        if self.hang_before_commit:
            self.hang_before_commit -= 1
            await asyncio.sleep(10)
        if entity_id in self.by_id:
            raise DuplicateEntityError(f"Entity {entity_id} already exists")
        if number in self.entities.setdefault(scope.key, {}):
            raise DuplicateNumberError(scope.key, number)
        entity = self._store(scope, number, entity_id, payload)
        if self.hang_after_commit:
            self.hang_after_commit -= 1
            await asyncio.sleep(10)
        return entity

    async def find_entity(self, scope: Scope, entity_id: UUID) -> SequencedModel | None:
        if self.fail_find:
            raise PersistenceError("find failed")
        return self.by_id.get(entity_id)

    async def max_number(self, scope: Scope) -> int:
        if scope.key in self.failing_scopes:
            raise PersistenceError(f"Failed to read max number of '{scope.key}'")
        return max(self.entities.get(scope.key, {}), default=0)

    async def sample_scopes(self, kind: ScopeKind, limit: int, skip: int = 0) -> list[Scope]:
        if self.fail_sampling:
            raise PersistenceError(f"Failed to list {kind} scopes")
        return [Scope(kind=kind, parent_id=p) for p in self.parents[kind][skip : skip + limit]]

    def _store(self, scope: Scope, number: int, entity_id: UUID, payload: dict[str, Any]) -> SequencedModel:
        spec = SCOPE_COLLECTIONS[scope.kind]
        entity = spec.model.model_validate(
            {**payload, "_id": entity_id, spec.parent_field: scope.parent_id, "number": number}
        )
        self.entities.setdefault(scope.key, {})[number] = entity
        self.by_id[entity_id] = entity
        return entity


def _payload(scope: Scope) -> dict[str, Any]:
    return {"body": "seeded"} if scope.kind == ScopeKind.MESSAGES else {}


@pytest.fixture
def counters() -> FakeCounterStore:
    return FakeCounterStore()


@pytest.fixture
def durable() -> FakeDurableStore:
    return FakeDurableStore()


@pytest.fixture
def chats_scope(durable: FakeDurableStore) -> Scope:
    return durable.add_scope(ScopeKind.CHATS)


@pytest.fixture
def messages_scope(durable: FakeDurableStore) -> Scope:
    return durable.add_scope(ScopeKind.MESSAGES)
