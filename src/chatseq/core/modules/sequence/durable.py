"""Durable store: the system of record for numbered entities.

The unique (parent, number) index on each numbered collection is the final
guarantee that a number is assigned at most once within its scope.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from chatseq.core.db import SequencedModel
from chatseq.core.modules.chat.models import Chat
from chatseq.core.modules.message.models import Message
from chatseq.core.modules.sequence.models import Scope, ScopeKind
from chatseq.errors import DuplicateEntityError, DuplicateNumberError, PersistenceError


class DurableStore(ABC):
    """Scoped insert and max-lookup operations used by the allocator and reconciler."""

    @abstractmethod
    async def scope_exists(self, scope: Scope) -> bool:
        """Whether the parent record of the scope exists."""

    @abstractmethod
    async def insert_with_number(
        self, scope: Scope, number: int, entity_id: UUID, payload: dict[str, Any]
    ) -> SequencedModel:
        """Persist a new entity carrying `number`.

        Raises:
            DuplicateNumberError: `number` is already taken in the scope
            DuplicateEntityError: an entity with `entity_id` is already persisted
            PersistenceError: any other failure
        """

    @abstractmethod
    async def find_entity(self, scope: Scope, entity_id: UUID) -> SequencedModel | None:
        """Look up an entity by id, used to settle inserts whose outcome is unknown."""

    @abstractmethod
    async def max_number(self, scope: Scope) -> int:
        """Highest number assigned in the scope, 0 if it has no entities yet."""

    @abstractmethod
    async def sample_scopes(self, kind: ScopeKind, limit: int, skip: int = 0) -> list[Scope]:
        """Known scopes of a kind, most recently created parents first."""


@dataclass(frozen=True)
class ScopeCollection:
    """Where the entities of a scope kind live and which field points at their parent."""

    collection: str
    parent_field: str
    parent_collection: str
    model: type[SequencedModel]


SCOPE_COLLECTIONS: dict[ScopeKind, ScopeCollection] = {
    ScopeKind.CHATS: ScopeCollection("chats", "application_id", "applications", Chat),
    ScopeKind.MESSAGES: ScopeCollection("messages", "chat_id", "chats", Message),
}


def is_id_violation(error: DuplicateKeyError) -> bool:
    """Tell an `_id` collision apart from a (parent, number) collision."""
    key_pattern = (error.details or {}).get("keyPattern")
    if key_pattern:
        return "_id" in key_pattern
    return "index: _id_ " in str(error)


class MongoDurableStore(DurableStore):
    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._database = database

    def _collections(self, kind: ScopeKind) -> tuple[ScopeCollection, AsyncCollection[dict[str, Any]]]:
        spec = SCOPE_COLLECTIONS[kind]
        return spec, self._database.get_collection(spec.collection)

    async def scope_exists(self, scope: Scope) -> bool:
        spec = SCOPE_COLLECTIONS[scope.kind]
        try:
            count = await self._database.get_collection(spec.parent_collection).count_documents(
                {"_id": scope.parent_id}, limit=1
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to look up '{scope.key}'") from e
        return count > 0

    async def insert_with_number(
        self, scope: Scope, number: int, entity_id: UUID, payload: dict[str, Any]
    ) -> SequencedModel:
        spec, collection = self._collections(scope.kind)
        entity = spec.model.model_validate(
            {**payload, "_id": entity_id, spec.parent_field: scope.parent_id, "number": number}
        )
        try:
            await collection.insert_one(entity.to_mongo())
        except DuplicateKeyError as e:
            if is_id_violation(e):
                raise DuplicateEntityError(f"Entity {entity_id} already exists in '{scope.key}'") from e
            raise DuplicateNumberError(scope.key, number) from e
        except PyMongoError as e:
            raise PersistenceError(f"Failed to insert number {number} into '{scope.key}'") from e
        return entity

    async def find_entity(self, scope: Scope, entity_id: UUID) -> SequencedModel | None:
        spec, collection = self._collections(scope.kind)
        try:
            doc = await collection.find_one({"_id": entity_id, spec.parent_field: scope.parent_id})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read entity {entity_id} in '{scope.key}'") from e
        return spec.model.model_validate(doc) if doc else None

    async def max_number(self, scope: Scope) -> int:
        spec, collection = self._collections(scope.kind)
        try:
            doc = await collection.find_one(
                {spec.parent_field: scope.parent_id}, projection={"number": 1}, sort=[("number", -1)]
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read max number of '{scope.key}'") from e
        return int(doc["number"]) if doc else 0

    async def sample_scopes(self, kind: ScopeKind, limit: int, skip: int = 0) -> list[Scope]:
        spec = SCOPE_COLLECTIONS[kind]
        cursor = (
            self._database.get_collection(spec.parent_collection)
            .find({}, projection={"_id": 1})
            .sort([("created_at", -1), ("_id", 1)])
            .skip(skip)
            .limit(limit)
        )
        try:
            docs = await cursor.to_list()
        except PyMongoError as e:
            raise PersistenceError(f"Failed to list {kind} scopes") from e
        return [Scope(kind=kind, parent_id=doc["_id"]) for doc in docs]
