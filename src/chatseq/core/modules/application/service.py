from typing import Any
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from chatseq.core.core import Service
from chatseq.core.modules.application.models import ChatApplication
from chatseq.errors import NotFoundError, ValidationError
from chatseq.utils import now

logger = structlog.get_logger(__name__)


class ApplicationService(Service):
    """Manages chat applications, the parents of chat numbering scopes."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("applications")

    async def on_start(self) -> None:
        await self._collection.create_index([("token", 1)], unique=True)
        await self._collection.create_index([("created_at", -1)])

    async def create_application(self, name: str) -> ChatApplication:
        """Create an application with a freshly generated token."""
        application = ChatApplication(name=_clean_name(name))
        await self._collection.insert_one(application.to_mongo())
        logger.info("application_created", application_id=application.id)
        return application

    async def get_application_by_token(self, token: str) -> ChatApplication:
        doc = await self._collection.find_one({"token": token})
        if not doc:
            raise NotFoundError("ChatApplication not found")
        return ChatApplication.model_validate(doc)

    async def list_applications(self) -> list[ChatApplication]:
        return await ChatApplication.list_cursor(self._collection.find().sort("created_at", 1))

    async def rename_application(self, token: str, name: str) -> ChatApplication:
        doc = await self._collection.find_one_and_update(
            {"token": token},
            {"$set": {"name": _clean_name(name), "updated_at": now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("ChatApplication not found")
        return ChatApplication.model_validate(doc)

    async def increment_chats_count(self, application_id: UUID) -> None:
        """Bump the cached chat count after a chat was persisted.

        The chat itself is already committed, so a failure here is logged and
        left for `sync_chats_counts` to repair instead of failing the request.
        """
        try:
            await self._collection.update_one({"_id": application_id}, {"$inc": {"chats_count": 1}})
        except PyMongoError:
            logger.exception("chats_count_increment_failed", application_id=application_id)

    async def sync_chats_counts(self) -> int:
        """Recompute every cached chat count from the chats collection. Returns the number fixed."""
        chats = self.database.get_collection("chats")
        fixed = 0
        async for doc in self._collection.find({}, projection={"_id": 1, "chats_count": 1}):
            try:
                actual = await chats.count_documents({"application_id": doc["_id"]})
                if actual != doc.get("chats_count", 0):
                    await self._collection.update_one({"_id": doc["_id"]}, {"$set": {"chats_count": actual}})
                    fixed += 1
            except PyMongoError:
                logger.exception("chats_count_sync_failed", application_id=doc["_id"])
        return fixed


def _clean_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Name cannot be empty")
    return name
