from typing import Any, cast
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from chatseq.core.core import Service
from chatseq.core.modules.chat.models import Chat
from chatseq.core.modules.sequence.models import Scope
from chatseq.errors import NotFoundError

logger = structlog.get_logger(__name__)


class ChatService(Service):
    """Manages chats, numbered per application."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("chats")

    async def on_start(self) -> None:
        """Create the (application, number) uniqueness index and parent sampling index."""
        await self._collection.create_index([("application_id", 1), ("number", 1)], unique=True)
        await self._collection.create_index([("created_at", -1)])

    async def create_chat(self, application_id: UUID) -> Chat:
        chat = cast(Chat, await self.core.services.sequence.allocate(Scope.chats(application_id)))
        logger.debug("chat_created", application_id=application_id, number=chat.number)
        await self.core.services.application.increment_chats_count(application_id)
        return chat

    async def get_chat_by_number(self, application_id: UUID, number: int) -> Chat:
        doc = await self._collection.find_one({"application_id": application_id, "number": number})
        if not doc:
            raise NotFoundError("Chat not found")
        return Chat.model_validate(doc)

    async def list_chats(self, application_id: UUID) -> list[Chat]:
        return await Chat.list_cursor(self._collection.find({"application_id": application_id}).sort("number", 1))

    async def increment_messages_count(self, chat_id: UUID) -> None:
        """Bump the cached message count; failures are repaired by `sync_messages_counts`."""
        try:
            await self._collection.update_one({"_id": chat_id}, {"$inc": {"messages_count": 1}})
        except PyMongoError:
            logger.exception("messages_count_increment_failed", chat_id=chat_id)

    async def sync_messages_counts(self) -> int:
        """Recompute every cached message count from the messages collection. Returns the number fixed."""
        messages = self.database.get_collection("messages")
        fixed = 0
        async for doc in self._collection.find({}, projection={"_id": 1, "messages_count": 1}):
            try:
                actual = await messages.count_documents({"chat_id": doc["_id"]})
                if actual != doc.get("messages_count", 0):
                    await self._collection.update_one({"_id": doc["_id"]}, {"$set": {"messages_count": actual}})
                    fixed += 1
            except PyMongoError:
                logger.exception("messages_count_sync_failed", chat_id=doc["_id"])
        return fixed
