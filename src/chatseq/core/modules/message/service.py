from typing import Any, cast
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from chatseq.core.core import Service
from chatseq.core.modules.message.models import Message
from chatseq.core.modules.sequence.models import Scope
from chatseq.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class MessageService(Service):
    """Manages messages, numbered per chat."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("messages")

    async def on_start(self) -> None:
        await self._collection.create_index([("chat_id", 1), ("number", 1)], unique=True)

    async def create_message(self, chat_id: UUID, body: str) -> Message:
        if not body.strip():
            raise ValidationError("Message body cannot be empty")
        message = cast(Message, await self.core.services.sequence.allocate(Scope.messages(chat_id), {"body": body}))
        logger.debug("message_created", chat_id=chat_id, number=message.number)
        await self.core.services.chat.increment_messages_count(chat_id)
        return message

    async def get_message_by_number(self, chat_id: UUID, number: int) -> Message:
        doc = await self._collection.find_one({"chat_id": chat_id, "number": number})
        if not doc:
            raise NotFoundError("Message not found")
        return Message.model_validate(doc)

    async def list_messages(self, chat_id: UUID) -> list[Message]:
        return await Message.list_cursor(self._collection.find({"chat_id": chat_id}).sort("number", 1))
