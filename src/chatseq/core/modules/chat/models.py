from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chatseq.core.db import SequencedModel
from chatseq.utils import now


class Chat(SequencedModel):
    """Chat numbered sequentially within its application."""

    application_id: UUID
    messages_count: int = 0  # Cached, eventually consistent with the messages collection
    created_at: datetime = Field(default_factory=now)


class ChatView(BaseModel):
    number: int
    messages_count: int

    @classmethod
    def from_domain(cls, chat: Chat) -> "ChatView":
        return cls(number=chat.number, messages_count=chat.messages_count)
