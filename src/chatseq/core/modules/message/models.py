from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from chatseq.core.db import SequencedModel
from chatseq.utils import now


class Message(SequencedModel):
    """Message numbered sequentially within its chat."""

    chat_id: UUID
    body: str
    created_at: datetime = Field(default_factory=now)


class MessageView(BaseModel):
    number: int
    body: str

    @classmethod
    def from_domain(cls, message: Message) -> "MessageView":
        return cls(number=message.number, body=message.body)
