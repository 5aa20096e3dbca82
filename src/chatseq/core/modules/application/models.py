from datetime import datetime

from pydantic import BaseModel, Field

from chatseq.core.db import MongoModel
from chatseq.utils import generate_token, now


class ChatApplication(MongoModel):
    """Top-level tenant owning a numbered set of chats."""

    name: str
    token: str = Field(default_factory=generate_token)  # Public identifier used in URLs
    chats_count: int = 0  # Cached, eventually consistent with the chats collection
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)


class ChatApplicationView(BaseModel):
    """Client-facing representation, internal ids are never exposed."""

    name: str
    token: str
    chats_count: int

    @classmethod
    def from_domain(cls, application: ChatApplication) -> "ChatApplicationView":
        return cls(name=application.name, token=application.token, chats_count=application.chats_count)
