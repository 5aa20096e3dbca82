from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from chatseq.config import Config
from chatseq.core.core import Core
from chatseq.core.modules.application.models import ChatApplication, ChatApplicationView
from chatseq.core.modules.chat.models import Chat, ChatView
from chatseq.core.modules.message.models import MessageView
from chatseq.core.modules.sequence.models import ConsistencyReport, ReconcileReport


class App:
    """Facade for all request-level operations, resolves public identifiers before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def create_application(self, name: str) -> ChatApplicationView:
        application = await self._core.services.application.create_application(name)
        return ChatApplicationView.from_domain(application)

    async def get_applications(self) -> list[ChatApplicationView]:
        applications = await self._core.services.application.list_applications()
        return [ChatApplicationView.from_domain(a) for a in applications]

    async def get_application(self, token: str) -> ChatApplicationView:
        application = await self._core.services.application.get_application_by_token(token)
        return ChatApplicationView.from_domain(application)

    async def rename_application(self, token: str, name: str) -> ChatApplicationView:
        application = await self._core.services.application.rename_application(token, name)
        return ChatApplicationView.from_domain(application)

    async def create_chat(self, token: str) -> ChatView:
        """Create the next numbered chat of an application."""
        application = await self._resolve_application(token)
        chat = await self._core.services.chat.create_chat(application.id)
        return ChatView.from_domain(chat)

    async def get_chats(self, token: str) -> list[ChatView]:
        application = await self._resolve_application(token)
        chats = await self._core.services.chat.list_chats(application.id)
        return [ChatView.from_domain(chat) for chat in chats]

    async def get_chat(self, token: str, chat_number: int) -> ChatView:
        chat = await self._resolve_chat(token, chat_number)
        return ChatView.from_domain(chat)

    async def create_message(self, token: str, chat_number: int, body: str) -> MessageView:
        """Create the next numbered message of a chat."""
        chat = await self._resolve_chat(token, chat_number)
        message = await self._core.services.message.create_message(chat.id, body)
        return MessageView.from_domain(message)

    async def get_messages(self, token: str, chat_number: int) -> list[MessageView]:
        chat = await self._resolve_chat(token, chat_number)
        messages = await self._core.services.message.list_messages(chat.id)
        return [MessageView.from_domain(m) for m in messages]

    async def get_message(self, token: str, chat_number: int, message_number: int) -> MessageView:
        chat = await self._resolve_chat(token, chat_number)
        message = await self._core.services.message.get_message_by_number(chat.id, message_number)
        return MessageView.from_domain(message)

    async def check_counters(self) -> ConsistencyReport:
        """Sample counter drift (read-only)."""
        return await self._core.services.sequence.check()

    async def reconcile_counters(self, full: bool = False) -> ReconcileReport:
        """Raise drifted counters; a sampled pass unless `full` is set."""
        return await self._core.services.sequence.reconcile_all(full=full)

    async def sync_counts(self) -> dict[str, int]:
        """Recompute cached child counts from the durable store."""
        return {
            "applications_fixed": await self._core.services.application.sync_chats_counts(),
            "chats_fixed": await self._core.services.chat.sync_messages_counts(),
        }

    async def _resolve_application(self, token: str) -> ChatApplication:
        return await self._core.services.application.get_application_by_token(token)

    async def _resolve_chat(self, token: str, chat_number: int) -> Chat:
        application = await self._resolve_application(token)
        return await self._core.services.chat.get_chat_by_number(application.id, chat_number)
