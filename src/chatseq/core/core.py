from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from redis.asyncio import Redis

from chatseq.config import Config

if TYPE_CHECKING:
    from chatseq.core.modules.application.service import ApplicationService
    from chatseq.core.modules.chat.service import ChatService
    from chatseq.core.modules.counter.service import CounterService
    from chatseq.core.modules.message.service import MessageService
    from chatseq.core.modules.sequence.service import SequenceService


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that imports, instantiates and starts services in order."""

    application: ApplicationService
    chat: ChatService
    message: MessageService
    counter: CounterService
    sequence: SequenceService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._services: list[Service] = []
        self._database = database

        # (attribute_name, module_path, class_name)
        # Collections and indexes first; sequence reconciles on start and needs them all
        service_configs = [
            ("application", "chatseq.core.modules.application.service", "ApplicationService"),
            ("chat", "chatseq.core.modules.chat.service", "ChatService"),
            ("message", "chatseq.core.modules.message.service", "MessageService"),
            ("counter", "chatseq.core.modules.counter.service", "CounterService"),
            ("sequence", "chatseq.core.modules.sequence.service", "SequenceService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop services in reverse start order."""
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, store clients, and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    redis: Redis
    services: Services

    def __init__(self, config: Config) -> None:
        """Initialize core with config, MongoDB, Redis, and auto-register services."""
        self.config = config
        self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard")
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.redis = Redis.from_url(config.redis_url, decode_responses=True)
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close store connections on shutdown."""
        await self.services.stop_all()
        await self.redis.aclose()
        await self.mongo_client.aclose()
