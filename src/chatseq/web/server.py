from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatseq.app import App
from chatseq.config import Config
from chatseq.errors import SequenceError, UserError
from chatseq.web.error_handlers import general_exception_handler, sequence_error_handler, user_error_handler
from chatseq.web.routers import (
    admin_router,
    applications_router,
    chats_router,
    health_router,
    messages_router,
)


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(title="chatseq API", version="0.1.0", lifespan=lifespan)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health endpoints at root level, not versioned
    app.include_router(health_router)

    app.include_router(applications_router, prefix="/api/v1")
    app.include_router(chats_router, prefix="/api/v1")
    app.include_router(messages_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    register_error_handlers(app)

    return app


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(SequenceError, sequence_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
