from chatseq.web.routers.admin import router as admin_router
from chatseq.web.routers.applications import router as applications_router
from chatseq.web.routers.chats import router as chats_router
from chatseq.web.routers.health import router as health_router
from chatseq.web.routers.messages import router as messages_router

__all__ = [
    "admin_router",
    "applications_router",
    "chats_router",
    "health_router",
    "messages_router",
]
