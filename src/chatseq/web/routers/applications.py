from fastapi import APIRouter
from pydantic import BaseModel, Field

from chatseq.core.modules.application.models import ChatApplicationView
from chatseq.web.deps import AppDep
from chatseq.web.openapi import ErrorResponse

router = APIRouter(tags=["chat-applications"])


class ApplicationRequest(BaseModel):
    """Request to create or rename a chat application."""

    name: str = Field(..., description="Human-readable application name")

    model_config = {"json_schema_extra": {"examples": [{"name": "Support Desk"}]}}


@router.get(
    "/chat_applications",
    summary="List chat applications",
    operation_id="listChatApplications",
    responses={200: {"description": "List of applications"}},
)
async def list_applications(app: AppDep) -> list[ChatApplicationView]:
    return await app.get_applications()


@router.post(
    "/chat_applications",
    summary="Create chat application",
    description="Create a new application. The generated token identifies it in all nested routes.",
    operation_id="createChatApplication",
    status_code=201,
    responses={
        201: {"description": "Application created"},
        400: {"model": ErrorResponse, "description": "Invalid name"},
    },
)
async def create_application(req: ApplicationRequest, app: AppDep) -> ChatApplicationView:
    return await app.create_application(req.name)


@router.get(
    "/chat_applications/{token}",
    summary="Get chat application",
    operation_id="getChatApplication",
    responses={
        200: {"description": "Application details"},
        404: {"model": ErrorResponse, "description": "Application not found"},
    },
)
async def get_application(token: str, app: AppDep) -> ChatApplicationView:
    return await app.get_application(token)


@router.patch(
    "/chat_applications/{token}",
    summary="Rename chat application",
    operation_id="renameChatApplication",
    responses={
        200: {"description": "Application renamed"},
        400: {"model": ErrorResponse, "description": "Invalid name"},
        404: {"model": ErrorResponse, "description": "Application not found"},
    },
)
async def rename_application(token: str, req: ApplicationRequest, app: AppDep) -> ChatApplicationView:
    return await app.rename_application(token, req.name)
