from fastapi import APIRouter

from chatseq.core.modules.chat.models import ChatView
from chatseq.web.deps import AppDep
from chatseq.web.openapi import ErrorResponse

router = APIRouter(tags=["chats"])


@router.get(
    "/chat_applications/{token}/chats",
    summary="List chats",
    operation_id="listChats",
    responses={
        200: {"description": "Chats ordered by number"},
        404: {"model": ErrorResponse, "description": "Application not found"},
    },
)
async def list_chats(token: str, app: AppDep) -> list[ChatView]:
    return await app.get_chats(token)


@router.post(
    "/chat_applications/{token}/chats",
    summary="Create chat",
    description="Create a chat under the next free number of the application. Numbers start at 1.",
    operation_id="createChat",
    status_code=201,
    responses={
        201: {"description": "Chat created, the response carries its number"},
        404: {"model": ErrorResponse, "description": "Application not found"},
        503: {"model": ErrorResponse, "description": "Number could not be allocated, retry the request"},
    },
)
async def create_chat(token: str, app: AppDep) -> ChatView:
    return await app.create_chat(token)


@router.get(
    "/chat_applications/{token}/chats/{number}",
    summary="Get chat by number",
    operation_id="getChat",
    responses={
        200: {"description": "Chat details"},
        404: {"model": ErrorResponse, "description": "Application or chat not found"},
    },
)
async def get_chat(token: str, number: int, app: AppDep) -> ChatView:
    return await app.get_chat(token, number)
