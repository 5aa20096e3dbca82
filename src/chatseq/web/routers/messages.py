from fastapi import APIRouter
from pydantic import BaseModel, Field

from chatseq.core.modules.message.models import MessageView
from chatseq.web.deps import AppDep
from chatseq.web.openapi import ErrorResponse

router = APIRouter(tags=["messages"])


class CreateMessageRequest(BaseModel):
    """Request to post a message to a chat."""

    body: str = Field(..., description="Message text")

    model_config = {"json_schema_extra": {"examples": [{"body": "Hello there"}]}}


@router.get(
    "/chat_applications/{token}/chats/{chat_number}/messages",
    summary="List messages",
    operation_id="listMessages",
    responses={
        200: {"description": "Messages ordered by number"},
        404: {"model": ErrorResponse, "description": "Application or chat not found"},
    },
)
async def list_messages(token: str, chat_number: int, app: AppDep) -> list[MessageView]:
    return await app.get_messages(token, chat_number)


@router.post(
    "/chat_applications/{token}/chats/{chat_number}/messages",
    summary="Create message",
    description="Post a message under the next free number of the chat. Numbers start at 1.",
    operation_id="createMessage",
    status_code=201,
    responses={
        201: {"description": "Message created, the response carries its number"},
        400: {"model": ErrorResponse, "description": "Empty body"},
        404: {"model": ErrorResponse, "description": "Application or chat not found"},
        503: {"model": ErrorResponse, "description": "Number could not be allocated, retry the request"},
    },
)
async def create_message(token: str, chat_number: int, req: CreateMessageRequest, app: AppDep) -> MessageView:
    return await app.create_message(token, chat_number, req.body)


@router.get(
    "/chat_applications/{token}/chats/{chat_number}/messages/{number}",
    summary="Get message by number",
    operation_id="getMessage",
    responses={
        200: {"description": "Message details"},
        404: {"model": ErrorResponse, "description": "Application, chat or message not found"},
    },
)
async def get_message(token: str, chat_number: int, number: int, app: AppDep) -> MessageView:
    return await app.get_message(token, chat_number, number)
