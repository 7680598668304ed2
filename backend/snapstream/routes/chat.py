"""
Snapstream Backend — Chat Route Handlers
==========================================

What:  REST endpoints for direct messages under /api/chat.
Why REST only: clients poll /conversations for unread counts; there is no
       socket push channel.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.database import get_db_session
from snapstream.dependencies import get_current_user
from snapstream.schemas.chat import (
    ChatMessageResponse,
    ConversationListResponse,
    MessageListResponse,
    SendMessageRequest,
    StartConversationRequest,
    StartConversationResponse,
)
from snapstream.schemas.common import MAX_PAGE, ErrorResponse, MessageResponse
from snapstream.security import CurrentUser
from snapstream.services.chat_service import chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])

CONVERSATION_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Not a participant", "model": ErrorResponse},
    404: {"description": "Conversation not found", "model": ErrorResponse},
}


@router.post(
    "/start-conversation",
    response_model=StartConversationResponse,
    responses={
        400: {"description": "Cannot chat with yourself", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Open (or reuse) a conversation with another user",
)
async def start_conversation(
    body: StartConversationRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> StartConversationResponse:
    return await chat_service.start_conversation(db, current_user, body.username)


@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    summary="The caller's conversations, most recent first",
)
async def list_conversations(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ConversationListResponse:
    return ConversationListResponse(
        conversations=await chat_service.list_conversations(db, current_user)
    )


@router.get(
    "/messages/{conversation_id}",
    response_model=MessageListResponse,
    responses=CONVERSATION_ERRORS,
    summary="Message history, newest page first, oldest first within a page",
)
async def get_messages(
    conversation_id: UUID,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageListResponse:
    return await chat_service.get_messages(db, conversation_id, current_user, page=page, limit=limit)


@router.post(
    "/send",
    status_code=201,
    response_model=ChatMessageResponse,
    responses={400: {"description": "Empty or too long message", "model": ErrorResponse}, **CONVERSATION_ERRORS},
    summary="Send a message",
)
async def send_message(
    body: SendMessageRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ChatMessageResponse:
    return await chat_service.send_message(db, current_user, body.conversation_id, body.content)


@router.patch(
    "/mark-read/{conversation_id}",
    response_model=MessageResponse,
    responses=CONVERSATION_ERRORS,
    summary="Mark every message in a conversation as read",
)
async def mark_read(
    conversation_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await chat_service.mark_read(db, conversation_id, current_user)
    return MessageResponse(message="Messages marked as read")
