"""
Snapstream Backend — Chat Schemas
===================================

Request and response models for direct-message conversations.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from snapstream.schemas.common import PageMeta

MESSAGE_MAX_LENGTH = 2000


class StartConversationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=1, description="The other participant")

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    conversation_id: uuid.UUID
    content: str = Field(description="1-2000 characters after trimming")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message content is required")
        if len(v) > MESSAGE_MAX_LENGTH:
            raise ValueError(f"Message must be at most {MESSAGE_MAX_LENGTH} characters")
        return v


class ParticipantResponse(BaseModel):
    user_id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class LastMessage(BaseModel):
    content: str
    sender_id: uuid.UUID
    created_at: datetime


class ConversationResponse(BaseModel):
    id: uuid.UUID
    participants: List[ParticipantResponse] = Field(description="Everyone except the viewer")
    last_message: Optional[LastMessage] = None
    unread_count: int = 0
    created_at: datetime
    updated_at: datetime


class StartConversationResponse(BaseModel):
    conversation: ConversationResponse
    created: bool = Field(description="False when an existing conversation was reused")


class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]


class ChatMessageResponse(BaseModel):
    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID
    sender_username: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageListResponse(PageMeta):
    messages: List[ChatMessageResponse] = Field(description="Oldest first within the page")
