"""
Snapstream Backend — Chat Service
===================================

What:  Two-person conversations: start/reuse, list with unread counts,
       message history, send, and mark-as-read.
Why:   Only participants may read or write a conversation; every entry point
       goes through _load_for_participant() to enforce that.
How:   Each conversation caches its last message. Unread counts are computed
       per participant as messages from others newer than their last_read_at,
       in one grouped query for the whole conversation list.
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.database import utcnow
from snapstream.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from snapstream.models.chat import Conversation, ConversationParticipant, Message
from snapstream.models.user import User
from snapstream.schemas.chat import (
    ChatMessageResponse,
    ConversationResponse,
    LastMessage,
    MessageListResponse,
    ParticipantResponse,
    StartConversationResponse,
)
from snapstream.security import CurrentUser
from snapstream.services.post_service import post_service

logger = logging.getLogger(__name__)


class ChatService:

    async def _load_for_participant(
        self,
        db: AsyncSession,
        conversation_id: uuid.UUID,
        current_user: CurrentUser,
    ) -> Conversation:
        """
        Raises:
            NotFoundError: no such conversation
            ForbiddenError: requester is not a participant
        """
        conversation = await db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError(resource="conversation", resource_id=str(conversation_id))
        if conversation.participant(current_user.uid) is None:
            raise ForbiddenError("You are not a participant in this conversation")
        return conversation

    def _to_response(
        self,
        conversation: Conversation,
        viewer_id: uuid.UUID,
        unread_count: int = 0,
    ) -> ConversationResponse:
        last_message = None
        if conversation.last_message_content is not None:
            last_message = LastMessage(
                content=conversation.last_message_content,
                sender_id=conversation.last_message_sender_id,
                created_at=conversation.last_message_at,
            )
        return ConversationResponse(
            id=conversation.id,
            participants=[
                ParticipantResponse.model_validate(p)
                for p in conversation.participants
                if p.user_id != viewer_id
            ],
            last_message=last_message,
            unread_count=unread_count,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )

    async def _flush(self, db: AsyncSession, action: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", action, str(e))
            raise DatabaseError()

    async def start_conversation(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        username: str,
    ) -> StartConversationResponse:
        """
        Reuse the existing two-person conversation with `username`, or create it.

        Raises:
            NotFoundError: unknown username
            ValidationError: the requester names themselves
        """
        other = await post_service.get_user_by_username(db, username)
        if other.id == current_user.uid:
            raise ValidationError("You cannot start a conversation with yourself", field="username")

        me = await db.get(User, current_user.uid)
        if me is None:
            raise NotFoundError(resource="user", resource_id=current_user.id)

        mine = select(ConversationParticipant.conversation_id).where(
            ConversationParticipant.user_id == me.id
        )
        theirs = select(ConversationParticipant.conversation_id).where(
            ConversationParticipant.user_id == other.id
        )
        two_person = (
            select(ConversationParticipant.conversation_id)
            .group_by(ConversationParticipant.conversation_id)
            .having(func.count() == 2)
        )
        try:
            result = await db.execute(
                select(Conversation)
                .where(
                    Conversation.id.in_(mine),
                    Conversation.id.in_(theirs),
                    Conversation.id.in_(two_person),
                )
                .limit(1)
            )
            existing = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Database error looking up conversation: %s", str(e))
            raise DatabaseError()

        if existing is not None:
            return StartConversationResponse(
                conversation=self._to_response(existing, me.id),
                created=False,
            )

        now = utcnow()
        conversation = Conversation(
            id=uuid.uuid4(),
            created_at=now,
            updated_at=now,
            participants=[
                ConversationParticipant(user_id=me.id, username=me.username, joined_at=now, last_read_at=now),
                ConversationParticipant(user_id=other.id, username=other.username, joined_at=now, last_read_at=now),
            ],
        )
        db.add(conversation)
        await self._flush(db, "conversation create")

        logger.info("Conversation %s started between %s and %s", conversation.id, me.username, other.username)
        return StartConversationResponse(
            conversation=self._to_response(conversation, me.id),
            created=True,
        )

    async def list_conversations(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
    ) -> List[ConversationResponse]:
        """The requester's conversations, most recently active first."""
        viewer_id = current_user.uid
        mine = select(ConversationParticipant.conversation_id).where(
            ConversationParticipant.user_id == viewer_id
        )
        try:
            conversations = (
                await db.execute(
                    select(Conversation)
                    .where(Conversation.id.in_(mine))
                    .order_by(Conversation.updated_at.desc())
                )
            ).scalars().all()
            unread = await self._unread_counts(db, viewer_id)
        except SQLAlchemyError as e:
            logger.error("Database error listing conversations: %s", str(e))
            raise DatabaseError()

        return [self._to_response(c, viewer_id, unread.get(c.id, 0)) for c in conversations]

    async def _unread_counts(self, db: AsyncSession, viewer_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        """
        Query plan:
            SELECT m.conversation_id, count(*) FROM messages m
            JOIN conversation_participants p
              ON p.conversation_id = m.conversation_id AND p.user_id = :viewer
            WHERE m.sender_id != :viewer AND m.created_at > p.last_read_at
            GROUP BY m.conversation_id
        """
        result = await db.execute(
            select(Message.conversation_id, func.count(Message.id))
            .join(
                ConversationParticipant,
                and_(
                    ConversationParticipant.conversation_id == Message.conversation_id,
                    ConversationParticipant.user_id == viewer_id,
                ),
            )
            .where(
                Message.sender_id != viewer_id,
                Message.created_at > ConversationParticipant.last_read_at,
            )
            .group_by(Message.conversation_id)
        )
        return {conversation_id: count for conversation_id, count in result.all()}

    async def get_messages(
        self,
        db: AsyncSession,
        conversation_id: uuid.UUID,
        current_user: CurrentUser,
        page: int = 1,
        limit: int = 50,
    ) -> MessageListResponse:
        """
        Page 1 is the newest `limit` messages; each page is returned oldest
        first so the client can append it directly to the transcript.
        """
        await self._load_for_participant(db, conversation_id, current_user)

        try:
            total_count = (
                await db.execute(
                    select(func.count())
                    .select_from(Message)
                    .where(Message.conversation_id == conversation_id)
                )
            ).scalar() or 0
            rows = (
                await db.execute(
                    select(Message)
                    .where(Message.conversation_id == conversation_id)
                    .order_by(Message.created_at.desc(), Message.id.desc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
            ).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error loading messages for %s: %s", conversation_id, str(e))
            raise DatabaseError()

        return MessageListResponse(
            messages=[ChatMessageResponse.model_validate(m) for m in reversed(rows)],
            page=page,
            limit=limit,
            total_count=total_count,
            has_more=page * limit < total_count,
        )

    async def send_message(
        self,
        db: AsyncSession,
        current_user: CurrentUser,
        conversation_id: uuid.UUID,
        content: str,
    ) -> ChatMessageResponse:
        conversation = await self._load_for_participant(db, conversation_id, current_user)
        sender = conversation.participant(current_user.uid)

        now = utcnow()
        message = Message(
            id=uuid.uuid4(),
            conversation_id=conversation.id,
            sender_id=sender.user_id,
            sender_username=sender.username,
            content=content,
            created_at=now,
        )
        db.add(message)

        conversation.last_message_content = content
        conversation.last_message_sender_id = sender.user_id
        conversation.last_message_at = now
        conversation.updated_at = now
        # Sending implies having read everything before it
        sender.last_read_at = now

        await self._flush(db, "message send")
        logger.info("Message %s sent in conversation %s", message.id, conversation.id)
        return ChatMessageResponse.model_validate(message)

    async def mark_read(
        self,
        db: AsyncSession,
        conversation_id: uuid.UUID,
        current_user: CurrentUser,
    ) -> None:
        conversation = await self._load_for_participant(db, conversation_id, current_user)
        participant: Optional[ConversationParticipant] = conversation.participant(current_user.uid)
        participant.last_read_at = utcnow()
        await self._flush(db, "mark read")


chat_service = ChatService()
