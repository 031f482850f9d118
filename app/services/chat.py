import logging
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import datetime

from app.core.config import settings
from app.core.database import commit_or_conflict
from app.core.rate_limit import MessageRateLimiter
from app.repositories.chat import ChatRepository
from app.repositories.presence import PresenceRepository
from app.schemas.chat import (
    ConversationStarted, ConversationSummary, LastMessage, Message,
    MESSAGES_PAGE_SIZE, MAX_CONTENT_LENGTH, MIN_CONTENT_LENGTH, PresenceBrief
)
from app.schemas.user import UserPublic
from app.services.access import AccessGate
from app.services.presence import effective_status
from app.utils.exceptions import AuthorizationError, RateLimitedError, ValidationError
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def clean_content(content: Optional[str]) -> str:
    """Trim message text and enforce the length bounds"""
    text = (content or "").strip()
    if not MIN_CONTENT_LENGTH <= len(text) <= MAX_CONTENT_LENGTH:
        raise ValidationError(f"Message must be {MIN_CONTENT_LENGTH}-{MAX_CONTENT_LENGTH} characters")
    return text


class ChatService:

    def __init__(self, db: AsyncSession, rate_limiter: Optional[MessageRateLimiter] = None):
        self.db = db
        self.chat_repo = ChatRepository(db)
        self.presence_repo = PresenceRepository(db)
        self.access = AccessGate(db)
        self.rate_limiter = rate_limiter

    async def get_or_create_conversation_for_pair(self, user_id: int, friend_id: int) -> ConversationStarted:
        """Return the pair's conversation, creating it on first use"""
        if user_id == friend_id:
            raise ValidationError("Cannot chat with yourself")

        await self.access.require_can_message(user_id, friend_id)

        conversation = await self.chat_repo.get_conversation_for_pair(user_id, friend_id)
        if conversation is None:
            conversation = await self.chat_repo.create_conversation(user_id, friend_id)
            # A concurrent start for the same pair trips the unique constraint
            await commit_or_conflict(self.db, "Conversation already exists, retry")
            logger.info(f"Conversation {conversation.id} created for users {user_id} and {friend_id}")

        return ConversationStarted(conversation_id=conversation.id)

    async def post_message(self, conversation_id: int, sender_id: int, content: Optional[str]) -> Message:
        """Send a message into a conversation the sender takes part in"""
        conversation = await self.chat_repo.get_conversation_by_id(conversation_id)
        if conversation is None or sender_id not in conversation.participant_ids():
            raise AuthorizationError()

        # Friendship may have ended or a block appeared since the conversation started
        other_id = next(uid for uid in conversation.participant_ids() if uid != sender_id)
        await self.access.require_can_message(sender_id, other_id)

        if self.rate_limiter is not None and not await self.rate_limiter.check(sender_id):
            raise RateLimitedError()

        text = clean_content(content)

        message = await self.chat_repo.create_message(conversation_id, sender_id, text)
        await commit_or_conflict(self.db)
        return Message.model_validate(message)

    async def list_messages(
        self,
        conversation_id: int,
        user_id: int,
        since: Optional[datetime] = None
    ) -> List[Message]:
        """Messages oldest first, strictly after `since` when given"""
        if not await self.access.is_user_in_conversation(user_id, conversation_id):
            raise AuthorizationError()

        messages = await self.chat_repo.get_conversation_messages(
            conversation_id, since=since, limit=MESSAGES_PAGE_SIZE
        )
        return [Message.model_validate(m) for m in messages]

    async def list_conversations(self, user_id: int) -> List[ConversationSummary]:
        """Conversations with the other participant, last message and presence"""
        conversations = await self.chat_repo.get_user_conversations(user_id)
        friend_ids = [c.user_b_id if c.user_a_id == user_id else c.user_a_id for c in conversations]
        presences = {p.user_id: p for p in await self.presence_repo.get_many(friend_ids)}
        now = utc_now()

        summaries = []
        for conversation in conversations:
            friend = conversation.user_b if conversation.user_a_id == user_id else conversation.user_a
            latest = await self.chat_repo.get_latest_message(conversation.id)
            presence = presences.get(friend.id)

            summaries.append(ConversationSummary(
                id=conversation.id,
                friend=UserPublic.model_validate(friend),
                last_message=LastMessage.model_validate(latest) if latest else None,
                presence=PresenceBrief(
                    status=effective_status(
                        presence.status, presence.updated_at, now,
                        settings.PRESENCE_ONLINE_WINDOW_SECONDS
                    ),
                    updated_at=presence.updated_at
                ) if presence else None,
                updated_at=conversation.updated_at
            ))
        return summaries
