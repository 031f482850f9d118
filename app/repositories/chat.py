from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, desc, update
from sqlalchemy.orm import selectinload
from typing import List, Optional
from datetime import datetime

from app.models.chat import Conversation, Message
from app.utils.pairs import normalize_pair
from app.utils.time_utils import utc_now


class ChatRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    # Conversation Management
    async def get_conversation_by_id(self, conversation_id: int) -> Optional[Conversation]:
        stmt = select(Conversation).where(Conversation.id == conversation_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_conversation_for_pair(self, user1_id: int, user2_id: int) -> Optional[Conversation]:
        """Get existing conversation between two users"""
        a, b = normalize_pair(user1_id, user2_id)
        stmt = select(Conversation).where(
            and_(Conversation.user_a_id == a, Conversation.user_b_id == b)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_conversation(self, user1_id: int, user2_id: int) -> Conversation:
        a, b = normalize_pair(user1_id, user2_id)
        conversation = Conversation(user_a_id=a, user_b_id=b)
        self.db.add(conversation)
        await self.db.flush()
        return conversation

    async def get_user_conversations(self, user_id: int, limit: int = 50) -> List[Conversation]:
        """Get user's conversations, most recently active first"""
        stmt = select(Conversation).options(
            selectinload(Conversation.user_a),
            selectinload(Conversation.user_b)
        ).where(
            or_(Conversation.user_a_id == user_id, Conversation.user_b_id == user_id)
        ).order_by(desc(Conversation.updated_at), desc(Conversation.id)).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def is_user_in_conversation(self, user_id: int, conversation_id: int) -> bool:
        """Check if user is a participant in the conversation"""
        stmt = select(Conversation.id).where(
            and_(
                Conversation.id == conversation_id,
                or_(Conversation.user_a_id == user_id, Conversation.user_b_id == user_id)
            )
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    # Message Management
    async def create_message(self, conversation_id: int, sender_id: int, content: str) -> Message:
        """Create a new message and bump the conversation's updated_at"""
        now = utc_now()
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            created_at=now
        )
        self.db.add(message)

        await self.db.execute(
            update(Conversation)
            .where(Conversation.id == conversation_id)
            .values(updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.flush()
        return message

    async def get_conversation_messages(
        self,
        conversation_id: int,
        since: Optional[datetime] = None,
        limit: int = 50
    ) -> List[Message]:
        """Get messages oldest first, optionally only those created after `since`"""
        stmt = select(Message).where(Message.conversation_id == conversation_id)
        if since is not None:
            stmt = stmt.where(Message.created_at > since)
        stmt = stmt.order_by(Message.created_at, Message.id).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_latest_message(self, conversation_id: int) -> Optional[Message]:
        """Get the latest message in a conversation"""
        stmt = select(Message).where(
            Message.conversation_id == conversation_id
        ).order_by(desc(Message.created_at), desc(Message.id)).limit(1)

        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
