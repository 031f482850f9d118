from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.core.rate_limit import MessageRateLimiter, get_rate_limiter
from app.api.deps import get_current_active_user
from app.schemas.chat import ConversationStart, ConversationStarted, ConversationSummary, Message, MessageCreate
from app.models.user import User as UserModel
from app.services.chat import ChatService
from app.utils.time_utils import parse_since

router = APIRouter()


@router.get("/conversations", response_model=List[ConversationSummary])
async def get_conversations(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get user's conversations, most recently active first"""
    chat_service = ChatService(db)
    return await chat_service.list_conversations(current_user.id)


@router.post("/start", response_model=ConversationStarted)
async def start_conversation(
    body: ConversationStart,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get or create the conversation with a friend"""
    chat_service = ChatService(db)
    return await chat_service.get_or_create_conversation_for_pair(current_user.id, body.friend_id)


@router.get("/conversations/{conversation_id}/messages", response_model=List[Message])
async def get_messages(
    conversation_id: int,
    since: Optional[str] = Query(None, description="Only messages after this time (epoch ms or ISO-8601)"),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get up to 50 messages, oldest first"""
    chat_service = ChatService(db)
    return await chat_service.list_messages(conversation_id, current_user.id, since=parse_since(since))


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=Message,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: int,
    message_data: MessageCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
    rate_limiter: MessageRateLimiter = Depends(get_rate_limiter)
):
    """Send a message to a conversation"""
    chat_service = ChatService(db, rate_limiter)
    return await chat_service.post_message(conversation_id, current_user.id, message_data.content)
