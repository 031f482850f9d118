from pydantic import Field
from datetime import datetime
from typing import Optional

from app.schemas.common import CamelModel
from app.schemas.presence import PresenceStatus
from app.schemas.user import UserPublic

MIN_CONTENT_LENGTH = 1
MAX_CONTENT_LENGTH = 1000
MESSAGES_PAGE_SIZE = 50


class ConversationStart(CamelModel):
    friend_id: int = Field(gt=0)


class ConversationStarted(CamelModel):
    conversation_id: int


class MessageCreate(CamelModel):
    content: str


class Message(CamelModel):
    id: int
    sender_id: int
    content: str
    created_at: datetime


class LastMessage(CamelModel):
    sender_id: int
    content: str
    created_at: datetime


class PresenceBrief(CamelModel):
    status: PresenceStatus
    updated_at: datetime


class ConversationSummary(CamelModel):
    id: int
    friend: UserPublic
    last_message: Optional[LastMessage] = None
    presence: Optional[PresenceBrief] = None
    updated_at: datetime
