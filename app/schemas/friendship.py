from pydantic import Field
from datetime import datetime
from typing import List, Literal, Optional
from enum import Enum

from app.schemas.common import CamelModel
from app.schemas.user import UserPublic


class FriendRequestStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CANCELED = "CANCELED"


class FriendRequestCreate(CamelModel):
    to_user_id: int = Field(gt=0)


class FriendRequestAction(CamelModel):
    action: Literal["accept", "decline", "cancel"]


class FriendRequestActionResult(CamelModel):
    success: bool = True
    status: FriendRequestStatus


class FriendRequest(CamelModel):
    id: int
    from_user_id: int
    to_user_id: int
    status: FriendRequestStatus
    created_at: datetime
    responded_at: Optional[datetime] = None


class IncomingRequest(CamelModel):
    id: int
    from_user: UserPublic
    created_at: datetime


class OutgoingRequest(CamelModel):
    id: int
    to_user: UserPublic
    created_at: datetime


class PendingRequests(CamelModel):
    incoming: List[IncomingRequest]
    outgoing: List[OutgoingRequest]


class Friend(UserPublic):
    friendship_id: int


class UserIdBody(CamelModel):
    user_id: int = Field(gt=0)


class BlockedUser(CamelModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    photo_url: Optional[str] = None
    created_at: datetime
