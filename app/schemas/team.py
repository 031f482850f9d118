from pydantic import EmailStr, Field
from datetime import datetime
from typing import Any, Optional
from enum import Enum

from app.schemas.common import CamelModel
from app.schemas.user import UserPublic


class TeamRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class SignalType(str, Enum):
    OFFER = "offer"
    ANSWER = "answer"
    ICE = "ice"
    JOIN = "join"
    LEAVE = "leave"
    SHARE_START = "share_start"
    SHARE_STOP = "share_stop"


# Team Schemas
class TeamCreate(CamelModel):
    name: str
    description: Optional[str] = None


class TeamUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class Team(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    owner_id: int
    owner: UserPublic
    member_count: int = 0
    created_at: datetime


class TeamBrief(CamelModel):
    id: int
    name: str
    description: Optional[str] = None


# Member Schemas
class TeamMember(CamelModel):
    id: int
    user_id: int
    role: TeamRole
    created_at: datetime
    user: UserPublic


class MemberRoleUpdate(CamelModel):
    user_id: int = Field(gt=0)
    role: TeamRole


# Invite Schemas
class InviteCreate(CamelModel):
    email: EmailStr
    role: TeamRole = TeamRole.MEMBER


class TeamInvite(CamelModel):
    id: int
    team_id: int
    email: str
    role: TeamRole
    token: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime


class TeamInviteDetail(TeamInvite):
    team: TeamBrief


# Team chat
class TeamMessageCreate(CamelModel):
    content: str


class TeamMessage(CamelModel):
    id: int
    team_id: int
    sender_id: int
    content: str
    created_at: datetime
    sender: UserPublic


# Rooms & signaling
class RoomCreate(CamelModel):
    name: str


class TeamRoom(CamelModel):
    id: int
    team_id: int
    name: str
    is_active: bool
    created_at: datetime


class SignalCreate(CamelModel):
    type: str
    target_id: Optional[int] = None
    payload: Any = None


class RoomSignal(CamelModel):
    id: int
    room_id: int
    sender_id: int
    target_id: Optional[int] = None
    type: SignalType
    payload: Any
    created_at: datetime
