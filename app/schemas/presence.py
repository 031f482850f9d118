from datetime import datetime
from typing import List
from enum import Enum

from app.schemas.common import CamelModel


class PresenceStatus(str, Enum):
    ONLINE = "ONLINE"
    AWAY = "AWAY"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"


class PresenceStatusUpdate(CamelModel):
    status: PresenceStatus


class FriendPresence(CamelModel):
    user_id: int
    status: PresenceStatus
    updated_at: datetime
    last_seen: datetime


class FriendsPresence(CamelModel):
    friends: List[FriendPresence]
    online_count: int


class HeartbeatResult(CamelModel):
    ok: bool = True
