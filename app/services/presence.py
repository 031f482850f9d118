import logging
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Callable
from datetime import datetime, timedelta

from app.core.config import settings
from app.core.database import commit_or_conflict
from app.repositories.friendship import FriendshipRepository
from app.repositories.presence import PresenceRepository
from app.schemas.presence import FriendPresence, FriendsPresence, PresenceStatus
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def effective_status(
    stored_status: str,
    updated_at: datetime,
    now: datetime,
    online_window_seconds: int = 60
) -> PresenceStatus:
    """
    A recent heartbeat means ONLINE whatever was stored; otherwise the stored
    status stands.
    """
    if now - updated_at < timedelta(seconds=online_window_seconds):
        return PresenceStatus.ONLINE
    return PresenceStatus(stored_status)


class PresenceService:

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.repo = PresenceRepository(db)
        self.friendship_repo = FriendshipRepository(db)
        self.clock = clock

    async def heartbeat(self, user_id: int) -> None:
        now = self.clock()
        await self.repo.upsert(user_id, PresenceStatus.ONLINE.value, last_seen=now, updated_at=now)
        await commit_or_conflict(self.db)

    async def set_status(self, user_id: int, status: PresenceStatus) -> None:
        """Store an intentional status; the heartbeat time is left alone"""
        await self.repo.upsert(user_id, status.value, last_seen=self.clock())
        await commit_or_conflict(self.db)
        logger.debug(f"User {user_id} set presence to {status.value}")

    async def mark_offline(self, user_id: int) -> None:
        await self.set_status(user_id, PresenceStatus.OFFLINE)

    async def friends_presence(self, user_id: int) -> FriendsPresence:
        friend_ids = await self.friendship_repo.get_friend_ids(user_id)
        rows = await self.repo.get_many(friend_ids)
        now = self.clock()

        friends = [
            FriendPresence(
                user_id=row.user_id,
                status=effective_status(
                    row.status, row.updated_at, now, settings.PRESENCE_ONLINE_WINDOW_SECONDS
                ),
                updated_at=row.updated_at,
                last_seen=row.last_seen
            )
            for row in rows
        ]
        online_count = sum(1 for f in friends if f.status == PresenceStatus.ONLINE)
        return FriendsPresence(friends=friends, online_count=online_count)
