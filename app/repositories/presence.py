from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional, Sequence
from datetime import datetime

from app.models.presence import Presence


class PresenceRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: int) -> Optional[Presence]:
        result = await self.db.execute(select(Presence).where(Presence.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_many(self, user_ids: Sequence[int]) -> List[Presence]:
        if not user_ids:
            return []
        result = await self.db.execute(select(Presence).where(Presence.user_id.in_(list(user_ids))))
        return list(result.scalars().all())

    async def upsert(
        self,
        user_id: int,
        status: str,
        last_seen: datetime,
        updated_at: Optional[datetime] = None
    ) -> Presence:
        """Write the user's presence row; updated_at is only moved when given"""
        presence = await self.get(user_id)
        if presence is None:
            presence = Presence(
                user_id=user_id,
                status=status,
                last_seen=last_seen,
                updated_at=updated_at or last_seen
            )
            self.db.add(presence)
        else:
            presence.status = status
            presence.last_seen = last_seen
            if updated_at is not None:
                presence.updated_at = updated_at
        await self.db.flush()
        return presence
