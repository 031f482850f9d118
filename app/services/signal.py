"""
Room signal relay.

WebRTC offers, answers and ICE candidates (plus join/leave and screen-share
control messages) are stored per room and picked up by the other peers on
their next poll.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, List, Optional
from datetime import datetime

from app.core.database import commit_or_conflict
from app.models.team import TeamRoom
from app.repositories.team import TeamRepository
from app.schemas.team import RoomSignal, SignalType
from app.services.access import AccessGate
from app.utils.exceptions import NotFoundError, ValidationError

SIGNAL_POLL_LIMIT = 100

SIGNAL_TYPES = {t.value for t in SignalType}


class SignalService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = TeamRepository(db)
        self.access = AccessGate(db)

    async def post_signal(
        self,
        room_id: int,
        sender_id: int,
        signal_type: str,
        payload: Any,
        target_id: Optional[int] = None
    ) -> RoomSignal:
        if signal_type not in SIGNAL_TYPES:
            raise ValidationError("Invalid signal type")
        if payload is None:
            raise ValidationError("Payload is required")

        room = await self._get_room_for_member(room_id, sender_id)

        signal = await self.repo.create_signal(room.id, sender_id, signal_type, payload, target_id)
        await commit_or_conflict(self.db)
        return RoomSignal.model_validate(signal)

    async def poll_signals(self, room_id: int, requester_id: int, since: Optional[datetime] = None) -> List[RoomSignal]:
        """Signals from the other peers, oldest first, strictly after `since`"""
        room = await self._get_room_for_member(room_id, requester_id)

        signals = await self.repo.get_signals(
            room.id, exclude_sender_id=requester_id, since=since, limit=SIGNAL_POLL_LIMIT
        )
        return [RoomSignal.model_validate(s) for s in signals]

    async def _get_room_for_member(self, room_id: int, user_id: int) -> TeamRoom:
        room = await self.repo.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        await self.access.require_team_member(user_id, room.team_id)
        return room
