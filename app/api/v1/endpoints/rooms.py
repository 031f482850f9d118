from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.team import RoomSignal, SignalCreate
from app.models.user import User as UserModel
from app.services.signal import SignalService
from app.utils.time_utils import parse_since

router = APIRouter()


@router.get("/{room_id}/signal", response_model=List[RoomSignal])
async def poll_signals(
    room_id: int,
    since: Optional[str] = Query(None, description="Only signals after this time (epoch ms or ISO-8601)"),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Signals posted by the other peers in the room"""
    return await SignalService(db).poll_signals(room_id, current_user.id, since=parse_since(since))


@router.post("/{room_id}/signal", response_model=RoomSignal, status_code=status.HTTP_201_CREATED)
async def post_signal(
    room_id: int,
    signal_data: SignalCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await SignalService(db).post_signal(
        room_id,
        current_user.id,
        signal_data.type,
        signal_data.payload,
        target_id=signal_data.target_id
    )
