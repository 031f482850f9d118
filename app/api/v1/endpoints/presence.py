from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.common import SuccessResponse
from app.schemas.presence import FriendsPresence, HeartbeatResult, PresenceStatusUpdate
from app.models.user import User as UserModel
from app.services.presence import PresenceService

router = APIRouter()


@router.post("/heartbeat", response_model=HeartbeatResult)
async def heartbeat(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark the current user as online"""
    await PresenceService(db).heartbeat(current_user.id)
    return HeartbeatResult()


@router.put("/status", response_model=SuccessResponse)
async def set_status(
    body: PresenceStatusUpdate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Set an intentional status (AWAY, BUSY, OFFLINE)"""
    await PresenceService(db).set_status(current_user.id, body.status)
    return SuccessResponse()


@router.get("/friends", response_model=FriendsPresence)
async def friends_presence(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Presence of the current user's friends"""
    return await PresenceService(db).friends_presence(current_user.id)
