from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.common import SuccessResponse
from app.schemas.friendship import BlockedUser, UserIdBody
from app.models.user import User as UserModel
from app.services.friendship import FriendshipService

router = APIRouter()


@router.get("", response_model=List[BlockedUser])
async def get_blocks(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Users blocked by the current user"""
    return await FriendshipService(db).get_blocks(current_user.id)


@router.post("", response_model=SuccessResponse)
async def block_user(
    body: UserIdBody,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Block a user, dropping any friendship and pending requests with them"""
    await FriendshipService(db).block_user(current_user.id, body.user_id)
    return SuccessResponse()


@router.delete("", response_model=SuccessResponse)
async def unblock_user(
    body: UserIdBody,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    await FriendshipService(db).unblock_user(current_user.id, body.user_id)
    return SuccessResponse()
