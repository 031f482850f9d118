from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.common import SuccessResponse
from app.schemas.friendship import (
    Friend, FriendRequest, FriendRequestAction, FriendRequestActionResult,
    FriendRequestCreate, PendingRequests, UserIdBody
)
from app.models.user import User as UserModel
from app.services.friendship import FriendshipService

router = APIRouter()


@router.get("", response_model=List[Friend])
async def get_friends(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get list of current user's friends"""
    service = FriendshipService(db)
    return await service.get_friends(current_user.id)


@router.delete("", response_model=SuccessResponse)
async def remove_friend(
    body: UserIdBody,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove friendship with another user"""
    service = FriendshipService(db)
    await service.remove_friend(current_user.id, body.user_id)
    return SuccessResponse()


@router.get("/requests", response_model=PendingRequests)
async def get_pending_requests(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Get all pending friend requests (received and sent)"""
    service = FriendshipService(db)
    return await service.get_pending_requests(current_user.id)


@router.post("/requests", response_model=FriendRequest, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request_data: FriendRequestCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Send a friend request to another user"""
    service = FriendshipService(db)
    return await service.send_friend_request(current_user.id, request_data.to_user_id)


@router.patch("/requests/{request_id}", response_model=FriendRequestActionResult)
async def handle_friend_request(
    request_id: int,
    action_data: FriendRequestAction,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Accept or decline a received request, or cancel a sent one"""
    service = FriendshipService(db)
    new_status = await service.handle_request_action(request_id, current_user.id, action_data.action)
    return FriendRequestActionResult(status=new_status)
