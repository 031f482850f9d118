from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db, commit_or_conflict
from app.api.deps import get_current_active_user
from app.schemas.user import User, UserSearchResult, UserUpdate
from app.models.user import User as UserModel
from app.repositories.user import UserRepository
from app.services.friendship import FriendshipService

router = APIRouter()


@router.get("/me", response_model=User)
async def get_current_user_profile(
    current_user: UserModel = Depends(get_current_active_user)
):
    """Get current user profile"""
    return current_user


@router.put("/me", response_model=User)
async def update_current_user(
    user_update: UserUpdate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Update current user profile"""
    user = await UserRepository(db).update(current_user, user_update.model_dump(exclude_unset=True, exclude_none=True))
    await commit_or_conflict(db)
    return user


@router.get("/search", response_model=List[UserSearchResult])
async def search_users(
    q: str = Query("", description="Name or email fragment, at least 2 characters"),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Search users by name or email; blocked users are hidden and emails masked"""
    service = FriendshipService(db)
    return await service.search_users(current_user.id, q)
