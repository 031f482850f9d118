from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.team import TeamInviteDetail, TeamMember
from app.models.user import User as UserModel
from app.services.team import TeamService

router = APIRouter()


@router.get("/mine", response_model=List[TeamInviteDetail])
async def get_my_invites(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Pending invites addressed to the current user's email"""
    return await TeamService(db).get_my_invites(current_user)


@router.get("/{token}", response_model=TeamInviteDetail)
async def get_invite(
    token: str,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await TeamService(db).get_invite(token)


@router.post("/{token}", response_model=TeamMember)
async def accept_invite(
    token: str,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Join the team the invite belongs to"""
    return await TeamService(db).accept_invite(token, current_user)
