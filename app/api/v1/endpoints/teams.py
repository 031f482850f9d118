from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.api.deps import get_current_active_user
from app.schemas.common import SuccessResponse
from app.schemas.friendship import UserIdBody
from app.schemas.team import (
    InviteCreate, MemberRoleUpdate, RoomCreate, Team, TeamCreate, TeamInvite,
    TeamMember, TeamMessage, TeamMessageCreate, TeamRoom, TeamUpdate
)
from app.models.user import User as UserModel
from app.services.team import TEAM_MESSAGES_LIMIT, TeamService

router = APIRouter()


# Teams
@router.get("", response_model=List[Team])
async def get_my_teams(
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Teams the current user belongs to"""
    return await TeamService(db).get_user_teams(current_user.id)


@router.post("", response_model=Team, status_code=status.HTTP_201_CREATED)
async def create_team(
    team_data: TeamCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a team owned by the current user"""
    return await TeamService(db).create_team(current_user.id, team_data)


@router.get("/{team_id}", response_model=Team)
async def get_team(
    team_id: int,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await TeamService(db).get_team(team_id, current_user.id)


@router.patch("/{team_id}", response_model=Team)
async def update_team(
    team_id: int,
    update: TeamUpdate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Update team details (owner or admin)"""
    return await TeamService(db).update_team(team_id, current_user.id, update)


# Members
@router.get("/{team_id}/members", response_model=List[TeamMember])
async def get_members(
    team_id: int,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await TeamService(db).get_members(team_id, current_user.id)


@router.patch("/{team_id}/members", response_model=TeamMember)
async def update_member_role(
    team_id: int,
    body: MemberRoleUpdate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Change a member's role (owner or admin); the owner's role is fixed"""
    return await TeamService(db).update_member_role(team_id, current_user.id, body.user_id, body.role)


@router.delete("/{team_id}/members", response_model=SuccessResponse)
async def remove_member(
    team_id: int,
    body: UserIdBody,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove a member (owner or admin); the owner cannot be removed"""
    await TeamService(db).remove_member(team_id, current_user.id, body.user_id)
    return SuccessResponse()


# Invites
@router.get("/{team_id}/invites", response_model=List[TeamInvite])
async def get_team_invites(
    team_id: int,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Pending, unexpired invites of the team"""
    return await TeamService(db).get_team_invites(team_id, current_user.id)


@router.post("/{team_id}/invites", response_model=TeamInvite, status_code=status.HTTP_201_CREATED)
async def create_invite(
    team_id: int,
    invite_data: InviteCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await TeamService(db).create_invite(team_id, current_user.id, invite_data)


# Team chat
@router.get("/{team_id}/messages", response_model=List[TeamMessage])
async def get_team_messages(
    team_id: int,
    limit: int = Query(TEAM_MESSAGES_LIMIT, description="Number of latest messages, at most 50"),
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Latest team messages, oldest first"""
    return await TeamService(db).get_messages(team_id, current_user.id, limit)


@router.post("/{team_id}/messages", response_model=TeamMessage, status_code=status.HTTP_201_CREATED)
async def post_team_message(
    team_id: int,
    message_data: TeamMessageCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await TeamService(db).post_message(team_id, current_user.id, message_data.content)


# Rooms
@router.get("/{team_id}/rooms", response_model=List[TeamRoom])
async def get_rooms(
    team_id: int,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    return await TeamService(db).get_rooms(team_id, current_user.id)


@router.post("/{team_id}/rooms", response_model=TeamRoom, status_code=status.HTTP_201_CREATED)
async def create_room(
    team_id: int,
    room_data: RoomCreate,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Open a video room in the team"""
    return await TeamService(db).create_room(team_id, current_user.id, room_data.name)
