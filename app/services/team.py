import logging
import secrets
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from datetime import timedelta

from app.core.config import settings
from app.core.database import commit_or_conflict
from app.models.team import Team as TeamModel
from app.models.user import User
from app.repositories.team import TeamRepository
from app.schemas.team import (
    InviteCreate, Team, TeamCreate, TeamInvite, TeamInviteDetail, TeamMember,
    TeamMessage, TeamRole, TeamRoom, TeamUpdate
)
from app.schemas.user import UserPublic
from app.services.access import AccessGate
from app.services.chat import clean_content
from app.utils.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

TEAM_MESSAGES_LIMIT = 50


def clean_name(name: Optional[str], what: str) -> str:
    name = (name or "").strip()
    if not 2 <= len(name) <= 40:
        raise ValidationError(f"{what} name must be between 2 and 40 characters")
    return name


class TeamService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = TeamRepository(db)
        self.access = AccessGate(db)

    # Teams
    async def create_team(self, owner_id: int, team_data: TeamCreate) -> Team:
        """Create a team; the creator becomes its OWNER"""
        name = clean_name(team_data.name, "Team")
        description = (team_data.description or "").strip() or None

        team = await self.repo.create_team(owner_id, name, description)
        await commit_or_conflict(self.db)
        logger.info(f"Team {team.id} created by user {owner_id}")
        return await self.get_team(team.id, owner_id)

    async def get_user_teams(self, user_id: int) -> List[Team]:
        teams = await self.repo.get_user_teams(user_id)
        counts = await self.repo.count_members([t.id for t in teams])
        return [self._team_response(t, counts.get(t.id, 0)) for t in teams]

    async def get_team(self, team_id: int, user_id: int) -> Team:
        await self.access.require_team_member(user_id, team_id)
        team = await self._get_team_or_404(team_id)
        counts = await self.repo.count_members([team.id])
        return self._team_response(team, counts.get(team.id, 0))

    async def update_team(self, team_id: int, user_id: int, update: TeamUpdate) -> Team:
        await self.access.require_team_admin(user_id, team_id)
        team = await self._get_team_or_404(team_id)

        values = update.model_dump(exclude_unset=True)
        if "name" in values:
            values["name"] = clean_name(values["name"], "Team")
        if "description" in values:
            values["description"] = (values["description"] or "").strip() or None

        await self.repo.update_team(team, values)
        await commit_or_conflict(self.db)
        return await self.get_team(team_id, user_id)

    # Members
    async def get_members(self, team_id: int, user_id: int) -> List[TeamMember]:
        await self.access.require_team_member(user_id, team_id)
        members = await self.repo.get_members(team_id)
        return [TeamMember.model_validate(m) for m in members]

    async def update_member_role(self, team_id: int, acting_user_id: int, member_user_id: int, role: TeamRole) -> TeamMember:
        await self.access.require_team_admin(acting_user_id, team_id)

        member = await self.repo.get_member(team_id, member_user_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.role == TeamRole.OWNER.value or role == TeamRole.OWNER:
            raise ValidationError("Cannot change owner role")

        member.role = role.value
        await commit_or_conflict(self.db)
        logger.info(f"User {member_user_id} is now {role.value} of team {team_id}")

        await self.db.refresh(member, ["user"])
        return TeamMember.model_validate(member)

    async def remove_member(self, team_id: int, acting_user_id: int, member_user_id: int) -> None:
        await self.access.require_team_admin(acting_user_id, team_id)

        member = await self.repo.get_member(team_id, member_user_id)
        if member is None:
            raise NotFoundError("Member not found")
        if member.role == TeamRole.OWNER.value:
            raise ValidationError("Cannot remove owner")

        await self.repo.remove_member(member)
        await commit_or_conflict(self.db)
        logger.info(f"User {member_user_id} removed from team {team_id} by user {acting_user_id}")

    # Invites
    async def create_invite(self, team_id: int, acting_user_id: int, invite_data: InviteCreate) -> TeamInvite:
        """
        Invite an email address to the team.

        The invite carries a random token that the invitee presents to accept;
        it expires after TEAM_INVITE_EXPIRE_DAYS.
        """
        await self.access.require_team_admin(acting_user_id, team_id)

        if invite_data.role not in (TeamRole.ADMIN, TeamRole.MEMBER):
            raise ValidationError("Role must be ADMIN or MEMBER")

        email = invite_data.email.strip().lower()
        if await self.repo.is_member_by_email(team_id, email):
            raise ValidationError("User is already a team member")

        invite = await self.repo.create_invite(
            team_id=team_id,
            email=email,
            role=invite_data.role.value,
            token=secrets.token_hex(32),
            expires_at=utc_now() + timedelta(days=settings.TEAM_INVITE_EXPIRE_DAYS)
        )
        await commit_or_conflict(self.db)
        logger.info(f"Invite {invite.id} to team {team_id} created for {email}")
        return TeamInvite.model_validate(invite)

    async def get_team_invites(self, team_id: int, acting_user_id: int) -> List[TeamInvite]:
        await self.access.require_team_admin(acting_user_id, team_id)
        invites = await self.repo.get_pending_invites(utc_now(), team_id=team_id)
        return [TeamInvite.model_validate(i) for i in invites]

    async def get_my_invites(self, user: User) -> List[TeamInviteDetail]:
        invites = await self.repo.get_pending_invites(utc_now(), email=user.email)
        return [TeamInviteDetail.model_validate(i) for i in invites]

    async def get_invite(self, token: str) -> TeamInviteDetail:
        invite = await self.repo.get_invite_by_token(token)
        if invite is None:
            raise NotFoundError("Invite not found")
        return TeamInviteDetail.model_validate(invite)

    async def accept_invite(self, token: str, user: User) -> TeamMember:
        """Join the team through an invite; membership and acceptance commit together"""
        invite = await self.repo.get_invite_by_token(token)
        if invite is None:
            raise NotFoundError("Invite not found")
        if invite.accepted_at is not None:
            raise ValidationError("Invite already accepted")
        if invite.expires_at <= utc_now():
            raise ValidationError("Invite has expired")
        if invite.email.lower() != user.email.lower():
            raise AuthorizationError("Invite email does not match your account email")
        if await self.repo.get_member(invite.team_id, user.id) is not None:
            raise ValidationError("You are already a team member")

        member = await self.repo.add_member(invite.team_id, user.id, invite.role)
        invite.accepted_at = utc_now()
        await commit_or_conflict(self.db, "You are already a team member")
        logger.info(f"User {user.id} joined team {invite.team_id} via invite {invite.id}")

        await self.db.refresh(member, ["user"])
        return TeamMember.model_validate(member)

    # Team chat
    async def get_messages(self, team_id: int, user_id: int, limit: int = TEAM_MESSAGES_LIMIT) -> List[TeamMessage]:
        """Latest messages, oldest first; `limit` is capped at TEAM_MESSAGES_LIMIT"""
        await self.access.require_team_member(user_id, team_id)
        limit = max(1, min(limit, TEAM_MESSAGES_LIMIT))
        messages = await self.repo.get_recent_messages(team_id, limit)
        return [TeamMessage.model_validate(m) for m in messages]

    async def post_message(self, team_id: int, sender_id: int, content: Optional[str]) -> TeamMessage:
        await self.access.require_team_member(sender_id, team_id)
        text = clean_content(content)

        message = await self.repo.create_message(team_id, sender_id, text)
        await commit_or_conflict(self.db)
        return TeamMessage.model_validate(message)

    # Rooms
    async def get_rooms(self, team_id: int, user_id: int) -> List[TeamRoom]:
        await self.access.require_team_member(user_id, team_id)
        rooms = await self.repo.get_rooms(team_id)
        return [TeamRoom.model_validate(r) for r in rooms]

    async def create_room(self, team_id: int, user_id: int, name: Optional[str]) -> TeamRoom:
        await self.access.require_team_member(user_id, team_id)
        room = await self.repo.create_room(team_id, clean_name(name, "Room"))
        await commit_or_conflict(self.db)
        logger.info(f"Room {room.id} created in team {team_id} by user {user_id}")
        return TeamRoom.model_validate(room)

    async def _get_team_or_404(self, team_id: int) -> TeamModel:
        team = await self.repo.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    @staticmethod
    def _team_response(team: TeamModel, member_count: int) -> Team:
        return Team(
            id=team.id,
            name=team.name,
            description=team.description,
            image_url=team.image_url,
            owner_id=team.owner_id,
            owner=UserPublic.model_validate(team.owner),
            member_count=member_count,
            created_at=team.created_at
        )
