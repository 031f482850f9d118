from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, desc, case
from sqlalchemy.orm import selectinload
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models.team import Team, TeamMember, TeamInvite, TeamMessage, TeamRoom, RoomSignal
from app.models.user import User
from app.schemas.team import TeamRole


class TeamRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    # Teams
    async def create_team(self, owner_id: int, name: str, description: Optional[str]) -> Team:
        """Create a team with its owner as first member"""
        team = Team(name=name, description=description, owner_id=owner_id)
        self.db.add(team)
        await self.db.flush()

        self.db.add(TeamMember(team_id=team.id, user_id=owner_id, role=TeamRole.OWNER.value))
        await self.db.flush()
        return team

    async def get_team(self, team_id: int) -> Optional[Team]:
        stmt = select(Team).options(selectinload(Team.owner)).where(Team.id == team_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_teams(self, user_id: int) -> List[Team]:
        stmt = select(Team).options(selectinload(Team.owner)).join(
            TeamMember, TeamMember.team_id == Team.id
        ).where(TeamMember.user_id == user_id).order_by(desc(Team.created_at), desc(Team.id))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_members(self, team_ids: List[int]) -> Dict[int, int]:
        if not team_ids:
            return {}
        stmt = select(TeamMember.team_id, func.count(TeamMember.id)).where(
            TeamMember.team_id.in_(team_ids)
        ).group_by(TeamMember.team_id)
        result = await self.db.execute(stmt)
        return {team_id: count for team_id, count in result.all()}

    async def update_team(self, team: Team, values: Dict[str, Any]) -> Team:
        for field, value in values.items():
            setattr(team, field, value)
        await self.db.flush()
        return team

    # Members
    async def get_member(self, team_id: int, user_id: int) -> Optional[TeamMember]:
        stmt = select(TeamMember).where(
            and_(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def is_member_by_email(self, team_id: int, email: str) -> bool:
        stmt = select(TeamMember.id).join(User, User.id == TeamMember.user_id).where(
            and_(TeamMember.team_id == team_id, func.lower(User.email) == email.lower())
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def get_members(self, team_id: int) -> List[TeamMember]:
        """Members ordered OWNER, ADMIN, MEMBER, then by join time"""
        role_order = case(
            (TeamMember.role == TeamRole.OWNER.value, 0),
            (TeamMember.role == TeamRole.ADMIN.value, 1),
            else_=2
        )
        stmt = select(TeamMember).options(selectinload(TeamMember.user)).where(
            TeamMember.team_id == team_id
        ).order_by(role_order, TeamMember.created_at, TeamMember.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def add_member(self, team_id: int, user_id: int, role: str) -> TeamMember:
        member = TeamMember(team_id=team_id, user_id=user_id, role=role)
        self.db.add(member)
        await self.db.flush()
        return member

    async def remove_member(self, member: TeamMember) -> None:
        await self.db.delete(member)
        await self.db.flush()

    # Invites
    async def create_invite(self, team_id: int, email: str, role: str, token: str, expires_at: datetime) -> TeamInvite:
        invite = TeamInvite(team_id=team_id, email=email, role=role, token=token, expires_at=expires_at)
        self.db.add(invite)
        await self.db.flush()
        return invite

    async def get_invite_by_token(self, token: str) -> Optional[TeamInvite]:
        stmt = select(TeamInvite).options(selectinload(TeamInvite.team)).where(TeamInvite.token == token)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pending_invites(self, now: datetime, team_id: Optional[int] = None, email: Optional[str] = None) -> List[TeamInvite]:
        """Unaccepted, unexpired invites, optionally for one team or one email"""
        stmt = select(TeamInvite).options(selectinload(TeamInvite.team)).where(
            and_(TeamInvite.accepted_at.is_(None), TeamInvite.expires_at > now)
        )
        if team_id is not None:
            stmt = stmt.where(TeamInvite.team_id == team_id)
        if email is not None:
            stmt = stmt.where(func.lower(TeamInvite.email) == email.strip().lower())
        stmt = stmt.order_by(desc(TeamInvite.created_at), desc(TeamInvite.id))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # Team messages
    async def create_message(self, team_id: int, sender_id: int, content: str) -> TeamMessage:
        message = TeamMessage(team_id=team_id, sender_id=sender_id, content=content)
        self.db.add(message)
        await self.db.flush()
        await self.db.refresh(message, ["sender"])
        return message

    async def get_recent_messages(self, team_id: int, limit: int = 50) -> List[TeamMessage]:
        """Latest `limit` messages, returned oldest first"""
        stmt = select(TeamMessage).options(selectinload(TeamMessage.sender)).where(
            TeamMessage.team_id == team_id
        ).order_by(desc(TeamMessage.created_at), desc(TeamMessage.id)).limit(limit)
        result = await self.db.execute(stmt)
        messages = list(result.scalars().all())
        messages.reverse()
        return messages

    # Rooms
    async def create_room(self, team_id: int, name: str) -> TeamRoom:
        room = TeamRoom(team_id=team_id, name=name, is_active=True)
        self.db.add(room)
        await self.db.flush()
        return room

    async def get_room(self, room_id: int) -> Optional[TeamRoom]:
        result = await self.db.execute(select(TeamRoom).where(TeamRoom.id == room_id))
        return result.scalar_one_or_none()

    async def get_rooms(self, team_id: int) -> List[TeamRoom]:
        stmt = select(TeamRoom).where(TeamRoom.team_id == team_id).order_by(
            desc(TeamRoom.created_at), desc(TeamRoom.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # Signals
    async def create_signal(
        self,
        room_id: int,
        sender_id: int,
        signal_type: str,
        payload: Any,
        target_id: Optional[int] = None
    ) -> RoomSignal:
        signal = RoomSignal(
            room_id=room_id,
            sender_id=sender_id,
            target_id=target_id,
            type=signal_type,
            payload=payload
        )
        self.db.add(signal)
        await self.db.flush()
        return signal

    async def get_signals(
        self,
        room_id: int,
        exclude_sender_id: int,
        since: Optional[datetime] = None,
        limit: int = 100
    ) -> List[RoomSignal]:
        """Signals of a room from other senders, oldest first"""
        stmt = select(RoomSignal).where(
            and_(RoomSignal.room_id == room_id, RoomSignal.sender_id != exclude_sender_id)
        )
        if since is not None:
            stmt = stmt.where(RoomSignal.created_at > since)
        stmt = stmt.order_by(RoomSignal.created_at, RoomSignal.id).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
