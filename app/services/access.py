"""
Access gate: decides whether two users may interact and whether a user
may act inside a conversation or a team.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.models.team import TeamMember
from app.repositories.chat import ChatRepository
from app.repositories.friendship import FriendshipRepository
from app.repositories.team import TeamRepository
from app.schemas.team import TeamRole
from app.utils.exceptions import AuthorizationError

BLOCKED = "Blocked"
NOT_FRIENDS = "Not friends"
NOT_A_TEAM_MEMBER = "Not a team member"
INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


class AccessGate:

    def __init__(self, db: AsyncSession):
        self.friendship_repo = FriendshipRepository(db)
        self.chat_repo = ChatRepository(db)
        self.team_repo = TeamRepository(db)

    async def message_denial_reason(self, user1_id: int, user2_id: int) -> Optional[str]:
        """Why the two users may not message each other, or None if they may"""
        # A block wins over any leftover friendship
        if await self.friendship_repo.has_block_between(user1_id, user2_id):
            return BLOCKED
        if not await self.friendship_repo.are_friends(user1_id, user2_id):
            return NOT_FRIENDS
        return None

    async def can_message(self, user1_id: int, user2_id: int) -> bool:
        return await self.message_denial_reason(user1_id, user2_id) is None

    async def require_can_message(self, user1_id: int, user2_id: int) -> None:
        reason = await self.message_denial_reason(user1_id, user2_id)
        if reason:
            raise AuthorizationError(reason)

    async def is_user_in_conversation(self, user_id: int, conversation_id: int) -> bool:
        return await self.chat_repo.is_user_in_conversation(user_id, conversation_id)

    async def get_team_membership(self, user_id: int, team_id: int) -> Optional[TeamMember]:
        return await self.team_repo.get_member(team_id, user_id)

    async def require_team_member(self, user_id: int, team_id: int) -> TeamMember:
        member = await self.get_team_membership(user_id, team_id)
        if member is None:
            raise AuthorizationError(NOT_A_TEAM_MEMBER)
        return member

    async def require_team_admin(self, user_id: int, team_id: int) -> TeamMember:
        member = await self.require_team_member(user_id, team_id)
        if member.role not in (TeamRole.OWNER.value, TeamRole.ADMIN.value):
            raise AuthorizationError(INSUFFICIENT_PERMISSIONS)
        return member
