import logging
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.config import settings
from app.core.database import commit_or_conflict
from app.models.friendship import FriendRequest
from app.repositories.friendship import FriendshipRepository
from app.repositories.user import UserRepository
from app.schemas.friendship import (
    BlockedUser, Friend, FriendRequest as FriendRequestSchema, FriendRequestStatus,
    IncomingRequest, OutgoingRequest, PendingRequests
)
from app.schemas.user import UserPublic, UserSearchResult
from app.utils.exceptions import (
    AuthorizationError, ConflictError, InvalidStateError, NotFoundError,
    RateLimitedError, ValidationError
)
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 20


def mask_email(email: str) -> str:
    """Hide most of the local part: 'alice@x.io' -> 'al***@x.io'"""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}"
    return f"{local[:2]}***@{domain}"


class FriendshipService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = FriendshipRepository(db)
        self.user_repo = UserRepository(db)

    async def search_users(self, current_user_id: int, query: str) -> List[UserSearchResult]:
        """Search users, hiding anyone on either side of a block"""
        query = (query or "").strip()
        if len(query) < 2:
            raise ValidationError("Query must be at least 2 characters")

        blocked_ids = set(await self.repo.get_blocked_ids_either_way(current_user_id))
        users = await self.user_repo.search(query, current_user_id, MAX_SEARCH_RESULTS + len(blocked_ids))

        results = []
        for user in users:
            if user.id in blocked_ids:
                continue
            results.append(UserSearchResult(
                id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                photo_url=user.photo_url,
                email=mask_email(user.email)
            ))
            if len(results) >= MAX_SEARCH_RESULTS:
                break
        return results

    # Friend requests
    async def send_friend_request(self, from_user_id: int, to_user_id: int) -> FriendRequestSchema:
        """
        Send a friend request.

        If the other user already has a pending request towards the sender, that
        request is accepted instead of opening a second one in the other direction.
        """
        if from_user_id == to_user_id:
            raise ValidationError("Cannot send request to yourself")

        if await self.user_repo.get_by_id(to_user_id) is None:
            raise NotFoundError("User not found")

        if await self.repo.has_block_between(from_user_id, to_user_id):
            raise AuthorizationError("Cannot send request: block exists")

        if await self.repo.are_friends(from_user_id, to_user_id):
            raise ConflictError("Already friends")

        existing = await self.repo.get_request_between(from_user_id, to_user_id)
        if existing and existing.status == FriendRequestStatus.PENDING.value:
            raise ConflictError("Request already sent")

        reverse = await self.repo.get_request_between(to_user_id, from_user_id)
        if reverse and reverse.status == FriendRequestStatus.PENDING.value:
            await self._accept(reverse)
            await commit_or_conflict(self.db, "Already friends")
            logger.info(f"Friend request {reverse.id} auto-accepted by crossing request from user {from_user_id}")
            return FriendRequestSchema.model_validate(reverse)

        start_of_day = utc_now().replace(hour=0, minute=0, second=0, microsecond=0)
        sent_today = await self.repo.count_pending_sent_since(from_user_id, start_of_day)
        if sent_today >= settings.FRIEND_REQUESTS_PER_DAY:
            raise RateLimitedError(
                f"Rate limit: max {settings.FRIEND_REQUESTS_PER_DAY} pending requests per day"
            )

        request = await self.repo.open_request(from_user_id, to_user_id)
        await commit_or_conflict(self.db, "Request already sent")
        logger.info(f"User {from_user_id} sent friend request {request.id} to user {to_user_id}")
        return FriendRequestSchema.model_validate(request)

    async def handle_request_action(self, request_id: int, acting_user_id: int, action: str) -> FriendRequestStatus:
        """Dispatch accept/decline/cancel on a friend request"""
        if action in ("accept", "decline"):
            return await self.respond(request_id, acting_user_id, action)
        if action == "cancel":
            return await self.cancel(request_id, acting_user_id)
        raise ValidationError("action must be accept, decline, or cancel")

    async def respond(self, request_id: int, acting_user_id: int, action: str) -> FriendRequestStatus:
        """Accept or decline a request; only its recipient may do so"""
        request = await self._get_request(request_id)

        if request.to_user_id != acting_user_id:
            raise AuthorizationError("Only recipient can accept or decline")
        self._require_pending(request)

        if action == "accept":
            await self._accept(request)
        elif action == "decline":
            await self.repo.set_request_status(request, FriendRequestStatus.DECLINED)
        else:
            raise ValidationError("action must be accept or decline")

        await commit_or_conflict(self.db, "Request already handled")
        logger.info(f"Friend request {request_id} {request.status.lower()} by user {acting_user_id}")
        return FriendRequestStatus(request.status)

    async def cancel(self, request_id: int, acting_user_id: int) -> FriendRequestStatus:
        """Cancel a request; only its sender may do so"""
        request = await self._get_request(request_id)

        if request.from_user_id != acting_user_id:
            raise AuthorizationError("Only sender can cancel")
        self._require_pending(request)

        await self.repo.set_request_status(request, FriendRequestStatus.CANCELED)
        await commit_or_conflict(self.db, "Request already handled")
        return FriendRequestStatus.CANCELED

    async def get_pending_requests(self, user_id: int) -> PendingRequests:
        incoming, outgoing = await self.repo.get_pending_requests(user_id)
        return PendingRequests(
            incoming=[
                IncomingRequest(
                    id=req.id,
                    from_user=UserPublic.model_validate(req.from_user),
                    created_at=req.created_at
                )
                for req in incoming
            ],
            outgoing=[
                OutgoingRequest(
                    id=req.id,
                    to_user=UserPublic.model_validate(req.to_user),
                    created_at=req.created_at
                )
                for req in outgoing
            ]
        )

    # Friendships
    async def get_friends(self, user_id: int) -> List[Friend]:
        friendships = await self.repo.get_friendships(user_id)
        friends = []
        for friendship in friendships:
            other = friendship.user_b if friendship.user_a_id == user_id else friendship.user_a
            friends.append(Friend(
                id=other.id,
                first_name=other.first_name,
                last_name=other.last_name,
                photo_url=other.photo_url,
                email=other.email,
                friendship_id=friendship.id
            ))
        return friends

    async def remove_friend(self, current_user_id: int, friend_id: int) -> None:
        if current_user_id == friend_id:
            raise ValidationError("Cannot remove yourself")

        if not await self.repo.remove_friendship(current_user_id, friend_id):
            raise ValidationError("Not friends")
        await commit_or_conflict(self.db)
        logger.info(f"User {current_user_id} removed friend {friend_id}")

    # Blocks
    async def get_blocks(self, blocker_id: int) -> List[BlockedUser]:
        blocks = await self.repo.get_blocks(blocker_id)
        return [
            BlockedUser(
                id=block.id,
                user_id=block.blocked_id,
                first_name=block.blocked.first_name,
                last_name=block.blocked.last_name,
                photo_url=block.blocked.photo_url,
                created_at=block.created_at
            )
            for block in blocks
        ]

    async def block_user(self, blocker_id: int, blocked_id: int) -> None:
        """
        Block a user.

        Drops any friendship, cancels pending requests in both directions and
        records the block, all in one transaction. Blocking twice is a no-op.
        """
        if blocker_id == blocked_id:
            raise ValidationError("Cannot block yourself")

        if await self.user_repo.get_by_id(blocked_id) is None:
            raise NotFoundError("User not found")

        await self.repo.remove_friendship(blocker_id, blocked_id)
        canceled = await self.repo.cancel_pending_between(blocker_id, blocked_id)
        await self.repo.upsert_block(blocker_id, blocked_id)
        await commit_or_conflict(self.db, "Block already exists")
        logger.info(f"User {blocker_id} blocked user {blocked_id} ({canceled} pending requests canceled)")

    async def unblock_user(self, blocker_id: int, blocked_id: int) -> None:
        """Remove a block; a former friendship is not restored"""
        block = await self.repo.get_block(blocker_id, blocked_id)
        if not block:
            raise NotFoundError("Block not found")

        await self.repo.remove_block(block)
        await commit_or_conflict(self.db)
        logger.info(f"User {blocker_id} unblocked user {blocked_id}")

    async def _get_request(self, request_id: int) -> FriendRequest:
        request = await self.repo.get_request(request_id)
        if not request:
            raise NotFoundError("Request not found")
        return request

    @staticmethod
    def _require_pending(request: FriendRequest) -> None:
        if request.status != FriendRequestStatus.PENDING.value:
            raise InvalidStateError("Request is no longer pending")

    async def _accept(self, request: FriendRequest) -> None:
        """Mark accepted and materialize the friendship (caller commits)"""
        await self.repo.set_request_status(request, FriendRequestStatus.ACCEPTED)
        await self.repo.upsert_friendship(request.from_user_id, request.to_user_id)
