from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, and_, func, select, update, delete
from sqlalchemy.orm import selectinload
from typing import List, Optional, Tuple
from datetime import datetime

from app.models.friendship import Friendship, FriendRequest, Block
from app.schemas.friendship import FriendRequestStatus
from app.utils.pairs import normalize_pair
from app.utils.time_utils import utc_now


class FriendshipRepository:
    """
    Relationship store: friendships, friend requests and blocks.

    Methods only flush; the calling service commits so that multi-step
    changes land in one transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # Friendships
    async def get_friendship(self, user1_id: int, user2_id: int) -> Optional[Friendship]:
        """Get the friendship for the normalized pair"""
        a, b = normalize_pair(user1_id, user2_id)
        stmt = select(Friendship).where(
            and_(Friendship.user_a_id == a, Friendship.user_b_id == b)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def are_friends(self, user1_id: int, user2_id: int) -> bool:
        if user1_id == user2_id:
            return False
        return await self.get_friendship(user1_id, user2_id) is not None

    async def upsert_friendship(self, user1_id: int, user2_id: int) -> Friendship:
        """Create the friendship for the pair unless it already exists"""
        existing = await self.get_friendship(user1_id, user2_id)
        if existing:
            return existing

        a, b = normalize_pair(user1_id, user2_id)
        friendship = Friendship(user_a_id=a, user_b_id=b)
        self.db.add(friendship)
        await self.db.flush()
        return friendship

    async def remove_friendship(self, user1_id: int, user2_id: int) -> bool:
        """Remove the friendship for the pair; False when there was none"""
        a, b = normalize_pair(user1_id, user2_id)
        result = await self.db.execute(
            delete(Friendship).where(
                and_(Friendship.user_a_id == a, Friendship.user_b_id == b)
            )
        )
        return result.rowcount > 0

    async def get_friendships(self, user_id: int) -> List[Friendship]:
        """Get friendships of a user with both sides loaded"""
        stmt = select(Friendship).options(
            selectinload(Friendship.user_a),
            selectinload(Friendship.user_b)
        ).where(
            or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id)
        ).order_by(Friendship.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_friend_ids(self, user_id: int) -> List[int]:
        stmt = select(Friendship.user_a_id, Friendship.user_b_id).where(
            or_(Friendship.user_a_id == user_id, Friendship.user_b_id == user_id)
        )
        result = await self.db.execute(stmt)
        return [b if a == user_id else a for a, b in result.all()]

    # Friend requests
    async def get_request(self, request_id: int) -> Optional[FriendRequest]:
        stmt = select(FriendRequest).where(FriendRequest.id == request_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_request_between(self, from_user_id: int, to_user_id: int) -> Optional[FriendRequest]:
        """Get the directed request from -> to, whatever its status"""
        stmt = select(FriendRequest).where(
            and_(
                FriendRequest.from_user_id == from_user_id,
                FriendRequest.to_user_id == to_user_id
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def open_request(self, from_user_id: int, to_user_id: int) -> FriendRequest:
        """Create a pending request, or re-open the existing row for this direction"""
        request = await self.get_request_between(from_user_id, to_user_id)
        if request is None:
            request = FriendRequest(
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                status=FriendRequestStatus.PENDING.value
            )
            self.db.add(request)
        else:
            request.status = FriendRequestStatus.PENDING.value
            request.created_at = utc_now()
            request.responded_at = None
        await self.db.flush()
        return request

    async def set_request_status(self, request: FriendRequest, status: FriendRequestStatus) -> FriendRequest:
        request.status = status.value
        request.responded_at = utc_now()
        await self.db.flush()
        return request

    async def cancel_pending_between(self, user1_id: int, user2_id: int) -> int:
        """Cancel pending requests between two users in both directions"""
        result = await self.db.execute(
            update(FriendRequest).where(
                and_(
                    or_(
                        and_(FriendRequest.from_user_id == user1_id, FriendRequest.to_user_id == user2_id),
                        and_(FriendRequest.from_user_id == user2_id, FriendRequest.to_user_id == user1_id)
                    ),
                    FriendRequest.status == FriendRequestStatus.PENDING.value
                )
            ).values(
                status=FriendRequestStatus.CANCELED.value,
                responded_at=utc_now()
            ).execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def count_pending_sent_since(self, user_id: int, since: datetime) -> int:
        stmt = select(func.count(FriendRequest.id)).where(
            and_(
                FriendRequest.from_user_id == user_id,
                FriendRequest.status == FriendRequestStatus.PENDING.value,
                FriendRequest.created_at >= since
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_pending_requests(self, user_id: int) -> Tuple[List[FriendRequest], List[FriendRequest]]:
        """Get received and sent pending friend requests, newest first"""
        # Received requests with loaded sender
        incoming_stmt = select(FriendRequest).options(
            selectinload(FriendRequest.from_user)
        ).where(
            and_(
                FriendRequest.to_user_id == user_id,
                FriendRequest.status == FriendRequestStatus.PENDING.value
            )
        ).order_by(FriendRequest.created_at.desc())
        incoming_result = await self.db.execute(incoming_stmt)

        # Sent requests with loaded recipient
        outgoing_stmt = select(FriendRequest).options(
            selectinload(FriendRequest.to_user)
        ).where(
            and_(
                FriendRequest.from_user_id == user_id,
                FriendRequest.status == FriendRequestStatus.PENDING.value
            )
        ).order_by(FriendRequest.created_at.desc())
        outgoing_result = await self.db.execute(outgoing_stmt)

        return list(incoming_result.scalars().all()), list(outgoing_result.scalars().all())

    # Blocks
    async def get_block(self, blocker_id: int, blocked_id: int) -> Optional[Block]:
        stmt = select(Block).where(
            and_(Block.blocker_id == blocker_id, Block.blocked_id == blocked_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def has_block_between(self, user1_id: int, user2_id: int) -> bool:
        """True if either user has blocked the other"""
        stmt = select(Block.id).where(
            or_(
                and_(Block.blocker_id == user1_id, Block.blocked_id == user2_id),
                and_(Block.blocker_id == user2_id, Block.blocked_id == user1_id)
            )
        ).limit(1)
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def get_blocked_ids_either_way(self, user_id: int) -> List[int]:
        """Ids of users this user blocked or was blocked by"""
        stmt = select(Block.blocker_id, Block.blocked_id).where(
            or_(Block.blocker_id == user_id, Block.blocked_id == user_id)
        )
        result = await self.db.execute(stmt)
        return [blocked if blocker == user_id else blocker for blocker, blocked in result.all()]

    async def upsert_block(self, blocker_id: int, blocked_id: int) -> Block:
        """Create the block row unless it already exists"""
        block = await self.get_block(blocker_id, blocked_id)
        if block:
            return block
        block = Block(blocker_id=blocker_id, blocked_id=blocked_id)
        self.db.add(block)
        await self.db.flush()
        return block

    async def remove_block(self, block: Block) -> None:
        await self.db.delete(block)
        await self.db.flush()

    async def get_blocks(self, blocker_id: int) -> List[Block]:
        stmt = select(Block).options(
            selectinload(Block.blocked)
        ).where(Block.blocker_id == blocker_id).order_by(Block.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
