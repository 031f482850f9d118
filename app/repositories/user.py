from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, and_, func

from app.models.user import User
from app.schemas.user import UserCreate
from app.core.security import get_password_hash


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, user_data: UserCreate) -> User:
        """Create a new user (flushed, not committed)"""
        db_user = User(
            email=user_data.email.strip().lower(),
            first_name=user_data.first_name.strip(),
            last_name=user_data.last_name.strip(),
            hashed_password=get_password_hash(user_data.password),
            is_active=True
        )
        self.db.add(db_user)
        await self.db.flush()
        return db_user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        query = select(User).filter(User.id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email, case-insensitively"""
        query = select(User).filter(func.lower(User.email) == email.strip().lower())
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def search(self, query: str, exclude_user_id: int, limit: int) -> List[User]:
        """Search active users by first name, last name, or email"""
        pattern = f"%{query}%"
        stmt = select(User).where(
            and_(
                User.id != exclude_user_id,
                User.is_active == True,  # noqa: E712
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern)
                )
            )
        ).order_by(User.id).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update(self, user: User, values: dict) -> User:
        for field, value in values.items():
            setattr(user, field, value.strip() if isinstance(value, str) else value)
        await self.db.flush()
        return user
