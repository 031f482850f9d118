import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import commit_or_conflict
from app.core.security import create_access_token, verify_password
from app.repositories.user import UserRepository
from app.schemas.user import UserCreate
from app.schemas.auth import Token
from app.models.user import User

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def register(self, user_data: UserCreate) -> Optional[User]:
        """Register a new user; None when the email is taken"""
        existing_user = await self.user_repo.get_by_email(user_data.email)
        if existing_user:
            return None

        user = await self.user_repo.create(user_data)
        await commit_or_conflict(self.db, "User with this email already exists")
        logger.info(f"User {user.id} registered")
        return user

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await self.user_repo.get_by_email(email)
        if not user or not user.hashed_password:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        if not user.is_active:
            return None

        return user

    def create_token(self, user: User) -> Token:
        return Token(access_token=create_access_token(user.id), token_type="bearer")
