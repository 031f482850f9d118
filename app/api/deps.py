from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_token
from app.models.user import User
from app.repositories.user import UserRepository
from app.utils.exceptions import AuthenticationError

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[str]:
    """Session token from the session cookie, or from a Bearer header"""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    if credentials:
        return credentials.credentials
    return None


def get_current_user_id(token: Optional[str] = Depends(get_session_token)) -> int:
    """Resolve the acting user id from the session token"""
    if not token:
        raise AuthenticationError()

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise AuthenticationError()

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError()


async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
) -> User:
    user = await UserRepository(db).get_by_id(user_id)
    if not user:
        raise AuthenticationError()
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise AuthenticationError("Inactive user")
    return current_user
