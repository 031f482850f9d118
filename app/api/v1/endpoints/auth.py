import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_active_user
from app.core.config import settings
from app.core.database import get_db
from app.models.user import User as UserModel
from app.schemas.auth import LoginRequest, Token
from app.schemas.common import SuccessResponse
from app.schemas.user import UserCreate, User
from app.services.auth import AuthService
from app.services.presence import PresenceService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user"""
    auth_service = AuthService(db)
    user = await auth_service.register(user_data)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    return user


@router.post("/login", response_model=Token)
async def login(
    login_data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password; the session token is also set as an HTTP-only cookie"""
    auth_service = AuthService(db)

    user = await auth_service.authenticate(login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    token = auth_service.create_token(user)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token.access_token,
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax"
    )
    logger.info(f"User {user.id} logged in")
    return token


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    response: Response,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Clear the session cookie and mark the user offline"""
    await PresenceService(db).mark_offline(current_user.id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    logger.info(f"User {current_user.id} logged out")
    return SuccessResponse()
