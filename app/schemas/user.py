from typing import Optional
from pydantic import EmailStr, Field
from datetime import datetime

from app.schemas.common import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class UserPublic(CamelModel):
    id: int
    first_name: str
    last_name: str
    photo_url: Optional[str] = None
    email: str


class User(UserPublic):
    is_active: bool = True
    created_at: datetime


class UserSearchResult(CamelModel):
    id: int
    first_name: str
    last_name: str
    photo_url: Optional[str] = None
    email: str  # masked


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    photo_url: Optional[str] = Field(default=None, max_length=500)
