from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ..core.enums import UserRole


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    sub: Optional[str] = None
    role: Optional[UserRole] = None


class UserBase(BaseModel):
    name: str
    email: EmailStr
    role: UserRole


class UserCreate(UserBase):
    password: str = Field(min_length=8)
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class UserRead(UserBase):
    id: int
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class InviteCodeRead(BaseModel):
    invite_code: str
