from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr
from app.models.enums import UserStatus


class LoginRequest(BaseModel):
    phone_or_email: str
    password: str


class RegisterRequest(BaseModel):
    phone: str
    email: Optional[EmailStr] = None
    full_name: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class UserRead(BaseModel):
    id: int
    phone: str
    email: Optional[str] = None
    full_name: str
    role: str
    status: UserStatus
    created_at: datetime

    class Config:
        from_attributes = True


class UserRoleUpdate(BaseModel):
    role: str


class CurrentUserResponse(BaseModel):
    user: UserRead
    permissions: dict[str, bool]
