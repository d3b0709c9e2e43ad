from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.db import get_db
from app.core.permissions import DEFAULT_ROLE
from app.core.security import (
    verify_password,
    hash_password,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)
from app.models.auth import User
from app.models.enums import UserStatus
from app.schemas.auth import LoginRequest, RegisterRequest, RefreshRequest, TokenResponse, CurrentUserResponse, UserRead
from app.services.permissions import get_permissions_for_role
from app.deps import CurrentUser

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_tokens(user: User) -> TokenResponse:
    subject = {"sub": str(user.id)}
    return TokenResponse(
        access_token=create_access_token(data=subject),
        refresh_token=create_refresh_token(data=subject),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(
        select(User).where(
            (User.phone == credentials.phone_or_email) | (User.email == credentials.phone_or_email)
        )
    )
    user = result.scalars().first()

    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect phone/email or password",
        )

    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not active. Please contact administrator.",
        )

    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    payload = decode_refresh_token(data.refresh_token)
    if payload is None or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token or token expired",
        )

    try:
        user_id = int(payload["sub"])
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or not active",
        )

    return _issue_tokens(user)


@router.post("/register", response_model=UserRead)
async def register(
    data: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    existing_phone = await db.execute(select(User).where(User.phone == data.phone))
    if existing_phone.scalars().first():
        raise HTTPException(status_code=400, detail="Phone number already registered")

    if data.email:
        existing_email = await db.execute(select(User).where(User.email == data.email))
        if existing_email.scalars().first():
            raise HTTPException(status_code=400, detail="Email already registered")

    # New accounts start as plain members; an administrator assigns union roles
    user = User(
        phone=data.phone,
        email=data.email,
        full_name=data.full_name,
        hashed_password=hash_password(data.password),
        role=DEFAULT_ROLE,
        status=UserStatus.ACTIVE,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    return UserRead.model_validate(user)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(user: CurrentUser, db: Annotated[AsyncSession, Depends(get_db)]):
    permissions = await get_permissions_for_role(db, user.role)
    return CurrentUserResponse(
        user=UserRead.model_validate(user),
        permissions=permissions,
    )
