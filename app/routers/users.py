from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.core.db import get_db
from app.models.auth import User
from app.models.enums import UserStatus
from app.schemas.auth import UserRead, UserRoleUpdate
from app.schemas.common import DataResponse, PaginationMeta, MessageResponse
from app.services.activity import record_audit
from app.deps import AdminUser

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=DataResponse[list[UserRead]])
async def get_users(
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    role: str | None = Query(None),
):
    query = select(User)
    count_query = select(func.count(User.id))
    if role:
        query = query.where(User.role == role)
        count_query = count_query.where(User.role == role)

    offset = (page - 1) * page_size
    result = await db.execute(query.order_by(User.full_name).offset(offset).limit(page_size))
    users = result.scalars().all()

    count_result = await db.execute(count_query)
    total = count_result.scalar()

    return DataResponse(
        data=[UserRead.model_validate(u) for u in users],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.get("/{user_id}", response_model=DataResponse[UserRead])
async def get_user(
    user_id: int,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return DataResponse(data=UserRead.model_validate(user))


@router.patch("/{user_id}/role", response_model=DataResponse[UserRead])
async def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    role = data.role.strip()
    if not role:
        raise HTTPException(status_code=400, detail="Role name is required")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    previous_role = user.role
    user.role = role
    await db.commit()
    await db.refresh(user)

    await record_audit(db, "update_user_role", admin, {"user_id": user_id, "from": previous_role, "to": role})
    await db.refresh(user)

    return DataResponse(data=UserRead.model_validate(user))


@router.patch("/{user_id}/status", response_model=DataResponse[UserRead])
async def update_user_status(
    user_id: int,
    new_status: UserStatus,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot change your own status")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.status = new_status
    await db.commit()
    await db.refresh(user)

    return DataResponse(data=UserRead.model_validate(user))


@router.delete("/{user_id}", response_model=DataResponse[MessageResponse])
async def delete_user(
    user_id: int,
    admin: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.is_admin:
        raise HTTPException(status_code=400, detail="Cannot delete an administrator")

    await db.delete(user)
    await db.commit()

    return DataResponse(data=MessageResponse(message="User deleted successfully"))
