from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.db import get_db
from app.core.permissions import PERM_ADD_MINUTES_REPORTS
from app.models.auth import User
from app.models.domain import Writing
from app.models.enums import WritingType, NotificationType
from app.schemas.content import WritingRead, WritingCreate, WritingUpdate
from app.schemas.common import DataResponse, MessageResponse
from app.services.activity import notify
from app.deps import require_permission, CurrentUser

router = APIRouter(prefix="/writings", tags=["Minutes & Announcements"])


async def _get_writing(db: AsyncSession, writing_id: int) -> Writing:
    result = await db.execute(select(Writing).where(Writing.id == writing_id))
    writing = result.scalar_one_or_none()
    if not writing:
        raise HTTPException(status_code=404, detail="Writing not found")
    return writing


@router.get("", response_model=DataResponse[list[WritingRead]])
async def get_writings(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    type: Optional[WritingType] = None,
):
    query = select(Writing).order_by(Writing.created_at.desc(), Writing.id.desc())
    if type:
        query = query.where(Writing.type == type)

    result = await db.execute(query)
    return DataResponse(data=[WritingRead.model_validate(w) for w in result.scalars().all()])


@router.get("/{writing_id}", response_model=DataResponse[WritingRead])
async def get_writing(
    writing_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return DataResponse(data=WritingRead.model_validate(await _get_writing(db, writing_id)))


@router.post("", response_model=DataResponse[WritingRead], status_code=201)
async def create_writing(
    data: WritingCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_MINUTES_REPORTS)),
):
    writing = Writing(**data.model_dump(), author_user_id=user.id)
    db.add(writing)
    await db.commit()
    await db.refresh(writing)

    label = "Minutes" if writing.type == WritingType.MINUTES else "Announcement"
    await notify(db, NotificationType.WRITING_PUBLISHED, f"New {label}", writing.title)
    await db.refresh(writing)

    return DataResponse(data=WritingRead.model_validate(writing))


@router.patch("/{writing_id}", response_model=DataResponse[WritingRead])
async def update_writing(
    writing_id: int,
    data: WritingUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_MINUTES_REPORTS)),
):
    writing = await _get_writing(db, writing_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(writing, field, value)

    await db.commit()
    await db.refresh(writing)

    return DataResponse(data=WritingRead.model_validate(writing))


@router.delete("/{writing_id}", response_model=DataResponse[MessageResponse])
async def delete_writing(
    writing_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_MINUTES_REPORTS)),
):
    writing = await _get_writing(db, writing_id)
    await db.delete(writing)
    await db.commit()

    return DataResponse(data=MessageResponse(message="Writing deleted successfully"))
