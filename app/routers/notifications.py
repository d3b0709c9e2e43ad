from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from app.core.db import get_db
from app.models.activity import Notification
from app.schemas.content import NotificationRead
from app.schemas.common import DataResponse, PaginationMeta, MessageResponse
from app.deps import CurrentUser

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=DataResponse[list[NotificationRead]])
async def get_notifications(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    query = select(Notification)
    count_query = select(func.count(Notification.id))
    if unread_only:
        query = query.where(Notification.read.is_(False))
        count_query = count_query.where(Notification.read.is_(False))

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Notification.timestamp.desc(), Notification.id.desc()).offset(offset).limit(page_size)
    )
    notifications = result.scalars().all()

    count_result = await db.execute(count_query)
    total = count_result.scalar()

    return DataResponse(
        data=[NotificationRead.model_validate(n) for n in notifications],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.patch("/{notification_id}/read", response_model=DataResponse[NotificationRead])
async def mark_notification_read(
    notification_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(select(Notification).where(Notification.id == notification_id))
    notification = result.scalar_one_or_none()

    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.read = True
    await db.commit()
    await db.refresh(notification)

    return DataResponse(data=NotificationRead.model_validate(notification))


@router.post("/read-all", response_model=DataResponse[MessageResponse])
async def mark_all_read(user: CurrentUser, db: Annotated[AsyncSession, Depends(get_db)]):
    result = await db.execute(update(Notification).where(Notification.read.is_(False)).values(read=True))
    await db.commit()

    return DataResponse(data=MessageResponse(message=f"Marked {result.rowcount} notification(s) as read"))
