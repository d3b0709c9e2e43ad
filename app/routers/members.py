from datetime import date
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from app.core.db import get_db
from app.core.permissions import PERM_ADD_EDIT_MEMBERS
from app.models.domain import Member
from app.models.enums import NotificationType
from app.schemas.member import MemberRead, MemberCreate, MemberUpdate
from app.schemas.report import BirthdayMember
from app.schemas.common import DataResponse, PaginationMeta, MessageResponse
from app.services.activity import notify, record_audit
from app.services.ledger import load_birthdays
from app.deps import require_permission, CurrentUser
from app.models.auth import User

router = APIRouter(prefix="/members", tags=["Members"])


@router.get("", response_model=DataResponse[list[MemberRead]])
async def get_members(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    search: Optional[str] = None,
    is_executive: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    """
    List members, executives first and then the most recently joined.

    `search` matches full name or phone.
    """
    query = select(Member)
    count_query = select(func.count(Member.id))

    filters = []
    if search:
        filters.append(or_(Member.full_name.ilike(f"%{search}%"), Member.phone.ilike(f"%{search}%")))
    if is_executive is not None:
        filters.append(Member.is_executive == is_executive)

    for condition in filters:
        query = query.where(condition)
        count_query = count_query.where(condition)

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Member.is_executive.desc(), Member.date_joined.desc(), Member.id)
        .offset(offset)
        .limit(page_size)
    )
    members = result.scalars().all()

    count_result = await db.execute(count_query)
    total = count_result.scalar() or 0

    return DataResponse(
        data=[MemberRead.model_validate(m) for m in members],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.get("/birthdays", response_model=DataResponse[list[BirthdayMember]])
async def get_birthdays(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    on_date: Optional[date] = Query(None, description="Defaults to today"),
):
    return DataResponse(data=await load_birthdays(db, on_date))


@router.get("/{member_id}", response_model=DataResponse[MemberRead])
async def get_member(
    member_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()

    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    return DataResponse(data=MemberRead.model_validate(member))


@router.post("", response_model=DataResponse[MemberRead])
async def create_member(
    data: MemberCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_EDIT_MEMBERS)),
):
    values = data.model_dump(exclude_none=True)
    member = Member(**values)
    db.add(member)
    await db.commit()
    await db.refresh(member)

    member_name = member.full_name
    await notify(
        db,
        NotificationType.MEMBER_ADDED,
        "New Member Added",
        f"{member_name} joined the union" + (" as an executive" if member.is_executive else ""),
    )
    await db.refresh(member)

    return DataResponse(data=MemberRead.model_validate(member))


@router.patch("/{member_id}", response_model=DataResponse[MemberRead])
async def update_member(
    member_id: int,
    data: MemberUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_EDIT_MEMBERS)),
):
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()

    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    updates = data.model_dump(exclude_unset=True)
    if "full_name" in updates and not (updates["full_name"] or "").strip():
        raise HTTPException(status_code=400, detail="Full name cannot be empty")

    for field, value in updates.items():
        setattr(member, field, value)

    await db.commit()
    await db.refresh(member)

    return DataResponse(data=MemberRead.model_validate(member))


@router.delete("/{member_id}", response_model=DataResponse[MessageResponse])
async def delete_member(
    member_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_EDIT_MEMBERS)),
):
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()

    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    # Past dues stay in the ledger with the member reference cleared
    details = {"member_id": member.id, "full_name": member.full_name}
    await db.delete(member)
    await db.commit()

    await record_audit(db, "delete_member", user, details)

    return DataResponse(data=MessageResponse(message="Member deleted successfully"))
