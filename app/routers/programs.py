from typing import Annotated
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.db import get_db
from app.core.permissions import PERM_ADD_EVENTS
from app.models.auth import User
from app.models.domain import Program
from app.models.enums import NotificationType
from app.schemas.content import ProgramRead, ProgramCreate
from app.schemas.common import DataResponse, MessageResponse
from app.services.activity import notify
from app.deps import require_permission, CurrentUser

router = APIRouter(prefix="/programs", tags=["Programs"])


@router.get("", response_model=DataResponse[list[ProgramRead]])
async def get_programs(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    upcoming: bool = Query(False, description="Only programs that have not started yet"),
):
    query = select(Program)
    if upcoming:
        query = query.where(Program.starts_at >= datetime.utcnow()).order_by(Program.starts_at)
    else:
        query = query.order_by(Program.starts_at.desc())

    result = await db.execute(query)
    return DataResponse(data=[ProgramRead.model_validate(p) for p in result.scalars().all()])


@router.post("", response_model=DataResponse[ProgramRead], status_code=201)
async def create_program(
    data: ProgramCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_EVENTS)),
):
    program = Program(**data.model_dump(), created_by_user_id=user.id)
    db.add(program)
    await db.commit()
    await db.refresh(program)

    await notify(
        db,
        NotificationType.PROGRAM_ADDED,
        "New Program",
        f"{program.title} on {program.starts_at:%d %B %Y}",
    )
    await db.refresh(program)

    return DataResponse(data=ProgramRead.model_validate(program))


@router.delete("/{program_id}", response_model=DataResponse[MessageResponse])
async def delete_program(
    program_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_EVENTS)),
):
    result = await db.execute(select(Program).where(Program.id == program_id))
    program = result.scalar_one_or_none()

    if not program:
        raise HTTPException(status_code=404, detail="Program not found")

    await db.delete(program)
    await db.commit()

    return DataResponse(data=MessageResponse(message="Program deleted successfully"))
