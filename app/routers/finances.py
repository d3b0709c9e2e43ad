from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.core.config import settings
from app.core.db import get_db
from app.core.permissions import (
    PERM_ADD_DUES,
    PERM_ADD_CONTRIBUTION,
    PERM_ADD_MISC,
    PERM_ADD_BUDGET,
)
from app.models.finance import FinanceEntry
from app.models.enums import TransactionType
from app.schemas.transaction import (
    FinanceEntryRead,
    FinanceEntryCreate,
    DuesAllocationRead,
    DuesAllocationUpsert,
)
from app.schemas.report import CoffersBalance
from app.schemas.common import DataResponse, PaginationMeta
from app.deps import require_permission, CurrentUser
from app.models.auth import User
from app.services.ledger import list_dues_allocations, get_dues_allocation, load_coffers_balance
from app.services.payment import add_finance_entry, set_dues_allocation
from app.services.permissions import check_permission

router = APIRouter(prefix="/finances", tags=["Finances"])

ENTRY_PERMISSIONS = {
    TransactionType.DUES: PERM_ADD_DUES,
    TransactionType.CONTRIBUTION: PERM_ADD_CONTRIBUTION,
    TransactionType.OTHER: PERM_ADD_MISC,
    TransactionType.BUDGET: PERM_ADD_BUDGET,
}


@router.get("", response_model=DataResponse[list[FinanceEntryRead]])
async def get_finance_entries(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    type: Optional[TransactionType] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    query = select(FinanceEntry)
    count_query = select(func.count(FinanceEntry.id))
    if type:
        query = query.where(FinanceEntry.type == type)
        count_query = count_query.where(FinanceEntry.type == type)

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(FinanceEntry.timestamp.desc(), FinanceEntry.id.desc()).offset(offset).limit(page_size)
    )
    entries = result.scalars().all()

    count_result = await db.execute(count_query)
    total = count_result.scalar()

    return DataResponse(
        data=[FinanceEntryRead.model_validate(e) for e in entries],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.post("", response_model=DataResponse[FinanceEntryRead], status_code=201)
async def create_finance_entry(
    data: FinanceEntryCreate,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    # Each income category has its own permission
    permission_code = ENTRY_PERMISSIONS[data.type]
    if not await check_permission(db, user.role, permission_code):
        raise HTTPException(status_code=403, detail=f"Permission denied: {permission_code}")

    entry = await add_finance_entry(db, data, user)
    return DataResponse(data=FinanceEntryRead.model_validate(entry))


@router.get("/balance", response_model=DataResponse[CoffersBalance])
async def get_coffers_balance(user: CurrentUser, db: Annotated[AsyncSession, Depends(get_db)]):
    balance = await load_coffers_balance(db)
    return DataResponse(data=CoffersBalance(balance=balance, currency=settings.CURRENCY))


@router.get("/allocations", response_model=DataResponse[list[DuesAllocationRead]])
async def get_dues_allocations(user: CurrentUser, db: Annotated[AsyncSession, Depends(get_db)]):
    return DataResponse(data=await list_dues_allocations(db))


@router.get("/allocations/{year}", response_model=DataResponse[DuesAllocationRead])
async def get_year_allocation(
    year: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    allocation = await get_dues_allocation(db, year)
    if not allocation:
        raise HTTPException(status_code=404, detail=f"Dues have not been allocated for {year}")

    return DataResponse(data=allocation)


@router.put("/allocations/{year}", response_model=DataResponse[DuesAllocationRead])
async def allocate_dues(
    year: int,
    data: DuesAllocationUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_ADD_DUES)),
):
    if year < settings.FIRST_REPORT_YEAR:
        raise HTTPException(
            status_code=400,
            detail=f"Dues can only be allocated from {settings.FIRST_REPORT_YEAR} onwards",
        )

    allocation = await set_dues_allocation(db, year, data, user)
    return DataResponse(data=DuesAllocationRead.model_validate(allocation))
