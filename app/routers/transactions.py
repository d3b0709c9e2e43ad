from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from app.core.db import get_db
from app.core.permissions import PERM_COLLECT_PAYMENTS, PERM_MAKE_WITHDRAWAL
from app.models.auth import User
from app.models.finance import Transaction
from app.models.enums import TransactionType
from app.schemas.transaction import TransactionRead, DuesPaymentCreate, WithdrawalCreate
from app.schemas.common import DataResponse, PaginationMeta
from app.deps import require_permission, CurrentUser
from app.services.ledger import NotFoundError
from app.services.payment import (
    record_dues_payment,
    record_withdrawal,
    DuplicatePaymentError,
    InsufficientFundsError,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.get("", response_model=DataResponse[list[TransactionRead]])
async def get_transactions(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    type: Optional[TransactionType] = None,
    member_id: Optional[int] = None,
    year: Optional[int] = None,
    month: Optional[int] = Query(None, ge=1, le=12),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    conditions = []
    if type:
        conditions.append(Transaction.type == type)
    if member_id:
        conditions.append(Transaction.member_id == member_id)
    if year:
        conditions.append(Transaction.year == year)
    if month:
        conditions.append(Transaction.month == month)

    query = select(Transaction)
    count_query = select(func.count(Transaction.id))
    if conditions:
        query = query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Transaction.timestamp.desc(), Transaction.id.desc()).offset(offset).limit(page_size)
    )
    transactions = result.scalars().all()

    count_result = await db.execute(count_query)
    total = count_result.scalar()

    return DataResponse(
        data=[TransactionRead.model_validate(t) for t in transactions],
        meta=PaginationMeta.build(page, page_size, total),
    )


@router.get("/{transaction_id}", response_model=DataResponse[TransactionRead])
async def get_transaction(
    transaction_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await db.execute(select(Transaction).where(Transaction.id == transaction_id))
    transaction = result.scalar_one_or_none()

    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")

    return DataResponse(data=TransactionRead.model_validate(transaction))


@router.post("/dues", response_model=DataResponse[TransactionRead], status_code=201)
async def collect_dues_payment(
    data: DuesPaymentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_COLLECT_PAYMENTS)),
):
    try:
        transaction = await record_dues_payment(db, data, user)
        return DataResponse(data=TransactionRead.model_validate(transaction))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicatePaymentError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/withdrawals", response_model=DataResponse[TransactionRead], status_code=201)
async def make_withdrawal(
    data: WithdrawalCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user: User = Depends(require_permission(PERM_MAKE_WITHDRAWAL)),
):
    try:
        transaction = await record_withdrawal(db, data, user)
        return DataResponse(data=TransactionRead.model_validate(transaction))
    except InsufficientFundsError as e:
        raise HTTPException(status_code=400, detail=str(e))
