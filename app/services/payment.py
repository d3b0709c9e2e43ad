import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from app.core.config import settings
from app.models.auth import User
from app.models.domain import Member, DuesAllocation
from app.models.finance import Transaction, FinanceEntry
from app.models.enums import TransactionType, NotificationType
from app.schemas.transaction import DuesPaymentCreate, WithdrawalCreate, FinanceEntryCreate, DuesAllocationUpsert
from app.services.activity import notify
from app.services.finance_report import coffers_balance
from app.services.ledger import NotFoundError, list_finance_entries

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


class AllocationMissingError(ValueError):
    pass


class DuplicatePaymentError(ValueError):
    pass


class InsufficientFundsError(ValueError):
    pass


def _money(amount: float) -> str:
    return f"{settings.CURRENCY} {amount:,.2f}"


async def _get_allocation(db: AsyncSession, year: int) -> Optional[DuesAllocation]:
    result = await db.execute(select(DuesAllocation).where(DuesAllocation.year == year))
    return result.scalar_one_or_none()


async def record_dues_payment(db: AsyncSession, data: DuesPaymentCreate, user: User) -> Transaction:
    """
    Record one month of dues for a member.

    The transaction row is the authoritative record. The mirrored finance
    entry and the notification are written after it and may fail on their own.
    """
    if data.month < 1 or data.month > 12:
        raise ValueError(f"Invalid month: {data.month}. Must be between 1 and 12")

    member_result = await db.execute(select(Member).where(Member.id == data.member_id))
    member = member_result.scalar_one_or_none()
    if not member:
        raise NotFoundError(f"Member with ID {data.member_id} not found")

    allocation = await _get_allocation(db, data.year)
    if not allocation:
        raise AllocationMissingError(
            f"Dues have not been allocated for {data.year}. Please allocate dues first."
        )

    existing = await db.execute(
        select(Transaction.id).where(
            and_(
                Transaction.type == TransactionType.DUES,
                Transaction.member_id == member.id,
                Transaction.year == data.year,
                Transaction.month == data.month,
            )
        )
    )
    if existing.first() is not None:
        raise DuplicatePaymentError(
            f"{member.full_name} has already paid dues for {MONTH_NAMES[data.month - 1]} {data.year}"
        )

    member_type = "executive" if member.is_executive else "regular"
    amount = data.amount
    if amount is None:
        amount = float(allocation.executive_amount if member.is_executive else allocation.regular_amount)

    month_name = MONTH_NAMES[data.month - 1]
    member_id = member.id
    member_name = member.full_name
    user_id = user.id
    user_name = user.full_name

    transaction = Transaction(
        amount=amount,
        type=TransactionType.DUES,
        timestamp=datetime.utcnow(),
        description=f"Dues payment for {month_name} {data.year}",
        member_id=member_id,
        month=data.month,
        year=data.year,
        member_type=member_type,
        recorded_by_user_id=user_id,
    )
    db.add(transaction)
    try:
        await db.commit()
    except IntegrityError:
        # Another submission for the same month committed between the check and the insert
        await db.rollback()
        raise DuplicatePaymentError(
            f"{member_name} has already paid dues for {month_name} {data.year}"
        )
    await db.refresh(transaction)
    transaction_id = transaction.id
    logger.info(f"Recorded dues payment {transaction_id} for member {member_id} ({month_name} {data.year})")

    try:
        db.add(
            FinanceEntry(
                amount=amount,
                type=TransactionType.DUES,
                timestamp=transaction.timestamp,
                description=f"Dues payment for {month_name} {data.year} - {member_name}",
                added_by=user_name,
                year=data.year,
                member_id=member_id,
                details={"member_type": member_type, "transaction_id": transaction_id},
                recorded_by_user_id=user_id,
            )
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning(f"Finance mirror for dues payment {transaction_id} could not be saved: {e}")

    await notify(
        db,
        NotificationType.DUES_PAYMENT,
        "Dues Payment Received",
        f"{member_name} paid {_money(amount)} for {month_name} {data.year}",
    )

    await db.refresh(transaction)
    return transaction


async def record_withdrawal(db: AsyncSession, data: WithdrawalCreate, user: User) -> Transaction:
    balance = coffers_balance(await list_finance_entries(db))
    if data.amount > balance:
        raise InsufficientFundsError(
            f"Insufficient funds in the coffers: requested {_money(data.amount)}, available {_money(balance)}"
        )

    user_id = user.id
    transaction = Transaction(
        amount=data.amount,
        type=TransactionType.WITHDRAWAL,
        timestamp=datetime.utcnow(),
        description=data.description,
        year=data.year,
        withdrawal_date=data.withdrawal_date,
        reason_type=data.reason_type,
        withdrawn_by=data.withdrawn_by,
        recorded_by_user_id=user_id,
    )
    db.add(transaction)
    await db.commit()
    await db.refresh(transaction)
    transaction_id = transaction.id
    logger.info(f"Recorded withdrawal {transaction_id} of {_money(data.amount)}")

    try:
        db.add(
            FinanceEntry(
                amount=-data.amount,
                type=TransactionType.WITHDRAWAL,
                timestamp=transaction.timestamp,
                description=data.description,
                added_by=data.withdrawn_by,
                details={**data.details, "transaction_id": transaction_id},
                recorded_by_user_id=user_id,
            )
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning(f"Finance mirror for withdrawal {transaction_id} could not be saved: {e}")

    await notify(
        db,
        NotificationType.WITHDRAWAL_MADE,
        "Funds Withdrawn",
        f"{data.withdrawn_by} withdrew {_money(data.amount)} - {data.description}",
    )

    await db.refresh(transaction)
    return transaction


async def add_finance_entry(db: AsyncSession, data: FinanceEntryCreate, user: User) -> FinanceEntry:
    """Add income to the general ledger. Dues added here are mirrored to transactions."""
    user_id = user.id
    user_name = user.full_name

    entry = FinanceEntry(
        amount=data.amount,
        type=data.type,
        timestamp=datetime.utcnow(),
        description=data.description,
        added_by=user_name,
        year=data.year if data.type in (TransactionType.BUDGET, TransactionType.DUES) else None,
        recorded_by_user_id=user_id,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    entry_id = entry.id

    if data.type == TransactionType.DUES:
        try:
            db.add(
                Transaction(
                    amount=data.amount,
                    type=TransactionType.DUES,
                    timestamp=entry.timestamp,
                    description=data.description,
                    year=data.year,
                    recorded_by_user_id=user_id,
                )
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(f"Transaction mirror for finance entry {entry_id} could not be saved: {e}")

    labels = {
        TransactionType.DUES: "Dues",
        TransactionType.CONTRIBUTION: "Contribution",
        TransactionType.BUDGET: f"Budget for {data.year}",
        TransactionType.OTHER: "Miscellaneous",
    }
    label = labels[data.type]
    if data.type == TransactionType.BUDGET:
        message = f"{user_name} set budget of {_money(data.amount)} for {data.year}"
    else:
        message = f"{user_name} added {_money(data.amount)} to {label.lower()}"

    await notify(db, NotificationType.PAYMENT_RECEIVED, f"{label} Added", message)

    await db.refresh(entry)
    return entry


def _apply_allocation(allocation: DuesAllocation, data: DuesAllocationUpsert, user_id: int) -> None:
    allocation.regular_amount = data.regular_amount
    allocation.executive_amount = data.executive_amount
    allocation.updated_by_user_id = user_id


async def set_dues_allocation(db: AsyncSession, year: int, data: DuesAllocationUpsert, user: User) -> DuesAllocation:
    user_id = user.id
    allocation = await _get_allocation(db, year)

    if allocation:
        _apply_allocation(allocation, data, user_id)
        await db.commit()
    else:
        allocation = DuesAllocation(
            year=year,
            regular_amount=data.regular_amount,
            executive_amount=data.executive_amount,
            created_by_user_id=user_id,
            updated_by_user_id=user_id,
        )
        db.add(allocation)
        try:
            await db.commit()
        except IntegrityError:
            # The year was allocated concurrently; update that row instead
            await db.rollback()
            allocation = await _get_allocation(db, year)
            if allocation is None:
                raise
            _apply_allocation(allocation, data, user_id)
            await db.commit()

    await db.refresh(allocation)
    logger.info(f"Dues allocation for {year} set to {data.regular_amount}/{data.executive_amount}")

    await notify(
        db,
        NotificationType.DUES_ALLOCATION,
        "Dues Allocated",
        f"Dues allocated for {year}: Regular - {_money(data.regular_amount)}, "
        f"Executive - {_money(data.executive_amount)}",
    )

    await db.refresh(allocation)
    return allocation
