"""Read side of the ledger: loads the collections the report calculations work on."""
import logging
from datetime import date
from typing import Optional
import pytz
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.config import settings
from app.models.domain import Member, DuesAllocation
from app.models.finance import Transaction, FinanceEntry
from app.schemas.member import MemberRead
from app.schemas.transaction import LedgerEntry, DuesAllocationRead
from app.schemas.report import (
    AnnualFinancialSummary,
    MemberDuesReport,
    MemberDuesSummary,
    FinancialLog,
    OwingMember,
    UnpaidMember,
    BirthdayMember,
)
from app.services import finance_report

logger = logging.getLogger(__name__)

report_timezone = pytz.timezone(settings.TIMEZONE)


class NotFoundError(ValueError):
    pass


async def list_members(db: AsyncSession) -> list[MemberRead]:
    result = await db.execute(
        select(Member).order_by(Member.is_executive.desc(), Member.date_joined.desc(), Member.id)
    )
    return [MemberRead.model_validate(m) for m in result.scalars().all()]


async def get_member(db: AsyncSession, member_id: int) -> MemberRead:
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()
    if not member:
        raise NotFoundError("Member not found")
    return MemberRead.model_validate(member)


async def list_transactions(db: AsyncSession) -> list[LedgerEntry]:
    result = await db.execute(select(Transaction).order_by(Transaction.timestamp.desc()))
    return [
        LedgerEntry.model_validate(t).model_copy(update={"source": "transactions"})
        for t in result.scalars().all()
    ]


async def list_finance_entries(db: AsyncSession) -> list[LedgerEntry]:
    result = await db.execute(select(FinanceEntry).order_by(FinanceEntry.timestamp.desc()))
    return [
        LedgerEntry.model_validate(f).model_copy(update={"source": "finances"})
        for f in result.scalars().all()
    ]


async def list_dues_allocations(db: AsyncSession) -> list[DuesAllocationRead]:
    result = await db.execute(select(DuesAllocation).order_by(DuesAllocation.year.desc()))
    return [DuesAllocationRead.model_validate(a) for a in result.scalars().all()]


async def get_dues_allocation(db: AsyncSession, year: int) -> Optional[DuesAllocationRead]:
    result = await db.execute(select(DuesAllocation).where(DuesAllocation.year == year))
    allocation = result.scalar_one_or_none()
    return DuesAllocationRead.model_validate(allocation) if allocation else None


# Report loaders. A failed read is logged and reported as an empty result.


async def load_member_dues_report(db: AsyncSession, member_id: int, year: int) -> MemberDuesReport:
    member = await get_member(db, member_id)

    try:
        allocation = await get_dues_allocation(db, year)
        transactions = await list_transactions(db)
        summary = finance_report.compute_member_dues_summary(member, year, allocation, transactions)
    except Exception:
        logger.error(f"Failed to load dues for member {member_id} ({year})", exc_info=True)
        summary = MemberDuesSummary()

    return MemberDuesReport(
        member_id=member.id,
        member_name=member.full_name,
        year=year,
        status=finance_report.payment_status(summary.rate),
        summary=summary,
    )


async def load_annual_financials(db: AsyncSession, year: int) -> AnnualFinancialSummary:
    try:
        return finance_report.compute_annual_financials(
            year,
            await list_members(db),
            await list_transactions(db),
            await list_finance_entries(db),
            await list_dues_allocations(db),
            tz=report_timezone,
        )
    except Exception:
        logger.error(f"Failed to build annual financials for {year}", exc_info=True)
        return AnnualFinancialSummary(year=year)


async def load_financial_log(db: AsyncSession, year: int) -> FinancialLog:
    try:
        return finance_report.financial_log(
            year,
            await list_transactions(db),
            await list_finance_entries(db),
            tz=report_timezone,
        )
    except Exception:
        logger.error(f"Failed to build financial log for {year}", exc_info=True)
        return FinancialLog(year=year)


async def load_owing_members(db: AsyncSession, year: int) -> list[OwingMember]:
    try:
        return finance_report.owing_members(
            year,
            await list_members(db),
            await get_dues_allocation(db, year),
            await list_transactions(db),
        )
    except Exception:
        logger.error(f"Failed to list owing members for {year}", exc_info=True)
        return []


async def load_unpaid_members(db: AsyncSession, year: int, month: int) -> list[UnpaidMember]:
    try:
        return finance_report.unpaid_members(
            year,
            month,
            await list_members(db),
            await get_dues_allocation(db, year),
            await list_transactions(db),
        )
    except Exception:
        logger.error(f"Failed to list unpaid members for {month}/{year}", exc_info=True)
        return []


async def load_coffers_balance(db: AsyncSession) -> float:
    try:
        return finance_report.coffers_balance(await list_finance_entries(db))
    except Exception:
        logger.error("Failed to compute coffers balance", exc_info=True)
        return 0.0


async def load_birthdays(db: AsyncSession, on_date: Optional[date] = None) -> list[BirthdayMember]:
    if on_date is None:
        on_date = date.today()
    try:
        return finance_report.members_with_birthday(await list_members(db), on_date)
    except Exception:
        logger.error("Failed to list birthdays", exc_info=True)
        return []
