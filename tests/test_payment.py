import asyncio
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.core.db import Base
from app.core.security import hash_password
from app.models.activity import Notification
from app.models.auth import User
from app.models.domain import DuesAllocation, Member
from app.models.enums import TransactionType, WithdrawalReason
from app.models.finance import Transaction, FinanceEntry
from app.schemas.transaction import DuesPaymentCreate, WithdrawalCreate, FinanceEntryCreate, DuesAllocationUpsert
from app.services.ledger import NotFoundError, load_coffers_balance, load_member_dues_report
from app.services.payment import (
    record_dues_payment,
    record_withdrawal,
    add_finance_entry,
    set_dues_allocation,
    AllocationMissingError,
    DuplicatePaymentError,
    InsufficientFundsError,
)


@pytest.mark.asyncio
async def test_dues_payment_defaults_to_member_tier(db, treasurer_user, allocation_2024, members):
    regular, executive = members

    transaction = await record_dues_payment(
        db, DuesPaymentCreate(member_id=executive.id, year=2024, month=3), treasurer_user
    )

    assert transaction.amount == 20
    assert transaction.type == TransactionType.DUES
    assert transaction.member_type == "executive"
    assert transaction.recorded_by_user_id == treasurer_user.id

    mirrors = (await db.execute(select(FinanceEntry).where(FinanceEntry.type == TransactionType.DUES))).scalars().all()
    assert len(mirrors) == 1
    assert mirrors[0].amount == 20
    assert mirrors[0].year == 2024
    assert mirrors[0].details["transaction_id"] == transaction.id

    notifications = (await db.execute(select(Notification))).scalars().all()
    assert len(notifications) == 1
    assert "March 2024" in notifications[0].message


@pytest.mark.asyncio
async def test_duplicate_dues_payment_is_rejected(db, treasurer_user, allocation_2024, members):
    regular, _ = members
    data = DuesPaymentCreate(member_id=regular.id, year=2024, month=1)

    await record_dues_payment(db, data, treasurer_user)
    with pytest.raises(DuplicatePaymentError):
        await record_dues_payment(db, data, treasurer_user)

    count = len((await db.execute(select(Transaction))).scalars().all())
    assert count == 1


@pytest.mark.asyncio
async def test_dues_payment_requires_allocation(db, treasurer_user, members):
    regular, _ = members
    with pytest.raises(AllocationMissingError):
        await record_dues_payment(db, DuesPaymentCreate(member_id=regular.id, year=2030, month=1), treasurer_user)


@pytest.mark.asyncio
async def test_dues_payment_for_unknown_member(db, treasurer_user, allocation_2024):
    with pytest.raises(NotFoundError):
        await record_dues_payment(db, DuesPaymentCreate(member_id=999, year=2024, month=1), treasurer_user)


@pytest.mark.asyncio
async def test_member_report_after_payments(db, treasurer_user, allocation_2024, members):
    regular, _ = members
    for month in (1, 2, 3):
        await record_dues_payment(db, DuesPaymentCreate(member_id=regular.id, year=2024, month=month), treasurer_user)

    report = await load_member_dues_report(db, regular.id, 2024)

    assert report.summary.expected == 120
    assert report.summary.paid == 30
    assert report.summary.owing == 90
    assert report.summary.paid_months == [1, 2, 3]
    assert report.status == "Behind"


@pytest.mark.asyncio
async def test_withdrawal_cannot_exceed_balance(db, treasurer_user):
    data = WithdrawalCreate(
        amount=50,
        year=2024,
        withdrawal_date=date(2024, 5, 1),
        reason_type=WithdrawalReason.EVENT,
        event_name="Freshers' Night",
        withdrawn_by="Kofi Treasurer",
    )
    with pytest.raises(InsufficientFundsError):
        await record_withdrawal(db, data, treasurer_user)


@pytest.mark.asyncio
async def test_withdrawal_writes_both_ledgers(db, treasurer_user):
    await add_finance_entry(
        db,
        FinanceEntryCreate(type=TransactionType.CONTRIBUTION, amount=100, description="Alumni gift"),
        treasurer_user,
    )

    transaction = await record_withdrawal(
        db,
        WithdrawalCreate(
            amount=40,
            year=2024,
            withdrawal_date=date(2024, 5, 1),
            reason_type=WithdrawalReason.CAMP,
            camp_name="Easter Camp",
            withdrawn_by="Kofi Treasurer",
        ),
        treasurer_user,
    )

    assert transaction.amount == 40
    assert transaction.reason_type == WithdrawalReason.CAMP
    assert transaction.description == "Withdrawal for camp: Easter Camp"

    entry = (
        await db.execute(select(FinanceEntry).where(FinanceEntry.type == TransactionType.WITHDRAWAL))
    ).scalar_one()
    assert entry.amount == -40
    assert await load_coffers_balance(db) == 60


@pytest.mark.asyncio
async def test_finance_dues_entry_is_mirrored_to_transactions(db, treasurer_user):
    entry = await add_finance_entry(
        db,
        FinanceEntryCreate(type=TransactionType.DUES, amount=300, description="Bulk dues", year=2024),
        treasurer_user,
    )
    assert entry.year == 2024

    mirror = (await db.execute(select(Transaction))).scalar_one()
    assert mirror.type == TransactionType.DUES
    assert mirror.amount == 300
    assert mirror.year == 2024


@pytest.mark.asyncio
async def test_contribution_entry_has_no_year(db, treasurer_user):
    entry = await add_finance_entry(
        db,
        FinanceEntryCreate(type=TransactionType.CONTRIBUTION, amount=25, description="Gift", year=2024),
        treasurer_user,
    )
    assert entry.year is None
    assert (await db.execute(select(Transaction))).scalars().all() == []


@pytest.mark.asyncio
async def test_set_dues_allocation_upserts(db, treasurer_user):
    first = await set_dues_allocation(db, 2025, DuesAllocationUpsert(regular_amount=10, executive_amount=20), treasurer_user)
    second = await set_dues_allocation(db, 2025, DuesAllocationUpsert(regular_amount=15, executive_amount=25), treasurer_user)

    assert first.id == second.id
    assert second.regular_amount == 15
    assert second.executive_amount == 25

    rows = (await db.execute(select(DuesAllocation))).scalars().all()
    assert len(rows) == 1


def racing_session_class(parties: int):
    """Sessions that hold their first commit until every party has reached it."""
    ready = asyncio.Event()
    arrived = []

    class RacingSession(AsyncSession):
        held = True

        async def commit(self):
            if self.held:
                self.held = False
                arrived.append(self)
                if len(arrived) == parties:
                    ready.set()
                await ready.wait()
            await super().commit()

    return RacingSession


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    # Separate connections per session, so concurrent writers contend for real
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'union.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(file_engine):
    factory = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        user = User(
            phone="+233200000009",
            full_name="Kofi Treasurer",
            hashed_password=hash_password("secret123"),
            role="Union Treasurer",
        )
        member = Member(full_name="Yaw Regular", is_executive=False)
        session.add_all([user, member, DuesAllocation(year=2024, regular_amount=10, executive_amount=20)])
        await session.commit()
        await session.refresh(user)
        await session.refresh(member)
    return user, member


@pytest.mark.asyncio
async def test_concurrent_dues_for_same_month_record_once(file_engine, seeded):
    user, member = seeded
    racing = async_sessionmaker(file_engine, class_=racing_session_class(2), expire_on_commit=False)
    data = DuesPaymentCreate(member_id=member.id, year=2024, month=5)

    async def submit():
        async with racing() as session:
            return await record_dues_payment(session, data, user)

    results = await asyncio.gather(submit(), submit(), return_exceptions=True)

    assert len([r for r in results if isinstance(r, Transaction)]) == 1
    assert len([r for r in results if isinstance(r, DuplicatePaymentError)]) == 1

    async with async_sessionmaker(file_engine, class_=AsyncSession)() as session:
        rows = (await session.execute(select(Transaction).where(Transaction.type == TransactionType.DUES))).scalars().all()
        mirrors = (await session.execute(select(FinanceEntry))).scalars().all()
    assert len(rows) == 1
    assert len(mirrors) == 1


@pytest.mark.asyncio
async def test_concurrent_allocation_for_new_year_updates_single_row(file_engine, seeded):
    user, _ = seeded
    racing = async_sessionmaker(file_engine, class_=racing_session_class(2), expire_on_commit=False)

    async def allocate(regular: float, executive: float):
        async with racing() as session:
            return await set_dues_allocation(
                session, 2026, DuesAllocationUpsert(regular_amount=regular, executive_amount=executive), user
            )

    first, second = await asyncio.gather(allocate(10, 20), allocate(15, 25))

    assert first.id == second.id

    async with async_sessionmaker(file_engine, class_=AsyncSession)() as session:
        rows = (await session.execute(select(DuesAllocation).where(DuesAllocation.year == 2026))).scalars().all()
    assert len(rows) == 1
    assert (rows[0].regular_amount, rows[0].executive_amount) in ((10, 20), (15, 25))
