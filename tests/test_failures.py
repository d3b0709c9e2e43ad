import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import PERMISSION_KEYS, ROLE_PERMISSIONS_KEY
from app.models.activity import Notification, AuditLog
from app.models.enums import NotificationType
from app.models.finance import Transaction, FinanceEntry
from app.models.settings import SystemSettings
from app.schemas.report import AnnualFinancialSummary
from app.schemas.transaction import DuesPaymentCreate
from app.services.activity import notify
from app.services.ledger import (
    load_annual_financials,
    load_coffers_balance,
    load_owing_members,
    load_financial_log,
)
from app.services.payment import record_dues_payment
from app.services.permissions import check_permission, get_permissions_for_role, set_role_permission


class UnavailableSession:
    """Stands in for a session whose database cannot be reached."""

    async def execute(self, *args, **kwargs):
        raise RuntimeError("database unavailable")

    async def commit(self):
        raise RuntimeError("database unavailable")

    async def rollback(self):
        pass


def fail_commits(monkeypatch, passing: set[int]):
    """Make AsyncSession.commit raise except on the listed call numbers (1-based)."""
    original = AsyncSession.commit
    calls = []

    async def commit(self):
        calls.append(self)
        if len(calls) in passing:
            return await original(self)
        raise RuntimeError("write failed")

    monkeypatch.setattr(AsyncSession, "commit", commit)
    return calls


@pytest.mark.asyncio
async def test_permission_check_denies_when_backend_is_down() -> None:
    db = UnavailableSession()

    assert await check_permission(db, "Union Treasurer", "addDues") is False
    assert await check_permission(db, "admin", "addDues") is True


@pytest.mark.asyncio
async def test_role_permissions_are_all_false_when_backend_is_down() -> None:
    db = UnavailableSession()

    assert await get_permissions_for_role(db, "Union Treasurer") == {key: False for key in PERMISSION_KEYS}
    assert await get_permissions_for_role(db, "admin") == {key: True for key in PERMISSION_KEYS}


@pytest.mark.asyncio
async def test_reports_fall_back_to_zero_when_backend_is_down() -> None:
    db = UnavailableSession()

    summary = await load_annual_financials(db, 2024)
    assert summary == AnnualFinancialSummary(year=2024)
    assert summary.total_income == 0
    assert summary.members_owing == 0

    assert await load_coffers_balance(db) == 0.0
    assert await load_owing_members(db, 2024) == []

    log = await load_financial_log(db, 2024)
    assert log.entries == []
    assert log.total_added == 0


@pytest.mark.asyncio
async def test_notify_reports_failure_without_raising(db, monkeypatch) -> None:
    fail_commits(monkeypatch, passing=set())

    assert await notify(db, NotificationType.PROGRAM_ADDED, "New Program", "Sports Day") is False

    monkeypatch.undo()
    assert (await db.execute(select(Notification))).scalars().all() == []


@pytest.mark.asyncio
async def test_dues_payment_survives_failed_mirror_and_notification(
    db, treasurer_user, allocation_2024, members, monkeypatch
) -> None:
    regular, _ = members
    calls = fail_commits(monkeypatch, passing={1})

    transaction = await record_dues_payment(
        db, DuesPaymentCreate(member_id=regular.id, year=2024, month=4), treasurer_user
    )
    monkeypatch.undo()

    # Ledger row, then the finance mirror and the notification
    assert len(calls) == 3
    assert transaction.amount == 10
    assert transaction.month == 4

    rows = (await db.execute(select(Transaction))).scalars().all()
    assert [r.id for r in rows] == [transaction.id]
    assert (await db.execute(select(FinanceEntry))).scalars().all() == []
    assert (await db.execute(select(Notification))).scalars().all() == []


@pytest.mark.asyncio
async def test_failed_migration_write_still_allows_permission_update(db, admin_user, monkeypatch) -> None:
    db.add(SystemSettings(key=ROLE_PERMISSIONS_KEY, value={"member": 1}))
    await db.commit()
    fail_commits(monkeypatch, passing={2, 3})

    table = await set_role_permission(db, "member", "addDues", 1, admin_user)
    monkeypatch.undo()

    assert table["member"]["addEditMembers"] == 1
    assert table["member"]["addDues"] == 1
    assert table["member"]["makeWithdrawal"] == 0

    stored = (
        await db.execute(select(SystemSettings).where(SystemSettings.key == ROLE_PERMISSIONS_KEY))
    ).scalar_one()
    assert stored.value["member"]["addDues"] == 1
    assert stored.updated_by_user_id == admin_user.id

    audit = (await db.execute(select(AuditLog))).scalar_one()
    assert audit.action == "set_role_permission"
    assert audit.performed_by_user_id == admin_user.id
