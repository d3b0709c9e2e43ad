"""
Dues and ledger calculations behind the payment tracking and yearly reports.

Everything here is a pure function over records that were already loaded
(ORM rows or schema objects both work). Totals are recomputed from the full
ledger on every call; nothing is cached between calls.
"""
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Optional
import pytz
from dateutil import parser as date_parser
from app.models.enums import TransactionType
from app.schemas.report import (
    MemberDuesSummary,
    AnnualFinancialSummary,
    OwingMember,
    UnpaidMember,
    FinancialLog,
    BirthdayMember,
)
from app.schemas.transaction import LedgerEntry, DuesAllocationRead

MONTHS_PER_YEAR = 12

DUES = TransactionType.DUES.value
CONTRIBUTION = TransactionType.CONTRIBUTION.value
OTHER = TransactionType.OTHER.value
BUDGET = TransactionType.BUDGET.value
WITHDRAWAL = TransactionType.WITHDRAWAL.value

INCOME_CATEGORIES = (DUES, CONTRIBUTION, OTHER, BUDGET)


def _entry_type(entry: Any) -> str:
    value = entry.type
    return value.value if isinstance(value, TransactionType) else str(value)


def _amount(entry: Any) -> float:
    return float(entry.amount or 0)


def as_year(value: Any) -> Optional[int]:
    """Years are stored as numbers but older records carry them as strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _calendar_year(value: Any, tz=None) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    if isinstance(value, datetime):
        if tz is not None:
            # Naive timestamps are stored in UTC
            if value.tzinfo is None:
                value = pytz.utc.localize(value)
            value = value.astimezone(tz)
        return value.year
    if isinstance(value, date):
        return value.year
    return None


def classify_entry_year(entry: Any, tz=None) -> Optional[int]:
    """
    Work out which report year a ledger entry belongs to.

    Dues and budget entries name their year explicitly. Withdrawals use the
    withdrawal date when one was recorded and fall back to the timestamp.
    Everything else goes by the calendar year of its timestamp.
    """
    entry_type = _entry_type(entry)

    if entry_type in (DUES, BUDGET):
        return as_year(getattr(entry, "year", None))

    if entry_type == WITHDRAWAL:
        year = _calendar_year(getattr(entry, "withdrawal_date", None))
        if year is not None:
            return year

    return _calendar_year(getattr(entry, "timestamp", None), tz)


def _timestamp_key(entry: Any) -> datetime:
    value = getattr(entry, "timestamp", None)
    if not isinstance(value, datetime):
        return datetime.min
    if value.tzinfo is not None:
        value = value.astimezone(pytz.utc).replace(tzinfo=None)
    return value


def merge_ledgers(transactions: Iterable[Any], finances: Iterable[Any]) -> list[Any]:
    """
    Combine both ledger feeds, newest first.

    Dues and withdrawals are written to both feeds; only the transactions
    copy is kept so they are not counted twice.
    """
    kept = [entry for entry in finances if _entry_type(entry) not in (WITHDRAWAL, DUES)]
    return sorted([*kept, *transactions], key=_timestamp_key, reverse=True)


def find_allocation(allocations: Iterable[Any], year: Any) -> Optional[Any]:
    target = as_year(year)
    return next((a for a in allocations if as_year(a.year) == target), None)


def monthly_tier(member: Any, allocation: Any) -> float:
    if allocation is None:
        return 0.0
    return float(allocation.executive_amount if member.is_executive else allocation.regular_amount)


def _member_dues_payments(member: Any, year: Optional[int], transactions: Iterable[Any]) -> list[Any]:
    return [
        t for t in transactions
        if _entry_type(t) == DUES and t.member_id == member.id and as_year(t.year) == year
    ]


def compute_member_dues_summary(member: Any, year: Any, allocation: Any, transactions: Iterable[Any]) -> MemberDuesSummary:
    if allocation is None:
        return MemberDuesSummary()

    monthly_amount = monthly_tier(member, allocation)
    expected = monthly_amount * MONTHS_PER_YEAR

    payments = _member_dues_payments(member, as_year(year), transactions)
    paid = sum(_amount(p) for p in payments)
    # Paying the same month twice still completes only one month
    paid_months = sorted({p.month for p in payments if p.month is not None})

    return MemberDuesSummary(
        expected=expected,
        paid=paid,
        owing=max(0.0, expected - paid),
        paid_months=paid_months,
        rate=paid / expected * 100 if expected > 0 else 0.0,
        monthly_amount=monthly_amount,
        total_payments=len(payments),
    )


def payment_status(rate: float) -> str:
    if rate <= 0:
        return "Not Started"
    if rate >= 100:
        return "Completed"
    if rate >= 75:
        return "Almost Done"
    if rate >= 50:
        return "In Progress"
    return "Behind"


def compute_annual_financials(
    year: Any,
    members: Iterable[Any],
    transactions: Iterable[Any],
    finances: Iterable[Any],
    allocations: Iterable[Any],
    tz=None,
) -> AnnualFinancialSummary:
    target = as_year(year)
    members = list(members)
    transactions = list(transactions)

    income_entries = []
    expense_entries = []
    categories = {category: 0.0 for category in INCOME_CATEGORIES}
    total_income = 0.0
    total_expenses = 0.0

    for entry in merge_ledgers(transactions, finances):
        if classify_entry_year(entry, tz) != target:
            continue

        amount = abs(_amount(entry))
        entry_type = _entry_type(entry)
        if entry_type == WITHDRAWAL:
            expense_entries.append(entry)
            total_expenses += amount
        else:
            income_entries.append(entry)
            total_income += amount
            if entry_type in categories:
                categories[entry_type] += amount

    executive_members = sum(1 for m in members if m.is_executive)

    members_paid = 0
    members_owing = 0
    total_dues_expected = 0.0
    total_dues_collected = 0.0

    allocation = find_allocation(allocations, target)
    if allocation is not None:
        for member in members:
            dues = compute_member_dues_summary(member, target, allocation, transactions)
            total_dues_expected += dues.expected
            total_dues_collected += dues.paid
            if dues.paid >= dues.expected:
                members_paid += 1
            else:
                members_owing += 1

    return AnnualFinancialSummary(
        year=target,
        total_income=total_income,
        total_expenses=total_expenses,
        net_income=total_income - total_expenses,
        dues_income=categories[DUES],
        contributions_income=categories[CONTRIBUTION],
        other_income=categories[OTHER],
        budget_income=categories[BUDGET],
        total_members=len(members),
        executive_members=executive_members,
        regular_members=len(members) - executive_members,
        members_paid=members_paid,
        members_owing=members_owing,
        total_dues_expected=total_dues_expected,
        total_dues_collected=total_dues_collected,
        collection_rate=total_dues_collected / total_dues_expected * 100 if total_dues_expected > 0 else 0.0,
        allocation=DuesAllocationRead.model_validate(allocation) if allocation is not None else None,
        income_entries=[LedgerEntry.model_validate(e) for e in income_entries],
        expense_entries=[LedgerEntry.model_validate(e) for e in expense_entries],
    )


def financial_log(year: Any, transactions: Iterable[Any], finances: Iterable[Any], tz=None) -> FinancialLog:
    target = as_year(year)
    entries = [e for e in merge_ledgers(transactions, finances) if classify_entry_year(e, tz) == target]

    total_withdrawn = sum(abs(_amount(e)) for e in entries if _entry_type(e) == WITHDRAWAL)
    total_added = sum(abs(_amount(e)) for e in entries if _entry_type(e) != WITHDRAWAL)

    return FinancialLog(
        year=target,
        total_added=total_added,
        total_withdrawn=total_withdrawn,
        entries=[LedgerEntry.model_validate(e) for e in entries],
    )


def owing_members(year: Any, members: Iterable[Any], allocation: Any, transactions: Iterable[Any]) -> list[OwingMember]:
    if allocation is None:
        return []

    transactions = list(transactions)
    owing = []
    for member in members:
        summary = compute_member_dues_summary(member, year, allocation, transactions)
        if summary.owing > 0:
            owing.append(
                OwingMember(
                    member_id=member.id,
                    member_name=member.full_name,
                    is_executive=member.is_executive,
                    owing_amount=summary.owing,
                    months_owing=MONTHS_PER_YEAR - len(summary.paid_months),
                    paid_months=summary.paid_months,
                )
            )

    return sorted(owing, key=lambda m: m.owing_amount, reverse=True)


def unpaid_members(year: Any, month: int, members: Iterable[Any], allocation: Any, transactions: Iterable[Any]) -> list[UnpaidMember]:
    target = as_year(year)
    paid_member_ids = {
        t.member_id for t in transactions
        if _entry_type(t) == DUES and t.month == month and as_year(t.year) == target
    }

    return [
        UnpaidMember(
            member_id=member.id,
            member_name=member.full_name,
            is_executive=member.is_executive,
            expected_amount=monthly_tier(member, allocation),
        )
        for member in members
        if member.id not in paid_member_ids
    ]


def coffers_balance(finances: Iterable[Any]) -> float:
    """Withdrawals sit in the finances feed as negative amounts."""
    return sum(_amount(f) for f in finances)


def members_with_birthday(members: Iterable[Any], on_date: date) -> list[BirthdayMember]:
    def celebrates(birth_date: date) -> bool:
        if (birth_date.month, birth_date.day) == (on_date.month, on_date.day):
            return True
        # Leap-day birthdays fall on 28 February in common years
        leap_day = (birth_date.month, birth_date.day) == (2, 29)
        try:
            date(on_date.year, 2, 29)
            is_leap = True
        except ValueError:
            is_leap = False
        return leap_day and not is_leap and (on_date.month, on_date.day) == (2, 28)

    return [
        BirthdayMember(
            member_id=member.id,
            member_name=member.full_name,
            birth_date=member.birth_date,
            age=on_date.year - member.birth_date.year,
        )
        for member in members
        if member.birth_date and celebrates(member.birth_date)
    ]
