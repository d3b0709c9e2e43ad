from datetime import date
from typing import Optional
from pydantic import BaseModel
from app.schemas.transaction import LedgerEntry, DuesAllocationRead


class MemberDuesSummary(BaseModel):
    expected: float = 0.0
    paid: float = 0.0
    owing: float = 0.0
    paid_months: list[int] = []
    rate: float = 0.0
    monthly_amount: float = 0.0
    total_payments: int = 0


class MemberDuesReport(BaseModel):
    member_id: int
    member_name: str
    year: int
    status: str
    summary: MemberDuesSummary


class AnnualFinancialSummary(BaseModel):
    year: int
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_income: float = 0.0

    dues_income: float = 0.0
    contributions_income: float = 0.0
    other_income: float = 0.0
    budget_income: float = 0.0

    total_members: int = 0
    executive_members: int = 0
    regular_members: int = 0
    members_paid: int = 0
    members_owing: int = 0
    total_dues_expected: float = 0.0
    total_dues_collected: float = 0.0
    collection_rate: float = 0.0

    allocation: Optional[DuesAllocationRead] = None
    income_entries: list[LedgerEntry] = []
    expense_entries: list[LedgerEntry] = []


class OwingMember(BaseModel):
    member_id: int
    member_name: str
    is_executive: bool
    owing_amount: float
    months_owing: int
    paid_months: list[int]


class UnpaidMember(BaseModel):
    member_id: int
    member_name: str
    is_executive: bool
    expected_amount: float


class FinancialLog(BaseModel):
    year: int
    total_added: float = 0.0
    total_withdrawn: float = 0.0
    entries: list[LedgerEntry] = []


class CoffersBalance(BaseModel):
    balance: float
    currency: str


class BirthdayMember(BaseModel):
    member_id: int
    member_name: str
    birth_date: date
    age: int
