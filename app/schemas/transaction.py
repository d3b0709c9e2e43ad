from datetime import date, datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field, model_validator
from app.models.enums import TransactionType, WithdrawalReason


class TransactionRead(BaseModel):
    id: int
    amount: float
    type: TransactionType
    timestamp: datetime
    description: Optional[str] = None
    member_id: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None
    member_type: Optional[str] = None
    withdrawal_date: Optional[date] = None
    reason_type: Optional[WithdrawalReason] = None
    withdrawn_by: Optional[str] = None
    recorded_by_user_id: Optional[int] = None

    class Config:
        from_attributes = True


class FinanceEntryRead(BaseModel):
    id: int
    amount: float
    type: TransactionType
    timestamp: datetime
    description: Optional[str] = None
    added_by: Optional[str] = None
    year: Optional[int] = None
    member_id: Optional[int] = None
    details: Optional[dict] = None

    class Config:
        from_attributes = True


class LedgerEntry(BaseModel):
    """One row of either ledger feed, as consumed by the report calculations."""
    id: Optional[int] = None
    source: Literal["transactions", "finances"] = "transactions"
    amount: float = 0.0
    type: TransactionType
    timestamp: Optional[datetime] = None
    description: Optional[str] = None
    member_id: Optional[int] = None
    month: Optional[int] = None
    # Stored as a number, but older records may carry the year as a string
    year: Optional[int | str] = None
    withdrawal_date: Optional[date | str] = None

    class Config:
        from_attributes = True


class DuesPaymentCreate(BaseModel):
    member_id: int
    year: int
    month: int = Field(..., ge=1, le=12)
    # Defaults to the member's monthly tier when omitted
    amount: Optional[float] = Field(None, gt=0)


class WithdrawalCreate(BaseModel):
    amount: float = Field(..., gt=0)
    year: int
    withdrawal_date: date
    reason_type: WithdrawalReason
    event_name: Optional[str] = None
    camp_name: Optional[str] = None
    other_reason: Optional[str] = None
    withdrawn_by: str

    @model_validator(mode="after")
    def check_reason(self) -> "WithdrawalCreate":
        required = {
            WithdrawalReason.EVENT: ("event_name", "Please enter the event name"),
            WithdrawalReason.CAMP: ("camp_name", "Please select a camp"),
            WithdrawalReason.OTHERS: ("other_reason", "Please enter the reason for withdrawal"),
        }
        field, message = required[self.reason_type]
        if not (getattr(self, field) or "").strip():
            raise ValueError(message)
        return self

    @property
    def description(self) -> str:
        if self.reason_type == WithdrawalReason.EVENT:
            return f"Withdrawal for event: {self.event_name}"
        if self.reason_type == WithdrawalReason.CAMP:
            return f"Withdrawal for camp: {self.camp_name}"
        return f"Withdrawal: {self.other_reason}"

    @property
    def details(self) -> dict:
        return {
            "reason_type": self.reason_type.value,
            "event_name": self.event_name,
            "camp_name": self.camp_name,
            "other_reason": self.other_reason,
            "year": self.year,
            "withdrawal_date": self.withdrawal_date.isoformat(),
            "withdrawn_by": self.withdrawn_by,
        }


class FinanceEntryCreate(BaseModel):
    type: TransactionType
    amount: float = Field(..., gt=0)
    description: str
    # Required for budget and dues
    year: Optional[int] = None

    @model_validator(mode="after")
    def check_type_and_year(self) -> "FinanceEntryCreate":
        if self.type == TransactionType.WITHDRAWAL:
            raise ValueError("Withdrawals must be recorded through the withdrawal endpoint")
        if self.type in (TransactionType.BUDGET, TransactionType.DUES) and self.year is None:
            raise ValueError(f"Year is required for {self.type.value} entries")
        return self


class DuesAllocationRead(BaseModel):
    id: Optional[int] = None
    year: int
    regular_amount: float
    executive_amount: float

    class Config:
        from_attributes = True


class DuesAllocationUpsert(BaseModel):
    regular_amount: float = Field(..., ge=0)
    executive_amount: float = Field(..., ge=0)
