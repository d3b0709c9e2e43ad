from datetime import date, datetime
from sqlalchemy import String, Numeric, Integer, Date, DateTime, Text, JSON, Enum as SAEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.core.db import Base
from app.models.base import TimestampMixin
from app.models.enums import TransactionType, WithdrawalReason


class Transaction(Base, TimestampMixin):
    """Authoritative ledger for dues payments and withdrawals. Rows are never updated."""
    __tablename__ = "transactions"
    # One dues payment per member and month; withdrawals and unattributed dues leave member_id/month NULL
    __table_args__ = (
        UniqueConstraint("type", "member_id", "year", "month", name="uq_transactions_member_month"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    amount: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, native_enum=False, length=20), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Dues fields
    member_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True
    )
    month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    member_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Withdrawal fields
    withdrawal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    reason_type: Mapped[WithdrawalReason | None] = mapped_column(
        SAEnum(WithdrawalReason, native_enum=False, length=20), nullable=True
    )
    withdrawn_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    recorded_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    member: Mapped["Member"] = relationship("Member")


class FinanceEntry(Base, TimestampMixin):
    """General ledger feed. Withdrawals are stored with a negative amount."""
    __tablename__ = "finances"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    amount: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, native_enum=False, length=20), nullable=False, index=True
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    added_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Set for budget and dues entries only
    year: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    member_id: Mapped[int | None] = mapped_column(
        ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    recorded_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
