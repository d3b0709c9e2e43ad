from app.models.auth import User
from app.models.domain import Member, DuesAllocation, Program, Writing
from app.models.finance import Transaction, FinanceEntry
from app.models.activity import Notification, AuditLog
from app.models.settings import SystemSettings

__all__ = [
    "User",
    "Member",
    "DuesAllocation",
    "Program",
    "Writing",
    "Transaction",
    "FinanceEntry",
    "Notification",
    "AuditLog",
    "SystemSettings",
]
