from enum import Enum


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class TransactionType(str, Enum):
    DUES = "dues"
    CONTRIBUTION = "contribution"
    OTHER = "other"
    BUDGET = "budget"
    WITHDRAWAL = "withdrawal"


class WithdrawalReason(str, Enum):
    EVENT = "event"
    CAMP = "camp"
    OTHERS = "others"


class WritingType(str, Enum):
    MINUTES = "minutes"
    ANNOUNCEMENT = "announcement"


class NotificationType(str, Enum):
    DUES_PAYMENT = "dues_payment"
    DUES_ALLOCATION = "dues_allocation"
    PAYMENT_RECEIVED = "payment_received"
    WITHDRAWAL_MADE = "withdrawal_made"
    MEMBER_ADDED = "member_added"
    PROGRAM_ADDED = "program_added"
    WRITING_PUBLISHED = "writing_published"
