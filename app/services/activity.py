"""
Notification and audit trail writes.

Both are secondary to the record that triggered them: callers commit their
primary write first, and a failure here is logged and rolled back without
touching what was already committed.
"""
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.activity import Notification, AuditLog
from app.models.auth import User
from app.models.enums import NotificationType

logger = logging.getLogger(__name__)


async def notify(db: AsyncSession, type: NotificationType, title: str, message: str) -> bool:
    try:
        db.add(Notification(type=type, title=title, message=message))
        await db.commit()
        return True
    except Exception as e:
        await db.rollback()
        logger.warning(f"Notification '{title}' could not be saved: {e}")
        return False


async def record_audit(db: AsyncSession, action: str, user: Optional[User], details: Optional[dict] = None) -> bool:
    try:
        db.add(
            AuditLog(
                action=action,
                details=details,
                performed_by_user_id=user.id if user else None,
            )
        )
        await db.commit()
        return True
    except Exception as e:
        await db.rollback()
        logger.warning(f"Audit log '{action}' could not be saved: {e}")
        return False
