from sqlalchemy import String, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.core.db import Base
from app.core.permissions import DEFAULT_ROLE, ADMIN_ROLE
from app.models.base import TimestampMixin
from app.models.enums import UserStatus


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    phone: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free-form union role, e.g. "Union Treasurer"; "admin" bypasses the permission grid
    role: Mapped[str] = mapped_column(String(100), default=DEFAULT_ROLE, nullable=False)
    status: Mapped[UserStatus] = mapped_column(
        SAEnum(UserStatus, native_enum=False, length=20), default=UserStatus.ACTIVE, nullable=False
    )

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == ADMIN_ROLE
