from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from .base import Base
from .id_type import ID_TYPE

# Roles allowed to wipe the ledger in demo/test environments.
RESET_ROLES = frozenset({"superuser"})


class Admin(Base):
    """Operator account for the admin page (QR printing, data reset)."""

    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(String(100), unique=True, index=True, nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @validates("email")
    def _normalize_email(self, _key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    @property
    def can_reset_data(self) -> bool:
        """Whether this admin holds the data-reset capability."""
        return (self.role or "").strip().lower() in RESET_ROLES

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["Admin"]:
        """Get admin by their email address."""
        return session.query(cls).filter(cls.email == email.strip().lower()).one_or_none()

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, email='{self.email}', role='{self.role}')>"
