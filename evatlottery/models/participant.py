from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, func, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .redemption import RedemptionEntry


# (minimum scans, badge name), highest first.
BADGE_TIERS: tuple[tuple[int, str], ...] = (
    (50, "Gold"),
    (25, "Silver"),
    (10, "Bronze"),
)


def badge_for_scans(scans: int) -> Optional[str]:
    """Return the badge earned for ``scans`` redemptions, or ``None``."""
    for minimum, name in BADGE_TIERS:
        if scans >= minimum:
            return name
    return None


def mask_participant_id(participant_id: Optional[str], keep: int = 3) -> str:
    """Hide the middle of a participant id.

    ``"0241234567"`` -> ``"024****567"``. Identifiers too short to keep a
    masked middle are replaced entirely so they are never revealed.
    """
    if not participant_id:
        return ""
    if len(participant_id) <= keep * 2:
        return "*" * len(participant_id)
    return f"{participant_id[:keep]}****{participant_id[-keep:]}"


class Participant(Base):
    """A phone-number identified participant and their running totals."""

    def __init__(
        self,
        phone: str,
        scan_count: int = 0,
        win_count: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        """Create a new :class:`Participant` record.

        Parameters
        ----------
        phone : str
            National-format phone number; the participant's public id.
        scan_count : int, default: 0
            Number of successful redemptions.
        win_count : int, default: 0
            Number of winning redemptions.
        created_at : datetime, optional
            Explicit creation timestamp.
        updated_at : datetime, optional
            Explicit last update timestamp.
        """
        self.phone = phone
        self.scan_count = scan_count
        self.win_count = win_count
        if created_at is not None:
            self.created_at = created_at
        if updated_at is not None:
            self.updated_at = updated_at

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    scan_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    win_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    # relationships
    redemptions: Mapped[list["RedemptionEntry"]] = relationship(
        back_populates="participant",
        order_by="RedemptionEntry.redeemed_at",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("scan_count >= 0", name="scan_count_non_negative"),
        CheckConstraint("win_count >= 0 AND win_count <= scan_count", name="win_count_bounds"),
    )

    def __repr__(self) -> str:
        return (
            f"<Participant(id={self.id}, phone='{self.masked_phone}', "
            f"scan_count={self.scan_count}, win_count={self.win_count})>"
        )

    @classmethod
    def get_by_phone(cls, session: Session, phone: str) -> Optional["Participant"]:
        """Retrieve a participant by phone number."""

        return session.scalar(select(cls).where(cls.phone == phone))

    @classmethod
    def get_or_create(
        cls, session: Session, phone: str, *, now: Optional[datetime] = None
    ) -> "Participant":
        """Return the participant for ``phone``, adding a new one if needed.

        The caller owns the transaction; new rows are flushed so ``id`` is set.
        """
        participant = cls.get_by_phone(session, phone)
        if participant is None:
            now = now or datetime.now(timezone.utc)
            participant = cls(phone=phone, created_at=now, updated_at=now)
            session.add(participant)
            session.flush()
        return participant

    @property
    def masked_phone(self) -> str:
        return mask_participant_id(self.phone)

    @property
    def badge(self) -> Optional[str]:
        return badge_for_scans(self.scan_count)

    def record_redemption(self, won: bool, at: Optional[datetime] = None) -> None:
        """Bump the maintained aggregates for one successful redemption."""
        self.scan_count = (self.scan_count or 0) + 1
        if won:
            self.win_count = (self.win_count or 0) + 1
        self.updated_at = at or datetime.now(timezone.utc)

    def to_json(self) -> dict[str, Any]:
        return {
            "phone": self.phone,
            "phone_masked": self.masked_phone,
            "scans": self.scan_count,
            "wins": self.win_count,
            "badge": self.badge,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }
