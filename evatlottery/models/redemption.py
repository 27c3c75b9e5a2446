"""Database model for the redemption ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE
from ..db.utils import dt_iso, ensure_utc

if TYPE_CHECKING:
    from .participant import Participant


class RedemptionEntry(Base):
    """Immutable record of one successful receipt redemption."""

    __tablename__ = "redemption_entries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Surrogate primary key."""

    receipt_unique_id: Mapped[str] = mapped_column(String(255), nullable=False)
    """Canonical receipt identifier; unique across the whole ledger."""

    receipt_variant: Mapped[str] = mapped_column(String(20), nullable=False)
    """Encoding the receipt was scanned in (``"token"`` or ``"signed_url"``)."""

    participant_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    """Participant who redeemed the receipt."""

    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Redemption timestamp; part of the commitment."""

    outcome: Mapped[str] = mapped_column(String(10), nullable=False)
    """``"WIN"`` or ``"LOSE"``."""

    prize_tier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Prize label, present iff the outcome is a win."""

    prize_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Monetary value of the prize at draw time (0 on a loss)."""

    transaction_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    """SHA-256 commitment over receipt, participant, timestamp and seed."""

    random_seed: Mapped[str] = mapped_column(String(64), nullable=False)
    """Seed revealed for verification of the commitment."""

    participant: Mapped["Participant"] = relationship(back_populates="redemptions")

    __table_args__ = (
        Index("ux_redemption_entries_receipt_unique_id", "receipt_unique_id", unique=True),
        Index("ux_redemption_entries_transaction_hash", "transaction_hash", unique=True),
        Index("ix_redemption_entries_participant_time", "participant_id", "redeemed_at"),
        Index("ix_redemption_entries_outcome_time", "outcome", "redeemed_at"),
        CheckConstraint("outcome IN ('WIN','LOSE')", name="outcome_enum"),
        CheckConstraint(
            "(outcome = 'WIN' AND prize_tier IS NOT NULL) OR "
            "(outcome = 'LOSE' AND prize_tier IS NULL)",
            name="prize_iff_win",
        ),
    )

    def __init__(
        self,
        *,
        receipt_unique_id: str,
        receipt_variant: str,
        outcome: str,
        transaction_hash: str,
        random_seed: str,
        redeemed_at: datetime,
        participant: Optional["Participant"] = None,
        participant_id: Optional[int] = None,
        prize_tier: Optional[str] = None,
        prize_value: int = 0,
    ) -> None:
        if participant is not None:
            self.participant = participant
        if participant_id is not None:
            self.participant_id = participant_id
        self.receipt_unique_id = receipt_unique_id
        self.receipt_variant = receipt_variant
        self.outcome = outcome
        self.prize_tier = prize_tier
        self.prize_value = prize_value
        self.transaction_hash = transaction_hash
        self.random_seed = random_seed
        self.redeemed_at = redeemed_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<RedemptionEntry(id={id}, receipt={receipt}, outcome={outcome}, prize={prize})>".format(
            id=self.id,
            receipt=self.receipt_unique_id,
            outcome=self.outcome,
            prize=self.prize_tier,
        )

    @property
    def is_win(self) -> bool:
        return self.outcome == "WIN"

    @property
    def redeemed_at_utc(self) -> datetime:
        return ensure_utc(self.redeemed_at)

    @classmethod
    def get_by_receipt(
        cls, session: Session, receipt_unique_id: str
    ) -> Optional["RedemptionEntry"]:
        """Return the entry for ``receipt_unique_id`` if it was redeemed."""

        return session.scalar(
            select(cls).where(cls.receipt_unique_id == receipt_unique_id)
        )

    def to_json(self) -> dict[str, Any]:
        """Admin view of the entry (full phone number, no masking)."""
        return {
            "receipt_unique_id": self.receipt_unique_id,
            "receipt_variant": self.receipt_variant,
            "phone": self.participant.phone if self.participant is not None else None,
            "timestamp": dt_iso(self.redeemed_at),
            "result": self.outcome,
            "prize": self.prize_tier,
            "transaction_hash": self.transaction_hash,
        }


__all__ = ["RedemptionEntry"]
