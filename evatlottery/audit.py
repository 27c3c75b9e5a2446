"""Public audit log of winning redemptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .config import DEFAULT_CURRENCY
from .db.utils import dt_iso
from .draw.commitment import canonical_timestamp, receipt_hash
from .models import RedemptionEntry
from .models.participant import mask_participant_id


def format_payout(total: int, currency: str = DEFAULT_CURRENCY) -> str:
    """``1234`` -> ``"GH₵1,234"``."""
    return f"{currency}{total:,}"


@dataclass(frozen=True)
class AuditEntry:
    """A published win.

    ``verification_data`` holds the receipt hash fragment, the revealed seed,
    the canonical timestamp and the full commitment. Someone who knows the
    receipt and phone number can recompute the hash with
    :func:`evatlottery.draw.commitment.verify`.
    """

    timestamp: str
    masked_participant_id: str
    prize: str
    transaction_hash: str
    verification_data: dict[str, str]

    def to_json(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "phone_masked": self.masked_participant_id,
            "prize": self.prize,
            "transaction_hash": self.transaction_hash,
            "verification_data": dict(self.verification_data),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AuditEntry":
        return cls(
            timestamp=str(data.get("timestamp") or ""),
            masked_participant_id=str(data.get("phone_masked") or ""),
            prize=str(data.get("prize") or ""),
            transaction_hash=str(data.get("transaction_hash") or ""),
            verification_data={
                str(k): str(v) for k, v in (data.get("verification_data") or {}).items()
            },
        )


@dataclass(frozen=True)
class AuditLog:
    entries: list[AuditEntry] = field(default_factory=list)
    total_winners: int = 0
    total_payout: str = format_payout(0)

    def to_json(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_json() for entry in self.entries],
            "total_winners": self.total_winners,
            "total_payouts": self.total_payout,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AuditLog":
        return cls(
            entries=[AuditEntry.from_json(e) for e in data.get("entries") or []],
            total_winners=int(data.get("total_winners") or 0),
            total_payout=str(data.get("total_payouts") or data.get("total_payout") or ""),
        )


def audit_entry(entry: RedemptionEntry) -> AuditEntry:
    """Project a winning ledger entry onto its public, masked form."""
    return AuditEntry(
        timestamp=dt_iso(entry.redeemed_at) or "",
        masked_participant_id=mask_participant_id(entry.participant.phone),
        prize=entry.prize_tier or "",
        transaction_hash=entry.transaction_hash,
        verification_data={
            "receipt_hash": receipt_hash(entry.receipt_unique_id),
            "random_seed": entry.random_seed,
            "timestamp": canonical_timestamp(entry.redeemed_at),
            "combined_hash": entry.transaction_hash,
        },
    )


def public_log(
    session: Session,
    *,
    limit: Optional[int] = None,
    currency: str = DEFAULT_CURRENCY,
) -> AuditLog:
    """Return WIN entries newest first, with winner and payout totals.

    Totals cover every win in the ledger even when ``limit`` trims the entries.
    """
    if limit is not None and limit < 0:
        raise ValueError("limit must be non-negative when provided")

    stmt = (
        select(RedemptionEntry)
        .options(selectinload(RedemptionEntry.participant))
        .where(RedemptionEntry.outcome == "WIN")
        .order_by(RedemptionEntry.redeemed_at.desc(), RedemptionEntry.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    entries = [audit_entry(e) for e in session.scalars(stmt).all()]

    total_winners, total_value = session.execute(
        select(
            func.count(RedemptionEntry.id),
            func.coalesce(func.sum(RedemptionEntry.prize_value), 0),
        ).where(RedemptionEntry.outcome == "WIN")
    ).one()

    return AuditLog(
        entries=entries,
        total_winners=int(total_winners or 0),
        total_payout=format_payout(int(total_value or 0), currency),
    )


__all__ = [
    "AuditEntry",
    "AuditLog",
    "audit_entry",
    "format_payout",
    "mask_participant_id",
    "public_log",
]
