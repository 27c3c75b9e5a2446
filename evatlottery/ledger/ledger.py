"""Query and write interface over the redemption ledger tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..db.utils import ensure_utc
from ..errors import DuplicateReceiptError
from ..models import Participant, RedemptionEntry

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = timedelta(hours=1)


@dataclass(frozen=True)
class ParticipantStats:
    scans: int
    wins: int

    def to_json(self) -> dict:
        return {"total_scans": self.scans, "total_wins": self.wins}


class RedemptionLedger:
    """Ledger operations bound to one SQLAlchemy session.

    The ledger never commits; the caller owns the transaction (see
    :class:`~evatlottery.ledger.store.LedgerStore`).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def is_redeemed(self, unique_id: str) -> bool:
        """Return ``True`` iff an entry exists for ``unique_id``."""
        return (
            self._session.scalar(
                select(RedemptionEntry.id).where(
                    RedemptionEntry.receipt_unique_id == unique_id
                )
            )
            is not None
        )

    def _participant_pk(self, participant_id: str) -> Optional[int]:
        return self._session.scalar(
            select(Participant.id).where(Participant.phone == participant_id)
        )

    def count_recent_redemptions(
        self,
        participant_id: str,
        window: timedelta = RATE_LIMIT_WINDOW,
        *,
        now: Optional[datetime] = None,
    ) -> int:
        """Count entries for ``participant_id`` newer than ``now - window``."""
        pk = self._participant_pk(participant_id)
        if pk is None:
            return 0
        since = ensure_utc(now or datetime.now(timezone.utc)) - window
        return int(
            self._session.scalar(
                select(func.count(RedemptionEntry.id)).where(
                    RedemptionEntry.participant_id == pk,
                    RedemptionEntry.redeemed_at > since,
                )
            )
            or 0
        )

    def oldest_recent_redemption(
        self,
        participant_id: str,
        window: timedelta = RATE_LIMIT_WINDOW,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[datetime]:
        """Return the oldest redemption time still inside the window."""
        pk = self._participant_pk(participant_id)
        if pk is None:
            return None
        since = ensure_utc(now or datetime.now(timezone.utc)) - window
        oldest = self._session.scalar(
            select(func.min(RedemptionEntry.redeemed_at)).where(
                RedemptionEntry.participant_id == pk,
                RedemptionEntry.redeemed_at > since,
            )
        )
        return ensure_utc(oldest) if oldest is not None else None

    def record(self, entry: RedemptionEntry) -> RedemptionEntry:
        """Append ``entry`` and flush it.

        Raises
        ------
        DuplicateReceiptError
            If the receipt is already in the ledger, whether caught by the
            pre-check or by the unique index.
        """
        # An entry built with participant= is already pending in the session;
        # autoflushing it during the lookup would bypass the duplicate check.
        with self._session.no_autoflush:
            if self.is_redeemed(entry.receipt_unique_id):
                raise DuplicateReceiptError(unique_id=entry.receipt_unique_id)
        self._session.add(entry)
        try:
            self._session.flush()
        except IntegrityError as exc:
            # The session is unusable after a failed flush, so classify the
            # violation by the constraint named in the driver message.
            if "receipt_unique_id" in str(exc.orig):
                logger.info("Receipt redeemed concurrently; rejecting duplicate")
                raise DuplicateReceiptError(unique_id=entry.receipt_unique_id) from exc
            raise
        return entry

    def stats_for(self, participant_id: str) -> ParticipantStats:
        """Return maintained scan/win totals for ``participant_id``."""
        row = self._session.execute(
            select(Participant.scan_count, Participant.win_count).where(
                Participant.phone == participant_id
            )
        ).first()
        if row is None:
            return ParticipantStats(scans=0, wins=0)
        return ParticipantStats(scans=row.scan_count, wins=row.win_count)

    def entries_for(self, participant_id: str) -> Sequence[RedemptionEntry]:
        """Return the participant's entries, oldest first."""
        return self._session.scalars(
            select(RedemptionEntry)
            .join(Participant)
            .where(Participant.phone == participant_id)
            .order_by(RedemptionEntry.redeemed_at.asc(), RedemptionEntry.id.asc())
        ).all()

    def recent_entries(self, limit: int = 50) -> Sequence[RedemptionEntry]:
        """Return the latest ``limit`` entries, newest first (admin view)."""
        if limit <= 0:
            raise ValueError("limit must be a positive integer")
        return self._session.scalars(
            select(RedemptionEntry)
            .options(selectinload(RedemptionEntry.participant))
            .order_by(RedemptionEntry.redeemed_at.desc(), RedemptionEntry.id.desc())
            .limit(limit)
        ).all()


__all__ = ["ParticipantStats", "RATE_LIMIT_WINDOW", "RedemptionLedger"]
