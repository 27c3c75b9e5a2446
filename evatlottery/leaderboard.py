"""Leaderboard standings and badges derived from the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from .db.utils import ensure_utc
from .models import Participant, RedemptionEntry
from .models.participant import badge_for_scans, mask_participant_id

ALL_TIME = "all-time"
WEEKLY = "weekly"
PERIODS = (ALL_TIME, WEEKLY)
WEEKLY_WINDOW = timedelta(days=7)
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class LeaderboardRow:
    rank: int
    participant_id: str
    masked_participant_id: str
    scans: int
    wins: int
    badge: Optional[str]

    def to_json(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "phone_masked": self.masked_participant_id,
            "scans": self.scans,
            "wins": self.wins,
            "badge": self.badge,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "LeaderboardRow":
        scans = int(data.get("scans") or 0)
        badge = data.get("badge")
        if isinstance(badge, dict):
            badge = badge.get("name")
        participant_id = str(data.get("phone") or "")
        return cls(
            rank=int(data["rank"]),
            participant_id=participant_id,
            masked_participant_id=str(
                data.get("phone_masked") or mask_participant_id(participant_id)
            ),
            scans=scans,
            wins=int(data.get("wins") or 0),
            badge=badge if badge is not None else badge_for_scans(scans),
        )


@dataclass(frozen=True)
class Leaderboard:
    """Top standings plus the requesting participant's own position."""

    period: str
    rows: list[LeaderboardRow] = field(default_factory=list)
    user_rank: Optional[int] = None
    user_scans: int = 0
    user_wins: int = 0

    def to_json(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "leaderboard": [row.to_json() for row in self.rows],
            "user_rank": self.user_rank,
            "user_scans": self.user_scans,
            "user_wins": self.user_wins,
        }

    @classmethod
    def from_json(cls, data: dict[str, Any], period: str = ALL_TIME) -> "Leaderboard":
        return cls(
            period=str(data.get("period") or period),
            rows=[LeaderboardRow.from_json(row) for row in data.get("leaderboard") or []],
            user_rank=data.get("user_rank"),
            user_scans=int(data.get("user_scans") or 0),
            user_wins=int(data.get("user_wins") or 0),
        )


def _standings(
    session: Session, period: str, now: Optional[datetime]
) -> list[tuple[str, int, int]]:
    """Return ``(phone, scans, wins)`` for everyone with scans in ``period``."""
    if period == ALL_TIME:
        stmt = select(
            Participant.phone, Participant.scan_count, Participant.win_count
        ).where(Participant.scan_count > 0)
    elif period == WEEKLY:
        since = ensure_utc(now or datetime.now(timezone.utc)) - WEEKLY_WINDOW
        stmt = (
            select(
                Participant.phone,
                func.count(RedemptionEntry.id),
                func.sum(case((RedemptionEntry.outcome == "WIN", 1), else_=0)),
            )
            .join(RedemptionEntry, RedemptionEntry.participant_id == Participant.id)
            .where(RedemptionEntry.redeemed_at > since)
            .group_by(Participant.phone)
        )
    else:
        raise ValueError(f"Unknown leaderboard period {period!r}; expected one of {PERIODS}")

    return [
        (phone, int(scans or 0), int(wins or 0))
        for phone, scans, wins in session.execute(stmt).all()
    ]


def rank(
    session: Session,
    period: str = ALL_TIME,
    *,
    now: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[LeaderboardRow]:
    """Rank participants by scan count for ``period``.

    Parameters
    ----------
    session : Session
        Session used for the read.
    period : str, default: "all-time"
        ``"all-time"`` uses the maintained totals; ``"weekly"`` counts only
        entries from the trailing seven days.
    now : Optional[datetime], default: None
        Reference time for the weekly window.
    limit : Optional[int], default: None
        Maximum number of rows to return.

    Returns
    -------
    list[LeaderboardRow]
        Rows ordered by scans descending, ties broken by participant id so the
        order is deterministic.
    """
    if limit is not None and limit < 0:
        raise ValueError("limit must be non-negative when provided")

    standings = sorted(_standings(session, period, now), key=lambda s: (-s[1], s[0]))
    if limit is not None:
        standings = standings[:limit]
    return [
        LeaderboardRow(
            rank=position,
            participant_id=phone,
            masked_participant_id=mask_participant_id(phone),
            scans=scans,
            wins=wins,
            badge=badge_for_scans(scans),
        )
        for position, (phone, scans, wins) in enumerate(standings, start=1)
    ]


def leaderboard_for(
    session: Session,
    participant_id: Optional[str],
    period: str = ALL_TIME,
    *,
    now: Optional[datetime] = None,
    limit: int = DEFAULT_LIMIT,
) -> Leaderboard:
    """Return the top ``limit`` rows and ``participant_id``'s own standing."""
    full = rank(session, period, now=now)
    mine = next((row for row in full if row.participant_id == participant_id), None)
    return Leaderboard(
        period=period,
        rows=full[:limit],
        user_rank=mine.rank if mine is not None else None,
        user_scans=mine.scans if mine is not None else 0,
        user_wins=mine.wins if mine is not None else 0,
    )


__all__ = [
    "ALL_TIME",
    "WEEKLY",
    "PERIODS",
    "Leaderboard",
    "LeaderboardRow",
    "leaderboard_for",
    "rank",
]
