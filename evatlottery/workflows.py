from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from .audit import AuditLog, public_log
from .config import Settings
from .db.utils import dt_iso, ensure_utc
from .draw.commitment import commit, generate_seed
from .draw.engine import WIN, DrawEngine
from .errors import (
    InvalidParticipantError,
    InvalidReceiptError,
    DuplicateReceiptError,
    PermissionDeniedError,
    RateLimitedError,
)
from .leaderboard import ALL_TIME, DEFAULT_LIMIT, Leaderboard, leaderboard_for
from .ledger.ledger import RATE_LIMIT_WINDOW, ParticipantStats, RedemptionLedger
from .models import Participant, RedemptionEntry
from .models.participant import mask_participant_id
from .receipts.generator import GeneratedReceipt, generate_codes
from .receipts.parser import get_unique_id, parse

if TYPE_CHECKING:
    from .ledger.store import LedgerStore
    from .models import Admin

logger = logging.getLogger(__name__)

WIN_MESSAGE = "Congratulations! You won {prize}!"
LOSE_MESSAGE = "No win this time - keep scanning for more chances!"


@dataclass(frozen=True)
class RedemptionResult:
    """Outcome of a successful redemption, as returned to the presentation layer.

    Attributes
    ----------
    outcome : str
        ``"WIN"`` or ``"LOSE"``.
    prize : Optional[str]
        Prize label on a win.
    transaction_hash : str
        Commitment hash for the redemption.
    message : str
        Human-readable result message.
    total_scans, total_wins : int
        Participant totals after this redemption.
    receipt_unique_id : Optional[str]
        Canonical receipt id that was redeemed.
    redeemed_at : Optional[datetime]
        Redemption timestamp used in the commitment.
    """

    outcome: str
    prize: Optional[str]
    transaction_hash: str
    message: str
    total_scans: int
    total_wins: int
    receipt_unique_id: Optional[str] = None
    redeemed_at: Optional[datetime] = None

    @property
    def is_win(self) -> bool:
        return self.outcome == WIN

    def to_json(self) -> dict[str, Any]:
        return {
            "success": True,
            "result": self.outcome,
            "prize": self.prize,
            "transaction_hash": self.transaction_hash,
            "message": self.message,
            "total_scans": self.total_scans,
            "total_wins": self.total_wins,
            "receipt_unique_id": self.receipt_unique_id,
            "timestamp": dt_iso(self.redeemed_at),
        }

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "RedemptionResult":
        timestamp = data.get("timestamp")
        redeemed_at = None
        if isinstance(timestamp, str) and timestamp:
            normalized = timestamp[:-1] + "+00:00" if timestamp.endswith("Z") else timestamp
            redeemed_at = ensure_utc(datetime.fromisoformat(normalized))
        return cls(
            outcome=str(data["result"]).upper(),
            prize=data.get("prize"),
            transaction_hash=str(data["transaction_hash"]),
            message=str(data.get("message") or ""),
            total_scans=int(data.get("total_scans") or 0),
            total_wins=int(data.get("total_wins") or 0),
            receipt_unique_id=data.get("receipt_unique_id"),
            redeemed_at=redeemed_at,
        )


def validate_participant_id(settings: Settings, participant_id: object) -> str:
    if not settings.is_valid_participant_id(participant_id):
        raise InvalidParticipantError()
    return str(participant_id)


def register_participant(
    store: "LedgerStore",
    participant_id: str,
    *,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> ParticipantStats:
    """Register ``participant_id`` (a phone number) and return its totals.

    Registering an existing participant is a no-op that returns current totals.

    Raises
    ------
    InvalidParticipantError
        If the phone number does not match the configured national format.
    """
    settings = settings or Settings()
    phone = validate_participant_id(settings, participant_id)
    with store.reserve_participant(phone):
        with store.session_scope() as session:
            participant = Participant.get_or_create(session, phone, now=now)
            return ParticipantStats(
                scans=participant.scan_count, wins=participant.win_count
            )


def submit_scan(
    store: "LedgerStore",
    receipt_code_raw: str,
    participant_id: str,
    *,
    settings: Optional[Settings] = None,
    engine: Optional[DrawEngine] = None,
    now: Optional[datetime] = None,
) -> RedemptionResult:
    """Redeem a scanned receipt code for ``participant_id``.

    This is the only entry point that mutates the ledger. It performs the
    following steps:

    1. Validate the participant id and parse the receipt code.
    2. Reserve the receipt (per-receipt lock) and check it was not redeemed.
    3. Enforce the per-hour redemption cap for the participant.
    4. Run the draw.
    5. Generate a fresh seed and the commitment hash.
    6. Persist the :class:`RedemptionEntry` and bump participant totals.

    Steps 2-6 run under the reservation and inside one database transaction,
    so a failure at any point leaves no trace and concurrent submissions of
    the same receipt see either nothing or the committed entry.

    Parameters
    ----------
    store : LedgerStore
        Ledger storage to redeem against.
    receipt_code_raw : str
        Raw text decoded from the QR code.
    participant_id : str
        Participant phone number.
    settings : Optional[Settings], default: None
        Configuration; defaults to :class:`Settings` defaults.
    engine : Optional[DrawEngine], default: None
        Draw engine override (tests inject a seeded one).
    now : Optional[datetime], default: None
        Redemption time; defaults to the current UTC time.

    Returns
    -------
    RedemptionResult
        Outcome, prize, transaction hash and updated totals.

    Raises
    ------
    InvalidParticipantError, InvalidReceiptError, DuplicateReceiptError, RateLimitedError
        Expected, user-facing outcomes.
    LedgerUnavailableError
        If storage fails.
    """
    settings = settings or Settings()
    phone = validate_participant_id(settings, participant_id)

    parsed = parse(receipt_code_raw, settings.receipt_patterns)
    unique_id = get_unique_id(parsed)
    if unique_id is None:
        raise InvalidReceiptError()

    engine = engine or DrawEngine(settings.win_percentage, settings.prize_table)
    masked = mask_participant_id(phone)

    with store.reserve(unique_id, phone):
        with store.ledger_scope() as ledger:
            timestamp = ensure_utc(now or datetime.now(timezone.utc))

            if ledger.is_redeemed(unique_id):
                logger.info("Duplicate scan rejected for participant %s", masked)
                raise DuplicateReceiptError(unique_id=unique_id)

            _enforce_rate_limit(ledger, phone, settings.max_scans_per_hour, timestamp)

            outcome = engine.draw()
            seed = generate_seed()
            transaction_hash = commit(unique_id, phone, timestamp, seed)

            participant = Participant.get_or_create(ledger.session, phone, now=timestamp)
            ledger.record(
                RedemptionEntry(
                    participant=participant,
                    receipt_unique_id=unique_id,
                    receipt_variant=parsed.variant,
                    redeemed_at=timestamp,
                    outcome=outcome.outcome,
                    prize_tier=outcome.prize_label,
                    prize_value=outcome.prize.value if outcome.prize else 0,
                    transaction_hash=transaction_hash,
                    random_seed=seed,
                )
            )
            participant.record_redemption(outcome.is_win, at=timestamp)
            totals = ParticipantStats(
                scans=participant.scan_count, wins=participant.win_count
            )

    logger.info(
        "Redemption recorded for %s: %s%s",
        masked,
        outcome.outcome,
        f" ({outcome.prize_label})" if outcome.is_win else "",
    )
    return RedemptionResult(
        outcome=outcome.outcome,
        prize=outcome.prize_label,
        transaction_hash=transaction_hash,
        message=(
            WIN_MESSAGE.format(prize=outcome.prize_label)
            if outcome.is_win
            else LOSE_MESSAGE
        ),
        total_scans=totals.scans,
        total_wins=totals.wins,
        receipt_unique_id=unique_id,
        redeemed_at=timestamp,
    )


def _enforce_rate_limit(
    ledger: RedemptionLedger, phone: str, limit: int, now: datetime
) -> None:
    recent = ledger.count_recent_redemptions(phone, RATE_LIMIT_WINDOW, now=now)
    if recent < limit:
        return
    oldest = ledger.oldest_recent_redemption(phone, RATE_LIMIT_WINDOW, now=now)
    retry_after = None
    if oldest is not None:
        retry_after = max((oldest + RATE_LIMIT_WINDOW - now).total_seconds(), 0.0)
    logger.info(
        "Rate limit hit for %s (%d scans in the last hour)",
        mask_participant_id(phone),
        recent,
    )
    raise RateLimitedError(limit, retry_after=retry_after)


def get_leaderboard(
    store: "LedgerStore",
    participant_id: Optional[str] = None,
    period: str = ALL_TIME,
    *,
    now: Optional[datetime] = None,
    limit: int = DEFAULT_LIMIT,
) -> Leaderboard:
    """Read-only leaderboard for ``period`` with the participant's own rank."""
    with store.session_scope() as session:
        return leaderboard_for(session, participant_id, period, now=now, limit=limit)


def get_audit_log(
    store: "LedgerStore",
    *,
    settings: Optional[Settings] = None,
    limit: Optional[int] = None,
) -> AuditLog:
    """Read-only public log of wins."""
    settings = settings or Settings()
    with store.session_scope() as session:
        return public_log(session, limit=limit, currency=settings.currency)


def recent_transactions(store: "LedgerStore", limit: int = 50) -> list[dict[str, Any]]:
    """Latest redemptions, newest first, unmasked for the admin page."""
    with store.ledger_scope() as ledger:
        return [entry.to_json() for entry in ledger.recent_entries(limit)]


def participant_stats(store: "LedgerStore", participant_id: str) -> ParticipantStats:
    with store.ledger_scope() as ledger:
        return ledger.stats_for(participant_id)


def generate_receipt_codes(
    count: int, *, settings: Optional[Settings] = None
) -> list[GeneratedReceipt]:
    """Generate demo codes in the server-configured QR format."""
    settings = settings or Settings()
    return generate_codes(
        count, settings.qr_format, base_url=settings.verify_base_url
    )


def reset_all_data(
    store: "LedgerStore",
    admin: Optional["Admin"],
    *,
    settings: Optional[Settings] = None,
) -> tuple[int, int]:
    """Irreversibly clear every redemption entry and participant.

    Only allowed when the deployment enables resets (``ALLOW_DATA_RESET``) and
    ``admin`` holds the reset capability.

    Raises
    ------
    PermissionDeniedError
        If resets are disabled or ``admin`` lacks the capability.
    """
    settings = settings or Settings()
    if not settings.allow_data_reset:
        raise PermissionDeniedError("Data reset is disabled in this environment.")
    if admin is None or not admin.can_reset_data:
        raise PermissionDeniedError()
    logger.warning("Admin %s requested a full data reset", admin.id)
    return store.reset()


__all__ = [
    "RedemptionResult",
    "generate_receipt_codes",
    "get_audit_log",
    "get_leaderboard",
    "participant_stats",
    "recent_transactions",
    "register_participant",
    "reset_all_data",
    "submit_scan",
    "validate_participant_id",
]
