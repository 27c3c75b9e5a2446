"""Redemption ledger: storage, locking and queries."""

from .ledger import RATE_LIMIT_WINDOW, ParticipantStats, RedemptionLedger
from .locks import LockRegistry
from .store import LedgerStore

__all__ = [
    "LedgerStore",
    "LockRegistry",
    "ParticipantStats",
    "RATE_LIMIT_WINDOW",
    "RedemptionLedger",
]
