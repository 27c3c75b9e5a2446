"""The ledger store: lifecycle, transactions and locking for LedgerState."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.engine import get_sessionmaker, make_engine
from ..errors import LedgerUnavailableError
from ..models import Base, Participant, RedemptionEntry
from .ledger import RedemptionLedger
from .locks import LockRegistry

logger = logging.getLogger(__name__)


class LedgerStore:
    """Owns the ledger's storage and the redemption critical section.

    One store is created per process and injected wherever the ledger is
    needed; nothing reaches the tables through module-level state.
    """

    def __init__(self, engine: Optional[Engine] = None) -> None:
        """Create a store bound to ``engine``.

        Parameters
        ----------
        engine : Optional[Engine], default: None
            SQLAlchemy engine. When omitted, :func:`make_engine` builds one from
            ``DB_URL``.
        """
        self.engine = engine or make_engine()
        self._Session = get_sessionmaker(self.engine)
        self._receipt_locks = LockRegistry()
        self._participant_locks = LockRegistry()

    @classmethod
    def open(cls, database_url: Optional[str] = None) -> "LedgerStore":
        """Create a store for ``database_url`` and initialise its tables."""
        store = cls(make_engine(database_url))
        store.init()
        return store

    def init(self) -> None:
        """Create missing tables; existing data is left untouched."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Failed to initialise the ledger schema")
            raise LedgerUnavailableError(str(exc)) from exc

    def dispose(self) -> None:
        self.engine.dispose()

    def session(self) -> Session:
        """Return a new session; use for read-only access."""
        return self._Session()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Run a block in one transaction, committing on success.

        Storage faults are logged and re-raised as
        :class:`LedgerUnavailableError`; other exceptions roll back and
        propagate unchanged.
        """
        try:
            with self._Session.begin() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Ledger transaction failed")
            raise LedgerUnavailableError(str(exc)) from exc

    @contextmanager
    def ledger_scope(self) -> Iterator[RedemptionLedger]:
        with self.session_scope() as session:
            yield RedemptionLedger(session)

    @contextmanager
    def reserve(self, unique_id: str, participant_id: str) -> Iterator[None]:
        """Hold the critical section for one receipt and one participant.

        Receipt locks are always taken before participant locks, so two
        reservations can never wait on each other in a cycle.
        """
        with self._receipt_locks.hold(unique_id):
            with self.reserve_participant(participant_id):
                yield

    @contextmanager
    def reserve_participant(self, participant_id: str) -> Iterator[None]:
        """Serialize writes to one participant's row and aggregates."""
        with self._participant_locks.hold(participant_id):
            yield

    def reset(self) -> tuple[int, int]:
        """Delete every redemption entry and participant.

        Returns
        -------
        tuple[int, int]
            Number of deleted entries and participants.
        """
        with self.session_scope() as session:
            entries = session.execute(delete(RedemptionEntry)).rowcount or 0
            participants = session.execute(delete(Participant)).rowcount or 0
        logger.warning(
            "Ledger reset: removed %d entries and %d participants",
            entries,
            participants,
        )
        return entries, participants


__all__ = ["LedgerStore"]
