"""The data backend seen by the presentation layer.

A backend is chosen once, at construction, by :func:`make_backend`. The
remote backend never falls back to local simulation: when the webhook is down
callers get :class:`~evatlottery.errors.BackendUnavailableError` and can show
a degraded-mode notice.
"""

from __future__ import annotations

import abc
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from .. import workflows
from ..audit import AuditLog
from ..config import Settings
from ..db.utils import dt_iso
from ..errors import BackendUnavailableError, PermissionDeniedError, error_from_payload
from ..leaderboard import ALL_TIME, PERIODS, Leaderboard
from ..ledger.ledger import ParticipantStats
from ..receipts.generator import GeneratedReceipt
from ..workflows import RedemptionResult

if TYPE_CHECKING:
    from ..ledger.store import LedgerStore
    from ..models import Admin
    from .api import WebhookClient

logger = logging.getLogger(__name__)


class DataBackend(abc.ABC):
    """Operations the presentation layer may call."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @abc.abstractmethod
    def submit_scan(self, receipt_code_raw: str, participant_id: str) -> RedemptionResult:
        """Redeem a receipt; the only mutating participant operation."""

    @abc.abstractmethod
    def get_leaderboard(
        self, participant_id: Optional[str], period: str = ALL_TIME
    ) -> Leaderboard: ...

    @abc.abstractmethod
    def get_audit_log(self) -> AuditLog: ...

    @abc.abstractmethod
    def register_participant(self, participant_id: str) -> ParticipantStats: ...

    @abc.abstractmethod
    def reset_all_data(self, admin: Optional["Admin"]) -> None: ...

    def generate_receipt_codes(self, count: int = 5) -> list[GeneratedReceipt]:
        # Codes are always generated locally in the configured format.
        return workflows.generate_receipt_codes(count, settings=self.settings)

    @staticmethod
    def _check_period(period: str) -> None:
        if period not in PERIODS:
            raise ValueError(f"Unknown leaderboard period {period!r}")


class LocalBackend(DataBackend):
    """Runs the workflows against a :class:`LedgerStore` in this process."""

    def __init__(self, store: "LedgerStore", settings: Settings) -> None:
        super().__init__(settings)
        self.store = store

    def submit_scan(self, receipt_code_raw: str, participant_id: str) -> RedemptionResult:
        return workflows.submit_scan(
            self.store, receipt_code_raw, participant_id, settings=self.settings
        )

    def get_leaderboard(
        self, participant_id: Optional[str], period: str = ALL_TIME
    ) -> Leaderboard:
        self._check_period(period)
        return workflows.get_leaderboard(self.store, participant_id, period)

    def get_audit_log(self) -> AuditLog:
        return workflows.get_audit_log(self.store, settings=self.settings)

    def register_participant(self, participant_id: str) -> ParticipantStats:
        return workflows.register_participant(
            self.store, participant_id, settings=self.settings
        )

    def reset_all_data(self, admin: Optional["Admin"]) -> None:
        workflows.reset_all_data(self.store, admin, settings=self.settings)


class RemoteBackend(DataBackend):
    """Delegates to the workflow-automation webhooks over HTTP."""

    def __init__(self, client: "WebhookClient", settings: Settings) -> None:
        super().__init__(settings)
        self.client = client

    def _unwrap(self, payload: Any, what: str) -> dict:
        if not isinstance(payload, dict):
            raise BackendUnavailableError(f"Unexpected {what} response: {payload!r}")
        if payload.get("success") is False:
            raise error_from_payload(
                payload, default_limit=self.settings.max_scans_per_hour
            )
        return payload

    def submit_scan(self, receipt_code_raw: str, participant_id: str) -> RedemptionResult:
        # Participant format is checked here so bad input never leaves the process.
        workflows.validate_participant_id(self.settings, participant_id)
        timestamp = dt_iso(datetime.now(timezone.utc)) or ""
        payload = self._unwrap(
            self.client.scan(receipt_code_raw, participant_id, timestamp), "scan"
        )
        try:
            return RedemptionResult.from_json(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendUnavailableError(f"Malformed scan response: {exc}") from exc

    def get_leaderboard(
        self, participant_id: Optional[str], period: str = ALL_TIME
    ) -> Leaderboard:
        self._check_period(period)
        payload = self._unwrap(
            self.client.leaderboard(participant_id, period), "leaderboard"
        )
        try:
            return Leaderboard.from_json(payload, period)
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendUnavailableError(f"Malformed leaderboard response: {exc}") from exc

    def get_audit_log(self) -> AuditLog:
        payload = self._unwrap(self.client.audit_log(), "audit log")
        try:
            return AuditLog.from_json(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendUnavailableError(f"Malformed audit log response: {exc}") from exc

    def register_participant(self, participant_id: str) -> ParticipantStats:
        workflows.validate_participant_id(self.settings, participant_id)
        payload = self._unwrap(self.client.register(participant_id), "register")
        return ParticipantStats(
            scans=int(payload.get("total_scans") or 0),
            wins=int(payload.get("total_wins") or 0),
        )

    def reset_all_data(self, admin: Optional["Admin"]) -> None:
        if not self.settings.allow_data_reset:
            raise PermissionDeniedError("Data reset is disabled in this environment.")
        if admin is None or not admin.can_reset_data:
            raise PermissionDeniedError()
        self._unwrap(self.client.reset(admin.email), "reset")


def make_backend(
    settings: Settings,
    *,
    store: Optional["LedgerStore"] = None,
    client: Optional["WebhookClient"] = None,
) -> DataBackend:
    """Select the backend named by ``settings.backend``.

    ``store`` and ``client`` override the defaults built from ``settings``.
    """
    if settings.backend == "remote":
        if client is None:
            from .api import WebhookClient

            client = WebhookClient(
                settings.webhook_base_url,
                timeout=settings.webhook_timeout,
                api_key=settings.webhook_api_key,
            )
        logger.info("Using remote lottery backend at %s", client.base_url)
        return RemoteBackend(client, settings)

    if store is None:
        from ..ledger.store import LedgerStore

        store = LedgerStore.open(settings.database_url)
    logger.info("Using local lottery backend")
    return LocalBackend(store, settings)


__all__ = ["DataBackend", "LocalBackend", "RemoteBackend", "make_backend"]
