"""Runtime settings read from the environment (and ``.env``)."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

from .draw.prize_table import DEFAULT_PRIZE_TABLE, PrizeTable
from .errors import ConfigurationError
from .receipts.generator import DEFAULT_VERIFY_BASE_URL, FORMATS, FORMAT_V1
from .receipts.parser import DEFAULT_PATTERNS, ReceiptPatterns

DEFAULT_PHONE_PATTERN = r"^0[235][0-9]{8}$"
DEFAULT_CURRENCY = "GH₵"
BACKENDS = ("local", "remote")


@dataclass(frozen=True)
class Settings:
    """Configuration surface consumed by the lottery core.

    Attributes
    ----------
    win_percentage : float
        Chance of winning per redemption, 0-100.
    prize_table : PrizeTable
        Prize tiers, shares summing to 100.
    max_scans_per_hour : int
        Redemptions allowed per participant in the trailing hour.
    receipt_patterns : ReceiptPatterns
        Grammars for both receipt encodings.
    qr_format : str
        ``"v1"`` (token) or ``"v2"`` (signed URL) for generated demo codes.
    """

    win_percentage: float = 10
    prize_table: PrizeTable = DEFAULT_PRIZE_TABLE
    max_scans_per_hour: int = 10
    receipt_patterns: ReceiptPatterns = DEFAULT_PATTERNS
    phone_pattern: re.Pattern = field(
        default_factory=lambda: re.compile(DEFAULT_PHONE_PATTERN)
    )
    qr_format: str = FORMAT_V1
    verify_base_url: str = DEFAULT_VERIFY_BASE_URL
    currency: str = DEFAULT_CURRENCY
    backend: str = "local"
    database_url: Optional[str] = None
    webhook_base_url: Optional[str] = None
    webhook_timeout: float = 45
    webhook_api_key: Optional[str] = None
    allow_data_reset: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.win_percentage <= 100:
            raise ConfigurationError("WIN_PERCENTAGE must be between 0 and 100")
        if self.max_scans_per_hour < 1:
            raise ConfigurationError("MAX_SCANS_PER_HOUR must be a positive integer")
        if self.qr_format not in FORMATS:
            raise ConfigurationError(f"QR_FORMAT must be one of {sorted(FORMATS)}")
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"LOTTERY_BACKEND must be one of {BACKENDS}")
        if self.backend == "remote" and not self.webhook_base_url:
            raise ConfigurationError(
                "WEBHOOK_BASE_URL is required when LOTTERY_BACKEND=remote"
            )

    def is_valid_participant_id(self, participant_id: object) -> bool:
        return isinstance(participant_id, str) and bool(
            self.phone_pattern.match(participant_id)
        )


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _get_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_pattern(env: Mapping[str, str], name: str, default: str) -> re.Pattern:
    raw = env.get(name) or default
    try:
        return re.compile(raw)
    except re.error as exc:
        raise ConfigurationError(f"{name} is not a valid regular expression") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    ``.env`` is loaded first when reading the process environment.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    prizes_raw = env.get("PRIZES")
    prize_table = PrizeTable.parse(prizes_raw) if prizes_raw else DEFAULT_PRIZE_TABLE

    patterns = ReceiptPatterns.build(
        token=_get_pattern(env, "QR_TOKEN_PATTERN", DEFAULT_PATTERNS.token.pattern),
        signed_url=_get_pattern(
            env, "QR_URL_PATTERN", DEFAULT_PATTERNS.signed_url.pattern
        ),
    )

    return Settings(
        win_percentage=_get_float(env, "WIN_PERCENTAGE", 10),
        prize_table=prize_table,
        max_scans_per_hour=_get_int(env, "MAX_SCANS_PER_HOUR", 10),
        receipt_patterns=patterns,
        phone_pattern=_get_pattern(env, "PHONE_PATTERN", DEFAULT_PHONE_PATTERN),
        qr_format=(env.get("QR_FORMAT") or FORMAT_V1).strip().lower(),
        verify_base_url=env.get("QR_VERIFY_BASE_URL") or DEFAULT_VERIFY_BASE_URL,
        currency=env.get("PRIZE_CURRENCY") or DEFAULT_CURRENCY,
        backend=(env.get("LOTTERY_BACKEND") or "local").strip().lower(),
        database_url=env.get("DB_URL") or None,
        webhook_base_url=env.get("WEBHOOK_BASE_URL") or None,
        webhook_timeout=_get_float(env, "WEBHOOK_TIMEOUT", 45),
        webhook_api_key=env.get("WEBHOOK_API_KEY") or None,
        allow_data_reset=_get_bool(env, "ALLOW_DATA_RESET"),
    )


__all__ = ["Settings", "load_settings", "DEFAULT_PHONE_PATTERN", "DEFAULT_CURRENCY"]
