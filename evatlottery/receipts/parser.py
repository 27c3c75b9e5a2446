"""Parse the two QR encodings printed on VAT receipts.

Two physical encodings exist:

* the simple token (``v1``), e.g. ``GRA-VAT-2025-AB12-CD34-EF56``;
* the signed verification URL (``v2``), e.g.
  ``https://evat-verification.gra.gov.gh/?sdc=SDC01&rcpt=00123&data=...&ts=20250114153012&sig=...``.

Both normalize to a :class:`ParsedReceipt` whose :func:`get_unique_id` is used
for duplicate detection.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Pattern, Union
from urllib.parse import parse_qs, urlsplit

TOKEN = "token"
SIGNED_URL = "signed_url"

DEFAULT_TOKEN_PATTERN = r"^GRA-VAT-\d{4}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$"
DEFAULT_URL_PATTERN = r"^https?://([A-Za-z0-9-]+\.)*gra\.gov\.gh(:\d+)?/"
COMPACT_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def _compile(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


@dataclass(frozen=True)
class ReceiptPatterns:
    """Validation patterns for both receipt encodings."""

    token: Pattern[str]
    signed_url: Pattern[str]

    @classmethod
    def build(
        cls,
        token: Union[str, Pattern[str], None] = None,
        signed_url: Union[str, Pattern[str], None] = None,
    ) -> "ReceiptPatterns":
        return cls(
            token=_compile(token or DEFAULT_TOKEN_PATTERN),
            signed_url=_compile(signed_url or DEFAULT_URL_PATTERN),
        )


DEFAULT_PATTERNS = ReceiptPatterns.build()


@dataclass(frozen=True)
class ParsedReceipt:
    """Result of parsing a raw receipt code.

    Attributes
    ----------
    valid : bool
        ``True`` when the code matched one of the supported grammars.
    raw : str
        Input string after whitespace trimming.
    variant : Optional[str]
        ``"token"`` or ``"signed_url"``; ``None`` when invalid.
    token : Optional[str]
        The full token for ``"token"`` codes.
    device_id, receipt_number, data, timestamp_raw, signature : Optional[str]
        Query parameters ``sdc``, ``rcpt``, ``data``, ``ts`` and ``sig`` of
        ``"signed_url"`` codes.
    timestamp : Optional[datetime]
        ``ts`` decoded as a UTC datetime, when it is well formed.
    """

    valid: bool
    raw: str = ""
    variant: Optional[str] = None
    token: Optional[str] = None
    device_id: Optional[str] = None
    receipt_number: Optional[str] = None
    data: Optional[str] = None
    timestamp_raw: Optional[str] = None
    timestamp: Optional[datetime] = None
    signature: Optional[str] = None

    @property
    def unique_id(self) -> Optional[str]:
        return get_unique_id(self)


def _invalid(raw: str) -> ParsedReceipt:
    return ParsedReceipt(valid=False, raw=raw)


def _parse_compact_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, COMPACT_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def _parse_signed_url(raw: str) -> ParsedReceipt:
    try:
        parts = urlsplit(raw)
        # .port raises ValueError for non-numeric or out-of-range ports.
        _ = parts.port
        if not parts.scheme or not parts.netloc or not parts.query:
            return _invalid(raw)
        query = parse_qs(parts.query, keep_blank_values=True)
    except ValueError:
        return _invalid(raw)

    def _first(name: str) -> Optional[str]:
        values = query.get(name)
        if not values:
            return None
        value = values[0].strip()
        return value or None

    receipt_number = _first("rcpt")
    if receipt_number is None:
        return _invalid(raw)

    timestamp_raw = _first("ts")
    return ParsedReceipt(
        valid=True,
        raw=raw,
        variant=SIGNED_URL,
        device_id=_first("sdc"),
        receipt_number=receipt_number,
        data=_first("data"),
        timestamp_raw=timestamp_raw,
        timestamp=_parse_compact_timestamp(timestamp_raw),
        signature=_first("sig"),
    )


def parse(raw: object, patterns: Optional[ReceiptPatterns] = None) -> ParsedReceipt:
    """Parse ``raw`` into a :class:`ParsedReceipt`.

    The signed-URL grammar is tried first, then the simple token. Anything
    else (including non-string input) yields ``valid=False``; this function
    never raises for bad input.
    """
    if not isinstance(raw, str):
        return _invalid("")
    text = raw.strip()
    if not text:
        return _invalid(text)

    active = patterns or DEFAULT_PATTERNS
    if active.signed_url.match(text):
        return _parse_signed_url(text)
    if active.token.match(text):
        return ParsedReceipt(valid=True, raw=text, variant=TOKEN, token=text)
    return _invalid(text)


def get_unique_id(parsed: ParsedReceipt) -> Optional[str]:
    """Return the canonical identifier used for duplicate detection."""
    if not parsed.valid:
        return None
    if parsed.variant == SIGNED_URL:
        return parsed.receipt_number
    if parsed.variant == TOKEN:
        return parsed.token
    return None


__all__ = [
    "DEFAULT_PATTERNS",
    "DEFAULT_TOKEN_PATTERN",
    "DEFAULT_URL_PATTERN",
    "ParsedReceipt",
    "ReceiptPatterns",
    "SIGNED_URL",
    "TOKEN",
    "get_unique_id",
    "parse",
]
