"""Generate demo receipt codes for the admin QR-printing page."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol
from urllib.parse import quote, urlencode

from .parser import COMPACT_TIMESTAMP_FORMAT, SIGNED_URL, TOKEN

CODE_ALPHABET = string.ascii_uppercase + string.digits
TOKEN_PREFIX = "GRA-VAT"
DEFAULT_VERIFY_BASE_URL = "https://evat-verification.gra.gov.gh/"
QR_IMAGE_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"

FORMAT_V1 = "v1"
FORMAT_V2 = "v2"
FORMATS = {FORMAT_V1: TOKEN, FORMAT_V2: SIGNED_URL}


class ChoiceSource(Protocol):
    def choice(self, seq): ...


@dataclass(frozen=True)
class GeneratedReceipt:
    code: str
    variant: str
    unique_id: str
    qr_image_url: str

    def to_json(self) -> dict:
        return {
            "code": self.code,
            "variant": self.variant,
            "unique_id": self.unique_id,
            "qr_image_url": self.qr_image_url,
        }


def _block(rng: ChoiceSource, length: int = 4, alphabet: str = CODE_ALPHABET) -> str:
    return "".join(rng.choice(alphabet) for _ in range(length))


def qr_image_url(data: str, size: int = 200) -> str:
    """Return the public QR image service URL that renders ``data``."""
    return f"{QR_IMAGE_SERVICE_URL}?size={size}x{size}&data={quote(data, safe='')}"


def generate_token(
    year: Optional[int] = None, rng: Optional[ChoiceSource] = None
) -> str:
    """Return a valid simple token, e.g. ``GRA-VAT-2025-AB12-CD34-EF56``."""
    rng = rng or secrets.SystemRandom()
    year = year or datetime.now(timezone.utc).year
    blocks = "-".join(_block(rng) for _ in range(3))
    return f"{TOKEN_PREFIX}-{year:04d}-{blocks}"


def generate_signed_url(
    base_url: str = DEFAULT_VERIFY_BASE_URL,
    rng: Optional[ChoiceSource] = None,
    now: Optional[datetime] = None,
) -> tuple[str, str]:
    """Return ``(url, receipt_number)`` for a signed verification URL.

    The signature is random filler; the lottery never verifies it.
    """
    rng = rng or secrets.SystemRandom()
    now = now or datetime.now(timezone.utc)
    receipt_number = _block(rng, 10, string.digits)
    query = urlencode(
        {
            "sdc": f"SDC-{_block(rng, 6)}",
            "rcpt": receipt_number,
            "data": _block(rng, 24, string.ascii_letters + string.digits),
            "ts": now.strftime(COMPACT_TIMESTAMP_FORMAT),
            "sig": _block(rng, 32, "0123456789abcdef"),
        }
    )
    if not base_url.endswith("/"):
        base_url += "/"
    return f"{base_url}?{query}", receipt_number


def generate_codes(
    count: int,
    fmt: str = FORMAT_V1,
    *,
    base_url: str = DEFAULT_VERIFY_BASE_URL,
    rng: Optional[ChoiceSource] = None,
    now: Optional[datetime] = None,
) -> list[GeneratedReceipt]:
    """Generate ``count`` receipt codes in the configured QR format.

    ``fmt`` comes from server-side settings (``QR_FORMAT``); request input
    must not choose it.
    """
    if count < 0:
        raise ValueError("count must be non-negative")
    if fmt not in FORMATS:
        raise ValueError(f"Unknown QR format {fmt!r}")
    now = now or datetime.now(timezone.utc)

    codes: list[GeneratedReceipt] = []
    for _ in range(count):
        if fmt == FORMAT_V2:
            code, unique_id = generate_signed_url(base_url, rng=rng, now=now)
        else:
            code = generate_token(now.year, rng=rng)
            unique_id = code
        codes.append(
            GeneratedReceipt(
                code=code,
                variant=FORMATS[fmt],
                unique_id=unique_id,
                qr_image_url=qr_image_url(code),
            )
        )
    return codes


__all__ = [
    "DEFAULT_VERIFY_BASE_URL",
    "FORMAT_V1",
    "FORMAT_V2",
    "GeneratedReceipt",
    "generate_codes",
    "generate_signed_url",
    "generate_token",
    "qr_image_url",
]
