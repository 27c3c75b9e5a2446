"""Commitment hashes that let anyone re-derive a redemption's proof."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
from datetime import datetime
from typing import Union

from ..db.utils import ensure_utc
from ..errors import CommitmentError

logger = logging.getLogger(__name__)

SEED_BYTES = 16
RECEIPT_HASH_LENGTH = 16


def canonical_timestamp(timestamp: Union[datetime, str]) -> str:
    """Return the canonical text form of a redemption timestamp.

    Datetimes are converted to UTC ISO 8601 with microseconds. Strings are
    assumed to be canonical already and are passed through.
    """
    if isinstance(timestamp, str):
        return timestamp
    return ensure_utc(timestamp).isoformat(timespec="microseconds")


def _canonical_payload(
    receipt_unique_id: str,
    participant_id: str,
    timestamp: Union[datetime, str],
    random_seed: str,
) -> bytes:
    # A JSON array keeps field boundaries unambiguous ("ab"+"c" != "a"+"bc").
    return json.dumps(
        [
            str(receipt_unique_id),
            str(participant_id),
            canonical_timestamp(timestamp),
            str(random_seed),
        ],
        ensure_ascii=False,
        separators=(",", ":"),
    ).encode("utf-8")


def commit(
    receipt_unique_id: str,
    participant_id: str,
    timestamp: Union[datetime, str],
    random_seed: str,
) -> str:
    """Return the SHA-256 transaction hash binding a redemption's inputs.

    Parameters
    ----------
    receipt_unique_id : str
        Canonical receipt identifier.
    participant_id : str
        Participant phone number.
    timestamp : datetime or str
        Redemption time (see :func:`canonical_timestamp`).
    random_seed : str
        Seed generated for this redemption.

    Returns
    -------
    str
        64-character lowercase hexadecimal digest.
    """
    try:
        payload = _canonical_payload(
            receipt_unique_id, participant_id, timestamp, random_seed
        )
    except (TypeError, ValueError) as exc:
        logger.error("Commitment encoding failed: %s", exc)
        raise CommitmentError(f"Cannot encode commitment inputs: {exc}") from exc
    return hashlib.sha256(payload).hexdigest()


def verify(
    receipt_unique_id: str,
    participant_id: str,
    timestamp: Union[datetime, str],
    random_seed: str,
    transaction_hash: str,
) -> bool:
    """Recompute the commitment and compare it with ``transaction_hash``."""
    expected = commit(receipt_unique_id, participant_id, timestamp, random_seed)
    return hmac.compare_digest(expected, str(transaction_hash).strip().lower())


def generate_seed() -> str:
    """Return a fresh random seed as 32 hex characters."""
    return secrets.token_hex(SEED_BYTES)


def receipt_hash(receipt_unique_id: str, length: int = RECEIPT_HASH_LENGTH) -> str:
    """Return a short SHA-256 fragment identifying a receipt without revealing it."""
    digest = hashlib.sha256(str(receipt_unique_id).encode("utf-8")).hexdigest()
    return digest[:length]


__all__ = [
    "canonical_timestamp",
    "commit",
    "verify",
    "generate_seed",
    "receipt_hash",
]
