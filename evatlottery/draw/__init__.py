"""Draw and commitment utilities for instant-win redemptions."""

from .commitment import canonical_timestamp, commit, generate_seed, receipt_hash, verify
from .engine import LOSE, WIN, DrawEngine, DrawOutcome
from .prize_table import (
    DEFAULT_PRIZE_TABLE,
    PrizeTable,
    PrizeTier,
    build_prize_table,
    prize_value_from_label,
)

__all__ = [
    "DEFAULT_PRIZE_TABLE",
    "DrawEngine",
    "DrawOutcome",
    "LOSE",
    "PrizeTable",
    "PrizeTier",
    "WIN",
    "build_prize_table",
    "canonical_timestamp",
    "commit",
    "generate_seed",
    "prize_value_from_label",
    "receipt_hash",
    "verify",
]
