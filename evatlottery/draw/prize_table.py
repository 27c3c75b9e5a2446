"""Prize tier configuration."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Optional, Union

from ..errors import ConfigurationError

_DIGITS_RE = re.compile(r"\d+")

DEFAULT_PRIZES: dict[str, float] = {
    "GH₵5 Airtime": 70,
    "GH₵10 Airtime": 25,
    "GH₵50 Airtime": 5,
}


def prize_value_from_label(label: str) -> int:
    """Return the monetary amount embedded in a prize label, or 0.

    ``"GH₵10 Airtime"`` -> ``10``.
    """
    match = _DIGITS_RE.search(label.replace(",", ""))
    return int(match.group(0)) if match else 0


@dataclass(frozen=True)
class PrizeTier:
    """One prize tier.

    Attributes
    ----------
    label : str
        Display label, also stored on winning ledger entries.
    share : float
        Percentage of wins that land on this tier.
    value : int
        Monetary value used for payout totals.
    """

    label: str
    share: float
    value: int


@dataclass(frozen=True)
class PrizeTable:
    """Ordered, immutable prize tiers whose shares sum to 100."""

    tiers: tuple[PrizeTier, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ConfigurationError("Prize table must contain at least one tier")
        labels = [tier.label for tier in self.tiers]
        if len(set(labels)) != len(labels):
            raise ConfigurationError("Prize labels must be unique")
        for tier in self.tiers:
            if not math.isfinite(tier.share) or tier.share < 0:
                raise ConfigurationError(
                    f"Prize share for {tier.label!r} must be a finite, non-negative number"
                )
        total = sum(tier.share for tier in self.tiers)
        if abs(total - 100) > 1e-9:
            raise ConfigurationError(f"Prize shares must sum to 100, got {total:g}")

    @classmethod
    def from_mapping(
        cls,
        shares: Mapping[str, float],
        values: Optional[Mapping[str, int]] = None,
    ) -> "PrizeTable":
        """Build a table from ``label -> share`` in insertion order.

        Values missing from ``values`` are parsed from the label digits.
        """
        values = values or {}
        return cls(
            tuple(
                PrizeTier(
                    label=label,
                    share=float(share),
                    value=int(values.get(label, prize_value_from_label(label))),
                )
                for label, share in shares.items()
            )
        )

    @classmethod
    def parse(cls, text: str) -> "PrizeTable":
        """Parse ``"label=share[:value], ..."`` as used by the ``PRIZES`` setting."""
        shares: dict[str, float] = {}
        values: dict[str, int] = {}
        for chunk in text.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            label, sep, rest = chunk.rpartition("=")
            label = label.strip()
            if not sep or not label:
                raise ConfigurationError(f"Malformed prize entry {chunk!r}")
            share_text, _, value_text = rest.partition(":")
            try:
                shares[label] = float(share_text)
                if value_text.strip():
                    values[label] = int(value_text)
            except ValueError as exc:
                raise ConfigurationError(f"Malformed prize entry {chunk!r}") from exc
        return cls.from_mapping(shares, values)

    def __iter__(self) -> Iterator[PrizeTier]:
        return iter(self.tiers)

    def __len__(self) -> int:
        return len(self.tiers)

    @property
    def first(self) -> PrizeTier:
        return self.tiers[0]

    @property
    def labels(self) -> list[str]:
        return [tier.label for tier in self.tiers]

    def get(self, label: str) -> Optional[PrizeTier]:
        for tier in self.tiers:
            if tier.label == label:
                return tier
        return None

    def value_of(self, label: Optional[str]) -> int:
        """Return the value of ``label``, falling back to the label digits."""
        if label is None:
            return 0
        tier = self.get(label)
        return tier.value if tier is not None else prize_value_from_label(label)


def build_prize_table(
    prizes: Union[PrizeTable, Mapping[str, float], Iterable[PrizeTier], None] = None,
) -> PrizeTable:
    if prizes is None:
        return PrizeTable.from_mapping(DEFAULT_PRIZES)
    if isinstance(prizes, PrizeTable):
        return prizes
    if isinstance(prizes, Mapping):
        return PrizeTable.from_mapping(prizes)
    return PrizeTable(tuple(prizes))


DEFAULT_PRIZE_TABLE = PrizeTable.from_mapping(DEFAULT_PRIZES)

__all__ = [
    "DEFAULT_PRIZES",
    "DEFAULT_PRIZE_TABLE",
    "PrizeTier",
    "PrizeTable",
    "build_prize_table",
    "prize_value_from_label",
]
