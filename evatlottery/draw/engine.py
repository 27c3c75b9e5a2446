"""Instant-win draw: win/lose first, then the prize tier."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from ..errors import ConfigurationError
from .prize_table import DEFAULT_PRIZE_TABLE, PrizeTable, PrizeTier

WIN = "WIN"
LOSE = "LOSE"


@dataclass(frozen=True)
class DrawOutcome:
    """Value object describing a single draw.

    Attributes
    ----------
    outcome : str
        ``"WIN"`` or ``"LOSE"``.
    prize : Optional[PrizeTier]
        Selected tier; present iff ``outcome`` is ``"WIN"``.
    """

    outcome: str
    prize: Optional[PrizeTier] = None

    @property
    def is_win(self) -> bool:
        return self.outcome == WIN

    @property
    def prize_label(self) -> Optional[str]:
        return self.prize.label if self.prize is not None else None


class DrawEngine:
    """Two-stage draw over a configured win percentage and prize table."""

    def __init__(
        self,
        win_percentage: float = 10,
        prize_table: Optional[PrizeTable] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Create a draw engine.

        Parameters
        ----------
        win_percentage : float, default: 10
            Chance of a win, in percent (0-100 inclusive).
        prize_table : Optional[PrizeTable], default: None
            Tiers to draw from on a win. The default GH₵ airtime table is used
            when omitted.
        rng : Optional[random.Random], default: None
            Random source. Defaults to :class:`random.SystemRandom`, which
            reads from the OS CSPRNG. Tests pass a seeded
            :class:`random.Random` for reproducibility.
        """
        if not 0 <= win_percentage <= 100:
            raise ConfigurationError("win_percentage must be between 0 and 100")
        self.win_percentage = float(win_percentage)
        self.prize_table = prize_table or DEFAULT_PRIZE_TABLE
        self._rng = rng or random.SystemRandom()

    def _roll(self) -> float:
        """Return a uniform value in [0, 100)."""
        return self._rng.random() * 100

    def select_tier(self, roll: float) -> PrizeTier:
        """Return the tier whose cumulative share first exceeds ``roll``.

        Walks the table in configured order. If rounding leaves ``roll``
        unmatched the first tier is returned.
        """
        cumulative = 0.0
        for tier in self.prize_table:
            cumulative += tier.share
            if roll < cumulative:
                return tier
        return self.prize_table.first

    def draw(self) -> DrawOutcome:
        if self._roll() >= self.win_percentage:
            return DrawOutcome(outcome=LOSE)
        return DrawOutcome(outcome=WIN, prize=self.select_tier(self._roll()))


__all__ = ["WIN", "LOSE", "DrawOutcome", "DrawEngine"]
