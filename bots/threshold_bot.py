"""Hit-below-threshold baseline, the dealer's own rule applied to the player."""

from __future__ import annotations

from typing import Optional, Sequence

from .base import PlayerStrategy


class ThresholdBot(PlayerStrategy):
    name = "Threshold"

    def __init__(self, threshold: int = 17, wager: Optional[int] = None) -> None:
        self.threshold = threshold
        self.wager = wager

    def choose_wager(self, balance: int) -> int:
        if self.wager is None:
            return super().choose_wager(balance)
        return min(balance, self.wager)

    def should_hit(self, player_cards: Sequence[int], player_total: int, dealer_up_card: int) -> bool:
        return player_total < self.threshold
