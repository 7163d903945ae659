"""Basic strategy for hit/stand decisions (no doubling or splitting)."""

from __future__ import annotations

from typing import Sequence

from .base import PlayerStrategy, dealer_up_value, hand_total


class BasicStrategyBot(PlayerStrategy):
    name = "BasicStrategy"

    def should_hit(self, player_cards: Sequence[int], player_total: int, dealer_up_card: int) -> bool:
        _, soft = hand_total(player_cards)
        up = dealer_up_value(dealer_up_card)
        if soft:
            if player_total >= 19:
                return False
            if player_total == 18:
                return up >= 9
            return True
        if player_total >= 17:
            return False
        if player_total >= 13:
            return up >= 7
        if player_total == 12:
            return not 4 <= up <= 6
        return True
