"""Common player strategy interfaces."""

from __future__ import annotations

from typing import Sequence

from blackjack.cards import plain_card_value
from blackjack.scoring import BLACKJACK, SOFT_ACE_BONUS

DEFAULT_WAGER = 100


def hand_total(cards: Sequence[int]) -> tuple[int, bool]:
    """Return (total, is_soft) for decrypted card codes, Ace promoted when it fits."""
    base = sum(plain_card_value(card) for card in cards)
    if any(card == 1 for card in cards) and base + SOFT_ACE_BONUS <= BLACKJACK:
        return base + SOFT_ACE_BONUS, True
    return base, False


def dealer_up_value(code: int) -> int:
    """Dealer up card value for strategy lookups, Ace counted as 11."""
    return 11 if code == 1 else plain_card_value(code)


class PlayerStrategy:
    """Base class for player policies driven by the orchestrator."""

    name: str = "BaseBot"

    def on_hand_start(self, hand_id: int) -> None:
        """Optional hook invoked once a hand has been opened."""
        return None

    def choose_wager(self, balance: int) -> int:
        """Return the wager for the next hand."""
        return min(balance, DEFAULT_WAGER)

    def should_hit(self, player_cards: Sequence[int], player_total: int, dealer_up_card: int) -> bool:
        """Return True to take another card, False to stand."""
        return False
