"""Card codes, labels and plain-deck helpers for Blackjack.

Cards travel through the engine as encrypted codes 1..13 (Ace..King); suits
play no part in scoring. The deck helpers here run on the client, before the
deck is encrypted and handed to the engine.
"""

from __future__ import annotations

from enum import IntEnum
from random import Random
from typing import List, Optional

DECK_SIZE = 52
CODES_PER_SUIT = 13


class Rank(IntEnum):
    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    def __str__(self) -> str:
        return self.name.lower()


SHORT_LABELS: dict[Rank, str] = {
    Rank.ACE: "A",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
}


def is_valid_code(code: int) -> bool:
    return Rank.ACE <= code <= Rank.KING


def card_label(code: int) -> str:
    """Return a short label such as ``"A"``, ``"7"`` or ``"K"``."""
    if not is_valid_code(code):
        raise ValueError(f"Unknown card code: {code!r}")
    rank = Rank(code)
    return SHORT_LABELS.get(rank, str(int(rank)))


def plain_card_value(code: int) -> int:
    """Blackjack value of a decrypted code, Ace counted low."""
    if not is_valid_code(code):
        raise ValueError(f"Unknown card code: {code!r}")
    return min(code, 10)


def build_plain_deck() -> List[int]:
    """Return the ordered 52-card deck as codes: four runs of 1..13."""
    return [(index % CODES_PER_SUIT) + 1 for index in range(DECK_SIZE)]


def shuffled_plain_deck(rng: Optional[Random] = None) -> List[int]:
    cards = build_plain_deck()
    if rng is None:
        rng = Random()
    rng.shuffle(cards)
    return cards
