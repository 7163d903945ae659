"""Encrypted deck store for a single hand."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple

from .cards import DECK_SIZE
from .errors import DeckExhausted, InvalidDeck
from .fhe import CARD_BITS, EncryptedValue

INITIAL_DEAL = 4


@dataclass
class EncryptedDeck:
    """52 caller-shuffled encrypted card codes and the next undealt position.

    The engine neither shuffles nor inspects the cards; fairness of the order
    is the caller's responsibility.
    """

    cards: Tuple[EncryptedValue, ...]
    size: int = DECK_SIZE
    cursor: int = field(default=0)

    def __post_init__(self) -> None:
        self.cards = tuple(self.cards)
        if len(self.cards) != self.size:
            raise InvalidDeck(f"Deck must contain exactly {self.size} cards, got {len(self.cards)}.")
        if any(card.bits != CARD_BITS for card in self.cards):
            raise InvalidDeck("Deck cards must be 8-bit encrypted codes.")
        if len({card.handle for card in self.cards}) != len(self.cards):
            raise InvalidDeck("Deck reuses a ciphertext handle.")
        if not 0 <= self.cursor <= self.size:
            raise InvalidDeck("Deck cursor out of range.")

    @classmethod
    def dealt(cls, cards: Sequence[EncryptedValue], *, size: int = DECK_SIZE, initial_deal: int = INITIAL_DEAL) -> "EncryptedDeck":
        """Deck with the opening two player and two dealer cards already taken."""
        return cls(cards=tuple(cards), size=size, cursor=initial_deal)

    def remaining(self) -> int:
        return self.size - self.cursor

    def is_exhausted(self) -> bool:
        return self.cursor >= self.size

    def card_at(self, index: int) -> EncryptedValue:
        if not 0 <= index < self.size:
            raise IndexError(f"Deck index {index} out of range.")
        return self.cards[index]

    def ensure_available(self) -> None:
        if self.is_exhausted():
            raise DeckExhausted("No cards left in the deck.")

    def peek(self) -> EncryptedValue:
        """Next undealt card, without advancing the cursor."""
        self.ensure_available()
        return self.cards[self.cursor]

    def draw(self) -> EncryptedValue:
        self.ensure_available()
        card = self.cards[self.cursor]
        self.cursor += 1
        return card
