"""Hand record: the durable state of one player's game."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .deck import EncryptedDeck
from .fhe import EncryptedValue
from .scoring import RunningTotal


class HandPhase(Enum):
    PLAYER_TURN = 0
    DEALER_TURN = 1
    SETTLING = 2
    DONE = 3

    def __str__(self) -> str:
        return self.name.lower()


@dataclass
class HandRecord:
    """One playing session from wager placement through settlement.

    Every ``EncryptedValue`` field is replaced, never mutated, when the engine
    recomputes it. ``wager_plain`` mirrors the encrypted wager for the ledger
    and is never derived from it.
    """

    hand_id: int
    owner: str
    wager_encrypted: EncryptedValue
    wager_plain: int
    deck: EncryptedDeck
    player_cards: List[EncryptedValue]
    dealer_up_card: EncryptedValue
    dealer_hole_card: EncryptedValue
    player: RunningTotal
    dealer: RunningTotal
    bust_flag: EncryptedValue
    outcome_flag: EncryptedValue
    dealer_should_continue_flag: EncryptedValue
    phase: HandPhase = HandPhase.PLAYER_TURN
    dealer_drawn_cards: List[EncryptedValue] = field(default_factory=list)
    paid: bool = False
    exists: bool = True

    @property
    def cursor(self) -> int:
        return self.deck.cursor

    @property
    def player_total(self) -> EncryptedValue:
        return self.player.total

    @property
    def dealer_total(self) -> EncryptedValue:
        return self.dealer.total

    @property
    def player_base_total(self) -> EncryptedValue:
        return self.player.base

    @property
    def dealer_base_total(self) -> EncryptedValue:
        return self.dealer.base

    @property
    def player_aces(self) -> EncryptedValue:
        return self.player.aces

    @property
    def dealer_aces(self) -> EncryptedValue:
        return self.dealer.aces

    def is_done(self) -> bool:
        return self.phase is HandPhase.DONE
