"""Encrypted Blackjack state machine."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .cards import DECK_SIZE
from .deck import EncryptedDeck
from .disclosure import DisclosureManager
from .errors import (
    InsufficientBalance,
    InvalidDeck,
    InvalidPayoutClaim,
    InvalidWager,
    NotHandOwner,
    PayoutAlreadyClaimed,
    PhaseMismatch,
    UnknownHand,
)
from .fhe import DecryptionResult, EncryptedValue, FheBackend, WORD_BITS
from .hand import HandPhase, HandRecord
from .ledger import ChipLedger
from .logging_utils import get_logger
from .rules_schema import TableRules
from .scoring import RunningTotal, add_card, empty_totals, select_totals

logger = get_logger(__name__)


@dataclass
class BlackjackTable:
    """Run any number of independent hands against one shared ledger.

    Every public operation is a single transaction: preconditions are checked
    first (unknown hand, phase, owner, resources, in that order), then all new
    ciphertexts are computed, then the hand and ledger are updated. The engine
    never decrypts; conditional effects go through ``FheBackend.select``.
    """

    fhe: FheBackend
    ledger: ChipLedger
    disclosure: DisclosureManager = field(default_factory=DisclosureManager)
    rules: TableRules = field(default_factory=TableRules)
    hands: Dict[int, HandRecord] = field(init=False, default_factory=dict)
    next_hand_id: int = field(init=False, default=1)
    _lock: threading.RLock = field(init=False, default_factory=threading.RLock, repr=False)

    # Create ----------------------------------------------------------------

    def start_hand(
        self,
        caller: str,
        deck: Sequence[EncryptedValue],
        deck_proof: bytes,
        wager: EncryptedValue,
        wager_proof: bytes,
        wager_plain: int,
    ) -> int:
        """Open a hand: debit the wager and deal two cards to each side."""
        with self._lock:
            if isinstance(wager_plain, bool) or not isinstance(wager_plain, int) or wager_plain <= 0:
                raise InvalidWager("Wager must be a positive number of chips.")
            if wager.bits != WORD_BITS:
                raise InvalidWager("Encrypted wager must be a 32-bit value.")
            if len(deck) != DECK_SIZE:
                raise InvalidDeck(f"Deck must contain exactly {DECK_SIZE} cards, got {len(deck)}.")
            cards = [self.fhe.verify_input(card, deck_proof, caller) for card in deck]
            wager = self.fhe.verify_input(wager, wager_proof, caller)
            store = EncryptedDeck.dealt(cards)
            balance = self.ledger.balance_of(caller)
            if balance < wager_plain:
                raise InsufficientBalance(f"Account {caller} holds {balance} chips, {wager_plain} required.")

            player = empty_totals(self.fhe)
            for card in cards[0:2]:
                player = add_card(self.fhe, player, card, limit=self.rules.blackjack)
            dealer = add_card(self.fhe, empty_totals(self.fhe), cards[2], limit=self.rules.blackjack)
            bust_flag = self._bust_flag(player)
            zero_flag = self.fhe.trivial_encrypt(0, WORD_BITS)

            hand = HandRecord(
                hand_id=self.next_hand_id,
                owner=caller,
                wager_encrypted=wager,
                wager_plain=wager_plain,
                deck=store,
                player_cards=[cards[0], cards[1]],
                dealer_up_card=cards[2],
                dealer_hole_card=cards[3],
                player=player,
                dealer=dealer,
                bust_flag=bust_flag,
                outcome_flag=zero_flag,
                dealer_should_continue_flag=zero_flag,
            )

            self.ledger.debit(caller, wager_plain)
            self.hands[hand.hand_id] = hand
            self.next_hand_id += 1

            self.disclosure.grant_owner(caller, wager, cards[0], cards[1], player.total)
            self.disclosure.make_public(cards[2], dealer.total, bust_flag, zero_flag)
            logger.info("Hand %d started for %s, wager %d", hand.hand_id, caller, wager_plain)
            return hand.hand_id

    # Player turn -----------------------------------------------------------

    def hit(self, hand_id: int, caller: str) -> EncryptedValue:
        """Deal one card to the player and publish whether they busted."""
        with self._lock:
            hand = self._require_hand(hand_id)
            self._ensure_phase(hand, HandPhase.PLAYER_TURN)
            self._ensure_owner(hand, caller)
            card = hand.deck.peek()

            player = add_card(self.fhe, hand.player, card, limit=self.rules.blackjack)
            bust_flag = self._bust_flag(player)
            self.disclosure.grant_owner(hand.owner, card, player.total)
            self.disclosure.make_public(bust_flag)

            hand.deck.draw()
            hand.player = player
            hand.player_cards.append(card)
            hand.bust_flag = bust_flag
            logger.debug("Hand %d: player hit, cursor %d", hand_id, hand.cursor)
            return card

    def set_bust(self, hand_id: int, caller: str) -> None:
        """Move a busted hand straight to settlement.

        The engine cannot see the bust flag; the owner calls this once the
        public flag decrypts to 1.
        """
        with self._lock:
            hand = self._require_hand(hand_id)
            self._ensure_phase(hand, HandPhase.PLAYER_TURN)
            self._ensure_owner(hand, caller)
            hand.phase = HandPhase.SETTLING
            logger.info("Hand %d: player bust, settling", hand_id)

    def stand(self, hand_id: int, caller: str) -> None:
        with self._lock:
            hand = self._require_hand(hand_id)
            self._ensure_phase(hand, HandPhase.PLAYER_TURN)
            self._ensure_owner(hand, caller)

            dealer = add_card(self.fhe, hand.dealer, hand.dealer_hole_card, limit=self.rules.blackjack)
            continue_flag = self._dealer_continue_flag(dealer)
            self.disclosure.grant_owner(hand.owner, hand.dealer_hole_card)
            self.disclosure.make_public(dealer.total, continue_flag)

            hand.dealer = dealer
            hand.dealer_should_continue_flag = continue_flag
            hand.phase = HandPhase.DEALER_TURN
            logger.info("Hand %d: player stands, dealer turn", hand_id)

    # Dealer turn -----------------------------------------------------------

    def dealer_play(self, hand_id: int, caller: Optional[str] = None) -> EncryptedValue:
        """Draw one dealer card; it only counts if the dealer was below the stand threshold.

        The card is consumed either way so the cursor reveals nothing about the
        dealer's total.
        """
        with self._lock:
            hand = self._require_hand(hand_id)
            self._ensure_phase(hand, HandPhase.DEALER_TURN)
            card = hand.deck.peek()

            should_draw = self.fhe.lt(hand.dealer.total, self.rules.dealer_stands_on)
            candidate = add_card(self.fhe, hand.dealer, card, limit=self.rules.blackjack)
            dealer = select_totals(self.fhe, should_draw, candidate, hand.dealer)
            self.fhe.discard(should_draw, candidate.base, candidate.aces, candidate.total)
            continue_flag = self._dealer_continue_flag(dealer)
            self.disclosure.make_public(card, dealer.total, continue_flag)

            hand.deck.draw()
            hand.dealer = dealer
            hand.dealer_drawn_cards.append(card)
            hand.dealer_should_continue_flag = continue_flag
            logger.debug("Hand %d: dealer draw requested by %s, cursor %d", hand_id, caller or "anyone", hand.cursor)
            return card

    # Settlement ------------------------------------------------------------

    def settle(self, hand_id: int, caller: Optional[str] = None) -> EncryptedValue:
        """Reveal the hidden cards and publish the encrypted outcome flag."""
        with self._lock:
            hand = self._require_hand(hand_id)
            self._ensure_phase(hand, HandPhase.SETTLING, HandPhase.DEALER_TURN)

            limit = self.rules.blackjack
            player_alive = self.fhe.le(hand.player.total, limit)
            player_higher = self.fhe.gt(hand.player.total, hand.dealer.total)
            dealer_bust = self.fhe.gt(hand.dealer.total, limit)
            dealer_loses = self.fhe.or_(player_higher, dealer_bust)
            player_wins = self.fhe.and_(player_alive, dealer_loses)
            outcome_flag = self.fhe.as_flag(player_wins)
            self.fhe.discard(player_alive, player_higher, dealer_bust, dealer_loses, player_wins)
            self.disclosure.make_public(*hand.player_cards, hand.dealer_hole_card, hand.player.total, outcome_flag)

            hand.outcome_flag = outcome_flag
            hand.phase = HandPhase.DONE
            logger.info("Hand %d settled", hand_id)
            return hand.outcome_flag

    def claim_payout(
        self,
        hand_id: int,
        caller: str,
        claimed_win: bool,
        proof: Optional[DecryptionResult] = None,
    ) -> int:
        """Credit the owner's winnings once; return the amount credited."""
        with self._lock:
            hand = self._require_hand(hand_id)
            self._ensure_phase(hand, HandPhase.DONE)
            self._ensure_owner(hand, caller)
            if hand.paid:
                raise PayoutAlreadyClaimed(f"Payout for hand {hand_id} was already claimed.")
            if self.rules.verify_payout_claims:
                self._verify_outcome(hand, claimed_win, proof)

            amount = self.rules.payout_multiplier * hand.wager_plain if claimed_win else 0
            if amount:
                self.ledger.credit(caller, amount)
            hand.paid = True
            logger.info("Hand %d: payout %d to %s", hand_id, amount, caller)
            return amount

    # Reads -----------------------------------------------------------------

    def get_hand(self, hand_id: int) -> HandRecord:
        return self._require_hand(hand_id)

    def hands_for(self, owner: str) -> List[HandRecord]:
        return [hand for hand in self.hands.values() if hand.owner == owner]

    def deck_card(self, hand_id: int, index: int) -> EncryptedValue:
        return self._require_hand(hand_id).deck.card_at(index)

    # Helpers ---------------------------------------------------------------

    def _bust_flag(self, totals: RunningTotal) -> EncryptedValue:
        over = self.fhe.gt(totals.total, self.rules.blackjack)
        flag = self.fhe.as_flag(over)
        self.fhe.discard(over)
        return flag

    def _dealer_continue_flag(self, totals: RunningTotal) -> EncryptedValue:
        below = self.fhe.lt(totals.total, self.rules.dealer_stands_on)
        flag = self.fhe.as_flag(below)
        self.fhe.discard(below)
        return flag

    def _verify_outcome(self, hand: HandRecord, claimed_win: bool, proof: Optional[DecryptionResult]) -> None:
        if proof is None:
            raise InvalidPayoutClaim("A signed decryption of the outcome flag is required.")
        if hand.outcome_flag not in proof.values:
            raise InvalidPayoutClaim("Proof does not cover this hand's outcome flag.")
        if not self.fhe.verify_decryption(proof.values, proof.plaintexts, proof.signature):
            raise InvalidPayoutClaim("Decryption signature is invalid.")
        outcome = proof.plaintexts[proof.values.index(hand.outcome_flag)]
        if outcome != int(bool(claimed_win)):
            raise InvalidPayoutClaim("Claimed result does not match the published outcome.")

    def _require_hand(self, hand_id: int) -> HandRecord:
        hand = self.hands.get(hand_id)
        if hand is None or not hand.exists:
            raise UnknownHand(f"No hand with id {hand_id}.")
        return hand

    def _ensure_phase(self, hand: HandRecord, *expected: HandPhase) -> None:
        if hand.phase not in expected:
            names = ", ".join(str(phase) for phase in expected)
            raise PhaseMismatch(f"Action not allowed in phase {hand.phase}. Expected {names}.")

    def _ensure_owner(self, hand: HandRecord, caller: str) -> None:
        if caller != hand.owner:
            raise NotHandOwner(f"Only the owner of hand {hand.hand_id} may do this.")
