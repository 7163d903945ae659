"""Convenience service layer for the play service, orchestrators and UIs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .disclosure import DisclosureManager
from .fhe import CARD_BITS, DecryptionResult, EncryptedInput, EncryptedValue, MockFheBackend, WORD_BITS
from .game import BlackjackTable
from .hand import HandRecord
from .ledger import ChipExchange, ChipLedger, ExchangeReceipt
from .oracle import DecryptionOracle
from .rules_schema import TableRules


@dataclass
class HandView:
    hand_id: int
    owner: str
    phase: str
    cursor: int
    wager_plain: int
    paid: bool
    wager: str
    player_cards: list[str]
    dealer_up_card: str
    dealer_hole_card: str
    dealer_drawn_cards: list[str]
    player_total: str
    dealer_total: str
    bust_flag: str
    outcome_flag: str
    continue_flag: str
    visibility: dict[str, str]


@dataclass
class AccountView:
    account: str
    balance: int
    hands: list[int]


class TableService:
    """Facade around BlackjackTable, the decryption oracle and the chip exchange."""

    def __init__(
        self,
        table: Optional[BlackjackTable] = None,
        oracle: Optional[DecryptionOracle] = None,
        *,
        rules: Optional[TableRules] = None,
    ) -> None:
        if table is None:
            rules = rules or TableRules()
            table = BlackjackTable(
                fhe=MockFheBackend(),
                ledger=ChipLedger(),
                disclosure=DisclosureManager(),
                rules=rules,
            )
        self.table = table
        self.rules = table.rules
        self.oracle = oracle or DecryptionOracle(table.fhe, table.disclosure, latency=self.rules.oracle_latency)
        self.exchange = ChipExchange(table.ledger, chips_per_eth=self.rules.chips_per_eth)

    # Client-side encryption ----------------------------------------------

    def encrypt_inputs(self, account: str, plains: Sequence[int], bits: int = WORD_BITS) -> EncryptedInput:
        return self.table.fhe.encrypt_inputs(plains, bits, account)

    def encrypt_deck(self, account: str, deck: Sequence[int]) -> EncryptedInput:
        return self.encrypt_inputs(account, deck, CARD_BITS)

    def resolve(self, handle_hex: str) -> EncryptedValue:
        return self.table.fhe.resolve(handle_hex)

    # Create / act -------------------------------------------------------

    def start_hand(
        self,
        account: str,
        deck: EncryptedInput,
        wager: EncryptedInput,
        wager_plain: int,
    ) -> HandView:
        hand_id = self.table.start_hand(
            account,
            deck.values,
            deck.proof,
            wager.values[0],
            wager.proof,
            wager_plain,
        )
        return self.get_hand_view(hand_id)

    def hit(self, hand_id: int, account: str) -> HandView:
        self.table.hit(hand_id, account)
        return self.get_hand_view(hand_id)

    def stand(self, hand_id: int, account: str) -> HandView:
        self.table.stand(hand_id, account)
        return self.get_hand_view(hand_id)

    def set_bust(self, hand_id: int, account: str) -> HandView:
        self.table.set_bust(hand_id, account)
        return self.get_hand_view(hand_id)

    def dealer_play(self, hand_id: int, account: Optional[str] = None) -> HandView:
        self.table.dealer_play(hand_id, account)
        return self.get_hand_view(hand_id)

    def settle(self, hand_id: int, account: Optional[str] = None) -> HandView:
        self.table.settle(hand_id, account)
        return self.get_hand_view(hand_id)

    def claim_payout(
        self,
        hand_id: int,
        account: str,
        claimed_win: bool,
        proof: Optional[DecryptionResult] = None,
    ) -> AccountView:
        self.table.claim_payout(hand_id, account, claimed_win, proof)
        return self.get_account_view(account)

    # Decryption ----------------------------------------------------------

    async def public_decrypt(self, values: Sequence[EncryptedValue]) -> DecryptionResult:
        return await self.oracle.public_decrypt(values)

    async def user_decrypt(self, values: Sequence[EncryptedValue], account: str) -> DecryptionResult:
        return await self.oracle.user_decrypt(values, account)

    # Ledger --------------------------------------------------------------

    def buy_chips(self, account: str, wei: int) -> ExchangeReceipt:
        return self.exchange.buy_chips(account, wei)

    def sell_chips(self, account: str, chips: int) -> ExchangeReceipt:
        return self.exchange.sell_chips(account, chips)

    def grant_chips(self, account: str, chips: int) -> int:
        return self.table.ledger.credit(account, chips)

    def balance_of(self, account: str) -> int:
        return self.table.ledger.balance_of(account)

    # Views ---------------------------------------------------------------

    def get_hand(self, hand_id: int) -> HandRecord:
        return self.table.get_hand(hand_id)

    def get_hand_view(self, hand_id: int) -> HandView:
        hand = self.table.get_hand(hand_id)
        return HandView(
            hand_id=hand.hand_id,
            owner=hand.owner,
            phase=str(hand.phase),
            cursor=hand.cursor,
            wager_plain=hand.wager_plain,
            paid=hand.paid,
            wager=hand.wager_encrypted.hex,
            player_cards=[card.hex for card in hand.player_cards],
            dealer_up_card=hand.dealer_up_card.hex,
            dealer_hole_card=hand.dealer_hole_card.hex,
            dealer_drawn_cards=[card.hex for card in hand.dealer_drawn_cards],
            player_total=hand.player_total.hex,
            dealer_total=hand.dealer_total.hex,
            bust_flag=hand.bust_flag.hex,
            outcome_flag=hand.outcome_flag.hex,
            continue_flag=hand.dealer_should_continue_flag.hex,
            visibility=self._visibility(hand),
        )

    def get_account_view(self, account: str) -> AccountView:
        return AccountView(
            account=account,
            balance=self.balance_of(account),
            hands=[hand.hand_id for hand in self.table.hands_for(account)],
        )

    # Helpers -------------------------------------------------------------

    def _visibility(self, hand: HandRecord) -> Dict[str, str]:
        values: List[EncryptedValue] = [
            hand.wager_encrypted,
            *hand.player_cards,
            hand.dealer_up_card,
            hand.dealer_hole_card,
            *hand.dealer_drawn_cards,
            hand.player_total,
            hand.dealer_total,
            hand.bust_flag,
            hand.outcome_flag,
            hand.dealer_should_continue_flag,
        ]
        return {value.hex: str(self.table.disclosure.level_of(value)) for value in values}
