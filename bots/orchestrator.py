"""Off-engine orchestrator: decrypts what it may, decides, and calls the next operation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from random import Random
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from blackjack.cards import card_label, shuffled_plain_deck
from blackjack.errors import HandleNotReady
from blackjack.fhe import DecryptionResult, EncryptedValue
from blackjack.hand import HandPhase
from blackjack.logging_utils import get_logger
from blackjack.rules_schema import OrchestrationConfig
from blackjack.service import TableService

from .base import PlayerStrategy

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class HandSummary:
    hand_id: int
    wager: int
    player_cards: List[int] = field(default_factory=list)
    player_total: int = 0
    dealer_cards: List[int] = field(default_factory=list)
    dealer_total: int = 0
    busted: bool = False
    won: bool = False
    payout: int = 0
    balance: int = 0


class HandOrchestrator:
    """Play complete hands for one account against a table service.

    Every oracle read is retried with exponential backoff while the oracle
    reports that it has not caught up with a fresh handle.
    """

    def __init__(
        self,
        service: TableService,
        account: str,
        strategy: PlayerStrategy,
        *,
        rng: Optional[Random] = None,
        config: Optional[OrchestrationConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.service = service
        self.account = account
        self.strategy = strategy
        self.rng = rng or Random()
        self.config = config or service.rules.orchestration
        self._sleep = sleep

    # Oracle access -----------------------------------------------------

    async def _with_retry(self, request: Callable[[], Awaitable[T]]) -> T:
        delay = self.config.initial_delay
        for attempt in range(1, self.config.max_retries + 1):
            try:
                return await request()
            except HandleNotReady:
                if attempt == self.config.max_retries:
                    logger.error("Oracle not ready after %d attempts", attempt)
                    raise
                logger.debug("Oracle not ready (attempt %d), retrying in %.2fs", attempt, delay)
                await self._sleep(delay)
                delay *= 2
        raise AssertionError("unreachable")

    async def decrypt_public(self, values: Sequence[EncryptedValue]) -> DecryptionResult:
        return await self._with_retry(lambda: self.service.public_decrypt(values))

    async def decrypt_own(self, values: Sequence[EncryptedValue]) -> DecryptionResult:
        return await self._with_retry(lambda: self.service.user_decrypt(values, self.account))

    # Hand flow ---------------------------------------------------------

    async def play_hand(self, wager: Optional[int] = None) -> HandSummary:
        if wager is None:
            wager = self.strategy.choose_wager(self.service.balance_of(self.account))
        deck = self.service.encrypt_deck(self.account, shuffled_plain_deck(self.rng))
        encrypted_wager = self.service.encrypt_inputs(self.account, [wager])
        view = self.service.start_hand(self.account, deck, encrypted_wager, wager)
        hand_id = view.hand_id
        self.strategy.on_hand_start(hand_id)
        summary = HandSummary(hand_id=hand_id, wager=wager)

        hand = self.service.get_hand(hand_id)
        own = await self.decrypt_own([*hand.player_cards, hand.player_total])
        summary.player_cards = list(own.plaintexts[:-1])
        summary.player_total = own.plaintexts[-1]
        dealer_up = (await self.decrypt_public([hand.dealer_up_card]))[0]
        logger.info(
            "Hand %d: player %s (%d) vs dealer %s",
            hand_id,
            " ".join(card_label(card) for card in summary.player_cards),
            summary.player_total,
            card_label(dealer_up),
        )

        while self.strategy.should_hit(summary.player_cards, summary.player_total, dealer_up):
            card = self.service.table.hit(hand_id, self.account)
            hand = self.service.get_hand(hand_id)
            own = await self.decrypt_own([card, hand.player_total])
            summary.player_cards.append(own[0])
            summary.player_total = own[1]
            bust = (await self.decrypt_public([hand.bust_flag]))[0]
            logger.info("Hand %d: hit %s -> %d", hand_id, card_label(own[0]), summary.player_total)
            if bust == 1:
                self.service.set_bust(hand_id, self.account)
                summary.busted = True
                break

        if not summary.busted:
            self.service.stand(hand_id, self.account)
            await self._run_dealer(hand_id)

        self.service.settle(hand_id, self.account)
        hand = self.service.get_hand(hand_id)
        outcome = await self.decrypt_public([hand.outcome_flag])
        summary.won = outcome[0] == 1

        dealer_values = [hand.dealer_up_card, hand.dealer_hole_card, *hand.dealer_drawn_cards, hand.dealer_total]
        dealer = await self.decrypt_public(dealer_values)
        summary.dealer_cards = list(dealer.plaintexts[:-1])
        summary.dealer_total = dealer.plaintexts[-1]

        before = self.service.balance_of(self.account)
        account_view = self.service.claim_payout(hand_id, self.account, summary.won, proof=outcome)
        summary.balance = account_view.balance
        summary.payout = account_view.balance - before
        logger.info(
            "Hand %d: %s (player %d, dealer %d), balance %d",
            hand_id,
            "win" if summary.won else "loss",
            summary.player_total,
            summary.dealer_total,
            summary.balance,
        )
        return summary

    async def _run_dealer(self, hand_id: int) -> None:
        limit = self.service.rules.blackjack
        for _ in range(self.config.dealer_max_iterations):
            hand = self.service.get_hand(hand_id)
            if hand.phase is not HandPhase.DEALER_TURN:
                return
            total, should_continue = (
                await self.decrypt_public([hand.dealer_total, hand.dealer_should_continue_flag])
            ).plaintexts
            if should_continue == 0 or total > limit:
                return
            self.service.dealer_play(hand_id, self.account)
        logger.warning("Hand %d: dealer iteration limit reached", hand_id)
