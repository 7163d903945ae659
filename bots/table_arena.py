"""Play a run of hands with one strategy against a local table."""

from __future__ import annotations

import argparse
import asyncio
from random import Random
from typing import Dict, Iterable, Optional

from blackjack.errors import InsufficientBalance
from blackjack.logging_utils import get_logger, setup_logging
from blackjack.rules_schema import TableRules, load_rules
from blackjack.service import TableService

from .base import PlayerStrategy
from .basic_strategy import BasicStrategyBot
from .orchestrator import HandOrchestrator
from .threshold_bot import ThresholdBot

logger = get_logger(__name__)

BOT_REGISTRY: Dict[str, type[PlayerStrategy]] = {
    "threshold": ThresholdBot,
    "basic": BasicStrategyBot,
}


async def run_session(
    strategy: PlayerStrategy,
    *,
    n_hands: int = 10,
    seed: Optional[int] = None,
    rules: Optional[TableRules] = None,
    account: str = "player",
    sleep=None,
) -> dict:
    rules = rules or TableRules()
    service = TableService(rules=rules)
    if rules.starting_chips:
        service.grant_chips(account, rules.starting_chips)
    kwargs = {"sleep": sleep} if sleep is not None else {}
    orchestrator = HandOrchestrator(service, account, strategy, rng=Random(seed), **kwargs)
    history = []
    for _ in range(n_hands):
        balance = service.balance_of(account)
        wager = strategy.choose_wager(balance)
        if wager <= 0:
            logger.info("Out of chips after %d hands", len(history))
            break
        try:
            summary = await orchestrator.play_hand(wager)
        except InsufficientBalance:
            logger.info("Out of chips after %d hands", len(history))
            break
        history.append(
            {
                "hand_id": summary.hand_id,
                "wager": summary.wager,
                "player_total": summary.player_total,
                "dealer_total": summary.dealer_total,
                "busted": summary.busted,
                "won": summary.won,
                "payout": summary.payout,
            }
        )
    return {"balance": service.balance_of(account), "history": history}


def main(argv: Iterable[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run a confidential Blackjack session.")
    parser.add_argument("--bot", default="basic", choices=BOT_REGISTRY.keys())
    parser.add_argument("--n", type=int, default=10, help="Number of hands to play.")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--rules", default=None, help="Path to a JSON rules file.")
    args = parser.parse_args(argv)

    setup_logging()
    rules = load_rules(args.rules)
    results = asyncio.run(run_session(BOT_REGISTRY[args.bot](), n_hands=args.n, seed=args.seed, rules=rules))

    wins = sum(1 for entry in results["history"] if entry["won"])
    print(f"Balance after {len(results['history'])} hands: {results['balance']}")
    print(f"Win rate: {wins}/{len(results['history'])}")


if __name__ == "__main__":
    main()
