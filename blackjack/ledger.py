"""Plain chip ledger and the chip exchange that feeds it."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .errors import InsufficientBalance, InvalidAmount
from .logging_utils import get_logger

logger = get_logger(__name__)

WEI_PER_ETH = 10**18
DEFAULT_CHIPS_PER_ETH = 10_000


def _require_positive(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"Amount must be a positive integer, got {amount!r}.")
    return amount


class ChipLedger:
    """Account balances shared by every hand at a table.

    ``debit`` checks sufficiency and subtracts under one lock, so a balance is
    never observed negative and a wager is never half-applied.
    """

    def __init__(self, balances: Optional[Mapping[str, int]] = None) -> None:
        self._balances: Dict[str, int] = {}
        self._lock = threading.RLock()
        for account, amount in (balances or {}).items():
            if amount < 0:
                raise InvalidAmount(f"Opening balance for {account} is negative.")
            self._balances[account] = amount

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)

    def debit(self, account: str, amount: int) -> int:
        _require_positive(amount)
        with self._lock:
            balance = self._balances.get(account, 0)
            if balance < amount:
                raise InsufficientBalance(
                    f"Account {account} holds {balance} chips, {amount} required."
                )
            self._balances[account] = balance - amount
            logger.debug("Debited %d from %s (balance %d)", amount, account, balance - amount)
            return self._balances[account]

    def credit(self, account: str, amount: int) -> int:
        _require_positive(amount)
        with self._lock:
            balance = self._balances.get(account, 0) + amount
            self._balances[account] = balance
            logger.debug("Credited %d to %s (balance %d)", amount, account, balance)
            return balance

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._balances)


@dataclass(frozen=True)
class ExchangeReceipt:
    account: str
    chips: int
    wei: int
    balance: int


class ChipExchange:
    """Buy and sell chips against ether at a fixed rate."""

    def __init__(self, ledger: ChipLedger, chips_per_eth: int = DEFAULT_CHIPS_PER_ETH) -> None:
        _require_positive(chips_per_eth)
        self.ledger = ledger
        self.chips_per_eth = chips_per_eth

    def chips_for_wei(self, wei: int) -> int:
        return wei * self.chips_per_eth // WEI_PER_ETH

    def wei_for_chips(self, chips: int) -> int:
        return chips * WEI_PER_ETH // self.chips_per_eth

    def buy_chips(self, account: str, wei: int) -> ExchangeReceipt:
        _require_positive(wei)
        chips = self.chips_for_wei(wei)
        if chips <= 0:
            raise InvalidAmount("Payment is too small to buy a single chip.")
        balance = self.ledger.credit(account, chips)
        logger.info("%s bought %d chips for %d wei", account, chips, wei)
        return ExchangeReceipt(account=account, chips=chips, wei=wei, balance=balance)

    def sell_chips(self, account: str, chips: int) -> ExchangeReceipt:
        _require_positive(chips)
        wei = self.wei_for_chips(chips)
        balance = self.ledger.debit(account, chips)
        logger.info("%s sold %d chips for %d wei", account, chips, wei)
        return ExchangeReceipt(account=account, chips=chips, wei=wei, balance=balance)
