import pytest

from blackjack.errors import InsufficientBalance, InvalidAmount
from blackjack.ledger import WEI_PER_ETH, ChipExchange, ChipLedger


def test_debit_and_credit():
    ledger = ChipLedger({"alice": 1000})
    assert ledger.debit("alice", 100) == 900
    assert ledger.credit("alice", 200) == 1100
    assert ledger.balance_of("bob") == 0
    assert ledger.snapshot() == {"alice": 1100}


def test_debit_never_goes_negative():
    ledger = ChipLedger({"alice": 50})
    with pytest.raises(InsufficientBalance):
        ledger.debit("alice", 51)
    assert ledger.balance_of("alice") == 50


@pytest.mark.parametrize("amount", [0, -5, True, 1.5])
def test_amounts_must_be_positive_integers(amount):
    ledger = ChipLedger({"alice": 10})
    with pytest.raises(InvalidAmount):
        ledger.credit("alice", amount)
    with pytest.raises(InvalidAmount):
        ledger.debit("alice", amount)


def test_negative_opening_balance_rejected():
    with pytest.raises(InvalidAmount):
        ChipLedger({"alice": -1})


def test_exchange_buys_and_sells_at_fixed_rate():
    ledger = ChipLedger()
    exchange = ChipExchange(ledger)
    receipt = exchange.buy_chips("alice", WEI_PER_ETH)
    assert receipt.chips == 10_000
    assert receipt.balance == 10_000

    sold = exchange.sell_chips("alice", 5_000)
    assert sold.wei == WEI_PER_ETH // 2
    assert ledger.balance_of("alice") == 5_000


def test_exchange_rejects_dust_and_oversells():
    ledger = ChipLedger()
    exchange = ChipExchange(ledger, chips_per_eth=10_000)
    with pytest.raises(InvalidAmount):
        exchange.buy_chips("alice", WEI_PER_ETH // 100_000)
    with pytest.raises(InsufficientBalance):
        exchange.sell_chips("alice", 1)
    assert ledger.balance_of("alice") == 0
