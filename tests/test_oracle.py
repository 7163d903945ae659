import asyncio

import pytest

from blackjack.disclosure import DisclosureManager
from blackjack.errors import DisclosureError, HandleNotReady
from blackjack.fhe import MockFheBackend
from blackjack.oracle import DecryptionOracle


def make_oracle(latency=0):
    fhe = MockFheBackend()
    disclosure = DisclosureManager()
    return fhe, disclosure, DecryptionOracle(fhe, disclosure, latency=latency)


def test_public_decrypt_serves_only_public_values():
    fhe, disclosure, oracle = make_oracle()
    public = fhe.trivial_encrypt(10)
    hidden = fhe.trivial_encrypt(7)
    disclosure.make_public(public)

    result = asyncio.run(oracle.public_decrypt([public]))
    assert result.plaintexts == (10,)
    assert fhe.verify_decryption(result.values, result.plaintexts, result.signature)

    with pytest.raises(DisclosureError):
        asyncio.run(oracle.public_decrypt([public, hidden]))


def test_user_decrypt_checks_owner():
    fhe, disclosure, oracle = make_oracle()
    card = fhe.trivial_encrypt(4)
    disclosure.grant_owner("alice", card)

    assert asyncio.run(oracle.user_decrypt([card], "alice"))[0] == 4
    with pytest.raises(DisclosureError):
        asyncio.run(oracle.user_decrypt([card], "bob"))
    with pytest.raises(DisclosureError):
        asyncio.run(oracle.public_decrypt([card]))


def test_latency_refuses_fresh_handles_until_polled():
    fhe, disclosure, oracle = make_oracle(latency=2)
    value = fhe.trivial_encrypt(1)
    disclosure.make_public(value)

    for _ in range(2):
        with pytest.raises(HandleNotReady):
            asyncio.run(oracle.public_decrypt([value]))
    assert asyncio.run(oracle.public_decrypt([value]))[0] == 1
    assert oracle.pending_count() == 0


def test_disclosure_is_checked_before_readiness():
    fhe, _, oracle = make_oracle(latency=3)
    with pytest.raises(DisclosureError):
        asyncio.run(oracle.public_decrypt([fhe.trivial_encrypt(1)]))


def test_empty_request_and_negative_latency_are_rejected():
    fhe, disclosure, oracle = make_oracle()
    with pytest.raises(ValueError):
        asyncio.run(oracle.public_decrypt([]))
    with pytest.raises(ValueError):
        DecryptionOracle(fhe, disclosure, latency=-1)


def test_poll_counts_are_dropped_once_served():
    fhe, disclosure, oracle = make_oracle(latency=1)
    values = [fhe.trivial_encrypt(n) for n in range(3)]
    disclosure.make_public(*values)

    with pytest.raises(HandleNotReady):
        asyncio.run(oracle.public_decrypt(values))
    assert oracle.pending_count() == 3
    assert asyncio.run(oracle.public_decrypt(values)).plaintexts == (0, 1, 2)
    assert oracle.pending_count() == 0
