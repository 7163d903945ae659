import pytest

from blackjack.fhe import CARD_BITS, MockFheBackend
from blackjack.scoring import add_card, apply_soft_ace, empty_totals, score_value, select_totals
from bots.base import hand_total


def total_of(codes):
    fhe = MockFheBackend()
    totals = empty_totals(fhe)
    for code in codes:
        totals = add_card(fhe, totals, fhe.trivial_encrypt(code, CARD_BITS))
    return fhe.debug_decrypt_many([totals.base, totals.aces, totals.total])


@pytest.mark.parametrize("code", range(1, 14))
def test_score_value_covers_every_code(code):
    fhe = MockFheBackend()
    value = score_value(fhe, fhe.trivial_encrypt(code, CARD_BITS))
    assert fhe.debug_decrypt(value) == min(code, 10)


@pytest.mark.parametrize(
    "codes, expected",
    [
        ([1, 6], 17),
        ([1, 6, 10], 17),
        ([1, 1], 12),
        ([13, 1], 21),
        ([1, 13], 21),
        ([1, 9, 1], 21),
        ([10, 10, 1], 21),
        ([10, 10, 2], 22),
        ([5, 5, 5, 1], 16),
    ],
)
def test_soft_ace_promotion(codes, expected):
    assert total_of(codes)[2] == expected


def test_base_total_and_ace_count_are_tracked_separately():
    base, aces, total = total_of([1, 1, 9])
    assert (base, aces, total) == (11, 2, 21)


def test_plain_hand_total_matches_encrypted_scoring():
    for codes in ([1, 6], [1, 6, 10], [12, 1], [9, 8, 7], [1, 1, 1]):
        assert hand_total(codes)[0] == total_of(codes)[2]
    assert hand_total([1, 6]) == (17, True)
    assert hand_total([1, 6, 10]) == (17, False)


def test_select_totals_picks_one_side():
    fhe = MockFheBackend()
    low = add_card(fhe, empty_totals(fhe), fhe.trivial_encrypt(4, CARD_BITS))
    high = add_card(fhe, low, fhe.trivial_encrypt(13, CARD_BITS))

    chosen = select_totals(fhe, fhe.lt(low.total, 17), high, low)
    assert fhe.debug_decrypt(chosen.total) == 14

    kept = select_totals(fhe, fhe.gt(low.total, 17), high, low)
    assert fhe.debug_decrypt(kept.total) == 4


@pytest.mark.parametrize(
    "base, aces, expected",
    [
        (11, 1, 21),
        (12, 1, 12),
        (5, 0, 5),
        (2, 2, 12),
        (7, 1, 17),
        (21, 0, 21),
    ],
)
def test_apply_soft_ace_table(base, aces, expected):
    fhe = MockFheBackend()
    total = apply_soft_ace(fhe, fhe.trivial_encrypt(base), fhe.trivial_encrypt(aces))
    assert fhe.debug_decrypt(total) == expected


def test_scoring_releases_intermediates():
    fhe = MockFheBackend()
    totals = empty_totals(fhe)
    card = fhe.trivial_encrypt(1, CARD_BITS)
    before = fhe.stored_count()
    totals = add_card(fhe, totals, card)
    assert fhe.stored_count() == before + 3
    assert fhe.debug_decrypt_many([totals.base, totals.aces, totals.total]) == [1, 1, 11]
