"""Encrypted Blackjack scoring.

Base totals count every Ace as 1 so that the running sum and the Ace count can
be updated with plain encrypted additions. The soft-Ace promotion (one Ace
counted as 11) is applied afterwards with a single select. Promoting a second
Ace would add another 10 to a total that is already at least 12, so at most one
Ace can ever be promoted.
"""

from __future__ import annotations

from dataclasses import dataclass

from .fhe import EncryptedValue, FheBackend, WORD_BITS

BLACKJACK = 21
FACE_VALUE = 10
SOFT_ACE_BONUS = 10
ACE_CODE = 1


@dataclass(frozen=True)
class RunningTotal:
    """Encrypted accumulators for one side of the table."""

    base: EncryptedValue
    aces: EncryptedValue
    total: EncryptedValue


def empty_totals(fhe: FheBackend) -> RunningTotal:
    zero = fhe.trivial_encrypt(0, WORD_BITS)
    return RunningTotal(base=zero, aces=zero, total=zero)


def score_value(fhe: FheBackend, card: EncryptedValue) -> EncryptedValue:
    """Map a card code to its Blackjack value: J/Q/K -> 10, Ace -> 1, else the code."""
    wide = fhe.cast(card, WORD_BITS)
    is_face = fhe.gt(wide, FACE_VALUE)
    value = fhe.select(is_face, FACE_VALUE, wide)
    fhe.discard(wide, is_face)
    return value


def apply_soft_ace(
    fhe: FheBackend,
    base_total: EncryptedValue,
    ace_count: EncryptedValue,
    *,
    limit: int = BLACKJACK,
) -> EncryptedValue:
    promoted = fhe.add(base_total, SOFT_ACE_BONUS)
    has_ace = fhe.gt(ace_count, 0)
    fits = fhe.le(promoted, limit)
    promote = fhe.and_(has_ace, fits)
    total = fhe.select(promote, promoted, base_total)
    fhe.discard(promoted, has_ace, fits, promote)
    return total


def add_card(
    fhe: FheBackend,
    totals: RunningTotal,
    card: EncryptedValue,
    *,
    limit: int = BLACKJACK,
) -> RunningTotal:
    """Fold one card into a side's totals. The only way a hand total changes."""
    value = score_value(fhe, card)
    base = fhe.add(totals.base, value)
    is_ace = fhe.eq(card, ACE_CODE)
    ace_step = fhe.select(is_ace, 1, 0)
    aces = fhe.add(totals.aces, ace_step)
    fhe.discard(value, is_ace, ace_step)
    return RunningTotal(base=base, aces=aces, total=apply_soft_ace(fhe, base, aces, limit=limit))


def select_totals(
    fhe: FheBackend,
    condition: EncryptedValue,
    if_true: RunningTotal,
    if_false: RunningTotal,
) -> RunningTotal:
    """Choose between two sets of totals component-wise, without revealing which."""
    return RunningTotal(
        base=fhe.select(condition, if_true.base, if_false.base),
        aces=fhe.select(condition, if_true.aces, if_false.aces),
        total=fhe.select(condition, if_true.total, if_false.total),
    )
