"""Error taxonomy for the Blackjack engine."""

from __future__ import annotations


class GameError(RuntimeError):
    """Base class for every rejected engine operation."""

    reason: str = "game_error"


class UnknownHand(GameError):
    """Raised when a hand identifier was never issued."""

    reason = "unknown_hand"


class PhaseMismatch(GameError):
    """Raised when an operation is not allowed in the hand's current phase."""

    reason = "phase_mismatch"


class NotHandOwner(GameError):
    """Raised when someone other than the hand owner attempts a player action."""

    reason = "not_owner"


class NotAccountOwner(GameError):
    """Raised when a caller tries to move chips of an account that is not theirs."""

    reason = "not_account_owner"


class InvalidWager(GameError):
    """Raised when the plain wager is not a positive integer."""

    reason = "invalid_wager"


class InvalidDeck(GameError):
    """Raised when the supplied deck does not hold the expected number of cards."""

    reason = "invalid_deck"


class InvalidInputProof(GameError):
    """Raised when an encrypted input does not match its proof of encryption."""

    reason = "invalid_input_proof"


class DeckExhausted(GameError):
    """Raised when a draw is attempted past the last card of the deck."""

    reason = "deck_exhausted"


class InsufficientBalance(GameError):
    """Raised when a debit would take an account below zero."""

    reason = "insufficient_balance"


class InvalidAmount(GameError):
    """Raised when a ledger movement is not a positive integer."""

    reason = "invalid_amount"


class PayoutAlreadyClaimed(GameError):
    """Raised when the payout of a settled hand is claimed twice."""

    reason = "payout_already_claimed"


class InvalidPayoutClaim(GameError):
    """Raised when a claimed result does not match the signed public outcome."""

    reason = "invalid_payout_claim"


class DisclosureError(GameError):
    """Raised when a requester is not authorised to decrypt a value."""

    reason = "disclosure_denied"


class VisibilityDowngrade(DisclosureError):
    """Raised when a disclosure grant would lower a value's visibility."""

    reason = "visibility_downgrade"


class HandleNotReady(GameError):
    """Raised by the decryption oracle while it has not caught up with a handle."""

    reason = "handle_not_ready"
