"""Core engine package for confidential Blackjack."""

__all__ = [
    "fhe",
    "disclosure",
    "oracle",
    "cards",
    "scoring",
    "deck",
    "hand",
    "ledger",
    "game",
    "errors",
    "rules_schema",
    "service",
    "logging_utils",
]
